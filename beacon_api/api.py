"""
REST / HTTP API server for the beacon node.

Built on ``aiohttp`` and designed to be started alongside whatever keeps
the chain state up to date.

Endpoints
---------
GET  /version         Client implementation and version string
GET  /genesis_time    Unix time at which the chain began
GET  /health          Head slot and genesis time

Each group of endpoints is an :class:`~beacon_api.service.APIService`;
the server collects their routes into one
:class:`~beacon_api.router.RouterBuilder` and installs it at startup.

Middlewares (outermost first):
- Response envelope for errors raised outside handlers, the rate
  limiter's 429 included.
- Per-client token-bucket rate limiter (only when ``rate_limit_rpm`` > 0).
- Request context (logger + chain handle) attachment.

Usage:
    api = APIServer(chain, host="127.0.0.1", port=5052)
    await api.start()    # call inside existing event loop
    ...
    await api.stop()
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from aiohttp import web

from beacon_api.beacon_node import BeaconNodeService
from beacon_api.chain import BeaconChain
from beacon_api.context import RequestContext, make_context_middleware
from beacon_api.errors import RateLimited
from beacon_api.health import HealthService
from beacon_api.response import envelope_middleware
from beacon_api.router import RouterBuilder
from beacon_api.service import APIService

if TYPE_CHECKING:
    from beacon_api.config import APIConfig

logger = logging.getLogger("beacon_api.api")


# ═══════════════════════════════════════════════════════════════════
#  Rate Limiter (per-IP token bucket)
# ═══════════════════════════════════════════════════════════════════

PRUNE_INTERVAL = 60.0  # seconds; any idle bucket is full again after this
RETRY_AFTER = 5


@dataclass
class _Bucket:
    tokens: float
    updated: float


class _TokenBucket:
    """
    Per-client token buckets refilled at ``rpm`` tokens per minute.

    A bucket that has refilled to capacity is indistinguishable from a
    new one, so :meth:`prune` drops those.  Pruning runs at most once per
    ``PRUNE_INTERVAL`` from :meth:`allow`, and again whenever a new client
    arrives while ``max_clients`` buckets are held.  If nothing is full at
    that point the least recently seen client is evicted.
    """

    def __init__(self, rpm: int, max_clients: int = 10_000):
        self.rpm = rpm  # 0 = unlimited
        self.max_clients = max_clients
        self._buckets: dict[str, _Bucket] = {}
        self._last_prune: float | None = None

    def __len__(self) -> int:
        return len(self._buckets)

    def __contains__(self, client: str) -> bool:
        return client in self._buckets

    def _level(self, bucket: _Bucket, now: float) -> float:
        refill = (now - bucket.updated) * self.rpm / 60.0
        return min(float(self.rpm), bucket.tokens + refill)

    def allow(self, client: str, now: float | None = None) -> bool:
        if self.rpm <= 0:
            return True
        if now is None:
            now = time.monotonic()

        if self._last_prune is None:
            self._last_prune = now
        elif now - self._last_prune >= PRUNE_INTERVAL:
            self.prune(now)

        bucket = self._buckets.get(client)
        if bucket is None:
            if len(self._buckets) >= self.max_clients:
                self._make_room(now)
            bucket = self._buckets[client] = _Bucket(float(self.rpm), now)

        bucket.tokens = self._level(bucket, now)
        bucket.updated = now
        if bucket.tokens >= 1.0:
            bucket.tokens -= 1.0
            return True
        return False

    def prune(self, now: float | None = None) -> int:
        """Drop buckets that have refilled to capacity; return how many."""
        if now is None:
            now = time.monotonic()
        full = [c for c, b in self._buckets.items() if self._level(b, now) >= self.rpm]
        for client in full:
            del self._buckets[client]
        self._last_prune = now
        if full:
            logger.debug(f"Pruned {len(full)} idle rate-limit buckets")
        return len(full)

    def _make_room(self, now: float) -> None:
        if self.prune(now):
            return
        oldest = min(self._buckets, key=lambda c: self._buckets[c].updated)
        del self._buckets[oldest]


def _make_rate_limit_middleware(bucket: _TokenBucket):
    """aiohttp middleware that enforces per-client rate limits."""

    @web.middleware
    async def rate_limit_middleware(request: web.Request, handler):
        client = request.remote or "unknown"
        if not bucket.allow(client):
            raise RateLimited(
                "Rate limit exceeded. Try again later.", retry_after=RETRY_AFTER
            )
        return await handler(request)

    return rate_limit_middleware


def default_services() -> list[APIService]:
    return [BeaconNodeService(), HealthService()]


class APIServer:
    """aiohttp application serving read-only facts about a beacon chain."""

    def __init__(
        self,
        chain: BeaconChain,
        host: str = "127.0.0.1",
        port: int = 5052,
        *,
        api_config: APIConfig | None = None,
        services: Iterable[APIService] | None = None,
        log: logging.Logger | None = None,
    ):
        self.chain = chain
        self.host = host
        self.port = port
        self.services = list(services) if services is not None else default_services()
        self._api_config = api_config
        self._log = log or logging.getLogger("beacon_api.http")
        self._app: web.Application | None = None
        self._runner: web.AppRunner | None = None

    # ── assembly ─────────────────────────────────────────────────

    def build_router(self) -> RouterBuilder:
        """Let every service register its routes; conflicts abort startup."""
        router = RouterBuilder()
        for service in self.services:
            router = service.add_routes(router)
        return router

    def build_app(self) -> web.Application:
        middlewares: list = [envelope_middleware]

        if self._api_config is not None and self._api_config.rate_limit_rpm > 0:
            bucket = _TokenBucket(self._api_config.rate_limit_rpm)
            middlewares.append(_make_rate_limit_middleware(bucket))

        ctx = RequestContext(log=self._log, chain=self.chain)
        middlewares.append(make_context_middleware(ctx))

        app = web.Application(middlewares=middlewares)
        router = self.build_router()
        router.install(app)
        for entry in router.routes:
            logger.debug(f"Registered route {entry.method} {entry.path}")
        return app

    # ── lifecycle ────────────────────────────────────────────────

    async def start(self) -> None:
        self._app = self.build_app()
        self._runner = web.AppRunner(self._app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, self.host, self.port)
        await site.start()
        logger.info(f"API listening on http://{self.host}:{self.port}")

    async def stop(self) -> None:
        if self._runner:
            await self._runner.cleanup()
            self._runner = None

"""
Tests for beacon_api.api: server assembly, lifecycle and rate limiting.

Covers:
  - Token bucket rate limiter and idle-bucket pruning
  - Rate-limit middleware wired from APIConfig
  - Default services (/version, /genesis_time, /health)
  - start() / stop() on an ephemeral port
  - The node runner's start/stop with the API disabled
"""

from __future__ import annotations

import pytest
from aiohttp.test_utils import TestClient, TestServer

from beacon_api.api import (
    PRUNE_INTERVAL,
    RETRY_AFTER,
    APIServer,
    _TokenBucket,
    default_services,
)
from beacon_api.beacon_node import BeaconNodeService
from beacon_api.chain import BeaconState
from beacon_api.config import APIConfig, BeaconAPIConfig
from beacon_api.health import HealthService

GENESIS_TIME = 1606824023


def _make_test_client(chain, **server_kwargs) -> TestClient:
    api = APIServer(chain, host="127.0.0.1", port=0, **server_kwargs)
    return TestClient(TestServer(api.build_app()))


# ═══════════════════════════════════════════════════════════════════
#  Token Bucket Rate Limiter
# ═══════════════════════════════════════════════════════════════════

class TestTokenBucket:
    def test_unlimited_always_allows(self):
        bucket = _TokenBucket(0)
        for _ in range(1000):
            assert bucket.allow("1.2.3.4")
        assert len(bucket) == 0

    def test_allows_up_to_limit(self):
        bucket = _TokenBucket(5)
        for _ in range(5):
            assert bucket.allow("1.2.3.4", now=0.0)
        assert not bucket.allow("1.2.3.4", now=0.0)

    def test_different_ips_independent(self):
        bucket = _TokenBucket(2)
        assert bucket.allow("1.1.1.1", now=0.0)
        assert bucket.allow("1.1.1.1", now=0.0)
        assert not bucket.allow("1.1.1.1", now=0.0)
        assert bucket.allow("2.2.2.2", now=0.0)

    def test_tokens_refill_over_time(self):
        bucket = _TokenBucket(60)  # 1 per second
        for _ in range(60):
            bucket.allow("x", now=0.0)
        assert not bucket.allow("x", now=0.0)
        assert bucket.allow("x", now=2.0)
        assert bucket.allow("x", now=2.0)
        assert not bucket.allow("x", now=2.0)

    def test_tokens_capped_at_rpm(self):
        bucket = _TokenBucket(10)
        bucket.allow("ip", now=0.0)
        for _ in range(10):
            assert bucket.allow("ip", now=10000.0)
        assert not bucket.allow("ip", now=10000.0)


class TestTokenBucketPruning:
    def test_prune_drops_refilled_buckets(self):
        bucket = _TokenBucket(60)
        bucket.allow("idle", now=0.0)
        for _ in range(60):
            bucket.allow("busy", now=30.0)
        # "idle" is full again after one second; "busy" is still drained
        assert bucket.prune(now=31.0) == 1
        assert "idle" not in bucket
        assert "busy" in bucket

    def test_prune_keeps_partial_buckets(self):
        bucket = _TokenBucket(60)
        for _ in range(10):
            bucket.allow("x", now=0.0)
        assert bucket.prune(now=5.0) == 0
        assert bucket.prune(now=10.0) == 1
        assert len(bucket) == 0

    def test_allow_prunes_periodically(self):
        bucket = _TokenBucket(60)
        for i in range(100):
            bucket.allow(f"10.0.0.{i}", now=0.0)
        assert len(bucket) == 100
        bucket.allow("10.0.1.1", now=PRUNE_INTERVAL)
        assert len(bucket) == 1
        assert "10.0.1.1" in bucket

    def test_pruned_client_starts_full(self):
        bucket = _TokenBucket(3)
        for _ in range(3):
            bucket.allow("x", now=0.0)
        bucket.prune(now=PRUNE_INTERVAL)
        for _ in range(3):
            assert bucket.allow("x", now=PRUNE_INTERVAL)
        assert not bucket.allow("x", now=PRUNE_INTERVAL)

    def test_cap_prunes_full_buckets_first(self):
        bucket = _TokenBucket(60, max_clients=2)
        bucket.allow("a", now=0.0)
        for _ in range(60):
            bucket.allow("b", now=0.5)
        bucket.allow("c", now=1.5)
        assert "a" not in bucket
        assert "b" in bucket
        assert "c" in bucket

    def test_cap_evicts_least_recent(self):
        bucket = _TokenBucket(60, max_clients=2)
        for _ in range(60):
            bucket.allow("a", now=0.0)
        for _ in range(60):
            bucket.allow("b", now=1.0)
        bucket.allow("c", now=2.0)
        assert len(bucket) == 2
        assert "a" not in bucket
        assert "b" in bucket


class TestRateLimitMiddleware:
    @pytest.mark.asyncio
    async def test_limit_enforced(self, chain):
        client = _make_test_client(chain, api_config=APIConfig(rate_limit_rpm=3))
        async with client:
            statuses = [(await client.get("/genesis_time")).status for _ in range(4)]
            assert statuses == [200, 200, 200, 429]

    @pytest.mark.asyncio
    async def test_rejection_uses_error_envelope(self, chain):
        client = _make_test_client(chain, api_config=APIConfig(rate_limit_rpm=1))
        async with client:
            await client.get("/version")
            resp = await client.get("/version")
            assert resp.status == 429
            assert resp.headers["Retry-After"] == str(RETRY_AFTER)
            assert resp.content_type == "text/plain"
            assert await resp.text() == "Rate limit exceeded. Try again later."

    @pytest.mark.asyncio
    async def test_zero_rpm_is_unlimited(self, chain):
        client = _make_test_client(chain, api_config=APIConfig(rate_limit_rpm=0))
        async with client:
            for _ in range(20):
                assert (await client.get("/genesis_time")).status == 200


# ═══════════════════════════════════════════════════════════════════
#  Assembly
# ═══════════════════════════════════════════════════════════════════

class TestAssembly:
    def test_default_services(self):
        kinds = [type(s) for s in default_services()]
        assert kinds == [BeaconNodeService, HealthService]

    def test_default_router_table(self, chain):
        router = APIServer(chain).build_router()
        assert {(e.method, e.path) for e in router.routes} == {
            ("GET", "/version"),
            ("GET", "/genesis_time"),
            ("GET", "/health"),
        }

    def test_empty_service_list(self, chain):
        assert len(APIServer(chain, services=[]).build_router()) == 0

    @pytest.mark.asyncio
    async def test_health(self, chain):
        chain.set_state(BeaconState(genesis_time=GENESIS_TIME, slot=12))
        client = _make_test_client(chain)
        async with client:
            resp = await client.get("/health")
            assert resp.status == 200
            assert await resp.json() == {
                "ok": True,
                "slot": 12,
                "genesis_time": GENESIS_TIME,
            }

    @pytest.mark.asyncio
    async def test_health_rejects_post(self, chain):
        client = _make_test_client(chain)
        async with client:
            resp = await client.post("/health")
            assert resp.status == 405
            assert "Invalid method" in await resp.text()


# ═══════════════════════════════════════════════════════════════════
#  Lifecycle
# ═══════════════════════════════════════════════════════════════════

class TestLifecycle:
    @pytest.mark.asyncio
    async def test_start_and_stop(self, chain):
        api = APIServer(chain, host="127.0.0.1", port=0)
        await api.start()
        try:
            assert api._runner is not None
            assert api._app is not None
        finally:
            await api.stop()
        assert api._runner is None

    @pytest.mark.asyncio
    async def test_stop_without_start(self, chain):
        await APIServer(chain).stop()

    @pytest.mark.asyncio
    async def test_node_runner_without_api(self):
        from run_node import BeaconNode

        cfg = BeaconAPIConfig()
        cfg.api.enabled = False
        cfg.chain.genesis_time = 1000
        node = BeaconNode(cfg)
        await node.start()
        try:
            assert node.chain.current_state().slot > 0
            assert node._api is None
        finally:
            await node.stop()
        assert node._bg_tasks == []

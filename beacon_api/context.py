"""
Request-scoped context: the logger and chain handle every handler reads.

The server builds one :class:`RequestContext` at startup and a middleware
attaches it to each request before dispatch.  Handlers borrow it for the
duration of the call only.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from aiohttp import web

from beacon_api.chain import BeaconChain
from beacon_api.errors import InternalError

CONTEXT_KEY = "beacon_api.context"

logger = logging.getLogger("beacon_api.context")

# Used when a request carries no context (e.g. rejected before attachment).
_fallback_log = logging.getLogger("beacon_api")


@dataclass(frozen=True)
class RequestContext:
    log: logging.Logger
    chain: BeaconChain


def make_context_middleware(ctx: RequestContext):
    """aiohttp middleware that attaches *ctx* to every request."""

    @web.middleware
    async def context_middleware(request: web.Request, handler):
        request[CONTEXT_KEY] = ctx
        return await handler(request)

    return context_middleware


def get_context(request: web.Request) -> RequestContext:
    ctx = request.get(CONTEXT_KEY)
    if ctx is None:
        path = path_from_request(request)
        logger.error(f"No request context attached for {path}", extra={"path": path})
        raise InternalError("Request context is not available")
    return ctx


def get_logger(request: web.Request) -> logging.Logger:
    ctx = request.get(CONTEXT_KEY)
    return ctx.log if ctx is not None else _fallback_log


def get_beacon_chain(request: web.Request) -> BeaconChain:
    return get_context(request).chain


def path_from_request(request: web.Request) -> str:
    return request.path

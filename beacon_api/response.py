"""
Response envelope: turns handler outcomes into HTTP responses.

Handlers are plain synchronous functions that either return a
:class:`Success` or raise an :class:`~beacon_api.errors.APIError`.  This
module is the only place that decides status codes, bodies and content
types for both outcomes.

Error bodies are the error's description as ``text/plain``.
"""

from __future__ import annotations

import functools
import json
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from aiohttp import hdrs, web

from beacon_api.errors import APIError, InternalError, MethodNotAllowed, RateLimited
from beacon_api.validation import method_not_allowed


@dataclass(frozen=True)
class Success:
    """A serialised success payload and the status to send it with."""
    body: bytes
    status: int = 200
    content_type: str = "application/json"


# A handler returns a Success; failures are raised as APIError.
APIResult = Success

Handler = Callable[[web.Request], APIResult]
AsyncHandler = Callable[[web.Request], Awaitable[web.StreamResponse]]


def success_response(payload: Any, status: int = 200) -> Success:
    """Serialise *payload* as JSON and wrap it in a :class:`Success`."""
    try:
        body = json.dumps(payload)
    except (TypeError, ValueError) as exc:
        raise InternalError("Response could not be serialised as JSON") from exc
    return Success(body=body.encode("utf-8"), status=status)


def into_response(result: Success | APIError) -> web.Response:
    if isinstance(result, APIError):
        headers = {}
        if isinstance(result, MethodNotAllowed) and result.allowed_methods:
            headers[hdrs.ALLOW] = ",".join(sorted(result.allowed_methods))
        if isinstance(result, RateLimited):
            headers[hdrs.RETRY_AFTER] = str(result.retry_after)
        return web.Response(
            status=result.status,
            text=result.desc,
            content_type="text/plain",
            headers=headers,
        )
    return web.Response(
        status=result.status,
        body=result.body,
        content_type=result.content_type,
    )


def result_to_response(handler: Handler) -> AsyncHandler:
    """Adapt a synchronous handler into an aiohttp request handler."""

    @functools.wraps(handler)
    async def wrapper(request: web.Request) -> web.Response:
        try:
            result = handler(request)
        except APIError as err:
            return into_response(err)
        return into_response(result)

    return wrapper


@web.middleware
async def envelope_middleware(request: web.Request, handler):
    """Send errors raised outside handlers through the same envelope.

    Covers APIErrors raised by other middlewares and the router's own
    method mismatch, which would otherwise get aiohttp's default body.
    """
    try:
        return await handler(request)
    except APIError as err:
        return into_response(err)
    except web.HTTPMethodNotAllowed as exc:
        return into_response(method_not_allowed(request, exc.allowed_methods))

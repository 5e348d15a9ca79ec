"""Preconditions checked before any handler reads chain state."""

from __future__ import annotations

from collections.abc import Iterable

from aiohttp import web

from beacon_api.context import get_logger, path_from_request
from beacon_api.errors import MethodNotAllowed


def method_not_allowed(request: web.Request, allowed: Iterable[str] = ()) -> MethodNotAllowed:
    """Log the rejected request and build the matching error."""
    path = path_from_request(request)
    get_logger(request).warning(
        f"Invalid method for request to: {path}",
        extra={"method": request.method, "path": path},
    )
    return MethodNotAllowed(
        f"Invalid method {request.method} for request to: {path}",
        allowed_methods=allowed,
    )


def validate_request(request: web.Request, method: str = "GET") -> None:
    """Raise :class:`MethodNotAllowed` unless the request uses *method*."""
    if request.method != method.upper():
        raise method_not_allowed(request, (method,))

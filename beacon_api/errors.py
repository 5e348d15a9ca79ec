"""
Failure kinds a request handler may signal.

Every error carries a short, wire-safe description.  The HTTP status each
kind maps to lives on the class and is read only by the response envelope
(:func:`beacon_api.response.into_response`).
"""

from __future__ import annotations

from collections.abc import Iterable


class APIError(Exception):
    """Base class for errors that are reported to the API caller."""

    status: int = 500

    def __init__(self, desc: str):
        super().__init__(desc)
        self.desc = desc

    def __repr__(self) -> str:
        return f"{type(self).__name__}(desc={self.desc!r})"


class MethodNotAllowed(APIError):
    """The request method does not match the route's expected method."""

    status = 405

    def __init__(self, desc: str, allowed_methods: Iterable[str] = ()):
        super().__init__(desc)
        self.allowed_methods = frozenset(m.upper() for m in allowed_methods)


class InternalError(APIError):
    """Missing request context, or a value that cannot be sent to the caller."""

    status = 500


class RateLimited(APIError):
    """The client exhausted its request allowance."""

    status = 429

    def __init__(self, desc: str, retry_after: int = 5):
        super().__init__(desc)
        self.retry_after = retry_after


class RouteConflictError(Exception):
    """Raised at startup when a (method, path) pair is registered twice."""

    def __init__(self, method: str, path: str):
        super().__init__(f"Route {method} {path} is already registered")
        self.method = method
        self.path = path

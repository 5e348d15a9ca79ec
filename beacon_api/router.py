"""
Route table shared by all API services.

Services add ``(method, path, handler)`` entries through a fluent
:class:`RouterBuilder`; the server then installs the whole table into the
aiohttp application in registration order.

Each ``(method, path)`` pair may be registered once.  A second
registration raises :class:`~beacon_api.errors.RouteConflictError`, which
aborts startup.
"""

from __future__ import annotations

from dataclasses import dataclass

from aiohttp import hdrs, web

from beacon_api.errors import RouteConflictError
from beacon_api.response import Handler, result_to_response


@dataclass(frozen=True)
class RouteEntry:
    method: str
    path: str
    handler: Handler


class RouterBuilder:
    """Collects route entries from every registered service."""

    def __init__(self) -> None:
        self._entries: dict[tuple[str, str], RouteEntry] = {}

    def add(self, method: str, path: str, handler: Handler) -> RouterBuilder:
        method = method.upper()
        if method not in hdrs.METH_ALL:
            raise ValueError(f"Unknown HTTP method: {method}")
        if not path.startswith("/"):
            raise ValueError(f"Route path must start with '/': {path!r}")
        key = (method, path)
        if key in self._entries:
            raise RouteConflictError(method, path)
        self._entries[key] = RouteEntry(method, path, handler)
        return self

    def get(self, path: str, handler: Handler) -> RouterBuilder:
        return self.add(hdrs.METH_GET, path, handler)

    @property
    def routes(self) -> tuple[RouteEntry, ...]:
        return tuple(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, tuple) or len(key) != 2:
            return False
        method, path = key
        return (str(method).upper(), path) in self._entries

    def install(self, app: web.Application) -> None:
        for entry in self._entries.values():
            app.router.add_route(entry.method, entry.path, result_to_response(entry.handler))

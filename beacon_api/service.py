"""Capability implemented by every module that exposes API endpoints."""

from __future__ import annotations

import abc

from beacon_api.router import RouterBuilder


class APIService(abc.ABC):
    """A group of endpoints that plugs into the shared router at startup.

    ``add_routes`` is called exactly once per service.  Services do not
    know about each other; a clash on the same method and path surfaces
    as :class:`~beacon_api.errors.RouteConflictError`.
    """

    @abc.abstractmethod
    def add_routes(self, router: RouterBuilder) -> RouterBuilder:
        ...

"""
Liveness endpoint.

GET /health reports the head slot and genesis time of the chain the node
is serving.  Registered as its own service next to the node identity
endpoints.
"""

from __future__ import annotations

from aiohttp import web

from beacon_api.context import get_beacon_chain
from beacon_api.response import APIResult, success_response
from beacon_api.router import RouterBuilder
from beacon_api.service import APIService
from beacon_api.validation import validate_request


class HealthService(APIService):

    def add_routes(self, router: RouterBuilder) -> RouterBuilder:
        return router.get("/health", get_health)


def get_health(request: web.Request) -> APIResult:
    validate_request(request)
    state = get_beacon_chain(request).current_state()
    return success_response({
        "ok": True,
        "slot": state.slot,
        "genesis_time": state.genesis_time,
    })

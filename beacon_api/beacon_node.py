"""
Node identity endpoints.

Endpoints
---------
GET  /version         Client implementation and version string
GET  /genesis_time    Unix time at which the chain began
"""

from __future__ import annotations

from dataclasses import dataclass

from aiohttp import web

from beacon_api import version as _version
from beacon_api.chain import MAX_U64
from beacon_api.context import get_beacon_chain
from beacon_api.errors import InternalError
from beacon_api.response import APIResult, success_response
from beacon_api.router import RouterBuilder
from beacon_api.service import APIService
from beacon_api.validation import validate_request


@dataclass(frozen=True)
class Version:
    """A string which uniquely identifies the client implementation and its
    version; similar to an HTTP User-Agent."""
    value: str

    def to_json(self) -> str:
        return self.value


@dataclass(frozen=True)
class GenesisTime:
    """The unix time at which the chain began."""
    value: int

    def __post_init__(self):
        if not 0 <= self.value <= MAX_U64:
            raise ValueError(f"genesis time out of u64 range: {self.value}")

    def to_json(self) -> int:
        return self.value


class BeaconNodeService(APIService):

    def add_routes(self, router: RouterBuilder) -> RouterBuilder:
        return (
            router
            .get("/version", get_version)
            .get("/genesis_time", get_genesis_time)
        )


def get_version(request: web.Request) -> APIResult:
    """Read the version string of the running build."""
    validate_request(request)
    ver = Version(_version.version())
    return success_response(ver.to_json())


def get_genesis_time(request: web.Request) -> APIResult:
    """Read the genesis time from the current chain state."""
    validate_request(request)
    chain = get_beacon_chain(request)
    state = chain.current_state()
    try:
        genesis = GenesisTime(state.genesis_time)
    except ValueError as exc:
        raise InternalError("Genesis time could not be represented") from exc
    return success_response(genesis.to_json())

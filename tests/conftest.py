"""
Shared pytest fixtures for the beacon API test suite.
"""

import logging

import pytest

from beacon_api import version
from beacon_api.chain import InMemoryBeaconChain

GENESIS_TIME = 1606824023


@pytest.fixture
def chain():
    """Chain at slot 0 with a fixed genesis time."""
    return InMemoryBeaconChain(genesis_time=GENESIS_TIME)


@pytest.fixture
def pinned_version():
    """Pin the reported version string for the duration of a test."""
    version.set_version_override("testnode/1.0.0")
    yield "testnode/1.0.0"
    version.set_version_override(None)


@pytest.fixture
def request_log():
    return logging.getLogger("beacon_api.http.test")

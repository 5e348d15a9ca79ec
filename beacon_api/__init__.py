"""
Beacon API - read-only HTTP query surface for a beacon node.

Key features:
- Pluggable services that register routes into one shared router
- Request context (logger, chain-state handle) attached per request
- Uniform conversion of handler results and typed errors into responses
- ``/version`` and ``/genesis_time`` node endpoints, plus ``/health``
"""

__version__ = "0.1.0"
__all__ = [
    "api",
    "beacon_node",
    "chain",
    "config",
    "context",
    "errors",
    "health",
    "logging_config",
    "response",
    "router",
    "service",
    "validation",
    "version",
]

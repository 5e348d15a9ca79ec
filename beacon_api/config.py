"""
TOML-based configuration for the beacon API node.

Loads settings from a TOML file and/or environment variables.
Environment variables take precedence over file values.

Usage:
    from beacon_api.config import load_config
    cfg = load_config("beacon.toml")
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

if sys.version_info >= (3, 11):
    import tomllib
else:
    try:
        import tomllib  # type: ignore[import]
    except ModuleNotFoundError:
        import tomli as tomllib  # type: ignore[import,no-redef]


@dataclass
class NodeConfig:
    """Node identity."""
    node_id: str = "beacon-1"
    version_override: str = ""   # report this string on /version instead of the build string


@dataclass
class ChainConfig:
    """Chain parameters for the in-memory chain served by the node."""
    genesis_time: int = 1606824023
    seconds_per_slot: int = 12


@dataclass
class APIConfig:
    """REST API settings."""
    enabled: bool = True
    host: str = "127.0.0.1"
    port: int = 5052
    rate_limit_rpm: int = 0            # max requests per minute per IP (0 = unlimited)


@dataclass
class LoggingConfig:
    """Logging settings."""
    level: str = "INFO"
    format: str = "human"   # "human" or "json"
    file: str | None = None


@dataclass
class BeaconAPIConfig:
    """Top-level configuration container."""
    node: NodeConfig = field(default_factory=NodeConfig)
    chain: ChainConfig = field(default_factory=ChainConfig)
    api: APIConfig = field(default_factory=APIConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _merge(dc: Any, raw: dict[str, Any]) -> None:
    """Merge a raw dict into a dataclass instance (in-place)."""
    for key, value in raw.items():
        key_under = key.replace("-", "_")
        if hasattr(dc, key_under):
            setattr(dc, key_under, value)


def load_config(path: str | None = None) -> BeaconAPIConfig:
    """
    Load configuration from a TOML file, then overlay environment variables.

    Env-var mapping:
        BEACON_API_NODE_ID         -> node.node_id
        BEACON_API_VERSION         -> node.version_override
        BEACON_API_GENESIS_TIME    -> chain.genesis_time
        BEACON_API_HOST            -> api.host
        BEACON_API_PORT            -> api.port
        BEACON_API_RATE_LIMIT_RPM  -> api.rate_limit_rpm
        BEACON_API_LOG_LEVEL       -> logging.level
        BEACON_API_LOG_FMT         -> logging.format
    """
    cfg = BeaconAPIConfig()

    # ── TOML file ────────────────────────────────────────────────
    if path is not None:
        p = Path(path)
        if p.exists():
            with open(p, "rb") as f:
                data = tomllib.load(f)
            for section_name, section_dc in [
                ("node", cfg.node),
                ("chain", cfg.chain),
                ("api", cfg.api),
                ("logging", cfg.logging),
            ]:
                if section_name in data:
                    _merge(section_dc, data[section_name])

    # ── Environment variable overrides ───────────────────────────
    if v := os.environ.get("BEACON_API_NODE_ID"):
        cfg.node.node_id = v
    if v := os.environ.get("BEACON_API_VERSION"):
        cfg.node.version_override = v
    if v := os.environ.get("BEACON_API_GENESIS_TIME"):
        cfg.chain.genesis_time = int(v)
    if v := os.environ.get("BEACON_API_HOST"):
        cfg.api.host = v
    if v := os.environ.get("BEACON_API_PORT"):
        cfg.api.port = int(v)
    if v := os.environ.get("BEACON_API_RATE_LIMIT_RPM"):
        cfg.api.rate_limit_rpm = int(v)
    if v := os.environ.get("BEACON_API_LOG_LEVEL"):
        cfg.logging.level = v.upper()
    if v := os.environ.get("BEACON_API_LOG_FMT"):
        cfg.logging.format = v

    return cfg

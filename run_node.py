#!/usr/bin/env python3
"""
Beacon API node runner. Starts a node serving the read-only REST API:
  - In-memory chain state with a fixed genesis time
  - Slot clock that keeps the head slot in step with wall-clock time
  - HTTP API (/version, /genesis_time, /health)

Usage:
    python run_node.py --config beacon.toml
    python run_node.py --port 5052 --genesis-time 1606824023

Environment variables (alternative to flags):
    BEACON_API_HOST, BEACON_API_PORT, BEACON_API_GENESIS_TIME, BEACON_API_LOG_LEVEL
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import os
import sys

# ---------------------------------------------------------------------------
# Ensure the project root is in sys.path so imports work before pip install
# ---------------------------------------------------------------------------
PROJECT_ROOT = os.path.dirname(os.path.abspath(__file__))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from beacon_api import version  # noqa: E402
from beacon_api.api import APIServer  # noqa: E402
from beacon_api.chain import InMemoryBeaconChain  # noqa: E402
from beacon_api.config import BeaconAPIConfig, load_config  # noqa: E402
from beacon_api.logging_config import setup_logging  # noqa: E402

logger = logging.getLogger("node")


# ===================================================================
#  Beacon Node
# ===================================================================

class BeaconNode:
    """Owns the chain state and the API server for one process."""

    def __init__(self, config: BeaconAPIConfig):
        self.config = config
        self.node_id = config.node.node_id
        self.chain = InMemoryBeaconChain(
            genesis_time=config.chain.genesis_time,
            seconds_per_slot=config.chain.seconds_per_slot,
        )
        self._api: APIServer | None = None
        self._bg_tasks: list[asyncio.Task] = []

    async def start(self):
        if self.config.node.version_override:
            version.set_version_override(self.config.node.version_override)

        self.chain.sync_to_clock()
        self._bg_tasks.append(asyncio.create_task(self._slot_clock()))

        if self.config.api.enabled:
            self._api = APIServer(
                self.chain,
                host=self.config.api.host,
                port=self.config.api.port,
                api_config=self.config.api,
            )
            await self._api.start()

        logger.info(
            f"Node {self.node_id} started | version={version.version()} "
            f"| genesis_time={self.chain.genesis_time}"
        )

    async def stop(self):
        for task in self._bg_tasks:
            task.cancel()
        for task in self._bg_tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._bg_tasks.clear()
        if self._api is not None:
            await self._api.stop()

    async def _slot_clock(self):
        """Advance the head slot once per slot interval."""
        while True:
            await asyncio.sleep(self.chain.seconds_per_slot)
            state = self.chain.sync_to_clock()
            logger.debug(f"Head slot {state.slot}")


# ===================================================================
#  Main entry point
# ===================================================================

def parse_args():
    p = argparse.ArgumentParser(description="Beacon API Node")
    p.add_argument("--config", default=None, help="Path to beacon.toml config file")
    p.add_argument("--host", default=None, help="API listen host")
    p.add_argument("--port", type=int, default=None, help="API listen port")
    p.add_argument("--genesis-time", type=int, default=None,
                    help="Unix time of chain genesis")
    return p.parse_args()


async def main():
    args = parse_args()

    # Load config (TOML + env overrides)
    cfg = load_config(args.config)

    # CLI flags override config
    if args.host is not None:
        cfg.api.host = args.host
    if args.port is not None:
        cfg.api.port = args.port
    if args.genesis_time is not None:
        cfg.chain.genesis_time = args.genesis_time

    setup_logging(cfg.logging.level, cfg.logging.format, cfg.logging.file)

    node = BeaconNode(cfg)
    await node.start()
    try:
        while True:
            await asyncio.sleep(3600)
    finally:
        await node.stop()


def main_sync():
    """Synchronous entry point for console_scripts."""
    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(main())


if __name__ == "__main__":
    main_sync()

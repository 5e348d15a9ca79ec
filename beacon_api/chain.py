"""
Chain-state handle served by the API.

The API only ever reads chain state through :class:`BeaconChain`, which
hands out immutable :class:`BeaconState` snapshots.  Anything that maintains
state (block import, slot clock) replaces the snapshot as a whole, so a
reader always sees one coherent view.

:class:`InMemoryBeaconChain` is the implementation used by ``run_node.py``
and the tests.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, replace
from typing import Protocol, runtime_checkable

MAX_U64 = 2**64 - 1


@dataclass(frozen=True)
class BeaconState:
    """Point-in-time view of the chain."""
    genesis_time: int
    slot: int = 0


@runtime_checkable
class BeaconChain(Protocol):
    """Read accessor the API depends on."""

    def current_state(self) -> BeaconState:
        ...


class InMemoryBeaconChain:
    """Thread-safe holder for the current :class:`BeaconState`."""

    def __init__(self, genesis_time: int, seconds_per_slot: int = 12):
        if not 0 <= genesis_time <= MAX_U64:
            raise ValueError(f"genesis_time out of range: {genesis_time}")
        if seconds_per_slot <= 0:
            raise ValueError("seconds_per_slot must be positive")
        self.seconds_per_slot = seconds_per_slot
        self._lock = threading.Lock()
        self._state = BeaconState(genesis_time=genesis_time)

    @property
    def genesis_time(self) -> int:
        return self._state.genesis_time

    def current_state(self) -> BeaconState:
        with self._lock:
            return self._state

    def set_state(self, state: BeaconState) -> None:
        """Replace the snapshot.  Genesis time is fixed for the chain's life."""
        with self._lock:
            if state.genesis_time != self._state.genesis_time:
                raise ValueError("genesis_time cannot change once the chain exists")
            self._state = state

    def advance_slot(self) -> BeaconState:
        with self._lock:
            self._state = replace(self._state, slot=self._state.slot + 1)
            return self._state

    def slot_at(self, now: float) -> int:
        """Slot number for wall-clock time *now* (0 before genesis)."""
        elapsed = now - self._state.genesis_time
        if elapsed < 0:
            return 0
        return int(elapsed // self.seconds_per_slot)

    def sync_to_clock(self, now: float | None = None) -> BeaconState:
        """Move the head slot forward to match the wall clock."""
        slot = self.slot_at(time.time() if now is None else now)
        with self._lock:
            if slot > self._state.slot:
                self._state = replace(self._state, slot=slot)
            return self._state

"""
Build identity string reported by ``GET /version``.

Format: ``<name>/v<semver>-<commit>/<arch>-<os>``, similar to an HTTP
User-Agent, e.g. ``beacon-api/v0.1.0-3f2a9c1d/x86_64-linux``.
"""

from __future__ import annotations

import os
import platform
import sys

from beacon_api import __version__

CLIENT_NAME = "beacon-api"

_override: str | None = None


def git_commit() -> str:
    commit = os.environ.get("BEACON_API_GIT_COMMIT", "").strip()
    return commit[:8] if commit else "unknown"


def version() -> str:
    if _override:
        return _override
    arch = platform.machine().lower() or "unknown"
    return f"{CLIENT_NAME}/v{__version__}-{git_commit()}/{arch}-{sys.platform}"


def set_version_override(value: str | None) -> None:
    """Report *value* verbatim instead of the generated string (``None`` resets)."""
    global _override
    _override = value or None

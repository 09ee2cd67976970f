from __future__ import annotations

import getpass
import time
from typing import Optional

FALLBACK_NAME = "Unknown"


def utc_timestamp(now: Optional[float] = None) -> int:
    """Current UTC timestamp in whole seconds, clamped to the u32 wire range."""
    value = int(time.time() if now is None else now)
    return max(0, min(value, 0xFFFFFFFF))


def default_display_name() -> str:
    """Login name from the environment, or a literal fallback."""
    try:
        return getpass.getuser() or FALLBACK_NAME
    except (KeyError, OSError):
        return FALLBACK_NAME


def format_address(host: str, port: int) -> str:
    return f"{host}:{port}"


__all__ = ["FALLBACK_NAME", "utc_timestamp", "default_display_name", "format_address"]

"""Helpers for building object keys."""

from __future__ import annotations

import time
from datetime import datetime


def unix_nano() -> str:
    """Current time in nanoseconds since the epoch, as a decimal string.

    Useful as a collision-resistant file name component.
    """
    return str(time.time_ns())


def timebase_path(now: datetime | None = None) -> str:
    """Return a ``YYYY/MM/DD`` prefix for *now* (local time by default)."""
    now = now or datetime.now()
    return now.strftime("%Y/%m/%d")

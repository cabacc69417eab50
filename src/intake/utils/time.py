"""Timestamp helpers."""

from __future__ import annotations

import time
from datetime import datetime, timezone


def utc_now_iso() -> str:
    """Return the current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


def now_ms() -> int:
    """Return epoch milliseconds."""
    return int(time.time() * 1000)


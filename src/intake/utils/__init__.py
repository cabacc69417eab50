"""Utility helpers."""

from intake.utils.logging import configure_logging, get_logger
from intake.utils.phone import normalize_phone
from intake.utils.time import now_ms, utc_now_iso

__all__ = [
    "configure_logging",
    "get_logger",
    "normalize_phone",
    "now_ms",
    "utc_now_iso",
]

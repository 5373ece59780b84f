# src/whisper_store/db/time.py
"""Time utilities for stored records."""

import time
from datetime import UTC, datetime


def utcnow() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(UTC)


def now_ms() -> int:
    """Return the current epoch time in milliseconds."""
    return int(time.time() * 1000)

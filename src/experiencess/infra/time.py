"""Time utilities for consistent timestamp handling."""

import time
from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return current UTC timestamp (timezone-aware)."""
    return datetime.now(timezone.utc)


def monotonic() -> float:
    """Monotonic clock in seconds, for deadlines."""
    return time.monotonic()


def sleep(seconds: float) -> None:
    time.sleep(seconds)

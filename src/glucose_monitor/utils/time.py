from __future__ import annotations

import time
from datetime import datetime, timezone

MS_PER_SECOND = 1000
MS_PER_MINUTE = 60 * MS_PER_SECOND

# --- epoch-millisecond clock helpers ---

def utc_now_ms() -> int:
    """Unix epoch milliseconds (int)."""
    return time.time_ns() // 1_000_000

def minutes_to_ms(minutes: float) -> int:
    """Minutes (may be fractional) -> integer milliseconds."""
    return int(round(minutes * MS_PER_MINUTE))

def iso_now() -> str:
    """Current UTC time as ISO-8601 with millisecond precision and 'Z' suffix."""
    return datetime.now(tz=timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")

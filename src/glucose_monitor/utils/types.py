from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

# ---- ingest-level primitives ----

@dataclass(slots=True, frozen=True)
class Reading:
    """
    One CGM sample as delivered by the reading source.
    trend/source are passthrough labels, never interpreted.
    """
    timestamp: str      # human-readable, source-defined format
    timestamp_ms: int   # epoch milliseconds
    value: float        # mg/dL
    trend: str = ""
    source: str = ""

# ---- alarm domain ----

class AlarmReason(str, Enum):
    LOW = "Low"
    HIGH = "High"


class Classification(str, Enum):
    LOW = "Low"
    HIGH = "High"
    NORMAL = "Normal"

    @property
    def reason(self) -> Optional[AlarmReason]:
        if self is Classification.LOW:
            return AlarmReason.LOW
        if self is Classification.HIGH:
            return AlarmReason.HIGH
        return None


@dataclass(slots=True, frozen=True)
class AlarmEvent:
    reason: AlarmReason
    value: float
    timestamp: str
    fired_at_ms: int = 0
    trend: str = ""

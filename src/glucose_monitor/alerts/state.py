from __future__ import annotations
from dataclasses import dataclass
from typing import Optional

from glucose_monitor.utils.types import AlarmReason

@dataclass(slots=True, frozen=True)
class AlarmState:
    active: bool = False
    last_alarm_ms: Optional[int] = None      # None: no alarm in the current episode
    reason: Optional[AlarmReason] = None

    def __post_init__(self) -> None:
        if self.active:
            if self.last_alarm_ms is None or self.reason is None:
                raise ValueError("active alarm state needs last_alarm_ms and reason")
        elif self.last_alarm_ms is not None or self.reason is not None:
            raise ValueError("inactive alarm state must not carry last_alarm_ms or reason")

    @classmethod
    def fired(cls, reason: AlarmReason, now_ms: int) -> "AlarmState":
        return cls(active=True, last_alarm_ms=now_ms, reason=reason)


INACTIVE = AlarmState()

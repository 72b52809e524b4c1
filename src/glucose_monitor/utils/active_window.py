from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from glucose_monitor.errors import ConfigError


@dataclass(slots=True, frozen=True)
class ActiveWindow:
    """
    Hour-of-day gate for evaluation.

    start_hour is inclusive, end_hour exclusive, both in 0..24.
    start_hour > end_hour wraps midnight: 22 -> 6 covers 22:00-05:59.
    tz_name=None means process local time.
    """
    start_hour: int
    end_hour: int
    tz_name: Optional[str] = None

    def __post_init__(self) -> None:
        for h in (self.start_hour, self.end_hour):
            if not isinstance(h, int) or not 0 <= h <= 24:
                raise ConfigError(f"active window hours must be integers in 0..24, got {h!r}")
        if self.start_hour == self.end_hour:
            raise ConfigError("active window start and end hour must differ")
        if self.tz_name is not None:
            try:
                ZoneInfo(self.tz_name)
            except (ZoneInfoNotFoundError, ValueError) as e:
                raise ConfigError(f"unknown time zone {self.tz_name!r}") from e

    @classmethod
    def parse(cls, text: str, tz_name: Optional[str] = None) -> "ActiveWindow":
        """Parse "start-end" hours, e.g. "0-8" or "22-6"."""
        parts = text.split("-")
        if len(parts) != 2:
            raise ConfigError(f"active window must look like 'start-end', got {text!r}")
        try:
            start, end = (int(p.strip()) for p in parts)
        except ValueError as e:
            raise ConfigError(f"active window hours must be integers, got {text!r}") from e
        return cls(start, end, tz_name)

    def now(self) -> datetime:
        if self.tz_name is None:
            return datetime.now().astimezone()
        return datetime.now(tz=ZoneInfo(self.tz_name))

    def contains(self, when: Optional[datetime] = None) -> bool:
        """True if `when` (default: now) falls inside the window."""
        if when is None:
            when = self.now()
        elif self.tz_name is not None and when.tzinfo is not None:
            when = when.astimezone(ZoneInfo(self.tz_name))
        hour = when.hour
        if self.start_hour < self.end_hour:
            return self.start_hour <= hour < self.end_hour
        # wraps midnight
        return hour >= self.start_hour or hour < self.end_hour

    def describe(self) -> str:
        tz = self.tz_name or "local"
        return f"{self.start_hour:02d}:00-{self.end_hour:02d}:00 {tz}"

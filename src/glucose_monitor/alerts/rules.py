# src/glucose_monitor/alerts/rules.py
from __future__ import annotations

import math
from dataclasses import dataclass

from glucose_monitor.errors import ConfigError
from glucose_monitor.utils.time import MS_PER_MINUTE
from glucose_monitor.utils.types import AlarmReason

@dataclass(slots=True, frozen=True)
class ThresholdConfig:
    """
    Safe range and per-condition cooldowns.
    - value <  low  → Low
    - value >  high → High
    - otherwise    → Normal (bounds themselves are normal)
    """
    low: float = 70.0
    high: float = 180.0
    cooldown_low_ms: int = 30 * MS_PER_MINUTE         # 30 minutes
    cooldown_high_ms: int = 150 * MS_PER_MINUTE       # 2.5 hours

    def __post_init__(self) -> None:
        if not (math.isfinite(self.low) and math.isfinite(self.high)):
            raise ConfigError("thresholds must be finite numbers")
        if self.low >= self.high:
            raise ConfigError(f"low threshold ({self.low}) must be below high threshold ({self.high})")
        if self.cooldown_low_ms < 0 or self.cooldown_high_ms < 0:
            raise ConfigError("cooldowns must be >= 0")

    def cooldown_for(self, reason: AlarmReason) -> int:
        return self.cooldown_low_ms if reason is AlarmReason.LOW else self.cooldown_high_ms

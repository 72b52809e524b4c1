from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Literal, Optional

from glucose_monitor.alerts.rules import ThresholdConfig
from glucose_monitor.alerts.state import INACTIVE, AlarmState
from glucose_monitor.errors import InvalidReading
from glucose_monitor.utils.time import utc_now_ms
from glucose_monitor.utils.types import AlarmEvent, Classification, Reading

Outcome = Literal["fired", "suppressed", "reset", "normal"]


@dataclass(slots=True, frozen=True)
class Decision:
    outcome: Outcome
    state: AlarmState                    # state after this evaluation
    classification: Classification
    event: Optional[AlarmEvent] = None
    elapsed_ms: Optional[int] = None     # since last alarm, when one was active


def classify(value: float, thresholds: ThresholdConfig) -> Classification:
    """Strict comparisons: values equal to a bound are Normal."""
    if value < thresholds.low:
        return Classification.LOW
    if value > thresholds.high:
        return Classification.HIGH
    return Classification.NORMAL


def decide(
    state: AlarmState,
    thresholds: ThresholdConfig,
    reading: Reading,
    now_ms: int,
) -> Decision:
    """
    Pure alarm step: (state, reading, now) -> Decision.

    - Normal while active resets silently; Normal while inactive is a no-op.
    - First out-of-range reading of an episode always fires.
    - While active, the same condition re-fires once its own cooldown has
      elapsed since the last alarm (elapsed >= cooldown).
    - A flip Low <-> High while active fires at once and starts the cooldown
      of the new condition.
    """
    value = reading.value
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise InvalidReading(f"reading value must be a finite number, got {value!r}")

    cls = classify(value, thresholds)
    reason = cls.reason

    if reason is None:
        if state.active:
            return Decision("reset", INACTIVE, cls)
        return Decision("normal", state, cls)

    event = AlarmEvent(
        reason=reason,
        value=value,
        timestamp=reading.timestamp,
        fired_at_ms=now_ms,
        trend=reading.trend,
    )

    if not state.active:
        return Decision("fired", AlarmState.fired(reason, now_ms), cls, event)

    elapsed = now_ms - state.last_alarm_ms
    if reason is not state.reason:
        return Decision("fired", AlarmState.fired(reason, now_ms), cls, event, elapsed)

    if elapsed >= thresholds.cooldown_for(reason):
        return Decision("fired", AlarmState.fired(reason, now_ms), cls, event, elapsed)
    return Decision("suppressed", state, cls, None, elapsed)


class AlarmEngine:
    """
    Owns the single AlarmState and applies `decide` to it.

    The engine never talks to notifiers; callers forward the returned event.
    State is replaced in one assignment after `decide` returns, so an error
    raised while deciding leaves the previous state untouched.
    """
    def __init__(
        self,
        thresholds: Optional[ThresholdConfig] = None,
        state: AlarmState = INACTIVE,
        clock: Callable[[], int] = utc_now_ms,
    ):
        self.thresholds = thresholds or ThresholdConfig()
        self._state = state
        self._clock = clock

    @property
    def state(self) -> AlarmState:
        return self._state

    def assess(self, reading: Reading, now_ms: Optional[int] = None) -> Decision:
        if now_ms is None:
            now_ms = self._clock()
        decision = decide(self._state, self.thresholds, reading, now_ms)
        self._state = decision.state
        return decision

    def evaluate(self, reading: Reading, now_ms: Optional[int] = None) -> Optional[AlarmEvent]:
        return self.assess(reading, now_ms).event

    def reset(self) -> None:
        self._state = INACTIVE

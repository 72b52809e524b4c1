import math

import pytest

from glucose_monitor.alerts.evaluator import AlarmEngine, classify, decide
from glucose_monitor.alerts.rules import ThresholdConfig
from glucose_monitor.alerts.state import INACTIVE, AlarmState
from glucose_monitor.errors import InvalidReading
from glucose_monitor.utils.time import MS_PER_MINUTE
from glucose_monitor.utils.types import AlarmReason, Classification
from tests.helpers.fakes import reading

COOLDOWN_LOW = 30 * MS_PER_MINUTE
COOLDOWN_HIGH = 150 * MS_PER_MINUTE


@pytest.fixture
def thresholds():
    return ThresholdConfig(low=70, high=180, cooldown_low_ms=COOLDOWN_LOW, cooldown_high_ms=COOLDOWN_HIGH)


@pytest.fixture
def engine(thresholds):
    return AlarmEngine(thresholds)


def test_classify_boundaries_are_normal(thresholds):
    assert classify(70, thresholds) is Classification.NORMAL
    assert classify(180, thresholds) is Classification.NORMAL
    assert classify(69.9, thresholds) is Classification.LOW
    assert classify(180.1, thresholds) is Classification.HIGH


@pytest.mark.parametrize("value", [70, 180])
def test_boundary_reading_does_not_fire(engine, value):
    assert engine.evaluate(reading(value), now_ms=0) is None
    assert engine.state == INACTIVE


@pytest.mark.parametrize("value,reason", [(55, AlarmReason.LOW), (250, AlarmReason.HIGH)])
def test_first_out_of_range_fires_immediately(engine, value, reason):
    evt = engine.evaluate(reading(value, timestamp="02:13"), now_ms=1_000)
    assert evt is not None
    assert evt.reason is reason
    assert evt.value == value
    assert evt.timestamp == "02:13"
    assert engine.state == AlarmState(active=True, last_alarm_ms=1_000, reason=reason)


def test_cooldown_suppression_one_ms_early(engine):
    t = 5_000
    assert engine.evaluate(reading(60), now_ms=t) is not None
    decision = engine.assess(reading(60), now_ms=t + COOLDOWN_LOW - 1)
    assert decision.outcome == "suppressed"
    assert decision.event is None
    assert decision.elapsed_ms == COOLDOWN_LOW - 1
    assert engine.state.last_alarm_ms == t


def test_cooldown_renewal_exactly_at_cooldown(engine):
    t = 5_000
    engine.evaluate(reading(60), now_ms=t)
    evt = engine.evaluate(reading(62), now_ms=t + COOLDOWN_LOW)
    assert evt is not None and evt.value == 62
    assert engine.state.last_alarm_ms == t + COOLDOWN_LOW


def test_high_uses_its_own_cooldown(engine):
    engine.evaluate(reading(250), now_ms=0)
    # past the Low cooldown but not the High one
    assert engine.evaluate(reading(250), now_ms=COOLDOWN_LOW + 1) is None
    assert engine.evaluate(reading(250), now_ms=COOLDOWN_HIGH) is not None


def test_normal_reading_resets_silently_and_clears_memory(engine):
    engine.evaluate(reading(60), now_ms=0)
    decision = engine.assess(reading(100), now_ms=1_000)
    assert decision.outcome == "reset"
    assert decision.event is None
    assert engine.state == INACTIVE
    assert engine.state.last_alarm_ms is None

    # next breach 1ms later fires regardless of the previous episode's cooldown
    evt = engine.evaluate(reading(60), now_ms=1_001)
    assert evt is not None
    assert engine.state.last_alarm_ms == 1_001


def test_normal_while_inactive_is_noop(engine):
    decision = engine.assess(reading(120), now_ms=0)
    assert decision.outcome == "normal"
    assert engine.state is INACTIVE


def test_reason_switch_fires_immediately_and_restarts_cooldown(engine):
    engine.evaluate(reading(60), now_ms=0)
    evt = engine.evaluate(reading(250), now_ms=1)
    assert evt is not None and evt.reason is AlarmReason.HIGH
    assert engine.state == AlarmState(active=True, last_alarm_ms=1, reason=AlarmReason.HIGH)

    # now tracked against the High cooldown from t=1
    assert engine.evaluate(reading(250), now_ms=1 + COOLDOWN_LOW) is None
    # and a flip back to Low fires again
    back = engine.evaluate(reading(60), now_ms=2 + COOLDOWN_LOW)
    assert back is not None and back.reason is AlarmReason.LOW


def test_scenario_high_readings_with_asymmetric_cooldowns(engine):
    times = [0, 10_000, 61 * MS_PER_MINUTE, 150 * MS_PER_MINUTE]
    fired = [t for t in times if engine.evaluate(reading(250, ts_ms=t), now_ms=t) is not None]
    # 61 min is inside the 150 min High cooldown
    assert fired == [0, 150 * MS_PER_MINUTE]


def test_scenario_three_highs_with_sixty_minute_cooldown():
    eng = AlarmEngine(ThresholdConfig(low=70, high=180,
                                      cooldown_low_ms=COOLDOWN_LOW,
                                      cooldown_high_ms=60 * MS_PER_MINUTE))
    times = [0, 10_000, 61 * MS_PER_MINUTE]
    fired = [t for t in times if eng.evaluate(reading(250, ts_ms=t), now_ms=t) is not None]
    assert fired == [0, 61 * MS_PER_MINUTE]


@pytest.mark.parametrize("bad", [math.nan, math.inf, -math.inf, True, False, "100", None])
def test_non_numeric_or_non_finite_value_is_rejected_without_state_change(engine, bad):
    engine.evaluate(reading(60), now_ms=0)
    before = engine.state
    with pytest.raises(InvalidReading):
        engine.evaluate(reading(bad), now_ms=10)
    assert engine.state == before


def test_decide_is_pure(thresholds):
    st = AlarmState(active=True, last_alarm_ms=0, reason=AlarmReason.LOW)
    d = decide(st, thresholds, reading(60), COOLDOWN_LOW)
    assert d.outcome == "fired"
    # input untouched
    assert st.last_alarm_ms == 0


def test_engine_uses_clock_when_now_omitted(thresholds):
    eng = AlarmEngine(thresholds, clock=lambda: 42)
    eng.evaluate(reading(60))
    assert eng.state.last_alarm_ms == 42


def test_reset_restores_inactive(engine):
    engine.evaluate(reading(60), now_ms=0)
    engine.reset()
    assert engine.state == INACTIVE

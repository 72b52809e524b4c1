from glucose_monitor.utils.time import minutes_to_ms, utc_now_ms, iso_now

def test_unit_conversions():
    assert minutes_to_ms(30) == 1_800_000
    assert minutes_to_ms(2.5 * 60) == 9_000_000

def test_now_helpers():
    assert utc_now_ms() > 1_600_000_000_000
    assert iso_now().endswith("Z")

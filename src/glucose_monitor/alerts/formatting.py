from __future__ import annotations

from glucose_monitor.utils.types import AlarmEvent, Reading

UNIT = "mg/dL"

def _fmt_value(v: float) -> str:
    # 250.0 -> "250", 5.5 -> "5.5"
    return f"{v:g}"

def format_alarm(evt: AlarmEvent) -> str:
    return f"[ALARM] {evt.reason.value}: {_fmt_value(evt.value)} {UNIT} at {evt.timestamp}"

def format_reading(r: Reading) -> str:
    trend = f" – {r.trend}" if r.trend else ""
    return f"{r.timestamp} – {_fmt_value(r.value)} {UNIT}{trend}"

# src/glucose_monitor/notify/console.py
from __future__ import annotations
import structlog
from typing import Callable, Optional

from glucose_monitor.alerts.formatting import format_alarm
from glucose_monitor.utils.types import AlarmEvent

log = structlog.get_logger("notifier")

class ConsoleNotifier:
    def __init__(self, format_fn: Optional[Callable[[AlarmEvent], str]] = None):
        self._format_fn = format_fn or format_alarm

    async def notify(self, evt: AlarmEvent) -> None:
        try:
            text = self._format_fn(evt)
        except Exception as e:
            log.warning("console_format_failed", err=str(e))
            # fallback (raw)
            text = f"[ALARM] {evt.reason.value} value={evt.value} ts={evt.timestamp}"
        print(text, flush=True)

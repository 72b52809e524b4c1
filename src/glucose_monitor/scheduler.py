from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Literal, Optional, Protocol, Sequence

import structlog

from glucose_monitor.alerts.evaluator import AlarmEngine, Decision
from glucose_monitor.alerts.formatting import format_reading
from glucose_monitor.errors import FetchError, NotifyError
from glucose_monitor.ingest.nightscout import ReadingSource
from glucose_monitor.utils.active_window import ActiveWindow
from glucose_monitor.utils.time import utc_now_ms
from glucose_monitor.utils.types import AlarmEvent

log = structlog.get_logger("scheduler")

TickStatus = Literal["evaluated", "skipped_window", "fetch_failed"]


class Notifier(Protocol):
    async def notify(self, evt: AlarmEvent): ...


@dataclass(slots=True)
class TickResult:
    status: TickStatus
    decision: Optional[Decision] = None
    notify_failures: list[str] = field(default_factory=list)

    @property
    def event(self) -> Optional[AlarmEvent]:
        return self.decision.event if self.decision else None


class Scheduler:
    """
    Periodic driver: window gate → fetch latest → evaluate → notify.

    Ticks never overlap: the run loop awaits each tick before sleeping, and
    tick() itself holds a lock so an out-of-band call waits its turn.
    Fetch and notify failures are logged and never touch the alarm state
    beyond what evaluate() already committed.
    """
    def __init__(
        self,
        source: ReadingSource,
        engine: AlarmEngine,
        notifiers: Sequence[Notifier] = (),
        *,
        interval_s: float = 10.0,
        window: Optional[ActiveWindow] = None,
        clock: Callable[[], int] = utc_now_ms,
        wall_clock: Optional[Callable[[], datetime]] = None,
    ):
        if interval_s <= 0:
            raise ValueError("interval_s must be > 0")
        self.source = source
        self.engine = engine
        self.notifiers = list(notifiers)
        self.interval_s = interval_s
        self.window = window
        self._clock = clock
        self._wall_clock = wall_clock
        self._lock = asyncio.Lock()
        self._stop = asyncio.Event()
        self._task: Optional[asyncio.Task] = None
        self.ticks = 0

    async def start(self) -> None:
        self._stop.clear()
        self._task = asyncio.create_task(self.run(), name="glucose-scheduler")

    async def stop(self) -> None:
        self._stop.set()
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    async def run(self) -> None:
        log.info("scheduler_started", interval_s=self.interval_s,
                 window=self.window.describe() if self.window else None)
        try:
            while not self._stop.is_set():
                try:
                    await self.tick()
                except Exception as e:
                    # keep ticking; the next cycle starts from the committed state
                    log.error("tick_crashed", err=repr(e))
                try:
                    await asyncio.wait_for(self._stop.wait(), timeout=self.interval_s)
                except asyncio.TimeoutError:
                    pass
        finally:
            log.info("scheduler_stopped", ticks=self.ticks)

    # --- one cycle ---

    def _in_window(self) -> bool:
        if self.window is None:
            return True
        when = self._wall_clock() if self._wall_clock else None
        return self.window.contains(when)

    async def tick(self) -> TickResult:
        async with self._lock:
            self.ticks += 1
            if not self._in_window():
                log.debug("tick_outside_window", window=self.window.describe())
                return TickResult("skipped_window")

            try:
                reading = await self.source.fetch_latest()
            except FetchError as e:
                log.warning("reading_fetch_failed", err=str(e), kind=type(e).__name__)
                return TickResult("fetch_failed")

            now_ms = self._clock()
            try:
                decision = self.engine.assess(reading, now_ms)
            except FetchError as e:
                # InvalidReading slipped past the source: same policy, skip the tick
                log.warning("reading_rejected", err=str(e), value=reading.value)
                return TickResult("fetch_failed")

            log.info("glucose_reading", reading=format_reading(reading),
                     classification=decision.classification.value)
            result = TickResult("evaluated", decision)

            if decision.outcome == "reset":
                log.info("alarm_reset", value=reading.value)
            elif decision.outcome == "suppressed":
                log.info("alarm_suppressed", reason=decision.classification.value,
                         value=reading.value, since_last_s=round((decision.elapsed_ms or 0) / 1000))
            elif decision.event is not None:
                evt = decision.event
                log.warning("alarm_fired", reason=evt.reason.value, value=evt.value,
                            timestamp=evt.timestamp)
                result.notify_failures = await self._dispatch(evt)
            return result

    async def _dispatch(self, evt: AlarmEvent) -> list[str]:
        failures: list[str] = []
        for n in self.notifiers:
            name = type(n).__name__
            try:
                await n.notify(evt)
            except NotifyError as e:
                log.error("alarm_notify_failed", notifier=name, err=str(e))
                failures.append(name)
        return failures

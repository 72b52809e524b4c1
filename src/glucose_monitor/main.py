# src/glucose_monitor/main.py
import asyncio
import logging
import sys

import structlog
from dotenv import load_dotenv

from glucose_monitor.config import Settings
from glucose_monitor.errors import ConfigError
from glucose_monitor.alerts.evaluator import AlarmEngine
from glucose_monitor.ingest.nightscout import NightscoutConfig, NightscoutSource, SimulatedSource
from glucose_monitor.notify.console import ConsoleNotifier
from glucose_monitor.notify.govee import GoveeConfig, GoveeNotifier
from glucose_monitor.admin.server import build_app, start_admin
from glucose_monitor.scheduler import Scheduler

log = structlog.get_logger()


def configure_logging(level: str = "INFO") -> None:
    level_no = logging.getLevelName(level)
    if not isinstance(level_no, int):
        level_no = logging.INFO
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level_no),
        cache_logger_on_first_use=True,
    )


async def run(settings: Settings) -> None:
    engine = AlarmEngine(settings.thresholds)

    # ----- Reading source -----
    simulator = None
    if settings.testing:
        simulator = SimulatedSource()
        source = simulator
        log.info("mode_testing", note="simulated values enabled")
    else:
        source = NightscoutSource(NightscoutConfig(url=settings.nightscout_url,
                                                   timeout_s=settings.http_timeout_s))

    # ----- Notifications -----
    govee = GoveeNotifier(GoveeConfig(
        api_key=settings.govee_api_key,
        device=settings.govee_device,
        sku=settings.govee_sku,
        timeout_s=settings.http_timeout_s,
    ))
    notifiers = [ConsoleNotifier(), govee]

    scheduler = Scheduler(
        source,
        engine,
        notifiers,
        interval_s=settings.tick_interval_s,
        window=settings.window,
    )

    log.info(
        "glucose_monitor_starting",
        low=settings.thresholds.low,
        high=settings.thresholds.high,
        cooldown_low_min=settings.thresholds.cooldown_low_ms / 60_000,
        cooldown_high_min=settings.thresholds.cooldown_high_ms / 60_000,
        interval_s=settings.tick_interval_s,
    )

    runner = None
    try:
        if isinstance(source, NightscoutSource):
            await source.start()
        await govee.start()
        if settings.admin_enabled:
            app = build_app(engine, govee=govee, simulator=simulator, testing=settings.testing)
            runner = await start_admin(app, settings.admin_host, settings.admin_port)
        await scheduler.run()
    finally:
        # graceful shutdown to avoid unclosed sessions
        if runner is not None:
            await runner.cleanup()
        if isinstance(source, NightscoutSource):
            await source.stop()
        await govee.stop()


def main() -> int:
    load_dotenv()
    try:
        settings = Settings.from_env()
    except ConfigError as e:
        configure_logging()
        log.error("config_invalid", err=str(e))
        return 1
    configure_logging(settings.log_level)
    try:
        asyncio.run(run(settings))
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == "__main__":
    sys.exit(main())

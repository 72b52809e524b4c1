from __future__ import annotations

import math
from typing import Optional

import structlog
from aiohttp import web

from glucose_monitor.alerts.evaluator import AlarmEngine
from glucose_monitor.errors import NotifyError
from glucose_monitor.ingest.nightscout import SimulatedSource
from glucose_monitor.notify.govee import GoveeNotifier

log = structlog.get_logger("admin")

ENGINE_KEY = web.AppKey("engine", AlarmEngine)
SIMULATOR_KEY = web.AppKey("simulator", SimulatedSource)
GOVEE_KEY = web.AppKey("govee", GoveeNotifier)
TESTING_KEY = web.AppKey("testing", bool)

routes = web.RouteTableDef()


@routes.post("/simulate")
async def simulate(request: web.Request) -> web.Response:
    """Set the simulated glucose value. Testing mode only."""
    sim = request.app.get(SIMULATOR_KEY)
    if not request.app[TESTING_KEY] or sim is None:
        return web.Response(status=403, text="Simulation only available in testing mode.")
    try:
        body = await request.json()
        value = float(body["value"])
    except (ValueError, TypeError, KeyError):
        return web.Response(status=400, text="Invalid value")
    if not math.isfinite(value):
        return web.Response(status=400, text="Invalid value")

    sim.set_value(value)
    log.info("simulated_value_set", value=value)
    return web.json_response({"success": True, "value": value})


@routes.get("/api/govee/devices")
async def govee_devices(request: web.Request) -> web.Response:
    govee = request.app.get(GOVEE_KEY)
    if govee is None:
        return web.json_response({"error": "Govee API unreachable"}, status=500)
    try:
        devices = await govee.list_devices()
    except NotifyError as e:
        log.error("govee_devices_failed", err=str(e))
        return web.json_response({"error": "Govee API unreachable"}, status=500)
    return web.json_response(devices)


@routes.get("/healthz")
async def healthz(request: web.Request) -> web.Response:
    st = request.app[ENGINE_KEY].state
    return web.json_response({
        "ok": True,
        "alarm_active": st.active,
        "reason": st.reason.value if st.reason else None,
        "last_alarm_ms": st.last_alarm_ms,
    })


def build_app(
    engine: AlarmEngine,
    *,
    govee: Optional[GoveeNotifier] = None,
    simulator: Optional[SimulatedSource] = None,
    testing: bool = False,
) -> web.Application:
    app = web.Application()
    app[ENGINE_KEY] = engine
    app[TESTING_KEY] = testing
    if simulator is not None:
        app[SIMULATOR_KEY] = simulator
    if govee is not None:
        app[GOVEE_KEY] = govee
    app.add_routes(routes)
    return app


async def start_admin(app: web.Application, host: str, port: int) -> web.AppRunner:
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    await site.start()
    log.info("admin_listening", url=f"http://{host}:{port}")
    return runner

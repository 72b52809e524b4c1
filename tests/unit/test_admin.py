import pytest
from aiohttp.test_utils import TestClient, TestServer

from glucose_monitor.admin.server import build_app
from glucose_monitor.alerts.evaluator import AlarmEngine
from glucose_monitor.errors import NotifyError
from glucose_monitor.ingest.nightscout import SimulatedSource
from tests.helpers.fakes import reading

class _FakeGovee:
    def __init__(self, fail=False):
        self.fail = fail

    async def list_devices(self):
        if self.fail:
            raise NotifyError("unreachable")
        return {"code": 200, "data": [{"device": "AA:BB", "sku": "H6008"}]}

@pytest.mark.asyncio
async def test_simulate_sets_value_in_testing_mode():
    sim = SimulatedSource()
    app = build_app(AlarmEngine(), simulator=sim, testing=True)
    async with TestClient(TestServer(app)) as client:
        resp = await client.post("/simulate", json={"value": "55"})
        assert resp.status == 200
        assert await resp.json() == {"success": True, "value": 55.0}
    assert sim.value == 55.0

@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [{"value": "abc"}, {}, {"value": None}, {"value": "nan"}])
async def test_simulate_rejects_invalid_values(payload):
    sim = SimulatedSource()
    app = build_app(AlarmEngine(), simulator=sim, testing=True)
    async with TestClient(TestServer(app)) as client:
        resp = await client.post("/simulate", json=payload)
        assert resp.status == 400
    assert sim.value == 100.0

@pytest.mark.asyncio
async def test_simulate_forbidden_outside_testing():
    app = build_app(AlarmEngine(), simulator=SimulatedSource(), testing=False)
    async with TestClient(TestServer(app)) as client:
        resp = await client.post("/simulate", json={"value": 55})
        assert resp.status == 403

@pytest.mark.asyncio
async def test_devices_proxy():
    app = build_app(AlarmEngine(), govee=_FakeGovee())
    async with TestClient(TestServer(app)) as client:
        resp = await client.get("/api/govee/devices")
        assert resp.status == 200
        assert (await resp.json())["data"][0]["device"] == "AA:BB"

@pytest.mark.asyncio
async def test_devices_proxy_failure():
    app = build_app(AlarmEngine(), govee=_FakeGovee(fail=True))
    async with TestClient(TestServer(app)) as client:
        resp = await client.get("/api/govee/devices")
        assert resp.status == 500
        assert await resp.json() == {"error": "Govee API unreachable"}

@pytest.mark.asyncio
async def test_healthz_reports_alarm_state():
    engine = AlarmEngine()
    engine.evaluate(reading(250), now_ms=7)
    app = build_app(engine)
    async with TestClient(TestServer(app)) as client:
        resp = await client.get("/healthz")
        body = await resp.json()
    assert body == {"ok": True, "alarm_active": True, "reason": "High", "last_alarm_ms": 7}

from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass
from typing import Any, Optional

import aiohttp
import structlog

from glucose_monitor.errors import NotifyError
from glucose_monitor.utils.types import AlarmEvent

log = structlog.get_logger("govee")

GOVEE_API_BASE = "https://openapi.api.govee.com/router/api/v1"

# --------- config & client ----------

@dataclass(slots=True)
class GoveeConfig:
    api_key: str
    device: str                 # MAC-like device id, e.g. "D7:B0:60:74:F4:DB:FB:6A"
    sku: str                    # model, e.g. "H6008"
    base_url: str = GOVEE_API_BASE
    timeout_s: float = 8.0

class GoveeNotifier:
    """
    Turns a Govee device on when an alarm fires.

    One control request per event, no retries: a failure raises NotifyError
    and the next alarm (after cooldown) simply tries again.
    """
    def __init__(self, cfg: GoveeConfig, session: Optional[aiohttp.ClientSession] = None):
        self.cfg = cfg
        self._session = session
        self._owns_session = session is None

    async def start(self):
        if self._session is None:
            timeout = aiohttp.ClientTimeout(total=self.cfg.timeout_s)
            self._session = aiohttp.ClientSession(timeout=timeout)
            self._owns_session = True

    async def stop(self):
        if self._session and self._owns_session:
            await self._session.close()
        self._session = None

    def _headers(self) -> dict[str, str]:
        return {"Content-Type": "application/json", "Govee-API-Key": self.cfg.api_key}

    def control_payload(self, value: int = 1) -> dict[str, Any]:
        return {
            "requestId": str(uuid.uuid4()),
            "payload": {
                "device": self.cfg.device,
                "sku": self.cfg.sku,
                "capability": {
                    "type": "devices.capabilities.on_off",
                    "instance": "powerSwitch",
                    "value": value,
                },
            },
        }

    async def notify(self, evt: AlarmEvent) -> dict:
        body = await self._request("POST", "/device/control", json=self.control_payload(1))
        log.info("govee_device_on", device=self.cfg.device, sku=self.cfg.sku,
                 reason=evt.reason.value, value=evt.value, response=body)
        return body

    async def list_devices(self) -> dict:
        return await self._request("GET", "/user/devices")

    async def _request(self, method: str, path: str, json: Optional[dict] = None) -> dict:
        if self._session is None:
            await self.start()
        assert self._session is not None
        url = f"{self.cfg.base_url}{path}"
        try:
            async with self._session.request(method, url, headers=self._headers(), json=json) as resp:
                detail = await _maybe_json(resp)
                if not 200 <= resp.status < 300:
                    raise NotifyError(f"govee {method} {path} returned HTTP {resp.status}: {detail}")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise NotifyError(f"govee unreachable: {e!r}") from e

        # Govee reports application errors in the body with HTTP 200
        if isinstance(detail, dict) and detail.get("code") not in (None, 200):
            raise NotifyError(f"govee {method} {path} failed: code={detail.get('code')} msg={detail.get('msg')}")
        return detail if isinstance(detail, dict) else {"raw": detail}

async def _maybe_json(resp: aiohttp.ClientResponse) -> Any:
    try:
        return await resp.json(content_type=None)
    except (ValueError, aiohttp.ContentTypeError):
        try:
            return await resp.text()
        except Exception:
            return "<no body>"

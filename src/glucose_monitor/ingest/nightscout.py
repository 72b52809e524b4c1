from __future__ import annotations

import asyncio
import math
from dataclasses import dataclass
from typing import Optional, Protocol

import aiohttp
import structlog

from glucose_monitor.errors import FetchError, InvalidReading
from glucose_monitor.ingest import parser
from glucose_monitor.utils.time import iso_now, utc_now_ms
from glucose_monitor.utils.types import Reading


class ReadingSource(Protocol):
    async def fetch_latest(self) -> Reading: ...


@dataclass(slots=True)
class NightscoutConfig:
    url: str                     # e.g. https://<site>/api/v1/entries.tsv?count=1
    timeout_s: float = 8.0


class NightscoutSource:
    """
    Pulls the newest CGM entries from a Nightscout entries.tsv endpoint.

    Any transport problem or unusable body surfaces as FetchError
    (InvalidReading for bad records); nothing is ever fabricated.
    """
    def __init__(self, cfg: NightscoutConfig, session: Optional[aiohttp.ClientSession] = None):
        self.cfg = cfg
        self._session = session
        self._owns_session = session is None
        self._log = structlog.get_logger("nightscout")

    async def start(self) -> None:
        if self._session is None:
            timeout = aiohttp.ClientTimeout(total=self.cfg.timeout_s)
            self._session = aiohttp.ClientSession(timeout=timeout)
            self._owns_session = True

    async def stop(self) -> None:
        if self._session and self._owns_session:
            await self._session.close()
        self._session = None

    async def fetch_entries(self) -> list[Reading]:
        if self._session is None:
            await self.start()
        assert self._session is not None

        headers = {"Accept": "text/tab-separated-values, text/plain"}
        try:
            async with self._session.get(self.cfg.url, headers=headers) as resp:
                text = await resp.text()
                if not 200 <= resp.status < 300:
                    raise FetchError(f"nightscout returned HTTP {resp.status}: {text[:200]!r}")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise FetchError(f"nightscout unreachable: {e!r}") from e

        entries = parser.parse_entries(text)
        self._log.debug("nightscout_entries", count=len(entries))
        return entries

    async def fetch_latest(self) -> Reading:
        entries = await self.fetch_entries()
        return entries[0]


class SimulatedSource:
    """
    Testing-mode source: always returns one fresh reading with the
    current simulated value (settable through the admin API).
    """
    def __init__(self, value: float = 100.0):
        self._value = float(value)

    @property
    def value(self) -> float:
        return self._value

    def set_value(self, value: float) -> None:
        value = float(value)
        if not math.isfinite(value):
            raise InvalidReading(f"simulated value must be finite, got {value!r}")
        self._value = value

    async def fetch_latest(self) -> Reading:
        return Reading(
            timestamp=iso_now(),
            timestamp_ms=utc_now_ms(),
            value=self._value,
            trend="Flat",
            source="Simulated",
        )

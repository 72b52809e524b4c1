from __future__ import annotations

import math
import os
from dataclasses import dataclass, field
from typing import Mapping, Optional

from glucose_monitor.alerts.rules import ThresholdConfig
from glucose_monitor.errors import ConfigError
from glucose_monitor.utils.active_window import ActiveWindow
from glucose_monitor.utils.time import minutes_to_ms

TRUTHY = ("1", "true", "yes", "on")


def _flag(env: Mapping[str, str], name: str, default: str = "0") -> bool:
    return env.get(name, default).strip().lower() in TRUTHY


def _float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        v = float(raw)
    except ValueError as e:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from e
    if not math.isfinite(v):
        raise ConfigError(f"{name} must be finite, got {raw!r}")
    return v


def _required(env: Mapping[str, str], name: str) -> str:
    v = (env.get(name) or "").strip()
    if not v:
        raise ConfigError(f"Missing {name} in environment/.env")
    return v


@dataclass(slots=True, frozen=True)
class Settings:
    govee_api_key: str
    govee_device: str
    govee_sku: str
    nightscout_url: Optional[str] = None
    thresholds: ThresholdConfig = field(default_factory=ThresholdConfig)
    tick_interval_s: float = 10.0
    window: Optional[ActiveWindow] = None
    testing: bool = False
    http_timeout_s: float = 8.0
    admin_enabled: bool = True
    admin_host: str = "127.0.0.1"
    admin_port: int = 3000
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Build and validate settings from the environment (call load_dotenv() first).
        Raises ConfigError on anything missing or malformed.
        """
        env = os.environ if env is None else env
        testing = _flag(env, "TESTING")

        nightscout_url = (env.get("NIGHTSCOUT_API_URL") or "").strip() or None
        if nightscout_url is None and not testing:
            raise ConfigError("Missing NIGHTSCOUT_API_URL in environment/.env")
        if nightscout_url is not None and not nightscout_url.startswith(("http://", "https://")):
            raise ConfigError(f"NIGHTSCOUT_API_URL must be an http(s) URL, got {nightscout_url!r}")

        thresholds = ThresholdConfig(
            low=_float(env, "GLUCOSE_LOW", 70.0),
            high=_float(env, "GLUCOSE_HIGH", 180.0),
            cooldown_low_ms=minutes_to_ms(_float(env, "COOLDOWN_LOW_MIN", 30.0)),
            cooldown_high_ms=minutes_to_ms(_float(env, "COOLDOWN_HIGH_MIN", 150.0)),
        )

        tick_interval_s = _float(env, "TICK_INTERVAL_S", 10.0)
        if tick_interval_s <= 0:
            raise ConfigError("TICK_INTERVAL_S must be > 0")

        http_timeout_s = _float(env, "HTTP_TIMEOUT_S", 8.0)
        if http_timeout_s <= 0:
            raise ConfigError("HTTP_TIMEOUT_S must be > 0")

        window = None
        window_raw = (env.get("ACTIVE_WINDOW") or "").strip()
        if window_raw:
            tz_name = (env.get("ACTIVE_WINDOW_TZ") or "").strip() or None
            window = ActiveWindow.parse(window_raw, tz_name)

        port_raw = env.get("ADMIN_PORT", "3000")
        try:
            admin_port = int(port_raw)
        except ValueError as e:
            raise ConfigError(f"ADMIN_PORT must be an integer, got {port_raw!r}") from e
        if not 0 < admin_port < 65536:
            raise ConfigError(f"ADMIN_PORT out of range: {admin_port}")

        return cls(
            govee_api_key=_required(env, "GOVEE_API_KEY"),
            govee_device=_required(env, "GOVEE_DEVICE"),
            govee_sku=_required(env, "GOVEE_SKU"),
            nightscout_url=nightscout_url,
            thresholds=thresholds,
            tick_interval_s=tick_interval_s,
            window=window,
            testing=testing,
            http_timeout_s=http_timeout_s,
            admin_enabled=_flag(env, "ADMIN_ENABLED", "1"),
            admin_host=env.get("ADMIN_HOST", "127.0.0.1"),
            admin_port=admin_port,
            log_level=env.get("LOG_LEVEL", "INFO").upper(),
        )

"""Centralised application settings (dotenv + env overrides)."""
from __future__ import annotations
import os
from pathlib import Path
from dotenv import load_dotenv

from huereset.core.exceptions import ConfigurationError

ROOT = Path(__file__).parents[1]
load_dotenv(ROOT / ".env", override=False)


def _number(name: str, default, cast=float):
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = cast(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from e
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {raw!r}")
    return value


class settings:                            # pylint: disable=too-few-public-methods
    MQTT_HOST        = os.getenv("MQTT_HOST", "localhost")
    MQTT_PORT        = _number("MQTT_PORT", 1883, int)
    MQTT_TRANSPORT   = os.getenv("MQTT_TRANSPORT", "tcp").lower()
    MQTT_USERNAME    = os.getenv("MQTT_USERNAME", "")
    MQTT_PASSWORD    = os.getenv("MQTT_PASSWORD", "")
    MQTT_CLIENT_ID   = os.getenv("MQTT_CLIENT_ID", "")
    MQTT_KEEPALIVE   = _number("MQTT_KEEPALIVE", 30, int)
    BASE_TOPIC       = os.getenv("BASE_TOPIC", "zigbee2mqtt").strip() or "zigbee2mqtt"
    EXTENDED_PAN_ID  = os.getenv("EXTENDED_PAN_ID", "").strip()
    RESET_ACTION     = os.getenv("RESET_ACTION", "factory_reset").strip() or "factory_reset"
    DEDUP_WINDOW     = _number("DEDUP_WINDOW", 20.0)
    ACTION_TIMEOUT   = _number("ACTION_TIMEOUT", 40.0)
    PERMIT_JOIN_TIME = _number("PERMIT_JOIN_TIME", 120, int)
    REJOIN_TIMEOUT   = _number("REJOIN_TIMEOUT", 120.0)
    LOG_LEVEL        = os.getenv("LOG_LEVEL", "INFO").upper()

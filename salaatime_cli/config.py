from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, cast

from .errors import ConfigurationError
from .methods import (
    DEFAULT_DHUHR_MINUTES,
    OVERRIDE_KEYS,
    AsrMethod,
    CalculationConfig,
    HighLatitudeRule,
    MethodName,
    normalize_asr,
    normalize_high_latitude,
    normalize_method,
)
from .models import PRAYER_KEYS, Location, TimeFormat

logger = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".config" / "salaatime"
CONFIG_PATH = CONFIG_DIR / "config.json"


def default_location() -> Location:
    return Location(lat=51.24, lon=-0.17, label="London")


@dataclass
class Config:
    location: Location = field(default_factory=default_location)
    method: MethodName = "ISNA"
    asr_method: AsrMethod = "Standard"
    high_latitude: HighLatitudeRule = "None"
    utc_offset: float | None = None
    dhuhr_minutes: float = DEFAULT_DHUHR_MINUTES
    tune: dict[str, float] = field(default_factory=dict)
    overrides: dict[str, float] = field(default_factory=dict)
    time_format: TimeFormat = "24h"
    skip_sunrise: bool = False
    show_hijri: bool = True
    hijri_offset: int = 0

    def calculation(self) -> CalculationConfig:
        return CalculationConfig(
            method=self.method,
            asr=self.asr_method,
            high_latitude=self.high_latitude,
            dhuhr_minutes=self.dhuhr_minutes,
            tune=dict(self.tune),
            overrides=dict(self.overrides),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "location": self.location.to_dict(),
            "method": self.method,
            "asr_method": self.asr_method,
            "high_latitude": self.high_latitude,
            "utc_offset": self.utc_offset,
            "dhuhr_minutes": self.dhuhr_minutes,
            "tune": self.tune,
            "overrides": self.overrides,
            "time_format": self.time_format,
            "skip_sunrise": self.skip_sunrise,
            "show_hijri": self.show_hijri,
            "hijri_offset": self.hijri_offset,
        }


def _sanitize_method(value: Any) -> MethodName:
    try:
        return normalize_method(str(value))
    except ConfigurationError:
        return "ISNA"


def _sanitize_asr(value: Any) -> AsrMethod:
    try:
        return normalize_asr(str(value))
    except ConfigurationError:
        return "Standard"


def _sanitize_high_latitude(value: Any) -> HighLatitudeRule:
    try:
        return normalize_high_latitude(None if value is None else str(value))
    except ConfigurationError:
        return "None"


def _sanitize_time_format(value: str | None) -> TimeFormat:
    if value in ("12h", "24h"):
        return cast(TimeFormat, value)
    return "24h"


def _sanitize_float(value: Any, default: float | None) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    return float(value)


def _sanitize_bool(value: Any, default: bool) -> bool:
    return value if isinstance(value, bool) else default


def _sanitize_minutes(value: Any, allowed: set[str] | frozenset[str]) -> dict[str, float]:
    if not isinstance(value, dict):
        return {}
    return {
        str(key): float(minutes)
        for key, minutes in value.items()
        if key in allowed and isinstance(minutes, (int, float)) and not isinstance(minutes, bool)
    }


def _sanitize_location(value: Any) -> Location:
    if isinstance(value, dict):
        try:
            return Location.from_dict(value)
        except (KeyError, TypeError, ValueError, ConfigurationError):
            logger.warning("Ignoring invalid location in config: %r", value)
    return default_location()


def default_config() -> Config:
    return Config()


def config_from_dict(data: dict[str, Any]) -> Config:
    method = _sanitize_method(data.get("method"))
    return Config(
        location=_sanitize_location(data.get("location")),
        method=method,
        asr_method=_sanitize_asr(data.get("asr_method")),
        high_latitude=_sanitize_high_latitude(data.get("high_latitude")),
        utc_offset=_sanitize_float(data.get("utc_offset"), None),
        dhuhr_minutes=_sanitize_float(data.get("dhuhr_minutes"), DEFAULT_DHUHR_MINUTES)
        or 0.0,
        tune=_sanitize_minutes(data.get("tune"), set(PRAYER_KEYS)),
        overrides=_sanitize_minutes(data.get("overrides"), OVERRIDE_KEYS)
        if method == "Custom"
        else {},
        time_format=_sanitize_time_format(data.get("time_format")),
        skip_sunrise=_sanitize_bool(data.get("skip_sunrise"), False),
        show_hijri=_sanitize_bool(data.get("show_hijri"), True),
        hijri_offset=int(_sanitize_float(data.get("hijri_offset"), 0) or 0),
    )


def load_config() -> Config:
    if not CONFIG_PATH.exists():
        config = default_config()
        save_config(config)
        return config

    try:
        data = json.loads(CONFIG_PATH.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        logger.warning("Config at %s is unreadable, using defaults", CONFIG_PATH)
        config = default_config()
        save_config(config)
        return config

    if not isinstance(data, dict):
        return default_config()
    return config_from_dict(data)


def save_config(config: Config) -> None:
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    CONFIG_PATH.write_text(json.dumps(config.to_dict(), indent=2) + "\n", encoding="utf-8")

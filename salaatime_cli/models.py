from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from types import MappingProxyType
from typing import Any, Literal, Mapping

from .errors import IncompleteDataError, InvalidLocationError, OrderingError

TimeFormat = Literal["12h", "24h"]
PrayerKey = Literal["fajr", "sunrise", "dhuhr", "asr", "maghrib", "isha"]
StateStatus = Literal["upcoming", "imminent", "no_data"]

PRAYER_KEYS: tuple[PrayerKey, ...] = (
    "fajr",
    "sunrise",
    "dhuhr",
    "asr",
    "maghrib",
    "isha",
)

PRAYER_LABELS: dict[PrayerKey, str] = {
    "fajr": "Fajr",
    "sunrise": "Sunrise",
    "dhuhr": "Dhuhr",
    "asr": "Asr",
    "maghrib": "Maghrib",
    "isha": "Isha",
}

MINUTES_PER_DAY = 24 * 60
EMPTY_TIME = "--:--"


@dataclass(frozen=True)
class Location:
    lat: float
    lon: float
    label: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.lat, (int, float)) or math.isnan(self.lat):
            raise InvalidLocationError(f"latitude is not a number: {self.lat!r}")
        if not isinstance(self.lon, (int, float)) or math.isnan(self.lon):
            raise InvalidLocationError(f"longitude is not a number: {self.lon!r}")
        if not (-90.0 <= self.lat <= 90.0):
            raise InvalidLocationError(f"latitude must be between -90 and 90, got {self.lat}")
        if not (-180.0 <= self.lon <= 180.0):
            raise InvalidLocationError(f"longitude must be between -180 and 180, got {self.lon}")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Location":
        return cls(
            lat=float(data["lat"]),
            lon=float(data["lon"]),
            label=data.get("label"),
        )

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"lat": self.lat, "lon": self.lon}
        if self.label:
            payload["label"] = self.label
        return payload

    def describe(self) -> str:
        coords = f"{self.lat:.4f}, {self.lon:.4f}"
        return f"{self.label} ({coords})" if self.label else coords


@dataclass(frozen=True, order=True)
class ClockTime:
    """Minute-resolution local clock time; ``day_offset`` marks a wrap past midnight."""

    day_offset: int
    hour: int
    minute: int

    @classmethod
    def from_minutes(cls, total: int) -> "ClockTime":
        day_offset, minutes = divmod(total, MINUTES_PER_DAY)
        hour, minute = divmod(minutes, 60)
        return cls(day_offset=day_offset, hour=hour, minute=minute)

    @classmethod
    def parse(cls, value: str) -> "ClockTime":
        match = re.search(r"(\d{1,2}):(\d{2})", value)
        if not match:
            raise ValueError(f"Invalid time value: {value!r}")
        hour = int(match.group(1))
        minute = int(match.group(2))
        if hour > 23 or minute > 59:
            raise ValueError(f"Invalid time value: {value!r}")
        return cls(day_offset=0, hour=hour, minute=minute)

    @property
    def minute_of_day(self) -> int:
        return self.hour * 60 + self.minute

    @property
    def absolute_minutes(self) -> int:
        return self.day_offset * MINUTES_PER_DAY + self.minute_of_day

    def on(self, day: date, tzinfo: Any = None) -> datetime:
        base = datetime(day.year, day.month, day.day, self.hour, self.minute, tzinfo=tzinfo)
        return base + timedelta(days=self.day_offset)

    def __str__(self) -> str:
        return f"{self.hour:02}:{self.minute:02}"


def check_order(times: Mapping[PrayerKey, ClockTime]) -> None:
    previous: tuple[PrayerKey, ClockTime] | None = None
    for key in PRAYER_KEYS:
        value = times.get(key)
        if value is None:
            continue
        if previous is not None and value.absolute_minutes <= previous[1].absolute_minutes:
            raise OrderingError(
                f"{key} ({value}) is not after {previous[0]} ({previous[1]})"
            )
        previous = (key, value)


@dataclass(frozen=True)
class DayInstants:
    date: date
    utc_offset: float
    times: Mapping[PrayerKey, ClockTime]
    failures: Mapping[PrayerKey, Exception] = field(default_factory=dict)

    def __post_init__(self) -> None:
        ordered = {key: self.times[key] for key in PRAYER_KEYS if key in self.times}
        check_order(ordered)
        object.__setattr__(self, "times", MappingProxyType(ordered))
        object.__setattr__(self, "failures", MappingProxyType(dict(self.failures)))

    @classmethod
    def from_strings(
        cls,
        day: date,
        data: Mapping[str, str],
        utc_offset: float = 0.0,
    ) -> "DayInstants":
        times: dict[PrayerKey, ClockTime] = {}
        for key in PRAYER_KEYS:
            raw = data.get(key)
            if raw is None or raw == EMPTY_TIME:
                continue
            times[key] = ClockTime.parse(raw)
        return cls(date=day, utc_offset=utc_offset, times=times)

    @property
    def missing(self) -> tuple[PrayerKey, ...]:
        return tuple(key for key in PRAYER_KEYS if key not in self.times)

    @property
    def is_complete(self) -> bool:
        return not self.missing

    def require_complete(self) -> None:
        if self.missing:
            raise IncompleteDataError(self.missing)

    def get(self, key: PrayerKey) -> ClockTime | None:
        return self.times.get(key)

    def display(self, key: PrayerKey) -> str:
        value = self.times.get(key)
        return str(value) if value is not None else EMPTY_TIME

    def to_dict(self) -> dict[str, str]:
        return {key: self.display(key) for key in PRAYER_KEYS}


@dataclass(frozen=True)
class NextPrayerState:
    status: StateStatus
    key: PrayerKey | None = None
    time: str = EMPTY_TIME
    at: datetime | None = None
    remaining: timedelta | None = None
    is_tomorrow: bool = False
    reason: str | None = None

    @classmethod
    def no_data(cls, reason: str) -> "NextPrayerState":
        return cls(status="no_data", reason=reason)

    @property
    def has_data(self) -> bool:
        return self.status != "no_data"

    @property
    def label(self) -> str:
        if self.key is None:
            return "N/A"
        return PRAYER_LABELS[self.key]

    @property
    def time_until_next_ms(self) -> int:
        if self.remaining is None:
            return 0
        return max(0, int(self.remaining.total_seconds() * 1000))

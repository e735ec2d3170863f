from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Literal, Mapping

from .errors import ConfigurationError, UnknownMethodError
from .models import PRAYER_KEYS, PrayerKey

MethodName = Literal[
    "MWL",
    "ISNA",
    "Egyptian",
    "Makkah",
    "Karachi",
    "Tehran",
    "Jafari",
    "Custom",
]
AsrMethod = Literal["Standard", "Hanafi"]
HighLatitudeRule = Literal["None", "NightMiddle", "AngleBased", "OneSeventh"]

# Degrees below the horizon for sunrise and sunset (refraction plus solar radius).
RISE_SET_ANGLE = 0.833
DEFAULT_DHUHR_MINUTES = 1.0


@dataclass(frozen=True)
class MethodParams:
    name: str
    fajr_angle: float
    isha_angle: float | None = None
    isha_minutes: float | None = None
    maghrib_angle: float | None = None
    maghrib_minutes: float | None = 0.0

    def __post_init__(self) -> None:
        if (self.isha_angle is None) == (self.isha_minutes is None):
            raise ConfigurationError(f"{self.name}: isha needs exactly one of an angle or minutes")
        if (self.maghrib_angle is None) == (self.maghrib_minutes is None):
            raise ConfigurationError(f"{self.name}: maghrib needs exactly one of an angle or minutes")

    def describe_isha(self) -> str:
        if self.isha_angle is not None:
            return f"{self.isha_angle:g}°"
        return f"maghrib + {self.isha_minutes:g} min"

    def describe_maghrib(self) -> str:
        if self.maghrib_angle is not None:
            return f"{self.maghrib_angle:g}°"
        return f"sunset + {self.maghrib_minutes:g} min"


METHODS: dict[MethodName, MethodParams] = {
    "MWL": MethodParams("Muslim World League", fajr_angle=18, isha_angle=17),
    "ISNA": MethodParams("Islamic Society of North America", fajr_angle=15, isha_angle=15),
    "Egyptian": MethodParams(
        "Egyptian General Authority of Survey", fajr_angle=19.5, isha_angle=17.5
    ),
    "Makkah": MethodParams("Umm Al-Qura University, Makkah", fajr_angle=18.5, isha_minutes=90),
    "Karachi": MethodParams(
        "University of Islamic Sciences, Karachi", fajr_angle=18, isha_angle=18
    ),
    "Tehran": MethodParams(
        "Institute of Geophysics, University of Tehran",
        fajr_angle=17.7,
        isha_angle=14,
        maghrib_angle=4.5,
        maghrib_minutes=None,
    ),
    "Jafari": MethodParams(
        "Shia Ithna-Ashari, Leva Institute, Qum",
        fajr_angle=16,
        isha_angle=14,
        maghrib_angle=4,
        maghrib_minutes=None,
    ),
    "Custom": MethodParams("Custom", fajr_angle=18, isha_angle=17),
}

METHOD_ALIASES: dict[str, MethodName] = {"egypt": "Egyptian"}

ASR_FACTORS: dict[AsrMethod, int] = {"Standard": 1, "Hanafi": 2}

HIGH_LATITUDE_RULES: tuple[HighLatitudeRule, ...] = (
    "None",
    "NightMiddle",
    "AngleBased",
    "OneSeventh",
)

OVERRIDE_PAIRS: dict[str, str] = {
    "isha_angle": "isha_minutes",
    "isha_minutes": "isha_angle",
    "maghrib_angle": "maghrib_minutes",
    "maghrib_minutes": "maghrib_angle",
}
OVERRIDE_KEYS = frozenset({"fajr_angle", *OVERRIDE_PAIRS})


def _lookup(value: str, choices: Mapping[str, Any] | tuple[str, ...]) -> str | None:
    folded = value.strip().lower()
    for name in choices:
        if name.lower() == folded:
            return name
    return None


def normalize_method(value: str) -> MethodName:
    name = _lookup(value, METHODS) or METHOD_ALIASES.get(value.strip().lower())
    if name is None:
        raise UnknownMethodError(
            f"Unknown calculation method {value!r}; expected one of {', '.join(METHODS)}"
        )
    return name  # type: ignore[return-value]


def normalize_asr(value: str) -> AsrMethod:
    name = _lookup(value, ASR_FACTORS)
    if name is None:
        raise UnknownMethodError(
            f"Unknown asr method {value!r}; expected one of {', '.join(ASR_FACTORS)}"
        )
    return name  # type: ignore[return-value]


def normalize_high_latitude(value: str | None) -> HighLatitudeRule:
    if value is None:
        return "None"
    name = _lookup(value, HIGH_LATITUDE_RULES)
    if name is None:
        raise ConfigurationError(
            f"Unknown high latitude rule {value!r}; expected one of {', '.join(HIGH_LATITUDE_RULES)}"
        )
    return name  # type: ignore[return-value]


@dataclass(frozen=True)
class CalculationConfig:
    method: str = "ISNA"
    asr: str = "Standard"
    high_latitude: str = "None"
    dhuhr_minutes: float = DEFAULT_DHUHR_MINUTES
    tune: Mapping[str, float] = field(default_factory=dict)
    overrides: Mapping[str, float | None] = field(default_factory=dict)

    def resolve(self) -> "ResolvedConfig":
        method = normalize_method(self.method)
        asr = normalize_asr(self.asr)
        high_latitude = normalize_high_latitude(self.high_latitude)

        unknown_tune = set(self.tune) - set(PRAYER_KEYS)
        if unknown_tune:
            raise ConfigurationError(f"Unknown tune keys: {', '.join(sorted(unknown_tune))}")

        return ResolvedConfig(
            method=method,
            params=method_params(method, self.overrides),
            asr_factor=ASR_FACTORS[asr],
            high_latitude=high_latitude,
            dhuhr_minutes=float(self.dhuhr_minutes),
            tune={key: float(self.tune.get(key, 0.0)) for key in PRAYER_KEYS},
        )


@dataclass(frozen=True)
class ResolvedConfig:
    method: MethodName
    params: MethodParams
    asr_factor: int
    high_latitude: HighLatitudeRule
    dhuhr_minutes: float
    tune: Mapping[PrayerKey, float]


def method_params(
    method: str,
    overrides: Mapping[str, float | None] | None = None,
) -> MethodParams:
    name = normalize_method(method)
    params = METHODS[name]
    if not overrides:
        return params

    if name != "Custom":
        raise ConfigurationError(f"Overrides are only allowed with the Custom method, not {name}")

    unknown = set(overrides) - OVERRIDE_KEYS
    if unknown:
        raise ConfigurationError(f"Unknown override keys: {', '.join(sorted(unknown))}")

    changes: dict[str, float | None] = {}
    for key, value in overrides.items():
        if value is None:
            continue
        changes[key] = float(value)
        partner = OVERRIDE_PAIRS.get(key)
        if partner and partner not in overrides:
            changes[partner] = None
    return replace(params, **changes)

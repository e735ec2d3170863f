"""Astronomical prayer-time calculation.

The formulation is the usual one for prayer times: a truncated solar series
gives the declination and equation of time for the day, and every prayer is
an hour angle away from solar noon. All functions here are pure; the caller
supplies the date, the location and the UTC offset.
"""

from __future__ import annotations

import logging
import math
from datetime import date

from .errors import NoSolarEventError
from .methods import RISE_SET_ANGLE, CalculationConfig, HighLatitudeRule, ResolvedConfig
from .models import PRAYER_KEYS, ClockTime, DayInstants, Location, PrayerKey

logger = logging.getLogger(__name__)

J2000 = 2451545.0

# First guesses in hours, refined once against the sun's position at that time.
INITIAL_GUESSES: dict[str, float] = {
    "fajr": 5,
    "sunrise": 6,
    "dhuhr": 12,
    "asr": 13,
    "sunset": 18,
    "maghrib": 18,
    "isha": 18,
}


def _sin(degrees: float) -> float:
    return math.sin(math.radians(degrees))


def _cos(degrees: float) -> float:
    return math.cos(math.radians(degrees))


def _tan(degrees: float) -> float:
    return math.tan(math.radians(degrees))


def _fix(value: float, mode: float) -> float:
    value -= mode * math.floor(value / mode)
    return value + mode if value < 0 else value


def fix_angle(angle: float) -> float:
    return _fix(angle, 360.0)


def fix_hour(hour: float) -> float:
    return _fix(hour, 24.0)


def time_diff(start: float, end: float) -> float:
    return fix_hour(end - start)


def julian_date(year: int, month: int, day: int) -> float:
    if month <= 2:
        year -= 1
        month += 12
    century = math.floor(year / 100)
    correction = 2 - century + math.floor(century / 4)
    return (
        math.floor(365.25 * (year + 4716))
        + math.floor(30.6001 * (month + 1))
        + day
        + correction
        - 1524.5
    )


def sun_position(jd: float) -> tuple[float, float]:
    """Return ``(declination, equation_of_time)`` in degrees and hours."""
    d = jd - J2000
    mean_anomaly = fix_angle(357.529 + 0.98560028 * d)
    mean_longitude = fix_angle(280.459 + 0.98564736 * d)
    ecliptic_longitude = fix_angle(
        mean_longitude + 1.915 * _sin(mean_anomaly) + 0.020 * _sin(2 * mean_anomaly)
    )
    obliquity = 23.439 - 0.00000036 * d

    right_ascension = (
        math.degrees(
            math.atan2(_cos(obliquity) * _sin(ecliptic_longitude), _cos(ecliptic_longitude))
        )
        / 15.0
    )
    equation_of_time = mean_longitude / 15.0 - fix_hour(right_ascension)
    declination = math.degrees(math.asin(_sin(obliquity) * _sin(ecliptic_longitude)))
    return declination, equation_of_time


class _SunClock:
    """Hour-angle solver bound to one Julian day and latitude."""

    def __init__(self, jdate: float, lat: float) -> None:
        self.jdate = jdate
        self.lat = lat

    def mid_day(self, portion: float) -> float:
        _, eqt = sun_position(self.jdate + portion)
        return fix_hour(12 - eqt)

    def angle_time(self, key: str, angle: float, portion: float, before_noon: bool) -> float:
        decl, _ = sun_position(self.jdate + portion)
        noon = self.mid_day(portion)
        denominator = _cos(decl) * _cos(self.lat)
        if abs(denominator) < 1e-12:
            raise NoSolarEventError(key, "hour angle is undefined at the pole")

        cosine = (-_sin(angle) - _sin(decl) * _sin(self.lat)) / denominator
        if not -1.0 <= cosine <= 1.0:
            raise NoSolarEventError(
                key, f"sun does not reach {angle:g}° below the horizon at latitude {self.lat:g}"
            )

        offset = math.degrees(math.acos(cosine)) / 15.0
        return noon - offset if before_noon else noon + offset

    def asr_time(self, factor: int, portion: float) -> float:
        decl, _ = sun_position(self.jdate + portion)
        altitude = math.degrees(math.atan(1.0 / (factor + _tan(abs(self.lat - decl)))))
        return self.angle_time("asr", -altitude, portion, before_noon=False)


def _raw_times(
    clock: _SunClock, config: ResolvedConfig
) -> tuple[dict[str, float], dict[str, NoSolarEventError]]:
    params = config.params
    portion = {key: hours / 24.0 for key, hours in INITIAL_GUESSES.items()}

    # (key, angle, before noon); maghrib and isha only when the method uses angles
    angle_events: list[tuple[str, float, bool]] = [
        ("fajr", params.fajr_angle, True),
        ("sunrise", RISE_SET_ANGLE, True),
        ("sunset", RISE_SET_ANGLE, False),
    ]
    if params.maghrib_angle is not None:
        angle_events.append(("maghrib", params.maghrib_angle, False))
    if params.isha_angle is not None:
        angle_events.append(("isha", params.isha_angle, False))

    times: dict[str, float] = {"dhuhr": clock.mid_day(portion["dhuhr"])}
    failures: dict[str, NoSolarEventError] = {}
    for key, angle, before_noon in angle_events:
        try:
            times[key] = clock.angle_time(key, angle, portion[key], before_noon)
        except NoSolarEventError as exc:
            failures[key] = exc

    try:
        times["asr"] = clock.asr_time(config.asr_factor, portion["asr"])
    except NoSolarEventError as exc:
        failures["asr"] = exc

    return times, failures


def _night_portion(rule: HighLatitudeRule, angle: float, night: float) -> float:
    if rule == "AngleBased":
        return angle / 60.0 * night
    if rule == "OneSeventh":
        return night / 7.0
    return night / 2.0


def _adjust_high_latitudes(
    times: dict[str, float],
    failures: dict[str, NoSolarEventError],
    config: ResolvedConfig,
) -> None:
    sunrise = times.get("sunrise")
    sunset = times.get("sunset")
    if sunrise is None or sunset is None:
        return

    params = config.params
    night = time_diff(sunset, sunrise)
    limits: list[tuple[str, float | None, float, bool]] = [
        ("fajr", params.fajr_angle, sunrise, True),
        ("isha", params.isha_angle, sunset, False),
        ("maghrib", params.maghrib_angle, sunset, False),
    ]
    for key, angle, base, before in limits:
        if angle is None:
            continue
        portion = _night_portion(config.high_latitude, angle, night)
        value = times.get(key)
        if value is not None:
            diff = time_diff(value, base) if before else time_diff(base, value)
            if diff <= portion:
                continue
        times[key] = base - portion if before else base + portion
        if failures.pop(key, None) is not None:
            logger.debug("%s recovered with the %s rule", key, config.high_latitude)


def _apply_minute_rules(
    times: dict[str, float],
    failures: dict[str, NoSolarEventError],
    config: ResolvedConfig,
) -> None:
    params = config.params
    if params.maghrib_minutes is not None:
        if "sunset" in times:
            times["maghrib"] = times["sunset"] + params.maghrib_minutes / 60.0
        else:
            failures["maghrib"] = NoSolarEventError("maghrib", "sunset could not be computed")

    if params.isha_minutes is not None:
        if "maghrib" in times:
            times["isha"] = times["maghrib"] + params.isha_minutes / 60.0
        else:
            failures["isha"] = NoSolarEventError("isha", "maghrib could not be computed")

    times["dhuhr"] += config.dhuhr_minutes / 60.0


def compute_day_instants(
    day: date,
    location: Location,
    config: CalculationConfig | None = None,
    utc_offset: float = 0.0,
) -> DayInstants:
    """Compute the six prayer instants for ``day`` in local clock time.

    ``utc_offset`` is in hours, positive east of UTC. Events the sun never
    reaches are left out of ``times`` and reported in ``failures``.
    """
    resolved = (config or CalculationConfig()).resolve()

    jdate = julian_date(day.year, day.month, day.day) - location.lon / (15 * 24.0)
    clock = _SunClock(jdate, location.lat)
    times, failures = _raw_times(clock, resolved)

    shift = utc_offset - location.lon / 15.0
    for key in times:
        times[key] += shift

    if resolved.high_latitude != "None":
        _adjust_high_latitudes(times, failures, resolved)
    _apply_minute_rules(times, failures, resolved)

    clock_times: dict[PrayerKey, ClockTime] = {}
    for key in PRAYER_KEYS:
        if key not in times:
            continue
        hours = times[key] + resolved.tune[key] / 60.0
        clock_times[key] = ClockTime.from_minutes(math.floor(hours * 60 + 0.5))

    for key, exc in failures.items():
        logger.debug("%s on %s: %s", key, day.isoformat(), exc)

    logger.debug(
        "Computed %s at %s (%s, asr factor %s, UTC%+g): %s",
        day.isoformat(),
        location.describe(),
        resolved.method,
        resolved.asr_factor,
        utc_offset,
        {key: str(value) for key, value in clock_times.items()},
    )

    return DayInstants(
        date=day,
        utc_offset=utc_offset,
        times=clock_times,
        failures={key: exc for key, exc in failures.items() if key in PRAYER_KEYS},
    )

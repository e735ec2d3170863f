from __future__ import annotations

from datetime import date

import pytest

from salaatime_cli.errors import (
    InvalidLocationError,
    NoSolarEventError,
    OrderingError,
    UnknownMethodError,
)
from salaatime_cli.methods import METHODS, CalculationConfig
from salaatime_cli.models import PRAYER_KEYS, ClockTime, DayInstants, Location
from salaatime_cli.solar import compute_day_instants, julian_date

SOLSTICE = date(2024, 6, 21)
LONDON = Location(lat=51.24, lon=-0.17, label="London")


def _between(value: ClockTime | None, start: str, end: str) -> bool:
    assert value is not None
    low = ClockTime.parse(start).minute_of_day
    high = ClockTime.parse(end).minute_of_day
    return value.day_offset == 0 and low <= value.minute_of_day <= high


def _assert_ascending(instants: DayInstants) -> None:
    values = [instants.times[key].absolute_minutes for key in PRAYER_KEYS]
    assert values == sorted(values)
    assert len(set(values)) == len(values)


def test_julian_date_at_j2000_midnight() -> None:
    assert julian_date(2000, 1, 1) == 2451544.5


def test_london_solstice_on_summer_clock() -> None:
    config = CalculationConfig(method="ISNA", asr="Standard", high_latitude="AngleBased")
    instants = compute_day_instants(SOLSTICE, LONDON, config, utc_offset=1.0)

    assert instants.is_complete
    assert _between(instants.get("fajr"), "02:30", "03:30")
    assert _between(instants.get("sunrise"), "04:30", "05:00")
    assert _between(instants.get("maghrib"), "21:05", "21:35")
    assert _between(instants.get("isha"), "22:00", "23:30")


def test_london_solstice_pure_angles_fall_near_solar_midnight() -> None:
    instants = compute_day_instants(SOLSTICE, LONDON, CalculationConfig(method="ISNA"), 0.0)

    assert instants.is_complete
    assert _between(instants.get("fajr"), "00:00", "01:30")
    assert _between(instants.get("isha"), "23:00", "23:59")


def test_dhuhr_follows_solar_noon() -> None:
    instants = compute_day_instants(SOLSTICE, LONDON, CalculationConfig(), 0.0)

    assert _between(instants.get("dhuhr"), "12:00", "12:06")


def test_recomputing_gives_identical_output() -> None:
    config = CalculationConfig(method="MWL", asr="Hanafi")
    first = compute_day_instants(date(2024, 3, 10), LONDON, config, 0.0)
    second = compute_day_instants(date(2024, 3, 10), LONDON, config, 0.0)

    assert dict(first.times) == dict(second.times)
    assert first.to_dict() == second.to_dict()


@pytest.mark.parametrize("method", list(METHODS))
def test_times_strictly_increase_for_every_method(method: str) -> None:
    config = CalculationConfig(method=method)
    days = [date(2024, 1, 15), date(2024, 3, 20), SOLSTICE, date(2024, 9, 23), date(2024, 12, 21)]

    for lat in (-45.0, -30.0, -10.0, 0.0, 10.0, 30.0, 45.0):
        for lon in (-120.0, 0.0, 75.0, 150.0):
            location = Location(lat=lat, lon=lon)
            for day in days:
                instants = compute_day_instants(day, location, config, round(lon / 15))
                assert instants.is_complete, (method, lat, lon, day, instants.failures)
                _assert_ascending(instants)


def test_latitude_out_of_range_is_rejected_before_any_calculation(monkeypatch) -> None:
    calls: list[float] = []
    monkeypatch.setattr("salaatime_cli.solar.sun_position", lambda jd: calls.append(jd))

    with pytest.raises(InvalidLocationError):
        compute_day_instants(SOLSTICE, Location(lat=91.0, lon=0.0))
    assert calls == []


def test_unknown_method_is_rejected_before_any_calculation(monkeypatch) -> None:
    calls: list[float] = []
    monkeypatch.setattr("salaatime_cli.solar.sun_position", lambda jd: calls.append(jd))

    with pytest.raises(UnknownMethodError):
        compute_day_instants(SOLSTICE, LONDON, CalculationConfig(method="Atlantis"))
    with pytest.raises(UnknownMethodError):
        compute_day_instants(SOLSTICE, LONDON, CalculationConfig(asr="Maliki"))
    assert calls == []


def test_makkah_isha_is_ninety_minutes_after_maghrib() -> None:
    makkah = Location(lat=21.4225, lon=39.8262, label="Makkah")
    config = CalculationConfig(method="Makkah")
    instants = compute_day_instants(date(2024, 3, 10), makkah, config, 3.0)

    maghrib = instants.times["maghrib"].absolute_minutes
    isha = instants.times["isha"].absolute_minutes
    assert isha - maghrib == 90


def test_hanafi_asr_is_later_than_standard() -> None:
    day = date(2024, 10, 1)
    standard = compute_day_instants(day, LONDON, CalculationConfig(asr="Standard"), 1.0)
    hanafi = compute_day_instants(day, LONDON, CalculationConfig(asr="Hanafi"), 1.0)

    assert hanafi.times["asr"] > standard.times["asr"]
    assert standard.times["dhuhr"] == hanafi.times["dhuhr"]


def test_tehran_maghrib_uses_an_angle_after_sunset() -> None:
    tehran = Location(lat=35.6892, lon=51.389, label="Tehran")
    day = date(2024, 3, 10)
    sunset_based = compute_day_instants(day, tehran, CalculationConfig(method="MWL"), 3.5)
    angle_based = compute_day_instants(day, tehran, CalculationConfig(method="Tehran"), 3.5)

    delay = (
        angle_based.times["maghrib"].absolute_minutes
        - sunset_based.times["maghrib"].absolute_minutes
    )
    assert 10 < delay < 30


def test_dhuhr_minutes_and_tuning_shift_times() -> None:
    day = date(2024, 3, 10)
    plain = compute_day_instants(day, LONDON, CalculationConfig(dhuhr_minutes=0), 0.0)
    tuned = compute_day_instants(
        day,
        LONDON,
        CalculationConfig(dhuhr_minutes=5, tune={"fajr": 3, "isha": -2}),
        0.0,
    )

    def diff(key: str) -> int:
        return tuned.times[key].absolute_minutes - plain.times[key].absolute_minutes

    assert diff("dhuhr") == 5
    assert diff("fajr") == 3
    assert diff("isha") == -2
    assert diff("asr") == 0


def test_utc_offset_shifts_every_time() -> None:
    day = date(2024, 3, 10)
    utc = compute_day_instants(day, LONDON, CalculationConfig(), 0.0)
    shifted = compute_day_instants(day, LONDON, CalculationConfig(), 2.0)

    for key in PRAYER_KEYS:
        assert shifted.times[key].absolute_minutes - utc.times[key].absolute_minutes == 120


def test_polar_day_reports_missing_events() -> None:
    tromso = Location(lat=70.0, lon=19.0, label="Tromsø")
    instants = compute_day_instants(SOLSTICE, tromso, CalculationConfig(), 2.0)

    assert set(instants.times) == {"dhuhr", "asr"}
    assert set(instants.missing) == {"fajr", "sunrise", "maghrib", "isha"}
    assert isinstance(instants.failures["fajr"], NoSolarEventError)
    assert instants.failures["fajr"].key == "fajr"
    assert isinstance(instants.failures["maghrib"], NoSolarEventError)


def test_pole_only_keeps_dhuhr() -> None:
    pole = Location(lat=90.0, lon=0.0)
    instants = compute_day_instants(SOLSTICE, pole, CalculationConfig(), 0.0)

    assert set(instants.times) == {"dhuhr"}
    assert "asr" in instants.failures


def test_high_latitude_rule_recovers_fajr_and_isha() -> None:
    helsinki = Location(lat=60.17, lon=24.94, label="Helsinki")
    plain = compute_day_instants(SOLSTICE, helsinki, CalculationConfig(), 3.0)
    assert {"fajr", "isha"} <= set(plain.failures)

    for rule in ("NightMiddle", "AngleBased", "OneSeventh"):
        adjusted = compute_day_instants(
            SOLSTICE, helsinki, CalculationConfig(high_latitude=rule), 3.0
        )
        assert adjusted.is_complete, rule
        assert not adjusted.failures
        _assert_ascending(adjusted)


def test_fixed_minute_isha_fails_when_sunset_is_missing() -> None:
    instants = compute_day_instants(
        SOLSTICE, Location(lat=75.0, lon=15.0), CalculationConfig(method="Makkah"), 2.0
    )

    assert "isha" not in instants.times
    assert "sunset" in str(instants.failures["maghrib"])
    assert "maghrib" in str(instants.failures["isha"])


def test_custom_angles_that_break_the_order_are_reported() -> None:
    config = CalculationConfig(method="Custom", overrides={"fajr_angle": 0.5})

    with pytest.raises(OrderingError):
        compute_day_instants(date(2024, 3, 10), LONDON, config, 0.0)

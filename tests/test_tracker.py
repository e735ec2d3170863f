from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from salaatime_cli.errors import UnknownMethodError
from salaatime_cli.methods import CalculationConfig
from salaatime_cli.models import Location
from salaatime_cli.tracker import PrayerTracker, fixed_offset

LONDON = Location(lat=51.24, lon=-0.17, label="London")


def _tracker(**kwargs) -> PrayerTracker:
    return PrayerTracker(LONDON, CalculationConfig(), utc_offset=fixed_offset(0.0), **kwargs)


def test_snapshot_is_reused_within_a_day() -> None:
    tracker = _tracker()

    tracker.state_at(datetime(2024, 3, 10, 9, 0))
    first = tracker.snapshot
    tracker.state_at(datetime(2024, 3, 10, 16, 0))

    assert first is not None
    assert tracker.snapshot is first


def test_snapshot_is_replaced_when_the_date_changes() -> None:
    tracker = _tracker()

    tracker.state_at(datetime(2024, 3, 10, 9, 0))
    tracker.state_at(datetime(2024, 3, 11, 9, 0))

    assert tracker.snapshot is not None
    assert tracker.snapshot.date == date(2024, 3, 11)


def test_after_isha_uses_tomorrows_calculation() -> None:
    tracker = _tracker()
    now = datetime(2024, 3, 10, 23, 59)

    state = tracker.state_at(now)
    tomorrow = tracker.compute(date(2024, 3, 11))

    assert state.key == "fajr"
    assert state.is_tomorrow
    assert state.time == str(tomorrow.times["fajr"])
    assert state.at is not None and state.at.date() == date(2024, 3, 11)
    assert state.remaining is not None and state.remaining > timedelta(0)
    assert tracker.snapshot is not None and tracker.snapshot.date == date(2024, 3, 10)


def test_sunrise_skip_is_passed_through() -> None:
    tracker = _tracker(skip_sunrise=True)
    instants = tracker.compute(date(2024, 3, 10))
    sunrise = instants.times["sunrise"]
    just_before = datetime(2024, 3, 10, sunrise.hour, sunrise.minute) - timedelta(minutes=5)

    assert tracker.state_at(just_before).key == "dhuhr"


def test_polar_day_gives_no_data_state() -> None:
    tracker = PrayerTracker(
        Location(lat=70.0, lon=19.0), CalculationConfig(), utc_offset=fixed_offset(2.0)
    )

    state = tracker.state_at(datetime(2024, 6, 21, 12, 0))

    assert state.status == "no_data"
    assert not state.has_data


def test_aware_now_picks_the_local_date() -> None:
    tracker = PrayerTracker(
        Location(lat=21.4225, lon=39.8262), CalculationConfig(method="Makkah"), fixed_offset(3.0)
    )

    late_utc = datetime(2024, 3, 10, 22, 30, tzinfo=timezone.utc)
    assert tracker.local_date(late_utc) == date(2024, 3, 11)


def test_invalid_method_fails_fast() -> None:
    with pytest.raises(UnknownMethodError):
        PrayerTracker(LONDON, CalculationConfig(method="Atlantis"))


def test_isha_past_midnight_is_still_next_after_the_date_changes() -> None:
    tracker = _summer_tracker()
    isha = tracker.compute(date(2024, 6, 21)).times["isha"]
    assert isha.day_offset == 1

    state = tracker.state_at(datetime(2024, 6, 22, 0, 5))

    assert state.key == "isha"
    assert not state.is_tomorrow
    assert state.at == datetime(2024, 6, 22, isha.hour, isha.minute)
    assert state.remaining == state.at - datetime(2024, 6, 22, 0, 5)
    assert tracker.previous is not None and tracker.previous.date == date(2024, 6, 21)


def test_isha_past_midnight_is_next_late_in_the_evening() -> None:
    tracker = _summer_tracker()

    state = tracker.state_at(datetime(2024, 6, 21, 23, 59))

    assert state.key == "isha"
    assert state.at is not None and state.at.date() == date(2024, 6, 22)


def test_previous_day_is_kept_when_the_date_rolls_over() -> None:
    tracker = _summer_tracker()

    tracker.state_at(datetime(2024, 6, 21, 23, 59))
    yesterday = tracker.snapshot
    tracker.state_at(datetime(2024, 6, 22, 0, 5))

    assert tracker.previous is yesterday


def _summer_tracker() -> PrayerTracker:
    return PrayerTracker(LONDON, CalculationConfig(), utc_offset=fixed_offset(1.0))

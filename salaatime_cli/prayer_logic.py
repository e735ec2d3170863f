from __future__ import annotations

import logging
import math
from datetime import date, datetime, timedelta, timezone
from typing import Callable

from .errors import IncompleteDataError, NegativeDurationError, SalaaTimeError
from .models import PRAYER_KEYS, DayInstants, NextPrayerState, PrayerKey

logger = logging.getLogger(__name__)

TomorrowProvider = Callable[[date], DayInstants]

IMMINENT = "Now"
ONE_DAY = timedelta(days=1)


def offset_timezone(utc_offset: float) -> timezone:
    return timezone(timedelta(hours=utc_offset))


def localize_now(now: datetime, instants: DayInstants) -> datetime:
    if now.tzinfo is None:
        return now
    return now.astimezone(offset_timezone(instants.utc_offset))


def _remaining(at: datetime, now: datetime) -> timedelta:
    remaining = at - now
    if remaining < timedelta(0):
        logger.debug("Negative remaining %s at rollover, adding one day", remaining)
        remaining += ONE_DAY
    if remaining < timedelta(0):
        raise NegativeDurationError(f"Next prayer at {at.isoformat()} is before {now.isoformat()}")
    return remaining


def _build_state(
    key: PrayerKey,
    instants: DayInstants,
    base: date,
    now: datetime,
    is_tomorrow: bool,
) -> NextPrayerState:
    value = instants.times[key]
    at = value.on(base, tzinfo=now.tzinfo)
    remaining = _remaining(at, now)
    return NextPrayerState(
        status="imminent" if remaining < timedelta(minutes=1) else "upcoming",
        key=key,
        time=str(value),
        at=at,
        remaining=remaining,
        is_tomorrow=is_tomorrow,
    )


def resolve_across_midnight(
    today: DayInstants,
    tomorrow_provider: TomorrowProvider,
    now: datetime,
) -> NextPrayerState:
    now = localize_now(now, today)
    tomorrow_date = now.date() + ONE_DAY
    logger.debug("Past %s isha, computing fajr for %s", today.date, tomorrow_date)

    try:
        tomorrow = tomorrow_provider(tomorrow_date)
        tomorrow.require_complete()
        return _build_state("fajr", tomorrow, tomorrow_date, now, is_tomorrow=True)
    except SalaaTimeError as exc:
        return NextPrayerState.no_data(f"Tomorrow's times unavailable: {exc}")


def _carried_over(
    previous: DayInstants,
    now: datetime,
    skip_sunrise: bool,
) -> PrayerKey | None:
    """First entry of ``previous`` that spilled past its midnight and is still ahead."""
    cutoff = now.replace(second=0, microsecond=0)
    for key in PRAYER_KEYS:
        if skip_sunrise and key == "sunrise":
            continue
        value = previous.times.get(key)
        if value is None or value.day_offset < 1:
            continue
        if value.on(previous.date, tzinfo=now.tzinfo) > cutoff:
            return key
    return None


def find_next(
    instants: DayInstants,
    now: datetime,
    tomorrow: TomorrowProvider | None = None,
    *,
    previous: DayInstants | None = None,
    skip_sunrise: bool = False,
) -> NextPrayerState:
    now = localize_now(now, instants)

    if previous is not None:
        key = _carried_over(previous, now, skip_sunrise)
        if key is not None:
            logger.debug("%s of %s is still ahead after midnight", key, previous.date)
            try:
                return _build_state(key, previous, previous.date, now, is_tomorrow=False)
            except NegativeDurationError as exc:
                return NextPrayerState.no_data(str(exc))

    try:
        instants.require_complete()
    except IncompleteDataError as exc:
        return NextPrayerState.no_data(str(exc))

    now_minutes = now.hour * 60 + now.minute

    for key in PRAYER_KEYS:
        if skip_sunrise and key == "sunrise":
            continue
        value = instants.times[key]
        # A prayer whose minute equals now's minute has already started.
        if value.absolute_minutes > now_minutes:
            try:
                return _build_state(key, instants, now.date(), now, is_tomorrow=False)
            except NegativeDurationError as exc:
                return NextPrayerState.no_data(str(exc))

    if tomorrow is None:
        return NextPrayerState.no_data("All of today's prayers have passed and tomorrow is unknown")
    return resolve_across_midnight(instants, tomorrow, now)


def format_remaining(remaining: timedelta) -> str:
    seconds = remaining.total_seconds()
    if seconds < 60:
        return IMMINENT

    minutes = math.ceil(seconds / 60)
    hours, minutes = divmod(minutes, 60)
    if hours:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


def format_countdown(remaining: timedelta | None) -> str:
    """Clock-style countdown, with a day prefix once it reaches 24 hours."""
    if remaining is None or remaining <= timedelta(0):
        return "00:00:00"

    days, rest = divmod(int(remaining.total_seconds()), 86400)
    hours, rest = divmod(rest, 3600)
    minutes, seconds = divmod(rest, 60)
    clock = f"{hours:02}:{minutes:02}:{seconds:02}"
    return f"{days}d {clock}" if days else clock


def describe_state(state: NextPrayerState) -> str:
    if not state.has_data or state.remaining is None:
        return "No data"
    return format_remaining(state.remaining)

from __future__ import annotations

import logging
import threading
from datetime import date, datetime, time, timedelta
from typing import Callable

from .errors import SalaaTimeError
from .methods import CalculationConfig
from .models import DayInstants, Location, NextPrayerState
from .prayer_logic import find_next, offset_timezone
from .solar import compute_day_instants

logger = logging.getLogger(__name__)

OffsetProvider = Callable[[date], float]


def system_utc_offset(day: date) -> float:
    """UTC offset of the system time zone at local noon on ``day``, in hours."""
    noon = datetime.combine(day, time(12)).astimezone()
    offset = noon.utcoffset()
    return offset.total_seconds() / 3600 if offset is not None else 0.0


def fixed_offset(hours: float) -> OffsetProvider:
    return lambda _day: hours


class PrayerTracker:
    """Keeps the latest computed day and resolves the next prayer against it.

    Snapshots are built outside the lock and swapped in whole, so readers
    never see a half-updated day.
    """

    def __init__(
        self,
        location: Location,
        config: CalculationConfig,
        utc_offset: OffsetProvider = system_utc_offset,
        skip_sunrise: bool = False,
    ) -> None:
        config.resolve()
        self.location = location
        self.config = config
        self.utc_offset = utc_offset
        self.skip_sunrise = skip_sunrise
        self._lock = threading.Lock()
        self._snapshot: DayInstants | None = None
        self._previous: DayInstants | None = None

    @property
    def snapshot(self) -> DayInstants | None:
        return self._snapshot

    @property
    def previous(self) -> DayInstants | None:
        return self._previous

    def compute(self, day: date) -> DayInstants:
        return compute_day_instants(day, self.location, self.config, self.utc_offset(day))

    def instants_for(self, day: date) -> DayInstants:
        current = self._snapshot
        if current is not None and current.date == day:
            return current

        fresh = self.compute(day)
        with self._lock:
            if self._snapshot is None or self._snapshot.date != day:
                logger.info("Prayer times refreshed for %s", day.isoformat())
                if self._snapshot is not None and self._snapshot.date == day - timedelta(days=1):
                    self._previous = self._snapshot
                self._snapshot = fresh
            return self._snapshot

    def previous_for(self, day: date) -> DayInstants | None:
        """The day before ``day``, or None when it cannot be computed."""
        prior = day - timedelta(days=1)
        current = self._previous
        if current is not None and current.date == prior:
            return current

        try:
            fresh = self.compute(prior)
        except SalaaTimeError as exc:
            logger.debug("No times for %s: %s", prior.isoformat(), exc)
            return None
        with self._lock:
            self._previous = fresh
        return fresh

    def local_date(self, now: datetime) -> date:
        if now.tzinfo is None:
            return now.date()
        offset = self.utc_offset(now.date())
        return now.astimezone(offset_timezone(offset)).date()

    def state_at(self, now: datetime) -> NextPrayerState:
        today = self.local_date(now)
        try:
            instants = self.instants_for(today)
        except SalaaTimeError as exc:
            logger.warning("Could not compute prayer times: %s", exc)
            return NextPrayerState.no_data(str(exc))

        return find_next(
            instants,
            now,
            self.compute,
            previous=self.previous_for(today),
            skip_sunrise=self.skip_sunrise,
        )

"""Rough Hijri date estimate.

This is a linear lunar-year approximation anchored at a single known date.
It can be a day or two off (more over long spans) and is meant for display
only, never for anything the prayer calculation depends on.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date

LUNAR_YEAR_DAYS = 354.367
LUNAR_MONTH_DAYS = 29.53

# 2000-01-01 is roughly 23 Ramadan 1420.
GREGORIAN_EPOCH = date(2000, 1, 1)
HIJRI_EPOCH = (1420, 9, 23)

HIJRI_MONTHS = ("Muh", "Saf", "Rb1", "Rb2", "Jm1", "Jm2", "Raj", "Shb", "Ram", "Shw", "DhQ", "DhH")


@dataclass(frozen=True)
class HijriDate:
    year: int
    month: int
    day: int

    @property
    def month_name(self) -> str:
        return HIJRI_MONTHS[self.month - 1]

    def __str__(self) -> str:
        return f"{self.day} {self.month_name} {self.year}"


def approximate_hijri(day: date, offset: int = 0) -> HijriDate:
    year, month, mday = HIJRI_EPOCH
    elapsed = (day - GREGORIAN_EPOCH).days + offset
    total = (mday - 1) + (month - 1) * LUNAR_MONTH_DAYS + (year - 1) * LUNAR_YEAR_DAYS + elapsed

    h_year = math.floor(total / LUNAR_YEAR_DAYS) + 1
    day_of_year = total % LUNAR_YEAR_DAYS
    h_month = math.floor(day_of_year / LUNAR_MONTH_DAYS) + 1
    h_day = math.floor(day_of_year % LUNAR_MONTH_DAYS) + 1

    return HijriDate(
        year=max(1, h_year),
        month=max(1, min(12, h_month)),
        day=max(1, min(30, h_day)),
    )

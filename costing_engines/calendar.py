"""
Working-Day Calendar (``costing_engines.calendar``).

Responsibility
--------------
Classify calendar days and count the working days in an inclusive date
range, excluding weekends, holidays and paused intervals.

Architecture position
---------------------
**Engines layer** -- pure functional core.  ZERO I/O, ZERO database,
ZERO clock reads.  The "today" that closes open-ended pause periods is the
explicit ``as_of`` parameter.

Invariants enforced
-------------------
* Each day is classified exactly once, with fixed precedence:
  weekend > holiday > paused > working.
* ``total + weekend_days + holiday_days + paused_days`` equals the number
  of days in the range.
* ``start > end`` yields all-zero counts.

Failure modes
-------------
* None for well-typed input; the calendar never raises on empty ranges.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum

from costing_engines.tracer import traced_engine
from costing_kernel.domain.production import Holiday, PausePeriod
from costing_kernel.domain.values import as_date

SATURDAY = 5
SUNDAY = 6


class DayKind(str, Enum):
    """Classification of a single calendar day."""

    WEEKEND = "weekend"
    HOLIDAY = "holiday"
    PAUSED = "paused"
    WORKING = "working"


@dataclass(frozen=True)
class WorkingDayCount:
    """Per-kind day counts for one date range."""

    total: int = 0
    weekend_days: int = 0
    holiday_days: int = 0
    paused_days: int = 0

    @property
    def days_in_range(self) -> int:
        return self.total + self.weekend_days + self.holiday_days + self.paused_days


def _holiday_dates(holidays: Iterable[Holiday | date]) -> frozenset[date]:
    return frozenset(
        h.holiday_date if isinstance(h, Holiday) else as_date(h) for h in holidays
    )


def classify_day(
    day: date,
    holidays: frozenset[date],
    pause_periods: Iterable[PausePeriod],
    as_of: date,
) -> DayKind:
    """Classify one day; the first matching rule wins."""
    if day.weekday() in (SATURDAY, SUNDAY):
        return DayKind.WEEKEND
    if day in holidays:
        return DayKind.HOLIDAY
    if any(p.covers(day, as_of) for p in pause_periods):
        return DayKind.PAUSED
    return DayKind.WORKING


def _days(start: date, end: date) -> Iterator[date]:
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def working_dates(
    start: date | datetime,
    end: date | datetime,
    holidays: Iterable[Holiday | date] = (),
    pause_periods: Iterable[PausePeriod] = (),
    as_of: date | None = None,
) -> Iterator[date]:
    """Yield, in order, every date in [start, end] classified as WORKING."""
    start_day, end_day = as_date(start), as_date(end)
    holiday_set = _holiday_dates(holidays)
    pauses = tuple(pause_periods)
    as_of_day = as_of if as_of is not None else end_day
    for day in _days(start_day, end_day):
        if classify_day(day, holiday_set, pauses, as_of_day) is DayKind.WORKING:
            yield day


@traced_engine("calendar", "1.0", fingerprint_fields=("start", "end", "as_of"))
def count_working_days(
    start: date | datetime,
    end: date | datetime,
    holidays: Iterable[Holiday | date] = (),
    pause_periods: Iterable[PausePeriod] = (),
    as_of: date | None = None,
) -> WorkingDayCount:
    """Count working, weekend, holiday and paused days in [start, end].

    Args:
        start: First day of the range (timestamps use their calendar date).
        end: Last day of the range, inclusive.
        holidays: Holiday records or bare dates.
        pause_periods: Intervals that accrue no working days.  A period
            with no end extends through ``as_of``.
        as_of: The "today" closing open-ended pauses; defaults to ``end``.

    Returns:
        WorkingDayCount with mutually exclusive per-kind counts.
    """
    start_day, end_day = as_date(start), as_date(end)
    if start_day > end_day:
        return WorkingDayCount()

    holiday_set = _holiday_dates(holidays)
    pauses = tuple(pause_periods)
    as_of_day = as_of if as_of is not None else end_day

    counts = {kind: 0 for kind in DayKind}
    for day in _days(start_day, end_day):
        counts[classify_day(day, holiday_set, pauses, as_of_day)] += 1

    return WorkingDayCount(
        total=counts[DayKind.WORKING],
        weekend_days=counts[DayKind.WEEKEND],
        holiday_days=counts[DayKind.HOLIDAY],
        paused_days=counts[DayKind.PAUSED],
    )

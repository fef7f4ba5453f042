"""Calendar expansion of a weekly recurrence rule into lesson dates."""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Iterable, Iterator

_ONE_DAY = timedelta(days=1)


def weekday_index(day: date) -> int:
    """0=Sunday .. 6=Saturday."""
    return day.isoweekday() % 7


def iter_lesson_dates(start: date | datetime, end: date | datetime, weekdays: Iterable[int]) -> Iterator[date]:
    """Yield every day in [start, end] whose weekday is in `weekdays`, ascending.

    Datetimes are truncated to their calendar day, so a 15:00 start still counts
    the start day itself.
    """
    days = frozenset(int(d) for d in weekdays)
    if not days:
        return

    current = start.date() if isinstance(start, datetime) else start
    last = end.date() if isinstance(end, datetime) else end

    while current <= last:
        if weekday_index(current) in days:
            yield current
        current += _ONE_DAY


def expand(start: date | datetime, end: date | datetime, weekdays: Iterable[int]) -> list[date]:
    return list(iter_lesson_dates(start, end, weekdays))

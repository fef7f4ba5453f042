from __future__ import annotations

from datetime import date, datetime


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def month_bounds(month: int, year: int) -> tuple[date, date]:
    """Half-open range [first day of month, first day of next month)."""
    start = date(year, month, 1)
    if month == 12:
        return start, date(year + 1, 1, 1)
    return start, date(year, month + 1, 1)


def month_key(value: date) -> str:
    """Grouping key "YYYY-M" (1-based month, no zero padding)."""
    return f"{value.year}-{value.month}"


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()

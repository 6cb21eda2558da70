"""
Month arithmetic.

A period is a (year, month) tuple. Tuples compare chronologically,
so plain < and max() work on them.
"""

from datetime import date

Period = tuple[int, int]


def validate_period(year: int, month: int) -> Period:
    if not 1 <= month <= 12:
        raise ValueError(f"Month must be between 1 and 12, got {month}")
    if year < 1:
        raise ValueError(f"Invalid year {year}")
    return (year, month)


def next_month(year: int, month: int) -> Period:
    if month == 12:
        return (year + 1, 1)
    return (year, month + 1)


def previous_month(year: int, month: int) -> Period:
    if month == 1:
        return (year - 1, 12)
    return (year, month - 1)


def months_between(start: Period, end: Period) -> int:
    """Number of month steps from start to end (negative if end is earlier)."""
    return (end[0] - start[0]) * 12 + (end[1] - start[1])


def iter_months(start: Period, end: Period):
    """Yield every period from start to end, both included."""
    current = start
    while current <= end:
        yield current
        current = next_month(*current)


def first_day(year: int, month: int) -> date:
    return date(year, month, 1)


def format_period(year: int, month: int) -> str:
    return f"{month:02d}/{year}"

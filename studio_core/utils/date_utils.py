"""Calendar-date helpers shared by attendance and billing"""

from datetime import date, timedelta
from typing import Iterator, List


def days_in_month(year: int, month: int) -> int:
    """Number of days in a zero-based month (day 0 of the following month)"""
    if month == 11:
        following = date(year + 1, 1, 1)
    else:
        following = date(year, month + 2, 1)
    return (following - timedelta(days=1)).day


def clamp_day(year: int, month: int, day: int) -> int:
    """Cap a desired day-of-month to the last valid day of a zero-based month"""
    return min(day, days_in_month(year, month))


def clamped_date(year: int, month: int, day: int) -> date:
    """Build a date in a zero-based month, clamping the day if it overflows"""
    return date(year, month + 1, clamp_day(year, month, day))


def add_months(year: int, month: int, offset: int) -> tuple[int, int]:
    """Shift a (year, zero-based month) pair by offset months"""
    total = year * 12 + month + offset
    return total // 12, total % 12


def iter_months(year: int, month: int, count: int) -> Iterator[tuple[int, int]]:
    """Yield count consecutive (year, zero-based month) pairs starting at the given one"""
    for offset in range(count):
        yield add_months(year, month, offset)


def month_ref(day: date) -> str:
    """YYYY-MM bucket key for a date"""
    return f"{day.year:04d}-{day.month:02d}"


def parse_date(value: str | date) -> date:
    """Accept a date or an ISO YYYY-MM-DD string"""
    if isinstance(value, date):
        return value
    return date.fromisoformat(value)


def is_within(day: date, start: date, end: date) -> bool:
    """Inclusive calendar-date range check"""
    return start <= day <= end


def calculate_age(birth_date: date, today: date) -> int:
    """Whole years between birth_date and today"""
    age = today.year - birth_date.year
    if (today.month, today.day) < (birth_date.month, birth_date.day):
        age -= 1
    return age


def last_n_months(today: date, count: int) -> List[str]:
    """month_ref keys for the count months ending with today's month, oldest first"""
    return [
        f"{y:04d}-{m + 1:02d}"
        for y, m in iter_months(*add_months(today.year, today.month - 1, -(count - 1)), count)
    ]


def week_day(day: date) -> int:
    """Weekday numbered 0=Sunday .. 6=Saturday"""
    return (day.weekday() + 1) % 7

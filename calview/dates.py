"""
Date stepping helpers for calendar navigation.

Weeks are always Sunday-first. Stepping past the range datetime.date can
represent leaves the date where it was.
"""

from datetime import date, timedelta
from typing import List, Tuple


def _shift(d: date, days: int) -> date:
    try:
        return d + timedelta(days=days)
    except OverflowError:
        return d


def next_day(d: date) -> date:
    return _shift(d, 1)


def prev_day(d: date) -> date:
    return _shift(d, -1)


def next_week(d: date) -> date:
    return _shift(d, 7)


def prev_week(d: date) -> date:
    return _shift(d, -7)


def days_in_month(year: int, month: int) -> int:
    """Number of days in the month, from the distance to the next month's first day"""
    first = date(year, month, 1)
    if month == 12:
        # December 9999 has no following month to measure against
        if year == date.max.year:
            return (date.max - first).days + 1
        following = date(year + 1, 1, 1)
    else:
        following = date(year, month + 1, 1)
    return (following - first).days


def _step_month(d: date, direction: int) -> date:
    year, month = d.year, d.month + direction
    if month > 12:
        year, month = year + 1, 1
    elif month < 1:
        year, month = year - 1, 12

    if year < date.min.year or year > date.max.year:
        return d

    day = min(d.day, days_in_month(year, month))
    return date(year, month, day)


def next_month(d: date) -> date:
    """Same day next month, clamped to the last day (Jan 31 -> Feb 28/29)"""
    return _step_month(d, 1)


def prev_month(d: date) -> date:
    """Same day last month, clamped to the last day (Mar 31 -> Feb 28/29)"""
    return _step_month(d, -1)


def week_start(d: date) -> date:
    """The Sunday on or before d"""
    # date.weekday(): Monday=0 ... Sunday=6
    days_since_sunday = (d.weekday() + 1) % 7
    try:
        return d - timedelta(days=days_since_sunday)
    except OverflowError:
        return date.min


def week_days(d: date) -> List[date]:
    """Sunday through Saturday of the week containing d"""
    start = week_start(d)
    days = [start]
    for _ in range(6):
        following = next_day(days[-1])
        if following == days[-1]:
            break
        days.append(following)
    return days


def month_bounds(year: int, month: int) -> Tuple[date, date]:
    """First day of the month and first day of the following month"""
    first = date(year, month, 1)
    return first, _shift(first, days_in_month(year, month))

"""Entitlement calculator: tenure to vacation days.

Pure functions, no I/O. Dates are calendar dates; tenure years roll over on
the hire-date anniversary. A 29 February hire date rolls over on 1 March in
non-leap years, both in ``years_of_service`` and ``anniversary_date``.
"""

from __future__ import annotations

import calendar
from datetime import date

from hr_portal.exceptions import InvalidInputError

# (last tenure year of the bracket, days granted); brackets are checked in order.
_DAYS_SCHEDULE: tuple[tuple[int, int], ...] = (
    (1, 12),
    (2, 14),
    (3, 16),
    (4, 18),
    (5, 20),
    (10, 22),
    (15, 24),
    (20, 26),
    (25, 28),
    (30, 30),
)
_DAYS_AFTER_SCHEDULE = 32


def years_of_service(hire_date: date, as_of: date) -> int:
    """Completed years of service on ``as_of``. Zero before the first anniversary."""
    years = as_of.year - hire_date.year
    if (as_of.month, as_of.day) < (hire_date.month, hire_date.day):
        years -= 1
    return max(years, 0)


def days_for_year(years: int) -> int:
    """Vacation days granted for the given completed tenure year."""
    if years < 1:
        return 0
    for last_year, days in _DAYS_SCHEDULE:
        if years <= last_year:
            return days
    return _DAYS_AFTER_SCHEDULE


def anniversary_date(hire_date: date, years: int) -> date:
    """The date on which tenure year ``years`` begins."""
    year = hire_date.year + years
    if hire_date.month == 2 and hire_date.day == 29 and not calendar.isleap(year):
        return date(year, 3, 1)
    return hire_date.replace(year=year)


def is_anniversary(hire_date: date, as_of: date) -> bool:
    """Whether ``as_of`` starts a new tenure year (the first one included)."""
    years = years_of_service(hire_date, as_of)
    return years >= 1 and anniversary_date(hire_date, years) == as_of


def add_months(value: date, months: int) -> date:
    """Shift a date by whole months, clamping to the last day of the target month."""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(value.day, last_day))


def requested_days(start_date: date, end_date: date) -> int:
    """Inclusive number of calendar days between two dates."""
    if end_date < start_date:
        msg = "end_date must be on or after start_date"
        raise InvalidInputError(msg)
    return (end_date - start_date).days + 1

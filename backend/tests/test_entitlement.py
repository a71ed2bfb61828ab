"""Tests for the tenure-to-days calculator."""

from __future__ import annotations

from datetime import date

import pytest

from hr_portal.exceptions import InvalidInputError
from hr_portal.services.entitlement import (
    add_months,
    anniversary_date,
    days_for_year,
    is_anniversary,
    requested_days,
    years_of_service,
)

# ---------------------------------------------------------------------------
# years_of_service
# ---------------------------------------------------------------------------


def test_years_of_service_completed_years() -> None:
    assert years_of_service(date(2020, 1, 10), date(2024, 1, 10)) == 4


def test_years_of_service_day_before_anniversary() -> None:
    assert years_of_service(date(2020, 1, 10), date(2024, 1, 9)) == 3


def test_years_of_service_first_year_is_zero() -> None:
    assert years_of_service(date(2024, 3, 1), date(2024, 12, 31)) == 0


def test_years_of_service_never_negative() -> None:
    assert years_of_service(date(2025, 1, 1), date(2024, 1, 1)) == 0


def test_years_of_service_leap_day_hire() -> None:
    hire = date(2020, 2, 29)
    assert years_of_service(hire, date(2021, 2, 28)) == 0
    assert years_of_service(hire, date(2021, 3, 1)) == 1
    assert years_of_service(hire, date(2024, 2, 29)) == 4


# ---------------------------------------------------------------------------
# days_for_year
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    ("years", "expected"),
    [
        (0, 0),
        (1, 12),
        (2, 14),
        (3, 16),
        (4, 18),
        (5, 20),
        (6, 22),
        (10, 22),
        (11, 24),
        (15, 24),
        (16, 26),
        (21, 28),
        (26, 30),
        (30, 30),
        (31, 32),
        (45, 32),
    ],
)
def test_days_for_year_schedule(years: int, expected: int) -> None:
    assert days_for_year(years) == expected


def test_days_for_year_never_decreases() -> None:
    values = [days_for_year(y) for y in range(1, 50)]
    assert values == sorted(values)


# ---------------------------------------------------------------------------
# anniversary_date / is_anniversary
# ---------------------------------------------------------------------------


def test_anniversary_date_regular() -> None:
    assert anniversary_date(date(2020, 1, 10), 4) == date(2024, 1, 10)


def test_anniversary_date_leap_day_in_common_year() -> None:
    assert anniversary_date(date(2020, 2, 29), 1) == date(2021, 3, 1)


def test_anniversary_date_leap_day_in_leap_year() -> None:
    assert anniversary_date(date(2020, 2, 29), 4) == date(2024, 2, 29)


def test_is_anniversary() -> None:
    hire = date(2020, 1, 10)
    assert is_anniversary(hire, date(2024, 1, 10))
    assert not is_anniversary(hire, date(2024, 1, 11))
    assert not is_anniversary(hire, hire)


def test_is_anniversary_leap_day_hire() -> None:
    hire = date(2020, 2, 29)
    assert is_anniversary(hire, date(2021, 3, 1))
    assert not is_anniversary(hire, date(2021, 2, 28))


# ---------------------------------------------------------------------------
# add_months / requested_days
# ---------------------------------------------------------------------------


def test_add_months_simple() -> None:
    assert add_months(date(2024, 1, 10), 4) == date(2024, 5, 10)


def test_add_months_crosses_year() -> None:
    assert add_months(date(2024, 11, 15), 4) == date(2025, 3, 15)


def test_add_months_clamps_to_month_end() -> None:
    assert add_months(date(2023, 10, 31), 4) == date(2024, 2, 29)
    assert add_months(date(2024, 10, 31), 4) == date(2025, 2, 28)


def test_requested_days_inclusive() -> None:
    assert requested_days(date(2024, 1, 10), date(2024, 1, 12)) == 3


def test_requested_days_single_day() -> None:
    assert requested_days(date(2024, 1, 10), date(2024, 1, 10)) == 1


def test_requested_days_end_before_start() -> None:
    with pytest.raises(InvalidInputError):
        requested_days(date(2024, 1, 12), date(2024, 1, 10))

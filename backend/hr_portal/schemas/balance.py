# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date, datetime

from pydantic import BaseModel


class PeriodResponse(BaseModel):
    """One entitlement period as seen by the employee."""

    id: uuid.UUID
    year_index: int
    assigned: int
    used: int
    remaining: int
    start_date: date
    expiration: date | None
    expired: bool
    expired_at: datetime | None


class BalanceResponse(BaseModel):
    """Spendable days plus the periods they come from."""

    employee_id: uuid.UUID
    as_of: date
    available: int
    periods: list[PeriodResponse]

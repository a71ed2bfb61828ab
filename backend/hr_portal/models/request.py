# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date, datetime

import sqlalchemy as sa
from sqlmodel import Field

from hr_portal.models.base import UUIDBase, now_utc
from hr_portal.models.enums import RequestStatus


class VacationRequest(UUIDBase, table=True):
    """An employee's vacation request moving through the manager and HR gates."""

    __tablename__ = "vacation_request"
    __table_args__ = (sa.Index("ix_vacation_request_employee_status", "employee_id", "status"),)

    employee_id: uuid.UUID = Field(index=True)
    manager_id: uuid.UUID
    start_date: date
    end_date: date
    requested_days: int
    reason: str | None = None
    status: str = Field(
        default=RequestStatus.PENDING, max_length=50, index=True, sa_column_kwargs={"server_default": "PENDING"}
    )
    manager_token: str = Field(max_length=128, unique=True, index=True)
    manager_token_expiry: datetime = Field(sa_type=sa.DateTime(timezone=True))  # ty: ignore[invalid-argument-type]
    manager_token_used_at: datetime | None = Field(default=None, sa_type=sa.DateTime(timezone=True))  # ty: ignore[invalid-argument-type]
    manager_decided_at: datetime | None = Field(default=None, sa_type=sa.DateTime(timezone=True))  # ty: ignore[invalid-argument-type]
    hr_decided_at: datetime | None = Field(default=None, sa_type=sa.DateTime(timezone=True))  # ty: ignore[invalid-argument-type]
    hr_decided_by: uuid.UUID | None = None
    decision_note: str | None = None
    requested_at: datetime = Field(
        default_factory=now_utc,
        index=True,
        sa_type=sa.DateTime(timezone=True),  # ty: ignore[invalid-argument-type]
        sa_column_kwargs={"server_default": sa.func.now()},
    )

# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date, datetime

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from hr_portal.models.base import TimestampMixin, UUIDBase, now_utc


class EntitlementAccount(SQLModel, table=True):
    """Per-employee lock anchor for every ledger mutation."""

    __tablename__ = "entitlement_account"

    employee_id: uuid.UUID = Field(primary_key=True, sa_type=sa.Uuid)
    version: int = Field(default=1, sa_column_kwargs={"server_default": "1"})
    updated_at: datetime = Field(  # type: ignore[call-overload]
        default_factory=now_utc,
        sa_type=sa.DateTime(timezone=True),
        sa_column_kwargs={"server_default": sa.func.now()},
    )


class EntitlementPeriod(UUIDBase, TimestampMixin, table=True):
    """A dated grant of vacation days for one tenure year."""

    __tablename__ = "entitlement_period"
    __table_args__ = (
        sa.UniqueConstraint("employee_id", "year_index", name="uq_period_employee_year"),
        sa.CheckConstraint("days_used >= 0 AND days_used <= days_assigned", name="ck_period_usage_bounds"),
    )

    employee_id: uuid.UUID = Field(index=True)
    year_index: int
    days_assigned: int
    days_used: int = Field(default=0, sa_column_kwargs={"server_default": "0"})
    start_date: date
    expiration_date: date | None = Field(default=None, index=True)
    expired_at: datetime | None = Field(default=None, sa_type=sa.DateTime(timezone=True))  # ty: ignore[invalid-argument-type]

    @property
    def remaining_days(self) -> int:
        return self.days_assigned - self.days_used

    def is_eligible(self, as_of: date) -> bool:
        """Whether the period's remaining days count towards the balance on ``as_of``."""
        return self.expiration_date is None or self.expiration_date >= as_of


class EntitlementDebit(UUIDBase, TimestampMixin, table=True):
    """Days one approved request consumed from one period."""

    __tablename__ = "entitlement_debit"
    __table_args__ = (sa.UniqueConstraint("request_id", "period_id", name="uq_debit_request_period"),)

    employee_id: uuid.UUID = Field(index=True)
    period_id: uuid.UUID = Field(
        sa_column=sa.Column(
            sa.Uuid, sa.ForeignKey("entitlement_period.id", ondelete="RESTRICT"), nullable=False, index=True
        ),
    )
    request_id: uuid.UUID = Field(
        sa_column=sa.Column(
            sa.Uuid, sa.ForeignKey("vacation_request.id", ondelete="RESTRICT"), nullable=False, index=True
        ),
    )
    days: int

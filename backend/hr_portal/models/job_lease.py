# ruff: noqa: TC003
from __future__ import annotations

from datetime import datetime

import sqlalchemy as sa
from sqlmodel import Field, SQLModel


class JobLease(SQLModel, table=True):
    """Single-owner, time-bounded lease that keeps a scheduled job from overlapping itself."""

    __tablename__ = "job_lease"

    name: str = Field(primary_key=True, max_length=100)
    owner: str | None = Field(default=None, max_length=255)
    locked_until: datetime | None = Field(default=None, sa_type=sa.DateTime(timezone=True))  # ty: ignore[invalid-argument-type]

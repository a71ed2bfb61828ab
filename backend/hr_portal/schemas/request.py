# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Self

from pydantic import BaseModel, Field, model_validator

from hr_portal.models.enums import RequestStatus

# ---------------------------------------------------------------------------
# Request payloads
# ---------------------------------------------------------------------------


class SubmitVacationPayload(BaseModel):
    """Request body for submitting a vacation request. Both dates are inclusive."""

    employee_id: uuid.UUID
    start_date: date
    end_date: date
    reason: str | None = Field(default=None, max_length=1000)

    @model_validator(mode="after")
    def _validate_dates(self) -> Self:
        if self.end_date < self.start_date:
            msg = "end_date must be on or after start_date"
            raise ValueError(msg)
        return self


class HrDecisionPayload(BaseModel):
    """Request body for the HR approve/reject actions."""

    note: str | None = Field(default=None, max_length=1000)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class SubmitVacationResponse(BaseModel):
    """Result of a successful submission."""

    request_id: uuid.UUID
    days_requested: int
    status: RequestStatus
    manager_token_expiry: datetime


class DecisionResponse(BaseModel):
    """Result of a manager or HR decision."""

    request_id: uuid.UUID
    status: RequestStatus


class RequestSummary(BaseModel):
    """A vacation request without its manager token."""

    id: uuid.UUID
    employee_id: uuid.UUID
    manager_id: uuid.UUID
    start_date: date
    end_date: date
    days_requested: int
    reason: str | None
    status: RequestStatus
    requested_at: datetime
    manager_token_expiry: datetime
    manager_decided_at: datetime | None
    hr_decided_at: datetime | None
    hr_decided_by: uuid.UUID | None
    decision_note: str | None


class RequestListResponse(BaseModel):
    """Paginated list of vacation requests."""

    items: list[RequestSummary]
    total: int

# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid

from fastapi import APIRouter, Path, Query, status

from hr_portal.api.deps import AuthDep, HrDep
from hr_portal.db import SessionDep
from hr_portal.models.enums import RequestStatus
from hr_portal.schemas.request import (
    DecisionResponse,
    HrDecisionPayload,
    RequestListResponse,
    RequestSummary,
    SubmitVacationPayload,
    SubmitVacationResponse,
)
from hr_portal.services import workflow

requests_router = APIRouter(
    prefix="/vacation-requests",
    tags=["vacation-requests"],
)

manager_actions_router = APIRouter(
    prefix="/manager-actions",
    tags=["vacation-requests"],
)


@requests_router.post("", response_model=SubmitVacationResponse, status_code=status.HTTP_201_CREATED)
async def submit_request(
    payload: SubmitVacationPayload,
    session: SessionDep,
    auth: AuthDep,
) -> SubmitVacationResponse:
    """Submit a vacation request; the manager is notified with a single-use link."""
    return await workflow.submit_request(session, auth, payload)


@requests_router.get("", response_model=RequestListResponse)
async def list_requests(
    session: SessionDep,
    auth: AuthDep,
    employee_id: uuid.UUID | None = Query(default=None),
    status_filter: RequestStatus | None = Query(default=None, alias="status"),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=100),
) -> RequestListResponse:
    """List vacation requests with optional filters."""
    return await workflow.list_requests(session, auth, employee_id, status_filter, offset, limit)


@requests_router.get("/{request_id}", response_model=RequestSummary)
async def get_request(
    request_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
) -> RequestSummary:
    """Get a single vacation request."""
    return await workflow.get_request(session, auth, request_id)


@requests_router.post("/{request_id}/hr-approve", response_model=DecisionResponse)
async def hr_approve(
    request_id: uuid.UUID,
    session: SessionDep,
    auth: HrDep,
    payload: HrDecisionPayload | None = None,
) -> DecisionResponse:
    """Approve a manager-approved request and debit the balance (HR only)."""
    return await workflow.hr_decide(session, auth, request_id, approve=True, payload=payload)


@requests_router.post("/{request_id}/hr-reject", response_model=DecisionResponse)
async def hr_reject(
    request_id: uuid.UUID,
    session: SessionDep,
    auth: HrDep,
    payload: HrDecisionPayload | None = None,
) -> DecisionResponse:
    """Reject a manager-approved request (HR only)."""
    return await workflow.hr_decide(session, auth, request_id, approve=False, payload=payload)


@manager_actions_router.post("/{token}/approve", response_model=DecisionResponse)
async def manager_approve(
    session: SessionDep,
    token: str = Path(min_length=1, max_length=128),
) -> DecisionResponse:
    """Manager approval through the emailed link; the token is the credential."""
    return await workflow.manager_decide(session, token, approve=True)


@manager_actions_router.post("/{token}/reject", response_model=DecisionResponse)
async def manager_reject(
    session: SessionDep,
    token: str = Path(min_length=1, max_length=128),
) -> DecisionResponse:
    """Manager rejection through the emailed link; the token is the credential."""
    return await workflow.manager_decide(session, token, approve=False)

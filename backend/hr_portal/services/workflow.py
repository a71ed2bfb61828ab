# ruff: noqa: TC003
"""Two-gate approval workflow for vacation requests.

PENDING --manager approves--> PENDING_HR --HR approves--> APPROVED
   |                              |
   +--manager rejects--> REJECTED <+--HR rejects

The balance is only checked (read-only) at submission. It becomes
authoritative at the HR approval, which re-validates and debits under the
employee's ledger lock.
"""

from __future__ import annotations

import logging
import secrets
import uuid
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from sqlalchemy import func, select, update
from sqlmodel import col

from hr_portal.config import get_settings
from hr_portal.exceptions import (
    AlreadyActionedError,
    EmployeeNotFoundError,
    ForbiddenError,
    InsufficientBalanceError,
    InvalidStateError,
    InvalidTokenError,
    NoManagerAssignedError,
    NotFoundError,
    TokenExpiredError,
)
from hr_portal.models.base import as_utc, now_utc
from hr_portal.models.enums import AuditAction, AuditEntityType, RequestStatus
from hr_portal.models.request import VacationRequest
from hr_portal.schemas.request import (
    DecisionResponse,
    RequestListResponse,
    RequestSummary,
    SubmitVacationResponse,
)
from hr_portal.services import ledger, notifications
from hr_portal.services.audit import model_to_audit_dict, write_audit_log
from hr_portal.services.employee import get_employee_service
from hr_portal.services.entitlement import requested_days
from hr_portal.services.notifications import Notification

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from hr_portal.schemas.auth import AuthContext
    from hr_portal.schemas.request import HrDecisionPayload, SubmitVacationPayload
    from hr_portal.services.employee import EmployeeInfo

logger = logging.getLogger(__name__)

_TOKEN_BYTES = 32


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _build_request_summary(request: VacationRequest) -> RequestSummary:
    """Map a request model to its summary schema. The token never leaves the service."""
    return RequestSummary(
        id=request.id,
        employee_id=request.employee_id,
        manager_id=request.manager_id,
        start_date=request.start_date,
        end_date=request.end_date,
        days_requested=request.requested_days,
        reason=request.reason,
        status=RequestStatus(request.status),
        requested_at=request.requested_at,
        manager_token_expiry=request.manager_token_expiry,
        manager_decided_at=request.manager_decided_at,
        hr_decided_at=request.hr_decided_at,
        hr_decided_by=request.hr_decided_by,
        decision_note=request.decision_note,
    )


async def _get_request_or_404(session: AsyncSession, request_id: uuid.UUID) -> VacationRequest:
    """Fetch a request by ID. Raises 404 if not found."""
    result = await session.execute(select(VacationRequest).where(col(VacationRequest.id) == request_id))
    request = result.scalar_one_or_none()
    if request is None:
        raise NotFoundError("Request not found")
    return request


async def _get_employee_or_404(employee_id: uuid.UUID) -> EmployeeInfo:
    employee = await get_employee_service().get_employee(employee_id)
    if employee is None:
        raise EmployeeNotFoundError("Employee not found")
    return employee


async def _transition(
    session: AsyncSession,
    request: VacationRequest,
    expected: RequestStatus,
    **values: object,
) -> bool:
    """Compare-and-set the request row; False when another caller moved it first."""
    result = await session.execute(
        update(VacationRequest)
        .where(
            col(VacationRequest.id) == request.id,
            col(VacationRequest.status) == expected.value,
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if not result.rowcount:  # type: ignore[attr-defined]
        return False
    await session.refresh(request)
    return True


def _period_text(request: VacationRequest) -> str:
    return f"{request.start_date.isoformat()} to {request.end_date.isoformat()} ({request.requested_days} day(s))"


def _manager_action_url(token: str, action: str) -> str:
    base = get_settings().public_base_url.rstrip("/")
    return f"{base}/manager-actions/{token}/{action}"


def _submission_notifications(
    request: VacationRequest,
    employee: EmployeeInfo,
    manager: EmployeeInfo | None,
) -> list[Notification]:
    settings = get_settings()
    messages: list[Notification] = []
    if manager is not None:
        messages.append(
            Notification(
                recipient=manager.email,
                subject=f"Vacation request from {employee.full_name}",
                body=(
                    f"{employee.full_name} requested vacation from {_period_text(request)}.\n"
                    f"Reason: {request.reason or '-'}\n\n"
                    f"Approve: {_manager_action_url(request.manager_token, 'approve')}\n"
                    f"Reject: {_manager_action_url(request.manager_token, 'reject')}\n\n"
                    f"These links expire on {as_utc(request.manager_token_expiry).isoformat()}."
                ),
            )
        )
    else:
        logger.warning("Manager %s of employee %s is not in the directory", request.manager_id, employee.id)
    messages.append(
        Notification(
            recipient=settings.hr_notification_email,
            subject=f"New vacation request from {employee.full_name}",
            body=f"{employee.full_name} requested vacation from {_period_text(request)}. Awaiting manager decision.",
        )
    )
    return messages


async def _employee_notification(request: VacationRequest, subject: str, body: str) -> list[Notification]:
    employee = await get_employee_service().get_employee(request.employee_id)
    if employee is None:
        logger.warning("Employee %s of request %s is not in the directory", request.employee_id, request.id)
        return []
    return [Notification(recipient=employee.email, subject=subject, body=body)]


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def submit_request(
    session: AsyncSession,
    auth: AuthContext,
    payload: SubmitVacationPayload,
    *,
    now: datetime | None = None,
) -> SubmitVacationResponse:
    """Submit a vacation request into the manager gate.

    Flow:
    1. Compute the inclusive day count
    2. Resolve the employee and their manager
    3. Make sure the current tenure period exists
    4. Read-only balance check (no lock; the HR gate is authoritative)
    5. Create the request in PENDING with a fresh single-use manager token
    6. Audit log, commit
    7. Notify manager and HR in the background
    """
    if auth.user_id != payload.employee_id and not auth.is_hr:
        raise ForbiddenError("Employees can only request vacation for themselves")

    now = now or now_utc()
    today = now.date()
    days = requested_days(payload.start_date, payload.end_date)

    employee = await _get_employee_or_404(payload.employee_id)
    if employee.manager_id is None:
        raise NoManagerAssignedError("Employee has no manager assigned")

    await ledger.ensure_period(session, employee, today)
    available = await ledger.available_balance(session, employee.id, today)
    if available < days:
        raise InsufficientBalanceError(requested=days, available=available)

    vacation_request = VacationRequest(
        employee_id=employee.id,
        manager_id=employee.manager_id,
        start_date=payload.start_date,
        end_date=payload.end_date,
        requested_days=days,
        reason=payload.reason,
        status=RequestStatus.PENDING.value,
        manager_token=secrets.token_urlsafe(_TOKEN_BYTES),
        manager_token_expiry=now + timedelta(hours=get_settings().manager_token_ttl_hours),
        requested_at=now,
    )
    session.add(vacation_request)
    await session.flush()

    await write_audit_log(
        session,
        actor_id=auth.user_id,
        entity_type=AuditEntityType.REQUEST,
        entity_id=vacation_request.id,
        action=AuditAction.SUBMIT,
        after_json=model_to_audit_dict(vacation_request),
    )

    await session.commit()
    logger.info(
        "Employee %s submitted request %s for %d day(s) (available %d)",
        employee.id,
        vacation_request.id,
        days,
        available,
    )

    manager = await get_employee_service().get_employee(employee.manager_id)
    notifications.dispatch(*_submission_notifications(vacation_request, employee, manager))

    return SubmitVacationResponse(
        request_id=vacation_request.id,
        days_requested=days,
        status=RequestStatus.PENDING,
        manager_token_expiry=vacation_request.manager_token_expiry,
    )


async def manager_decide(
    session: AsyncSession,
    token: str,
    approve: bool,
    *,
    now: datetime | None = None,
) -> DecisionResponse:
    """Apply the manager's decision carried by a single-use token.

    The token is consumed by whichever action comes first; any later use,
    including a double-clicked link, fails with AlreadyActioned.
    """
    now = now or now_utc()

    result = await session.execute(select(VacationRequest).where(col(VacationRequest.manager_token) == token))
    vacation_request = result.scalar_one_or_none()
    if vacation_request is None:
        raise InvalidTokenError("Unknown manager token")

    if now > as_utc(vacation_request.manager_token_expiry):
        raise TokenExpiredError("Manager token has expired")

    if vacation_request.manager_token_used_at is not None or vacation_request.status != RequestStatus.PENDING:
        raise AlreadyActionedError("This request has already been actioned")

    new_status = RequestStatus.PENDING_HR if approve else RequestStatus.REJECTED
    before_dict = model_to_audit_dict(vacation_request)

    applied = await _transition(
        session,
        vacation_request,
        RequestStatus.PENDING,
        status=new_status.value,
        manager_token_used_at=now,
        manager_decided_at=now,
    )
    if not applied:
        raise AlreadyActionedError("This request has already been actioned")

    await write_audit_log(
        session,
        actor_id=vacation_request.manager_id,
        entity_type=AuditEntityType.REQUEST,
        entity_id=vacation_request.id,
        action=AuditAction.MANAGER_APPROVE if approve else AuditAction.MANAGER_REJECT,
        before_json=before_dict,
        after_json=model_to_audit_dict(vacation_request),
    )

    await session.commit()
    logger.info("Manager %s moved request %s to %s", vacation_request.manager_id, vacation_request.id, new_status)

    if approve:
        messages = [
            Notification(
                recipient=get_settings().hr_notification_email,
                subject="Vacation request awaiting HR decision",
                body=(
                    f"Request {vacation_request.id} for {_period_text(vacation_request)} "
                    "was approved by the manager and awaits HR."
                ),
            ),
            *await _employee_notification(
                vacation_request,
                "Your vacation request was approved by your manager",
                f"Your request for {_period_text(vacation_request)} is now awaiting HR.",
            ),
        ]
    else:
        messages = await _employee_notification(
            vacation_request,
            "Your vacation request was rejected",
            f"Your manager rejected your request for {_period_text(vacation_request)}.",
        )
    notifications.dispatch(*messages)

    return DecisionResponse(request_id=vacation_request.id, status=new_status)


async def hr_decide(
    session: AsyncSession,
    auth: AuthContext,
    request_id: uuid.UUID,
    approve: bool,
    payload: HrDecisionPayload | None = None,
    *,
    now: datetime | None = None,
) -> DecisionResponse:
    """Apply the HR decision to a request that passed the manager gate.

    Approval locks the employee's ledger, re-reads the request, re-checks
    the balance and debits it in the same transaction. When the balance no
    longer covers the request, InsufficientBalance is raised before any row
    changes; the uncommitted transaction is discarded with the session and
    the request stays PENDING_HR.
    """
    if not auth.is_hr:
        raise ForbiddenError("HR access required")

    now = now or now_utc()
    note = payload.note if payload else None

    vacation_request = await _get_request_or_404(session, request_id)
    if vacation_request.status != RequestStatus.PENDING_HR:
        raise InvalidStateError(f"Request is {vacation_request.status}, expected {RequestStatus.PENDING_HR}")

    decision = {"hr_decided_at": now, "hr_decided_by": auth.user_id, "decision_note": note}

    if approve:
        await ledger.lock_ledger(session, vacation_request.employee_id)
        await session.refresh(vacation_request, with_for_update=True)
        if vacation_request.status != RequestStatus.PENDING_HR:
            raise InvalidStateError(f"Request is {vacation_request.status}, expected {RequestStatus.PENDING_HR}")

        today = now.date()
        available = await ledger.available_balance(session, vacation_request.employee_id, today)
        if available < vacation_request.requested_days:
            logger.info(
                "HR approval of request %s refused: %d day(s) requested, %d available",
                vacation_request.id,
                vacation_request.requested_days,
                available,
            )
            raise InsufficientBalanceError(requested=vacation_request.requested_days, available=available)

        new_status = RequestStatus.APPROVED
        before_dict = model_to_audit_dict(vacation_request)
        if not await _transition(
            session, vacation_request, RequestStatus.PENDING_HR, status=new_status.value, **decision
        ):
            raise InvalidStateError("Request was decided concurrently")

        await ledger.debit(
            session,
            vacation_request.employee_id,
            vacation_request.requested_days,
            today,
            vacation_request.id,
            actor_id=auth.user_id,
        )
    else:
        new_status = RequestStatus.REJECTED
        before_dict = model_to_audit_dict(vacation_request)
        if not await _transition(
            session, vacation_request, RequestStatus.PENDING_HR, status=new_status.value, **decision
        ):
            raise InvalidStateError("Request was decided concurrently")

    await write_audit_log(
        session,
        actor_id=auth.user_id,
        entity_type=AuditEntityType.REQUEST,
        entity_id=vacation_request.id,
        action=AuditAction.HR_APPROVE if approve else AuditAction.HR_REJECT,
        before_json=before_dict,
        after_json=model_to_audit_dict(vacation_request),
    )

    await session.commit()
    logger.info("HR %s moved request %s to %s", auth.user_id, vacation_request.id, new_status)

    verdict = "approved" if approve else "rejected"
    notifications.dispatch(
        *await _employee_notification(
            vacation_request,
            f"Your vacation request was {verdict}",
            f"HR {verdict} your request for {_period_text(vacation_request)}."
            + (f"\nNote: {note}" if note else ""),
        )
    )

    return DecisionResponse(request_id=vacation_request.id, status=new_status)


async def get_request(
    session: AsyncSession,
    auth: AuthContext,
    request_id: uuid.UUID,
) -> RequestSummary:
    """Get a single request by ID."""
    vacation_request = await _get_request_or_404(session, request_id)
    if not auth.is_hr and auth.user_id not in (vacation_request.employee_id, vacation_request.manager_id):
        raise ForbiddenError("Not authorized to view this request")
    return _build_request_summary(vacation_request)


async def list_requests(
    session: AsyncSession,
    auth: AuthContext,
    employee_id: uuid.UUID | None = None,
    status_filter: RequestStatus | None = None,
    offset: int = 0,
    limit: int = 50,
) -> RequestListResponse:
    """List requests, newest first. Non-HR callers only see their own."""
    if not auth.is_hr:
        if employee_id is not None and employee_id != auth.user_id:
            raise ForbiddenError("Not authorized to list another employee's requests")
        employee_id = auth.user_id

    filters = []
    if employee_id is not None:
        filters.append(col(VacationRequest.employee_id) == employee_id)
    if status_filter is not None:
        filters.append(col(VacationRequest.status) == status_filter.value)

    count_result = await session.execute(select(func.count()).select_from(VacationRequest).where(*filters))
    total = count_result.scalar_one()

    result = await session.execute(
        select(VacationRequest)
        .where(*filters)
        .order_by(col(VacationRequest.requested_at).desc())
        .offset(offset)
        .limit(limit)
    )
    return RequestListResponse(
        items=[_build_request_summary(r) for r in result.scalars().all()],
        total=total,
    )

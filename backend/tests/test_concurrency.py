"""Concurrent submissions and decisions against committed data, each caller in its own session."""

from __future__ import annotations

import asyncio
import uuid
from datetime import UTC, date, datetime, timedelta
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlmodel import col

from hr_portal.exceptions import AlreadyActionedError, InsufficientBalanceError
from hr_portal.models.entitlement import EntitlementAccount, EntitlementPeriod
from hr_portal.models.enums import RequestStatus
from hr_portal.models.request import VacationRequest
from hr_portal.schemas.auth import AuthContext
from hr_portal.schemas.request import DecisionResponse, SubmitVacationPayload, SubmitVacationResponse
from hr_portal.services import ledger, notifications, workflow
from hr_portal.services.employee import EmployeeInfo, InMemoryEmployeeService, set_employee_service

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

    from hr_portal.services.notifications import InMemoryNotificationDispatcher

NOW = datetime(2024, 2, 1, 9, 0, tzinfo=UTC)
HR_AUTH = AuthContext(user_id=uuid.uuid4(), role="hr")


def _request(employee_id: uuid.UUID, days: int, status: RequestStatus) -> VacationRequest:
    start = date(2024, 3, 4)
    return VacationRequest(
        employee_id=employee_id,
        manager_id=uuid.uuid4(),
        start_date=start,
        end_date=start + timedelta(days=days - 1),
        requested_days=days,
        status=status,
        manager_token=uuid.uuid4().hex,
        manager_token_expiry=NOW + timedelta(hours=48),
        requested_at=NOW,
    )


async def _seed_ledger(session: AsyncSession, employee_id: uuid.UUID, days: int) -> EntitlementPeriod:
    session.add(EntitlementAccount(employee_id=employee_id))
    period = EntitlementPeriod(
        employee_id=employee_id,
        year_index=4,
        days_assigned=days,
        start_date=date(2024, 1, 10),
    )
    session.add(period)
    await session.flush()
    return period


async def test_concurrent_hr_approvals_never_overdraw(engine: AsyncEngine) -> None:
    factory = async_sessionmaker(engine, expire_on_commit=False)
    employee_id = uuid.uuid4()

    async with factory() as session:
        period = await _seed_ledger(session, employee_id, 12)
        first = _request(employee_id, 8, RequestStatus.PENDING_HR)
        second = _request(employee_id, 7, RequestStatus.PENDING_HR)
        session.add_all([first, second])
        await session.commit()

    async def _approve(request_id: uuid.UUID) -> DecisionResponse:
        async with factory() as session:
            return await workflow.hr_decide(session, HR_AUTH, request_id, approve=True, now=NOW)

    results = await asyncio.gather(_approve(first.id), _approve(second.id), return_exceptions=True)

    approved = [r for r in results if isinstance(r, DecisionResponse)]
    refused = [r for r in results if isinstance(r, InsufficientBalanceError)]
    assert len(approved) == 1
    assert len(refused) == 1

    async with factory() as session:
        stored = await session.get(EntitlementPeriod, period.id)
        assert stored is not None
        assert stored.days_used in (7, 8)
        assert await ledger.available_balance(session, employee_id, NOW.date()) >= 0

        statuses = sorted(
            [
                (await session.get(VacationRequest, first.id)).status,  # type: ignore[union-attr]
                (await session.get(VacationRequest, second.id)).status,  # type: ignore[union-attr]
            ]
        )
        assert statuses == [RequestStatus.APPROVED, RequestStatus.PENDING_HR]


async def test_concurrent_manager_clicks_consume_token_once(engine: AsyncEngine) -> None:
    factory = async_sessionmaker(engine, expire_on_commit=False)
    employee_id = uuid.uuid4()

    async with factory() as session:
        request = _request(employee_id, 2, RequestStatus.PENDING)
        session.add(request)
        await session.commit()

    async def _decide(approve: bool) -> DecisionResponse:
        async with factory() as session:
            return await workflow.manager_decide(session, request.manager_token, approve=approve, now=NOW)

    results = await asyncio.gather(_decide(True), _decide(False), return_exceptions=True)

    decided = [r for r in results if isinstance(r, DecisionResponse)]
    assert len(decided) == 1
    assert sum(isinstance(r, AlreadyActionedError) for r in results) == 1

    async with factory() as session:
        stored = await session.get(VacationRequest, request.id)
        assert stored is not None
        assert stored.status == decided[0].status
        assert stored.manager_token_used_at is not None


async def test_first_submissions_for_new_employee_both_pass(
    engine: AsyncEngine,
    outbox: InMemoryNotificationDispatcher,
) -> None:
    factory = async_sessionmaker(engine, expire_on_commit=False)
    employee_id = uuid.uuid4()
    manager_id = uuid.uuid4()
    directory = InMemoryEmployeeService()
    directory.seed(
        EmployeeInfo(
            id=employee_id,
            first_name="Ana",
            last_name="Lopez",
            email="ana@example.com",
            hire_date=date(2020, 1, 10),
            manager_id=manager_id,
        )
    )
    directory.seed(
        EmployeeInfo(
            id=manager_id,
            first_name="Marta",
            last_name="Ruiz",
            email="marta@example.com",
            hire_date=date(2015, 6, 1),
        )
    )
    set_employee_service(directory)
    auth = AuthContext(user_id=employee_id, role="employee")

    async def _submit(start: date) -> SubmitVacationResponse:
        payload = SubmitVacationPayload(employee_id=employee_id, start_date=start, end_date=start + timedelta(days=2))
        async with factory() as session:
            return await workflow.submit_request(session, auth, payload, now=NOW)

    try:
        results = await asyncio.gather(_submit(date(2024, 3, 4)), _submit(date(2024, 4, 8)), return_exceptions=True)
        await notifications.drain()
    finally:
        set_employee_service(InMemoryEmployeeService())

    assert all(isinstance(r, SubmitVacationResponse) for r in results), results
    assert {r.status for r in results} == {RequestStatus.PENDING}  # type: ignore[union-attr]

    async with factory() as session:
        assert await session.get(EntitlementAccount, employee_id) is not None
        periods = await session.execute(
            select(EntitlementPeriod).where(col(EntitlementPeriod.employee_id) == employee_id)
        )
        assert [p.year_index for p in periods.scalars().all()] == [4]
    assert len(outbox.sent_to("marta@example.com")) == 2

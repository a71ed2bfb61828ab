"""Entitlement ledger: dated grant periods, balance queries and debits.

Every mutating operation first takes the employee's ledger lock
(``lock_ledger``) and only then reads period rows, inside the caller's
transaction. Callers own the transaction and commit it.
"""

from __future__ import annotations

import logging
import uuid
from collections import defaultdict
from datetime import date
from typing import TYPE_CHECKING

from sqlalchemy import func, or_, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlmodel import col

from hr_portal.config import get_settings
from hr_portal.exceptions import InsufficientBalanceError, InvalidInputError
from hr_portal.models.base import now_utc
from hr_portal.models.entitlement import EntitlementAccount, EntitlementDebit, EntitlementPeriod
from hr_portal.models.enums import AuditAction, AuditEntityType
from hr_portal.schemas.balance import BalanceResponse, PeriodResponse
from hr_portal.services.audit import SYSTEM_ACTOR, model_to_audit_dict, write_audit_log
from hr_portal.services.entitlement import add_months, anniversary_date, days_for_year, years_of_service

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession
    from sqlalchemy.sql.dml import Insert

    from hr_portal.services.employee import EmployeeInfo

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _insert_account(session: AsyncSession, employee_id: uuid.UUID) -> Insert:
    """``INSERT ... ON CONFLICT DO NOTHING`` for the account row, in the bound dialect."""
    values = {"employee_id": employee_id, "version": 1, "updated_at": now_utc()}
    if session.get_bind().dialect.name == "postgresql":
        return pg_insert(EntitlementAccount).values(**values).on_conflict_do_nothing(index_elements=["employee_id"])
    return sqlite_insert(EntitlementAccount).values(**values).on_conflict_do_nothing(index_elements=["employee_id"])


async def lock_ledger(session: AsyncSession, employee_id: uuid.UUID) -> None:
    """Take the employee's ledger lock for the rest of the transaction.

    The lock is a write to the ``entitlement_account`` row: a concurrent
    writer blocks on it until this transaction ends, then sees committed
    period rows. The first caller for an employee creates the row; a caller
    racing it waits on the conflicting insert and then takes the lock with
    the update.
    """
    bump = (
        update(EntitlementAccount)
        .where(col(EntitlementAccount.employee_id) == employee_id)
        .values(version=col(EntitlementAccount.version) + 1, updated_at=now_utc())
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(bump)
    if result.rowcount:  # type: ignore[attr-defined]
        return

    inserted = await session.execute(_insert_account(session, employee_id))
    if inserted.rowcount:  # type: ignore[attr-defined]
        return
    await session.execute(bump)


async def _get_period(session: AsyncSession, employee_id: uuid.UUID, year_index: int) -> EntitlementPeriod | None:
    result = await session.execute(
        select(EntitlementPeriod).where(
            col(EntitlementPeriod.employee_id) == employee_id,
            col(EntitlementPeriod.year_index) == year_index,
        )
    )
    return result.scalar_one_or_none()


def _debit_order(period: EntitlementPeriod) -> tuple[bool, date, date, int]:
    """Soonest expiration first, open-ended periods last."""
    return (
        period.expiration_date is None,
        period.expiration_date or date.max,
        period.start_date,
        period.year_index,
    )


async def _eligible_periods(
    session: AsyncSession,
    employee_id: uuid.UUID,
    as_of: date,
    *,
    for_update: bool = False,
) -> list[EntitlementPeriod]:
    """Periods whose remaining days are spendable on ``as_of``, in debit order."""
    query = select(EntitlementPeriod).where(
        col(EntitlementPeriod.employee_id) == employee_id,
        or_(
            col(EntitlementPeriod.expiration_date).is_(None),
            col(EntitlementPeriod.expiration_date) >= as_of,
        ),
    )
    if for_update:
        query = query.with_for_update().execution_options(populate_existing=True)
    result = await session.execute(query)
    return sorted(result.scalars().all(), key=_debit_order)


def _build_period_response(period: EntitlementPeriod, as_of: date) -> PeriodResponse:
    return PeriodResponse(
        id=period.id,
        year_index=period.year_index,
        assigned=period.days_assigned,
        used=period.days_used,
        remaining=period.remaining_days,
        start_date=period.start_date,
        expiration=period.expiration_date,
        expired=not period.is_eligible(as_of),
        expired_at=period.expired_at,
    )


# ---------------------------------------------------------------------------
# Read path
# ---------------------------------------------------------------------------


async def available_balance(session: AsyncSession, employee_id: uuid.UUID, as_of: date) -> int:
    """Sum of remaining days over periods not yet expired on ``as_of``."""
    result = await session.execute(
        select(
            func.coalesce(
                func.sum(col(EntitlementPeriod.days_assigned) - col(EntitlementPeriod.days_used)),
                0,
            )
        ).where(
            col(EntitlementPeriod.employee_id) == employee_id,
            or_(
                col(EntitlementPeriod.expiration_date).is_(None),
                col(EntitlementPeriod.expiration_date) >= as_of,
            ),
        )
    )
    return int(result.scalar_one())


async def get_balance(session: AsyncSession, employee_id: uuid.UUID, as_of: date | None = None) -> BalanceResponse:
    """Available balance and every period of the employee, oldest first.

    ``as_of`` defaults to the current UTC date.
    """
    if as_of is None:
        as_of = now_utc().date()

    result = await session.execute(
        select(EntitlementPeriod)
        .where(col(EntitlementPeriod.employee_id) == employee_id)
        .order_by(col(EntitlementPeriod.year_index))
    )
    periods = list(result.scalars().all())

    return BalanceResponse(
        employee_id=employee_id,
        as_of=as_of,
        available=sum(p.remaining_days for p in periods if p.is_eligible(as_of)),
        periods=[_build_period_response(p, as_of) for p in periods],
    )


# ---------------------------------------------------------------------------
# Write path
# ---------------------------------------------------------------------------


async def ensure_period(
    session: AsyncSession,
    employee: EmployeeInfo,
    as_of: date,
) -> EntitlementPeriod | None:
    """Create the period for the employee's current tenure year if it is missing.

    Opening a new period starts the grace window of every older period that
    still has unused days and no expiration yet. Returns the created period,
    or None when nothing was created (already present, no hire date, or
    still in the first tenure year).
    """
    if employee.hire_date is None:
        return None

    years = years_of_service(employee.hire_date, as_of)
    if years < 1:
        return None

    if await _get_period(session, employee.id, years) is not None:
        return None

    await lock_ledger(session, employee.id)

    # Re-check under the lock; a concurrent caller may have created it.
    if await _get_period(session, employee.id, years) is not None:
        return None

    start_date = anniversary_date(employee.hire_date, years)
    grace_end = add_months(start_date, get_settings().rollover_grace_months)

    prior_result = await session.execute(
        select(EntitlementPeriod)
        .where(
            col(EntitlementPeriod.employee_id) == employee.id,
            col(EntitlementPeriod.year_index) < years,
            col(EntitlementPeriod.expiration_date).is_(None),
            col(EntitlementPeriod.days_used) < col(EntitlementPeriod.days_assigned),
        )
        .with_for_update()
    )
    for prior in prior_result.scalars().all():
        before = model_to_audit_dict(prior)
        prior.expiration_date = grace_end
        await write_audit_log(
            session,
            actor_id=SYSTEM_ACTOR,
            entity_type=AuditEntityType.PERIOD,
            entity_id=prior.id,
            action=AuditAction.UPDATE,
            before_json=before,
            after_json=model_to_audit_dict(prior),
        )
        logger.info(
            "Period year=%d of employee %s rolls over until %s with %d day(s)",
            prior.year_index,
            employee.id,
            grace_end,
            prior.remaining_days,
        )

    period = EntitlementPeriod(
        employee_id=employee.id,
        year_index=years,
        days_assigned=days_for_year(years),
        days_used=0,
        start_date=start_date,
    )
    session.add(period)
    await session.flush()

    await write_audit_log(
        session,
        actor_id=SYSTEM_ACTOR,
        entity_type=AuditEntityType.PERIOD,
        entity_id=period.id,
        action=AuditAction.CREATE,
        after_json=model_to_audit_dict(period),
    )
    logger.info(
        "Created period year=%d for employee %s: %d day(s) from %s",
        years,
        employee.id,
        period.days_assigned,
        start_date,
    )
    return period


async def debit(
    session: AsyncSession,
    employee_id: uuid.UUID,
    days: int,
    as_of: date,
    request_id: uuid.UUID,
    *,
    actor_id: uuid.UUID = SYSTEM_ACTOR,
) -> list[EntitlementDebit]:
    """Consume ``days`` from the employee's eligible periods, soonest expiration first.

    All-or-nothing: raises InsufficientBalanceError before touching any row
    when the eligible capacity is short.
    """
    if days < 1:
        msg = "Debit must be at least one day"
        raise InvalidInputError(msg)

    await lock_ledger(session, employee_id)
    periods = await _eligible_periods(session, employee_id, as_of, for_update=True)

    capacity = sum(p.remaining_days for p in periods)
    if capacity < days:
        raise InsufficientBalanceError(requested=days, available=capacity)

    debits: list[EntitlementDebit] = []
    outstanding = days
    for period in periods:
        if outstanding == 0:
            break
        take = min(period.remaining_days, outstanding)
        if take <= 0:
            continue

        before = model_to_audit_dict(period)
        period.days_used += take
        outstanding -= take

        entry = EntitlementDebit(
            employee_id=employee_id,
            period_id=period.id,
            request_id=request_id,
            days=take,
        )
        session.add(entry)
        debits.append(entry)

        await write_audit_log(
            session,
            actor_id=actor_id,
            entity_type=AuditEntityType.PERIOD,
            entity_id=period.id,
            action=AuditAction.DEBIT,
            before_json=before,
            after_json=model_to_audit_dict(period),
        )

    await session.flush()
    logger.info(
        "Debited %d day(s) from %d period(s) of employee %s for request %s",
        days,
        len(debits),
        employee_id,
        request_id,
    )
    return debits


async def expire_lapsed(
    session: AsyncSession,
    as_of: date,
    *,
    employee_id: uuid.UUID | None = None,
) -> int:
    """Mark periods whose grace window ended before ``as_of``.

    Lapsed days are already excluded from the balance by date; this only
    records when they were forfeited. Returns the number of periods marked.
    """
    filters = [
        col(EntitlementPeriod.expiration_date).is_not(None),
        col(EntitlementPeriod.expiration_date) < as_of,
        col(EntitlementPeriod.expired_at).is_(None),
    ]
    if employee_id is not None:
        filters.append(col(EntitlementPeriod.employee_id) == employee_id)

    candidates = await session.execute(
        select(col(EntitlementPeriod.employee_id), col(EntitlementPeriod.id)).where(*filters)
    )
    by_employee: dict[uuid.UUID, list[uuid.UUID]] = defaultdict(list)
    for row in candidates.all():
        by_employee[row[0]].append(row[1])

    marked = 0
    for eid, period_ids in by_employee.items():
        await lock_ledger(session, eid)
        locked = await session.execute(
            select(EntitlementPeriod)
            .where(col(EntitlementPeriod.id).in_(period_ids), *filters)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        for period in locked.scalars().all():
            before = model_to_audit_dict(period)
            period.expired_at = now_utc()
            await write_audit_log(
                session,
                actor_id=SYSTEM_ACTOR,
                entity_type=AuditEntityType.PERIOD,
                entity_id=period.id,
                action=AuditAction.EXPIRE,
                before_json=before,
                after_json={**model_to_audit_dict(period), "forfeited_days": period.remaining_days},
            )
            logger.info(
                "Period year=%d of employee %s expired on %s, %d day(s) forfeited",
                period.year_index,
                eid,
                period.expiration_date,
                period.remaining_days,
            )
            marked += 1

    await session.flush()
    return marked

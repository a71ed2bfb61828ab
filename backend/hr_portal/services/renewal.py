"""Daily renewal of entitlement periods.

Opens the new period of every employee whose tenure anniversary has come
(catching up anyone whose current period is missing) and marks rollover
periods whose grace window has lapsed. A job lease keeps two runs from
overlapping; each employee is processed in its own transaction.
"""

from __future__ import annotations

import logging
import os
import socket
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import TYPE_CHECKING

from sqlalchemy import or_, update
from sqlalchemy.exc import IntegrityError
from sqlmodel import col

from hr_portal.config import get_settings
from hr_portal.exceptions import SchedulerBusyError
from hr_portal.models.base import now_utc
from hr_portal.models.job_lease import JobLease
from hr_portal.services import ledger
from hr_portal.services.employee import get_employee_service
from hr_portal.services.entitlement import is_anniversary

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

RENEWAL_JOB = "renewal"


@dataclass
class RenewalRunResult:
    """Result of a renewal run."""

    as_of: date
    periods_created: int = 0
    periods_expired: int = 0
    skipped: int = 0
    errors: int = 0
    details: list[dict[str, object]] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Job lease
# ---------------------------------------------------------------------------


def _default_owner() -> str:
    return f"{socket.gethostname()}:{os.getpid()}:{uuid.uuid4().hex[:8]}"


async def acquire_lease(
    session: AsyncSession,
    name: str,
    owner: str,
    *,
    now: datetime | None = None,
    ttl_seconds: int | None = None,
) -> bool:
    """Take the named lease unless another owner holds an unexpired one. Commits on success."""
    now = now or now_utc()
    if ttl_seconds is None:
        ttl_seconds = get_settings().renewal_lease_seconds
    locked_until = now + timedelta(seconds=ttl_seconds)

    result = await session.execute(
        update(JobLease)
        .where(
            col(JobLease.name) == name,
            or_(col(JobLease.locked_until).is_(None), col(JobLease.locked_until) < now),
        )
        .values(owner=owner, locked_until=locked_until)
        .execution_options(synchronize_session=False)
    )
    if not result.rowcount:  # type: ignore[attr-defined]
        if await session.get(JobLease, name, populate_existing=True) is not None:
            return False
        session.add(JobLease(name=name, owner=owner, locked_until=locked_until))
        try:
            await session.flush()
        except IntegrityError:
            return False

    await session.commit()
    return True


async def release_lease(session: AsyncSession, name: str, owner: str) -> None:
    """Give the lease back if this owner still holds it."""
    await session.execute(
        update(JobLease)
        .where(col(JobLease.name) == name, col(JobLease.owner) == owner)
        .values(owner=None, locked_until=None)
        .execution_options(synchronize_session=False)
    )
    await session.commit()


# ---------------------------------------------------------------------------
# Renewal run
# ---------------------------------------------------------------------------


async def run_renewal(
    session: AsyncSession,
    as_of: date | None = None,
    *,
    owner: str | None = None,
) -> RenewalRunResult:
    """Create due periods and expire lapsed rollovers for every employee.

    Idempotent for a given ``as_of``: a period is unique per employee and
    tenure year, and an already-expired period is not marked twice.
    """
    if as_of is None:
        as_of = now_utc().date()
    owner = owner or _default_owner()

    if not await acquire_lease(session, RENEWAL_JOB, owner):
        msg = "Another renewal run is in progress"
        raise SchedulerBusyError(msg)

    result = RenewalRunResult(as_of=as_of)
    try:
        employees = await get_employee_service().list_employees()
        for employee in employees:
            if employee.hire_date is None:
                result.skipped += 1
                continue

            try:
                created = await ledger.ensure_period(session, employee, as_of)
                expired = await ledger.expire_lapsed(session, as_of, employee_id=employee.id)
                await session.commit()
            except Exception:
                await session.rollback()
                logger.exception("Renewal failed for employee %s on %s", employee.id, as_of)
                result.errors += 1
                continue

            result.periods_expired += expired
            if created is not None:
                result.periods_created += 1
                result.details.append(
                    {
                        "employee_id": str(employee.id),
                        "year_index": created.year_index,
                        "days_assigned": created.days_assigned,
                        "anniversary": is_anniversary(employee.hire_date, as_of),
                    }
                )
            elif expired == 0:
                result.skipped += 1

        # Periods of employees no longer in the directory still lapse.
        try:
            result.periods_expired += await ledger.expire_lapsed(session, as_of)
            await session.commit()
        except Exception:
            await session.rollback()
            logger.exception("Expiration sweep failed on %s", as_of)
            result.errors += 1
    finally:
        await release_lease(session, RENEWAL_JOB, owner)

    logger.info(
        "Renewal run for %s: created=%d expired=%d skipped=%d errors=%d",
        as_of,
        result.periods_created,
        result.periods_expired,
        result.skipped,
        result.errors,
    )
    return result

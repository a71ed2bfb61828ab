# ruff: noqa: B008, TC001, TC003
"""Manual trigger for the daily entitlement renewal."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Query

from hr_portal.api.deps import HrDep
from hr_portal.db import SessionDep
from hr_portal.schemas.renewal import RenewalRunResponse
from hr_portal.services.renewal import run_renewal

renewals_router = APIRouter(
    prefix="/renewals",
    tags=["renewals"],
)


@renewals_router.post("/run", response_model=RenewalRunResponse)
async def trigger_renewal(
    session: SessionDep,
    auth: HrDep,
    as_of: date | None = Query(default=None),
) -> RenewalRunResponse:
    """Run the renewal for a specific date, today in UTC when omitted (HR only).

    Normally invoked by the worker; useful for backfills after downtime.
    """
    result = await run_renewal(session, as_of)
    return RenewalRunResponse(
        as_of=result.as_of,
        periods_created=result.periods_created,
        periods_expired=result.periods_expired,
        skipped=result.skipped,
        errors=result.errors,
    )

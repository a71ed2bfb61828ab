# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid

from fastapi import APIRouter

from hr_portal.api.deps import AuthDep
from hr_portal.db import SessionDep
from hr_portal.exceptions import ForbiddenError
from hr_portal.schemas.balance import BalanceResponse
from hr_portal.services import ledger

employee_balance_router = APIRouter(
    prefix="/employees/{employee_id}/balance",
    tags=["balances"],
)


@employee_balance_router.get("", response_model=BalanceResponse)
async def get_employee_balance(
    employee_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
) -> BalanceResponse:
    """Get the available vacation days and entitlement periods of an employee."""
    if auth.user_id != employee_id and not auth.is_hr:
        raise ForbiddenError("Not authorized to view this balance")
    return await ledger.get_balance(session, employee_id)

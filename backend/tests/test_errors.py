"""Tests for the error taxonomy and its HTTP rendering."""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession

from hr_portal.db import get_session
from hr_portal.exceptions import (
    AlreadyActionedError,
    AppError,
    InsufficientBalanceError,
    InvalidInputError,
    TokenExpiredError,
)
from hr_portal.main import app

if TYPE_CHECKING:
    from collections.abc import AsyncIterator


@pytest.mark.parametrize(
    ("error", "code", "status_code"),
    [
        (InvalidInputError("bad"), "ValidationError", 422),
        (TokenExpiredError("late"), "TokenExpired", 410),
        (AlreadyActionedError("again"), "AlreadyActioned", 409),
        (InsufficientBalanceError(requested=5, available=2), "InsufficientBalance", 400),
    ],
)
def test_error_codes(error: AppError, code: str, status_code: int) -> None:
    assert error.error_code == code
    assert error.status_code == status_code


def test_status_code_override() -> None:
    assert InvalidInputError("bad", status_code=400).status_code == 400


def test_insufficient_balance_message() -> None:
    error = InsufficientBalanceError(requested=5, available=2)
    assert error.message == "Insufficient balance: requested 5 day(s), available 2"


async def test_persistence_failure_renders_503() -> None:
    mock_session = AsyncMock(spec=AsyncSession)
    mock_session.execute.side_effect = DBAPIError("SELECT 1", {}, ConnectionError("connection refused"))

    async def _broken_session() -> AsyncIterator[AsyncSession]:
        yield mock_session

    app.dependency_overrides[get_session] = _broken_session
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.get(
                f"/employees/{uuid.uuid4()}/balance",
                headers={"X-User-Id": str(uuid.uuid4()), "X-Role": "hr"},
            )
        assert response.status_code == 503
        assert response.json()["error"] == "PersistenceUnavailable"
    finally:
        app.dependency_overrides.clear()

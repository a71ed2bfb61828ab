"""Unit tests for the API schemas and the auth context."""

from __future__ import annotations

import uuid
from datetime import date

import pytest
from pydantic import ValidationError

from hr_portal.models.enums import RequestStatus
from hr_portal.schemas.auth import AuthContext
from hr_portal.schemas.request import HrDecisionPayload, SubmitVacationPayload

# ---------------------------------------------------------------------------
# SubmitVacationPayload
# ---------------------------------------------------------------------------


def test_submit_payload_valid() -> None:
    payload = SubmitVacationPayload(
        employee_id=uuid.uuid4(),
        start_date=date(2024, 1, 10),
        end_date=date(2024, 1, 12),
    )
    assert payload.reason is None


def test_submit_payload_single_day() -> None:
    payload = SubmitVacationPayload(
        employee_id=uuid.uuid4(),
        start_date=date(2024, 1, 10),
        end_date=date(2024, 1, 10),
    )
    assert payload.start_date == payload.end_date


def test_submit_payload_end_before_start() -> None:
    with pytest.raises(ValidationError, match="end_date must be on or after start_date"):
        SubmitVacationPayload(
            employee_id=uuid.uuid4(),
            start_date=date(2024, 1, 12),
            end_date=date(2024, 1, 10),
        )


def test_submit_payload_reason_too_long() -> None:
    with pytest.raises(ValidationError):
        SubmitVacationPayload(
            employee_id=uuid.uuid4(),
            start_date=date(2024, 1, 10),
            end_date=date(2024, 1, 12),
            reason="x" * 1001,
        )


def test_hr_decision_payload_note_optional() -> None:
    assert HrDecisionPayload().note is None


# ---------------------------------------------------------------------------
# AuthContext / RequestStatus
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(("role", "is_hr"), [("hr", True), ("admin", True), ("employee", False), ("manager", False)])
def test_auth_context_is_hr(role: str, is_hr: bool) -> None:
    assert AuthContext(user_id=uuid.uuid4(), role=role).is_hr is is_hr


def test_request_status_terminal_states() -> None:
    assert {s for s in RequestStatus if s.is_terminal} == {RequestStatus.APPROVED, RequestStatus.REJECTED}

from __future__ import annotations

import enum


class RequestStatus(enum.StrEnum):
    """State machine for vacation requests.

    PENDING -> PENDING_HR -> APPROVED | REJECTED, and PENDING -> REJECTED.
    """

    PENDING = "PENDING"
    PENDING_HR = "PENDING_HR"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"

    @property
    def is_terminal(self) -> bool:
        return self in (RequestStatus.APPROVED, RequestStatus.REJECTED)


class AuditEntityType(enum.StrEnum):
    """Entity type recorded in the audit log."""

    PERIOD = "PERIOD"
    REQUEST = "REQUEST"


class AuditAction(enum.StrEnum):
    """Action recorded in the audit log."""

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    SUBMIT = "SUBMIT"
    MANAGER_APPROVE = "MANAGER_APPROVE"
    MANAGER_REJECT = "MANAGER_REJECT"
    HR_APPROVE = "HR_APPROVE"
    HR_REJECT = "HR_REJECT"
    DEBIT = "DEBIT"
    EXPIRE = "EXPIRE"

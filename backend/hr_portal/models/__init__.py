from sqlmodel import SQLModel

from hr_portal.models.audit import AuditLog
from hr_portal.models.base import TimestampMixin, UUIDBase
from hr_portal.models.entitlement import EntitlementAccount, EntitlementDebit, EntitlementPeriod
from hr_portal.models.enums import AuditAction, AuditEntityType, RequestStatus
from hr_portal.models.job_lease import JobLease
from hr_portal.models.request import VacationRequest

__all__ = [
    "AuditAction",
    "AuditEntityType",
    "AuditLog",
    "EntitlementAccount",
    "EntitlementDebit",
    "EntitlementPeriod",
    "JobLease",
    "RequestStatus",
    "SQLModel",
    "TimestampMixin",
    "UUIDBase",
    "VacationRequest",
]

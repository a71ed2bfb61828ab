"""Audit trail writes. Entries join the caller's transaction and commit with it."""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING, Any

from hr_portal.models.audit import AuditLog

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession
    from sqlmodel import SQLModel

    from hr_portal.models.enums import AuditAction, AuditEntityType

# Actor recorded for changes made by the scheduler or by a manager token.
SYSTEM_ACTOR = uuid.UUID(int=0)

# Credentials that must never reach the audit trail.
_REDACTED_FIELDS = frozenset({"manager_token"})


def model_to_audit_dict(model: SQLModel) -> dict[str, Any]:
    """JSON snapshot of a row, minus redacted fields."""
    return model.model_dump(mode="json", exclude=set(_REDACTED_FIELDS))


async def write_audit_log(
    session: AsyncSession,
    *,
    actor_id: uuid.UUID,
    entity_type: AuditEntityType,
    entity_id: uuid.UUID,
    action: AuditAction,
    before_json: dict[str, Any] | None = None,
    after_json: dict[str, Any] | None = None,
) -> AuditLog:
    entry = AuditLog(
        actor_id=actor_id,
        entity_type=entity_type.value,
        entity_id=entity_id,
        action=action.value,
        before_json=before_json,
        after_json=after_json,
    )
    session.add(entry)
    return entry

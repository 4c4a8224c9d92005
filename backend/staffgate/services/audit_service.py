# Overview: Service-layer operations for the audit trail; append-only.

from __future__ import annotations

from ..extensions import db
from ..models import AuditLog


"""
Audit trail invariants

- Append-only: rows are never updated or deleted.
- No domain logic; callers decide what old/new values mean.
- Written after the primary transition commits, in its own transaction.
"""


ACTION_TIME_OFF_APPROVED = "TIME_OFF_APPROVED"
ACTION_TIME_OFF_REJECTED = "TIME_OFF_REJECTED"
ACTION_TIME_OFF_CANCELLED = "TIME_OFF_CANCELLED"

RESOURCE_TIME_OFF_REQUEST = "TimeOffRequest"


def record(
    actor_id: int | None,
    action_type: str,
    resource_type: str,
    resource_id,
    old_value: str | None = None,
    new_value: str | None = None,
) -> AuditLog:
    """Append one audit row. Does not commit."""
    entry = AuditLog(
        user_id=actor_id,
        action_type=action_type,
        resource_type=resource_type,
        resource_id=str(resource_id),
        old_value=old_value,
        new_value=new_value,
    )
    db.session.add(entry)
    db.session.flush()
    return entry


def list_for_resource(resource_type: str, resource_id) -> list[AuditLog]:
    return (
        db.session.query(AuditLog)
        .filter(
            AuditLog.resource_type == resource_type,
            AuditLog.resource_id == str(resource_id),
        )
        .order_by(AuditLog.id.asc())
        .all()
    )

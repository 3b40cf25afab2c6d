from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Sequence

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from backend.app.models import AuditLog

ACTION_CREATE = "CREATE"
ACTION_DELETE = "DELETE"

ENTITY_RESERVATION = "reservation"
ENTITY_IMPORT = "import"


def log_audit_event(
    db: Session,
    *,
    entity_id: str,
    entity_type: str,
    action: str,
    performed_by_id: Optional[str],
    created_at: Optional[datetime] = None,
) -> AuditLog:
    row = AuditLog(
        entity_id=entity_id,
        entity_type=entity_type,
        action=action,
        performed_by_id=performed_by_id,
    )
    if created_at is not None:
        row.created_at = created_at
    db.add(row)
    db.flush()
    return row


def delete_audit_events(
    db: Session,
    *,
    entity_type: str,
    entity_ids: Sequence[str],
    action: str,
) -> int:
    if not entity_ids:
        return 0
    result = db.execute(
        delete(AuditLog).where(
            AuditLog.entity_type == entity_type,
            AuditLog.entity_id.in_(list(entity_ids)),
            AuditLog.action == action,
        )
    )
    return int(result.rowcount or 0)


def list_entity_events(db: Session, *, entity_type: str, entity_id: str) -> List[AuditLog]:
    return list(
        db.execute(
            select(AuditLog)
            .where(AuditLog.entity_type == entity_type, AuditLog.entity_id == entity_id)
            .order_by(AuditLog.created_at.asc(), AuditLog.id.asc())
        )
        .scalars()
        .all()
    )

from __future__ import annotations

from typing import Any, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from splitledger.models import AuditLog


def log_audit_event(
    db: Session,
    entity_type: str,
    entity_id: UUID,
    action: str,
    performed_by: UUID | str,
    details_json: Optional[dict[str, Any]] = None,
) -> AuditLog:
    audit_log = AuditLog(
        entity_type=entity_type,
        entity_id=entity_id,
        action=action,
        performed_by=str(performed_by),
        details_json=details_json,
    )
    db.add(audit_log)
    # NOTE: commit is handled by the calling workflow so the audit row shares its transaction.
    return audit_log

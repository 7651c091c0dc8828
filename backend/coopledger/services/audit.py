from sqlalchemy.orm import Session
from coopledger.models.audit_log import AuditLog


def log_event(
    s: Session,
    actor: str,
    action: str,
    entity_type: str,
    entity_id: int | None = None,
    society_id: int | None = None,
    details: dict | None = None,
):
    row = AuditLog(
        actor=actor,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        society_id=society_id,
        details=details,
    )
    s.add(row)
    s.commit()
    return row

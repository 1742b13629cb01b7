from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from hr_attendance.models import AuditActorType, AuditLog

logger = logging.getLogger("hr_attendance.audit")


def log_audit(
    db: Session,
    *,
    actor_type: AuditActorType,
    actor_id: str,
    action: str,
    success: bool,
    entity_type: str | None = None,
    entity_id: str | int | None = None,
    ip: str | None = None,
    user_agent: str | None = None,
    details: dict[str, Any] | None = None,
    request_id: str | None = None,
) -> None:
    """Persist one audit row for a completed mutation.

    The row is committed on its own, after the business change. A failed audit
    write is rolled back and logged; it never undoes or fails the request.
    """
    entity_ref = str(entity_id) if entity_id is not None else None
    stored_details = dict(details or {})
    if request_id:
        stored_details.setdefault("request_id", request_id)

    context = {
        "request_id": request_id,
        "action": action,
        "actor_type": actor_type.value,
        "actor_id": actor_id,
        "entity_type": entity_type,
        "entity_id": entity_ref,
        "success": success,
    }

    db.add(
        AuditLog(
            ts_utc=datetime.now(timezone.utc),
            actor_type=actor_type,
            actor_id=actor_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_ref,
            ip=ip,
            user_agent=user_agent,
            success=success,
            details=stored_details,
        )
    )
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("audit_log_write_failed", extra=context)
        return

    logger.info("audit_event", extra={**context, "details": stored_details})

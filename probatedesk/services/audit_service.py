"""Audit logging service - matter-scoped workflow trail.

Security guidelines:
- NEVER log secrets (session tokens, resume tokens)
- Hash PII in meta (use hash_email for emails)
- Use IDs instead of raw data where possible

Audit writes are best-effort: a failure is logged and swallowed so it never
rolls back the change being audited. Call log_event after the primary commit.
"""

import hashlib
import logging
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from probatedesk.db.enums import AuditAction
from probatedesk.db.models import AuditLog

logger = logging.getLogger(__name__)


def hash_email(email: str) -> str:
    """Hash email for audit log (prefix + SHA256 suffix for debugging)."""
    if not email:
        return ""
    prefix = email.split("@")[0][:3] if "@" in email else email[:3]
    suffix = hashlib.sha256(email.lower().encode()).hexdigest()[:12]
    return f"{prefix}...@[hash:{suffix}]"


def log_event(
    db: Session,
    matter_id: UUID | None,
    action: AuditAction,
    actor_user_id: UUID | None = None,
    meta: dict[str, Any] | None = None,
) -> AuditLog | None:
    """
    Append an audit entry and commit it.

    Returns the entry, or None when the write failed.
    """
    try:
        entry = AuditLog(
            matter_id=matter_id,
            actor_user_id=actor_user_id,
            action=action.value,
            meta=meta,
        )
        db.add(entry)
        db.commit()
        return entry
    except Exception:
        db.rollback()
        logger.warning(
            "Audit append failed for action=%s matter_id=%s",
            action.value,
            matter_id,
            exc_info=True,
        )
        return None


def list_events(db: Session, matter_id: UUID, limit: int = 100) -> list[AuditLog]:
    """Most recent audit entries for a matter, newest first."""
    return (
        db.query(AuditLog)
        .filter(AuditLog.matter_id == matter_id)
        .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        .limit(limit)
        .all()
    )

"""Portal status service - applies lifecycle transitions to a matter.

Every normal-path transition goes through _advance, which enforces the
forward-only order, keeps the journey ledger in step and commits both
together. override_status is the separate privileged path for ops.
"""

import logging
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from probatedesk.core.errors import Conflict, ValidationError
from probatedesk.core.portal_status import (
    has_reached_status,
    is_transition_allowed,
    normalize_status,
    portal_gates,
)
from probatedesk.core.structured_logging import matter_log_context
from probatedesk.db.enums import AuditAction, PortalStatus, ReminderType, RightFitStatus
from probatedesk.db.models import Matter
from probatedesk.services import audit_service, journey_service, reminder_service
from probatedesk.utils.datetime_parsing import parse_optional_datetime

logger = logging.getLogger(__name__)

# Targets a client may advance to directly; the rest have dedicated actions
CLIENT_ADVANCEABLE: frozenset[PortalStatus] = frozenset({
    PortalStatus.WILL_SEARCH_PREPPING,
    PortalStatus.NOTICES_IN_PROGRESS,
    PortalStatus.PROBATE_PACKAGE_PREPPING,
    PortalStatus.PROBATE_FILING_READY,
    PortalStatus.PROBATE_FILING_IN_PROGRESS,
    PortalStatus.POST_GRANT_ACTIVE,
    PortalStatus.ESTATE_CLOSEOUT,
    PortalStatus.DONE,
})


def _effective_at(raw: str | None, now: datetime) -> datetime:
    """Client-supplied date, or now when missing or unparseable."""
    parsed = parse_optional_datetime(raw)
    if parsed is None:
        if raw:
            logger.info("Ignoring unparseable date %r; using now", raw)
        return now
    return parsed


def check_transition(matter: Matter, target: PortalStatus) -> None:
    """
    Raise Conflict unless the matter may move to ``target``.

    NOT_FIT matters are frozen at the default status.
    """
    if matter.right_fit_status == RightFitStatus.NOT_FIT.value:
        raise Conflict("This matter did not pass screening and cannot progress")
    if not is_transition_allowed(matter.portal_status, target):
        raise Conflict(
            f"Cannot move from {normalize_status(matter.portal_status).value} to {target.value}"
        )


def apply_status(db: Session, matter: Matter, target: PortalStatus, now: datetime) -> None:
    """
    Set the status (never lowering it) and sync the journey. Does not commit.

    Used by _advance and by the document orchestrator, which must write the
    status in the same transaction as its phase record.
    """
    if not has_reached_status(matter.portal_status, target):
        matter.portal_status = target.value
    journey_service.sync_with_portal_status(db, matter, now)


def _advance(
    db: Session,
    matter: Matter,
    target: PortalStatus,
    *,
    actor_user_id: UUID | None,
    now: datetime,
    fields: dict[str, Any] | None = None,
    reminder: tuple[ReminderType, datetime] | None = None,
) -> Matter:
    check_transition(matter, target)
    previous = normalize_status(matter.portal_status)

    for name, value in (fields or {}).items():
        setattr(matter, name, value)
    matter.portal_status = target.value
    journey_service.sync_with_portal_status(db, matter, now)
    if reminder is not None:
        reminder_service.schedule_reminder(db, matter.id, reminder[0], reminder[1])

    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(matter)

    logger.info(
        "Portal status advanced matter_id=%s from=%s to=%s",
        matter.id,
        previous.value,
        target.value,
        extra=matter_log_context(matter, user_id=actor_user_id),
    )
    audit_service.log_event(
        db,
        matter.id,
        AuditAction.STATUS_ADVANCED,
        actor_user_id=actor_user_id,
        meta={"from": previous.value, "to": target.value},
    )
    return matter


def advance_status(
    db: Session,
    matter: Matter,
    target: PortalStatus,
    actor_user_id: UUID | None = None,
) -> Matter:
    """Move to a client-advanceable status (no side effects beyond the journey)."""
    if target not in CLIENT_ADVANCEABLE:
        raise ValidationError(
            "This status is set by a dedicated action",
            fields={"status": f"'{target.value}' cannot be set directly"},
        )
    return _advance(db, matter, target, actor_user_id=actor_user_id, now=datetime.now(timezone.utc))


def mark_will_search_mailed(
    db: Session,
    matter: Matter,
    mailed_at: str | None = None,
    actor_user_id: UUID | None = None,
) -> Matter:
    """Will search packet mailed: status will_search_sent plus a follow-up reminder."""
    now = datetime.now(timezone.utc)
    effective = _effective_at(mailed_at, now)
    return _advance(
        db,
        matter,
        PortalStatus.WILL_SEARCH_SENT,
        actor_user_id=actor_user_id,
        now=now,
        fields={"will_search_mailed_at": effective},
        reminder=(ReminderType.WILL_SEARCH_FOLLOWUP, effective),
    )


def mark_notices_mailed(
    db: Session,
    matter: Matter,
    mailed_at: str | None = None,
    actor_user_id: UUID | None = None,
) -> Matter:
    """Notices mailed: start the 21-day wait and schedule its reminder."""
    now = datetime.now(timezone.utc)
    effective = _effective_at(mailed_at, now)
    return _advance(
        db,
        matter,
        PortalStatus.NOTICES_WAITING_21_DAYS,
        actor_user_id=actor_user_id,
        now=now,
        fields={"notices_mailed_at": effective},
        reminder=(ReminderType.NOTICES_WAIT, effective),
    )


def mark_probate_filed(
    db: Session,
    matter: Matter,
    filed_at: str | None = None,
    actor_user_id: UUID | None = None,
) -> Matter:
    """
    Probate filed with the registry: status waiting_for_grant.

    filed_at defaults to now; an unparseable value also falls back to now.
    Filing must be open (package ready, or the notice wait has run out).
    Marking again keeps the first recorded filing date.
    """
    now = datetime.now(timezone.utc)
    if not has_reached_status(matter.portal_status, PortalStatus.PROBATE_FILED):
        gates = portal_gates(matter.portal_status, matter.notices_mailed_at, now)
        if not gates.probate_filing:
            raise Conflict("Probate filing is not open for this matter yet")
    fields = {}
    if matter.probate_filed_at is None:
        fields["probate_filed_at"] = _effective_at(filed_at, now)
    return _advance(
        db,
        matter,
        PortalStatus.WAITING_FOR_GRANT,
        actor_user_id=actor_user_id,
        now=now,
        fields=fields,
    )


def mark_grant_received(
    db: Session,
    matter: Matter,
    issued_at: str | None = None,
    actor_user_id: UUID | None = None,
) -> Matter:
    """Grant issued by the court: status grant_complete."""
    now = datetime.now(timezone.utc)
    if not has_reached_status(matter.portal_status, PortalStatus.PROBATE_FILED):
        raise Conflict("Probate has not been filed for this matter")
    return _advance(
        db,
        matter,
        PortalStatus.GRANT_COMPLETE,
        actor_user_id=actor_user_id,
        now=now,
        fields={"grant_issued_at": _effective_at(issued_at, now)},
    )


def override_status(
    db: Session,
    matter: Matter,
    raw_status: str,
    actor_user_id: UUID,
    reason: str | None = None,
) -> Matter:
    """
    Ops-only: set portal status directly, in any direction.

    Skips order and eligibility checks. Audited with the previous value.
    """
    target = normalize_status(raw_status, fallback=None)  # type: ignore[arg-type]
    if target is None:
        raise ValidationError("Unknown portal status", fields={"status": f"Unknown status '{raw_status}'"})

    previous = normalize_status(matter.portal_status)
    matter.portal_status = target.value
    if not has_reached_status(target, PortalStatus.PROBATE_FILED):
        # Moved back before filing; the next filing records its own date
        matter.probate_filed_at = None
    journey_service.sync_with_portal_status(db, matter)
    db.commit()
    db.refresh(matter)

    logger.warning(
        "Portal status override matter_id=%s from=%s to=%s by=%s",
        matter.id,
        previous.value,
        target.value,
        actor_user_id,
        extra=matter_log_context(matter, user_id=actor_user_id),
    )
    audit_service.log_event(
        db,
        matter.id,
        AuditAction.STATUS_OVERRIDE,
        actor_user_id=actor_user_id,
        meta={"from": previous.value, "to": target.value, "reason": reason},
    )
    return matter

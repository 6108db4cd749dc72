"""Intake service - draft autosave and submission.

A draft belongs to exactly one matter. Once submitted it is frozen
(final_snapshot) and further autosaves are rejected.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from probatedesk.core.errors import Conflict, NotFound
from probatedesk.db.enums import AuditAction, PathType, RightFitStatus
from probatedesk.db.models import IntakeDraft, Matter, ResumeToken
from probatedesk.services import (
    audit_service,
    document_service,
    journey_service,
    matter_service,
    resume_token_service,
)

logger = logging.getLogger(__name__)

PLACEHOLDER_EMAIL_DOMAIN = "no-email.probatedesk.local"


def _merge_answers(existing: dict[str, Any], answers: dict[str, Any]) -> dict[str, Any]:
    """Section-level merge: dict sections merge key by key, everything else replaces."""
    merged = copy.deepcopy(existing or {})
    for key, value in (answers or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = {**merged[key], **value}
        else:
            merged[key] = value
    return merged


def _draft_email(payload: dict[str, Any]) -> str | None:
    welcome = payload.get("welcome")
    if isinstance(welcome, dict):
        email = (welcome.get("email") or "").strip()
        if "@" in email:
            return email
    return None


def _had_will(payload: dict[str, Any]) -> bool:
    deceased = payload.get("deceased")
    if not isinstance(deceased, dict):
        return False
    value = deceased.get("hadWill")
    return value is True or value == "yes"


def _ensure_open(matter: Matter) -> None:
    if matter.right_fit_status == RightFitStatus.NOT_FIT.value:
        raise Conflict("This matter did not pass screening and cannot progress")


def get_draft(db: Session, matter_id: UUID) -> IntakeDraft | None:
    return db.query(IntakeDraft).filter(IntakeDraft.matter_id == matter_id).first()


def save_draft(
    db: Session,
    matter: Matter,
    answers: dict[str, Any],
    actor_user_id: UUID | None = None,
) -> IntakeDraft:
    """Merge answers into the matter's draft, creating it on first save."""
    _ensure_open(matter)
    draft = get_draft(db, matter.id)
    if draft is not None and draft.submitted_at is not None:
        raise Conflict("Intake has already been submitted")

    if draft is None:
        draft = IntakeDraft(matter_id=matter.id, payload={})
        db.add(draft)

    draft.payload = _merge_answers(draft.payload, answers)
    draft.email = _draft_email(draft.payload) or draft.email
    db.commit()
    db.refresh(draft)

    audit_service.log_event(
        db,
        matter.id,
        AuditAction.INTAKE_DRAFT_SAVED,
        actor_user_id=actor_user_id,
        meta={"sections": sorted((answers or {}).keys())},
    )
    return draft


@dataclass(frozen=True)
class SubmitResult:
    matter: Matter
    draft: IntakeDraft
    token: ResumeToken
    resume_link: str


def submit_intake(
    db: Session,
    client_key: str,
    *,
    matter_id: UUID | None = None,
    answers: dict[str, Any] | None = None,
    user_id: UUID | None = None,
) -> SubmitResult:
    """
    Finalize intake.

    In one transaction: freeze the draft, derive the grant path, seed the
    will search record, initialize the journey and issue a resume token.
    The confirmation email goes out after commit and may fail on its own.
    """
    matter = matter_service.ensure_matter(db, client_key, matter_id=matter_id, user_id=user_id)
    _ensure_open(matter)

    if answers:
        save_draft(db, matter, answers, actor_user_id=user_id)

    draft = get_draft(db, matter.id)
    if draft is None:
        raise NotFound("Draft not found")
    if draft.submitted_at is not None:
        raise Conflict("Intake has already been submitted")

    payload = draft.payload or {}
    real_email = _draft_email(payload)
    token_email = real_email or f"{matter.client_key}@{PLACEHOLDER_EMAIL_DOMAIN}"
    now = datetime.now(timezone.utc)

    deceased = payload.get("deceased") if isinstance(payload.get("deceased"), dict) else {}
    matter.path_type = (PathType.PROBATE if _had_will(payload) else PathType.ADMINISTRATION).value
    matter.deceased_name = (deceased.get("fullName") or "").strip() or None
    draft.submitted_at = now
    draft.final_snapshot = copy.deepcopy(payload)

    document_service.seed_will_search_request(db, matter)
    journey_service.ensure_step_progress(db, matter)
    journey_service.sync_with_portal_status(db, matter, now)
    token = resume_token_service.create_token(db, matter.id, token_email, now)
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(matter)
    db.refresh(token)

    link = resume_token_service.resume_link(token.token)
    logger.info("Intake submitted matter_id=%s path=%s", matter.id, matter.path_type)
    audit_service.log_event(
        db,
        matter.id,
        AuditAction.INTAKE_SUBMITTED,
        actor_user_id=matter.user_id,
        meta={"path_type": matter.path_type},
    )

    if real_email:
        resume_token_service.send_resume_email(
            token, template="intake_submitted", case_code=matter.case_code or ""
        )
    else:
        logger.warning("Draft email missing for matter_id=%s; skipping notification", matter.id)

    return SubmitResult(matter=matter, draft=draft, token=token, resume_link=link)

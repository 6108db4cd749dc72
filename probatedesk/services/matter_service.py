"""Matter service - case store operations.

Matters are created lazily (first eligible screening or first intake touch),
carry a case code assigned once at creation, and are claimed by a user at
most once.
"""

import logging
import uuid
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import or_, text, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from probatedesk.core.errors import NotFound
from probatedesk.core.matter_access import get_active_matter
from probatedesk.core.portal_status import DEFAULT_STATUS, normalize_status
from probatedesk.db.enums import AuditAction, RightFitStatus
from probatedesk.db.models import IntakeDraft, Matter, User
from probatedesk.services import audit_service
from probatedesk.services.eligibility_service import EligibilityAnswers, EligibilityDecision

logger = logging.getLogger(__name__)

CASE_CODE_COUNTER = "case_code"


def next_case_code(db: Session) -> str:
    """
    Allocate the next case code ("0001", "0002", ...).

    Uses atomic INSERT...ON CONFLICT so concurrent allocations never collide.
    Codes are never reused, even for deleted matters.
    """
    result = db.execute(
        text("""
            INSERT INTO case_counters (name, current_value, updated_at)
            VALUES (:name, 1, CURRENT_TIMESTAMP)
            ON CONFLICT (name)
            DO UPDATE SET current_value = case_counters.current_value + 1,
                          updated_at = CURRENT_TIMESTAMP
            RETURNING current_value
        """),
        {"name": CASE_CODE_COUNTER},
    ).scalar_one_or_none()
    if result is None:
        raise RuntimeError("Failed to allocate case code")
    return f"{result:04d}"


def ensure_case_code(db: Session, matter: Matter) -> str:
    """Assign a case code to a legacy matter that has none. Does not commit."""
    if matter.case_code:
        return matter.case_code
    code = next_case_code(db)
    db.execute(
        update(Matter)
        .where(Matter.id == matter.id, Matter.case_code.is_(None))
        .values(case_code=code)
    )
    db.refresh(matter)
    return matter.case_code


def create_matter(
    db: Session,
    *,
    client_key: str | None = None,
    user_id: UUID | None = None,
) -> Matter:
    """Create a matter with a fresh case code. Does not commit."""
    matter = Matter(
        client_key=client_key or uuid.uuid4().hex,
        user_id=user_id,
        case_code=next_case_code(db),
        journey_status={},
    )
    db.add(matter)
    db.flush()
    return matter


def _claim(db: Session, matter: Matter, user_id: UUID) -> Matter:
    """Set user_id once; a matter already claimed by someone else is NotFound."""
    if matter.user_id is None:
        db.execute(
            update(Matter)
            .where(Matter.id == matter.id, Matter.user_id.is_(None))
            .values(user_id=user_id)
        )
        db.refresh(matter)
    if matter.user_id != user_id:
        raise NotFound("Matter not found")
    return matter


def ensure_matter(
    db: Session,
    client_key: str,
    *,
    matter_id: UUID | None = None,
    user_id: UUID | None = None,
) -> Matter:
    """
    Find or create the matter for an intake session.

    Lookup order: explicit matter_id, then the client key. Anonymous callers
    must present the matter's client key; authenticated callers claim an
    unclaimed matter. Commits.
    """
    matter = None
    if matter_id is not None:
        matter = get_active_matter(db, matter_id)
        if matter is None:
            raise NotFound("Matter not found")
    else:
        matter = (
            db.query(Matter)
            .filter(Matter.client_key == client_key, Matter.deleted_at.is_(None))
            .first()
        )

    if matter is not None:
        if user_id is not None:
            _claim(db, matter, user_id)
        elif matter.user_id is not None or matter.client_key != client_key:
            raise NotFound("Matter not found")
        db.commit()
        return matter

    try:
        matter = create_matter(db, client_key=client_key, user_id=user_id)
        db.commit()
    except IntegrityError:
        # Lost the race on the client key; adopt the winner
        db.rollback()
        matter = (
            db.query(Matter)
            .filter(Matter.client_key == client_key, Matter.deleted_at.is_(None))
            .first()
        )
        if matter is None:
            raise
        if user_id is not None:
            _claim(db, matter, user_id)
            db.commit()
    logger.info("Matter created matter_id=%s case_code=%s", matter.id, matter.case_code)
    return matter


def get_latest_matter(db: Session, user_id: UUID) -> Matter | None:
    return (
        db.query(Matter)
        .filter(Matter.user_id == user_id, Matter.deleted_at.is_(None))
        .order_by(Matter.updated_at.desc(), Matter.created_at.desc())
        .first()
    )


def resolve_portal_matter(db: Session, user_id: UUID) -> Matter | None:
    """
    The user's current matter, with case code and journey ledger ensured.

    Returns None when the user has no matter yet.
    """
    from probatedesk.services import journey_service

    matter = get_latest_matter(db, user_id)
    if matter is None:
        return None
    ensure_case_code(db, matter)
    journey_service.ensure_step_progress(db, matter)
    db.commit()
    db.refresh(matter)
    return matter


def record_right_fit(
    db: Session,
    user_id: UUID,
    answers: EligibilityAnswers,
    decision: EligibilityDecision,
) -> Matter:
    """
    Persist a screening verdict on the user's matter.

    A recorded verdict is never overwritten. A fresh matter is started when
    the user has none, when the latest one was already submitted or has moved
    past the default status, or when it already carries a verdict (unless it
    is the same ELIGIBLE result, which is a no-op).
    """
    status = decision.right_fit_status
    matter = get_latest_matter(db, user_id)

    if matter is not None:
        submitted = matter.draft is not None and matter.draft.submitted_at is not None
        if matter.right_fit_status is not None:
            same_eligible = (
                matter.right_fit_status == RightFitStatus.ELIGIBLE.value
                and status == RightFitStatus.ELIGIBLE
            )
            if same_eligible and not submitted:
                return matter
            matter = None
        elif submitted or normalize_status(matter.portal_status) != DEFAULT_STATUS:
            # NOT_FIT is only legal at the default status
            matter = None

    if matter is None:
        matter = create_matter(db, user_id=user_id)

    matter.right_fit_status = status.value
    matter.right_fit_answers = answers.as_dict()
    matter.right_fit_reasons = list(decision.reasons)
    matter.right_fit_completed_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(matter)

    audit_service.log_event(
        db,
        matter.id,
        AuditAction.RIGHT_FIT_RECORDED,
        actor_user_id=user_id,
        meta={"status": status.value, "reason_count": len(decision.reasons)},
    )
    return matter


def list_matters(
    db: Session,
    *,
    q: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[Matter], int]:
    """Ops search by case code, client email or deceased name. Newest first."""
    query = (
        db.query(Matter)
        .outerjoin(User, User.id == Matter.user_id)
        .outerjoin(IntakeDraft, IntakeDraft.matter_id == Matter.id)
        .filter(Matter.deleted_at.is_(None))
    )
    if q and q.strip():
        pattern = f"%{q.strip()}%"
        query = query.filter(
            or_(
                Matter.case_code.ilike(pattern),
                Matter.deceased_name.ilike(pattern),
                User.email.ilike(pattern),
                IntakeDraft.email.ilike(pattern),
            )
        )
    total = query.count()
    items = (
        query.order_by(Matter.created_at.desc(), Matter.id)
        .offset(offset)
        .limit(limit)
        .all()
    )
    return items, total


def soft_delete_matter(db: Session, matter: Matter, actor_user_id: UUID) -> Matter:
    """Hide a matter from every lookup. Its client key becomes reusable."""
    matter.deleted_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(matter)
    logger.info("Matter soft-deleted matter_id=%s by=%s", matter.id, actor_user_id)
    audit_service.log_event(db, matter.id, AuditAction.MATTER_DELETED, actor_user_id=actor_user_id)
    return matter

"""Resume token service - email links that reattach a client to a matter.

Tokens live RESUME_TOKEN_TTL_HOURS (24) from issuance. Redemption is a pure
lookup and may be repeated until expiry; it never consumes the token.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from probatedesk.core.config import settings
from probatedesk.core.errors import Expired, NotFound, RateLimited
from probatedesk.core.rate_limit import ResumeLinkThrottle
from probatedesk.core.security import generate_resume_token
from probatedesk.db.enums import AuditAction
from probatedesk.db.models import IntakeDraft, Matter, ResumeToken, User
from probatedesk.services import audit_service, email_service
from probatedesk.utils.datetime_parsing import ensure_utc

logger = logging.getLogger(__name__)

INVALID_LINK_DETAIL = "This link is invalid. Please start again to get a new one."


@dataclass(frozen=True)
class Redemption:
    matter_id: UUID
    email: str
    expires_at: datetime
    draft_snapshot: dict[str, Any]
    submitted: bool


def resume_link(token: str) -> str:
    return f"{settings.app_url}/resume/{token}"


def create_token(db: Session, matter_id: UUID, email: str, now: datetime | None = None) -> ResumeToken:
    """Add a token row. Does not commit."""
    now = now or datetime.now(timezone.utc)
    token = ResumeToken(
        token=generate_resume_token(),
        matter_id=matter_id,
        email=email,
        expires_at=now + timedelta(hours=settings.RESUME_TOKEN_TTL_HOURS),
    )
    db.add(token)
    db.flush()
    return token


def send_resume_email(token: ResumeToken, template: str = "resume_token", **variables: Any) -> bool:
    """Best-effort delivery; a failure never invalidates the token."""
    result = email_service.send_template_email(
        to=token.email,
        template=template,
        variables={
            "resume_link": resume_link(token.token),
            "expires_hours": settings.RESUME_TOKEN_TTL_HOURS,
            **variables,
        },
    )
    if not result.success:
        logger.warning("Resume email failed matter_id=%s: %s", token.matter_id, result.error)
    return result.success


def issue(
    db: Session,
    matter_id: UUID,
    email: str,
    actor_user_id: UUID | None = None,
    now: datetime | None = None,
) -> ResumeToken:
    """Create a token bound to (matter, email), commit, then email the link."""
    token = create_token(db, matter_id, email, now)
    db.commit()
    db.refresh(token)

    audit_service.log_event(
        db,
        matter_id,
        AuditAction.RESUME_TOKEN_ISSUED,
        actor_user_id=actor_user_id,
        meta={"email": audit_service.hash_email(email)},
    )
    send_resume_email(token)
    return token


def redeem(db: Session, token: str, now: datetime | None = None) -> Redemption:
    """
    Look up a token and return its matter with the current draft.

    Raises:
        NotFound: unknown token, or its matter/draft no longer exists
        Expired: now is past expires_at
    """
    now = now or datetime.now(timezone.utc)
    record = db.query(ResumeToken).filter(ResumeToken.token == token).first()
    if record is None:
        raise NotFound(INVALID_LINK_DETAIL)

    expires_at = ensure_utc(record.expires_at)
    if now > expires_at:
        raise Expired()

    matter = (
        db.query(Matter)
        .filter(Matter.id == record.matter_id, Matter.deleted_at.is_(None))
        .first()
    )
    draft = (
        db.query(IntakeDraft).filter(IntakeDraft.matter_id == record.matter_id).first()
        if matter is not None
        else None
    )
    if matter is None or draft is None:
        raise NotFound(INVALID_LINK_DETAIL)

    audit_service.log_event(db, matter.id, AuditAction.RESUME_TOKEN_REDEEMED)
    return Redemption(
        matter_id=matter.id,
        email=record.email,
        expires_at=expires_at,
        draft_snapshot=dict(draft.payload or {}),
        submitted=draft.submitted_at is not None,
    )


def request_link(db: Session, email: str, throttle: ResumeLinkThrottle) -> bool:
    """
    Email a fresh resume link for the address's most recent open matter.

    Returns whether a link was sent. Callers should answer the same way
    either way so addresses cannot be enumerated.

    Raises:
        RateLimited: too many requests for this address
    """
    normalized = email.strip().lower()
    if not throttle.hit(normalized):
        raise RateLimited()

    matter = (
        db.query(Matter)
        .outerjoin(IntakeDraft, IntakeDraft.matter_id == Matter.id)
        .outerjoin(User, User.id == Matter.user_id)
        .filter(
            Matter.deleted_at.is_(None),
            (func.lower(IntakeDraft.email) == normalized) | (func.lower(User.email) == normalized),
        )
        .order_by(Matter.updated_at.desc())
        .first()
    )
    if matter is None:
        logger.info("Resume link requested for unknown address %s", audit_service.hash_email(normalized))
        return False

    issue(db, matter.id, normalized)
    return True

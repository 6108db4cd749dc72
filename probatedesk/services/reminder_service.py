"""Reminder service - follow-up nudges after mailing deadlines.

One reminder row per (matter, type); re-marking a mailing moves the due date
and re-arms the reminder. send_due_reminders is run from the CLI.
"""

import logging
from datetime import datetime, timedelta, timezone
from uuid import UUID

from sqlalchemy.orm import Session

from probatedesk.core.config import settings
from probatedesk.db.enums import ReminderType
from probatedesk.db.models import IntakeDraft, Matter, Reminder, User
from probatedesk.services import email_service, sms_service
from probatedesk.services.upsert import upsert_current

logger = logging.getLogger(__name__)

REMINDER_COPY: dict[ReminderType, tuple[str, str]] = {
    ReminderType.WILL_SEARCH_FOLLOWUP: (
        "Check on your will search",
        "It has been {days} days since you mailed the wills notice search. "
        "If the certificate has arrived, upload it in your portal.",
    ),
    ReminderType.NOTICES_WAIT: (
        "Your notice waiting period is over",
        "The {days}-day waiting period after mailing notices has passed. "
        "You can now continue to probate filing.",
    ),
}


def schedule_reminder(
    db: Session,
    matter_id: UUID,
    reminder_type: ReminderType,
    anchor: datetime,
) -> Reminder:
    """Upsert the reminder for (matter, type), due REMINDER_DELAY_DAYS after anchor. Does not commit."""
    due_at = anchor + timedelta(days=settings.REMINDER_DELAY_DAYS)
    return upsert_current(
        db,
        Reminder,
        key={"matter_id": matter_id, "type": reminder_type.value},
        values={"due_at": due_at, "sent_at": None},
    )


def list_reminders(db: Session, matter_id: UUID) -> list[Reminder]:
    return db.query(Reminder).filter(Reminder.matter_id == matter_id).order_by(Reminder.due_at).all()


def _recipient(db: Session, matter: Matter) -> tuple[str | None, str | None]:
    """Email and phone for a matter: account first, then intake draft."""
    email = phone = None
    if matter.user_id:
        user = db.get(User, matter.user_id)
        if user:
            email, phone = user.email, user.phone
    draft = db.query(IntakeDraft).filter(IntakeDraft.matter_id == matter.id).first()
    if draft:
        email = email or draft.email
        executor = (draft.payload or {}).get("executor") or {}
        phone = phone or executor.get("phone")
    return email, phone


def send_due_reminders(db: Session, now: datetime | None = None) -> int:
    """
    Send every unsent reminder whose due date has passed.

    A reminder is stamped sent only when its email went out; failures stay
    pending for the next run. Returns the number sent.
    """
    now = now or datetime.now(timezone.utc)
    due = (
        db.query(Reminder)
        .join(Matter, Matter.id == Reminder.matter_id)
        .filter(
            Reminder.sent_at.is_(None),
            Reminder.due_at <= now,
            Matter.deleted_at.is_(None),
        )
        .order_by(Reminder.due_at)
        .all()
    )

    sent = 0
    for reminder in due:
        matter = db.get(Matter, reminder.matter_id)
        email, phone = _recipient(db, matter)
        if not email:
            logger.warning("Reminder %s has no recipient email; skipping", reminder.id)
            continue

        try:
            reminder_type = ReminderType(reminder.type)
        except ValueError:
            logger.warning("Unknown reminder type %r on reminder %s", reminder.type, reminder.id)
            continue
        subject, body = REMINDER_COPY[reminder_type]
        body = body.format(days=settings.REMINDER_DELAY_DAYS)

        result = email_service.send_template_email(
            to=email,
            template="reminder",
            variables={
                "subject": subject,
                "body": body,
                "case_code": matter.case_code or "",
                "portal_url": f"{settings.app_url}/portal",
            },
        )
        if not result.success:
            logger.warning("Reminder %s email failed: %s", reminder.id, result.error)
            continue

        if phone:
            sms_service.send_sms(to=phone, body=f"ProbateDesk: {subject}. {settings.app_url}/portal")

        reminder.sent_at = now
        db.commit()
        sent += 1

    logger.info("Sent %d of %d due reminders", sent, len(due))
    return sent

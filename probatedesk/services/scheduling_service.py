"""Callback scheduling - ops publish slots, clients book a callback.

A slot carries at most one active (scheduled) booking; the database
enforces it with a partial unique index so concurrent bookings cannot both
win.
"""

import logging
from datetime import date, datetime, time, timezone
from uuid import UUID
from zoneinfo import ZoneInfo

from sqlalchemy import and_, exists
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from probatedesk.core.errors import Conflict, NotFound, ValidationError
from probatedesk.db.enums import AuditAction, CallbackStatus
from probatedesk.db.models import AvailabilitySlot, CallbackSchedule, Matter
from probatedesk.services import audit_service
from probatedesk.services.upsert import insert_missing

logger = logging.getLogger(__name__)

# Slots are published in BC local time
SLOT_TIMEZONE = ZoneInfo("America/Vancouver")


def _active_booking_clause():
    return (
        exists()
        .where(
            and_(
                CallbackSchedule.slot_id == AvailabilitySlot.id,
                CallbackSchedule.status == CallbackStatus.SCHEDULED.value,
            )
        )
        .correlate(AvailabilitySlot)
    )


def slot_starts_at(slot: AvailabilitySlot) -> datetime:
    """Slot start as an aware UTC datetime."""
    local = datetime.combine(slot.slot_date, slot.slot_time, tzinfo=SLOT_TIMEZONE)
    return local.astimezone(timezone.utc)


def create_slots(
    db: Session,
    slots: list[tuple[date, time]],
    actor_user_id: UUID | None = None,
) -> int:
    """Publish slots; existing (date, time) pairs are skipped. Returns how many were new."""
    if not slots:
        return 0
    before = db.query(AvailabilitySlot).count()
    insert_missing(
        db,
        AvailabilitySlot,
        [
            {"slot_date": d, "slot_time": t, "created_by_user_id": actor_user_id}
            for d, t in dict.fromkeys(slots)
        ],
        index_elements=["slot_date", "slot_time"],
    )
    db.commit()
    created = db.query(AvailabilitySlot).count() - before
    logger.info("Availability slots published: %d new of %d", created, len(slots))
    return created


def list_slots(
    db: Session,
    start: date | None = None,
    end: date | None = None,
    *,
    open_only: bool = False,
) -> list[tuple[AvailabilitySlot, bool]]:
    """Slots in range with a booked flag, ordered by date and time."""
    booked = _active_booking_clause()
    query = db.query(AvailabilitySlot, booked.label("booked"))
    if start is not None:
        query = query.filter(AvailabilitySlot.slot_date >= start)
    if end is not None:
        query = query.filter(AvailabilitySlot.slot_date <= end)
    if open_only:
        query = query.filter(~booked)
    rows = query.order_by(AvailabilitySlot.slot_date, AvailabilitySlot.slot_time).all()
    return [(slot, bool(is_booked)) for slot, is_booked in rows]


def delete_slot(db: Session, slot_id: UUID) -> None:
    """Remove an unbooked slot. Deleting a slot with an active booking is a Conflict."""
    slot = db.get(AvailabilitySlot, slot_id)
    if slot is None:
        raise NotFound("Slot not found")
    active = (
        db.query(CallbackSchedule)
        .filter(
            CallbackSchedule.slot_id == slot_id,
            CallbackSchedule.status == CallbackStatus.SCHEDULED.value,
        )
        .first()
    )
    if active is not None:
        raise Conflict("This slot has an active booking")
    db.delete(slot)
    db.commit()


def book_callback(
    db: Session,
    matter: Matter,
    user_id: UUID,
    slot_id: UUID,
    phone: str,
    notes: str | None = None,
) -> CallbackSchedule:
    """Book a slot for the matter's owner."""
    slot = db.get(AvailabilitySlot, slot_id)
    if slot is None:
        raise Conflict("That time is no longer available")
    starts_at = slot_starts_at(slot)
    if starts_at <= datetime.now(timezone.utc):
        raise Conflict("That time has already passed")

    callback = CallbackSchedule(
        matter_id=matter.id,
        user_id=user_id,
        slot_id=slot.id,
        scheduled_for=starts_at,
        phone=phone,
        notes=notes,
        status=CallbackStatus.SCHEDULED.value,
    )
    db.add(callback)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict("That time is no longer available")
    db.refresh(callback)

    audit_service.log_event(
        db,
        matter.id,
        AuditAction.CALLBACK_BOOKED,
        actor_user_id=user_id,
        meta={"callback_id": str(callback.id), "slot_id": str(slot.id)},
    )
    return callback


def list_callbacks(db: Session, matter_id: UUID) -> list[CallbackSchedule]:
    return (
        db.query(CallbackSchedule)
        .filter(CallbackSchedule.matter_id == matter_id)
        .order_by(CallbackSchedule.scheduled_for.desc())
        .all()
    )


def list_all_callbacks(db: Session, status: str | None = None) -> list[CallbackSchedule]:
    query = db.query(CallbackSchedule)
    if status:
        query = query.filter(CallbackSchedule.status == status)
    return query.order_by(CallbackSchedule.scheduled_for).all()


def update_callback_status(db: Session, callback_id: UUID, status: str) -> CallbackSchedule:
    """Ops close out a scheduled callback (completed, cancelled, no_show)."""
    try:
        target = CallbackStatus(status)
    except ValueError:
        raise ValidationError("Unknown callback status", fields={"status": f"Unknown status '{status}'"})
    if target == CallbackStatus.SCHEDULED:
        raise ValidationError("Callbacks cannot be re-opened", fields={"status": "Pick a closing status"})

    callback = db.get(CallbackSchedule, callback_id)
    if callback is None:
        raise NotFound("Callback not found")
    if callback.status != CallbackStatus.SCHEDULED.value:
        raise Conflict(f"Callback is already {callback.status}")

    callback.status = target.value
    db.commit()
    db.refresh(callback)
    return callback

"""Client scheduling router - callback booking and court requisitions."""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from probatedesk.core.deps import get_current_session, get_db, require_csrf_header
from probatedesk.core.matter_access import get_owned_matter
from probatedesk.db.models import AvailabilitySlot
from probatedesk.schemas.auth import UserSession
from probatedesk.schemas.scheduling import (
    CallbackBookRequest,
    CallbackRead,
    RequisitionCreate,
    RequisitionRead,
    RequisitionUpdate,
    SlotRead,
)
from probatedesk.services import requisition_service, scheduling_service

router = APIRouter()


def slot_to_read(slot: AvailabilitySlot, booked: bool) -> SlotRead:
    return SlotRead(
        id=slot.id,
        slot_date=slot.slot_date,
        slot_time=slot.slot_time,
        starts_at=scheduling_service.slot_starts_at(slot),
        booked=booked,
    )


# =============================================================================
# Callbacks
# =============================================================================

@router.get("/availability", response_model=list[SlotRead])
def list_open_slots(
    start: date | None = Query(None),
    end: date | None = Query(None),
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Open callback slots."""
    rows = scheduling_service.list_slots(db, start, end, open_only=True)
    return [slot_to_read(slot, booked) for slot, booked in rows]


@router.get("/matters/{matter_id}/callbacks", response_model=list[CallbackRead])
def list_callbacks(
    matter_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    matter = get_owned_matter(db, matter_id, session.user_id)
    return [CallbackRead.model_validate(c) for c in scheduling_service.list_callbacks(db, matter.id)]


@router.post(
    "/matters/{matter_id}/callbacks",
    response_model=CallbackRead,
    dependencies=[Depends(require_csrf_header)],
)
def book_callback(
    matter_id: UUID,
    data: CallbackBookRequest,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Book an open slot. Answers 409 when someone else got there first."""
    matter = get_owned_matter(db, matter_id, session.user_id)
    callback = scheduling_service.book_callback(
        db, matter, session.user_id, data.slot_id, data.phone, data.notes
    )
    return CallbackRead.model_validate(callback)


# =============================================================================
# Requisitions
# =============================================================================

@router.get("/matters/{matter_id}/requisitions", response_model=list[RequisitionRead])
def list_requisitions(
    matter_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    matter = get_owned_matter(db, matter_id, session.user_id)
    return [RequisitionRead.model_validate(r) for r in requisition_service.list_requisitions(db, matter.id)]


@router.post(
    "/matters/{matter_id}/requisitions",
    response_model=RequisitionRead,
    dependencies=[Depends(require_csrf_header)],
)
def create_requisition(
    matter_id: UUID,
    data: RequisitionCreate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    matter = get_owned_matter(db, matter_id, session.user_id)
    requisition = requisition_service.create_requisition(
        db,
        matter,
        data.title,
        details=data.details,
        received_at=data.received_at,
        actor_user_id=session.user_id,
    )
    return RequisitionRead.model_validate(requisition)


@router.patch(
    "/matters/{matter_id}/requisitions/{requisition_id}",
    response_model=RequisitionRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_requisition(
    matter_id: UUID,
    requisition_id: UUID,
    data: RequisitionUpdate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    matter = get_owned_matter(db, matter_id, session.user_id)
    requisition = requisition_service.update_requisition(
        db,
        matter,
        requisition_id,
        status=data.status,
        response=data.response,
        details=data.details,
        actor_user_id=session.user_id,
    )
    return RequisitionRead.model_validate(requisition)

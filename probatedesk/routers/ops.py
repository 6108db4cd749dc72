"""Ops console router - matter search, status corrections, callback slots.

Every endpoint requires the ops role.
"""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from probatedesk.core.deps import get_db, require_csrf_header, require_roles
from probatedesk.core.matter_access import get_matter_for_ops
from probatedesk.db.enums import Role
from probatedesk.routers.documents import documents_read
from probatedesk.routers.portal import matter_status_read
from probatedesk.routers.scheduling import slot_to_read
from probatedesk.schemas.auth import UserSession
from probatedesk.schemas.matter import (
    AuditEntryRead,
    MatterListResponse,
    MatterStatusRead,
    MatterSummary,
    StatusOverrideRequest,
)
from probatedesk.schemas.ops import OpsMatterDetail
from probatedesk.schemas.scheduling import (
    CallbackRead,
    CallbackStatusUpdate,
    RequisitionRead,
    SlotCreateRequest,
    SlotCreateResponse,
    SlotRead,
)
from probatedesk.services import (
    audit_service,
    document_service,
    matter_service,
    portal_status_service,
    requisition_service,
    scheduling_service,
)

router = APIRouter()

require_ops = require_roles([Role.OPS])


# =============================================================================
# Matters
# =============================================================================

@router.get("/matters", response_model=MatterListResponse)
def list_matters(
    q: str | None = Query(None, max_length=120),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    session: UserSession = Depends(require_ops),
    db: Session = Depends(get_db),
):
    items, total = matter_service.list_matters(db, q=q, limit=limit, offset=offset)
    return MatterListResponse(
        items=[MatterSummary.model_validate(m) for m in items],
        total=total,
    )


@router.get("/matters/{matter_id}", response_model=OpsMatterDetail)
def get_matter(
    matter_id: UUID,
    session: UserSession = Depends(require_ops),
    db: Session = Depends(get_db),
):
    matter = get_matter_for_ops(db, matter_id)
    return OpsMatterDetail(
        summary=MatterSummary.model_validate(matter),
        status=matter_status_read(matter),
        documents=documents_read(document_service.list_documents(db, matter.id)),
        callbacks=[CallbackRead.model_validate(c) for c in scheduling_service.list_callbacks(db, matter.id)],
        requisitions=[RequisitionRead.model_validate(r) for r in requisition_service.list_requisitions(db, matter.id)],
        audit=[AuditEntryRead.model_validate(e) for e in audit_service.list_events(db, matter.id)],
    )


@router.post(
    "/matters/{matter_id}/status-override",
    response_model=MatterStatusRead,
    dependencies=[Depends(require_csrf_header)],
)
def override_status(
    matter_id: UUID,
    data: StatusOverrideRequest,
    session: UserSession = Depends(require_ops),
    db: Session = Depends(get_db),
):
    """Set any status, backward included. Audited with the reason given."""
    matter = get_matter_for_ops(db, matter_id)
    matter = portal_status_service.override_status(
        db, matter, data.status, session.user_id, reason=data.reason
    )
    return matter_status_read(matter)


@router.delete(
    "/matters/{matter_id}",
    status_code=204,
    dependencies=[Depends(require_csrf_header)],
)
def delete_matter(
    matter_id: UUID,
    session: UserSession = Depends(require_ops),
    db: Session = Depends(get_db),
):
    matter = get_matter_for_ops(db, matter_id)
    matter_service.soft_delete_matter(db, matter, session.user_id)


# =============================================================================
# Availability + callbacks
# =============================================================================

@router.get("/slots", response_model=list[SlotRead])
def list_slots(
    start: date | None = Query(None),
    end: date | None = Query(None),
    session: UserSession = Depends(require_ops),
    db: Session = Depends(get_db),
):
    rows = scheduling_service.list_slots(db, start, end)
    return [slot_to_read(slot, booked) for slot, booked in rows]


@router.post(
    "/slots",
    response_model=SlotCreateResponse,
    dependencies=[Depends(require_csrf_header)],
)
def create_slots(
    data: SlotCreateRequest,
    session: UserSession = Depends(require_ops),
    db: Session = Depends(get_db),
):
    created = scheduling_service.create_slots(
        db,
        [(s.slot_date, s.slot_time) for s in data.slots],
        actor_user_id=session.user_id,
    )
    return SlotCreateResponse(created=created)


@router.delete(
    "/slots/{slot_id}",
    status_code=204,
    dependencies=[Depends(require_csrf_header)],
)
def delete_slot(
    slot_id: UUID,
    session: UserSession = Depends(require_ops),
    db: Session = Depends(get_db),
):
    scheduling_service.delete_slot(db, slot_id)


@router.get("/callbacks", response_model=list[CallbackRead])
def list_callbacks(
    status: str | None = Query(None),
    session: UserSession = Depends(require_ops),
    db: Session = Depends(get_db),
):
    return [CallbackRead.model_validate(c) for c in scheduling_service.list_all_callbacks(db, status)]


@router.patch(
    "/callbacks/{callback_id}",
    response_model=CallbackRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_callback(
    callback_id: UUID,
    data: CallbackStatusUpdate,
    session: UserSession = Depends(require_ops),
    db: Session = Depends(get_db),
):
    callback = scheduling_service.update_callback_status(db, callback_id, data.status)
    return CallbackRead.model_validate(callback)

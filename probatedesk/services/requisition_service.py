"""Court requisition tracking (owner-scoped)."""

from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy.orm import Session

from probatedesk.core.errors import NotFound, ValidationError
from probatedesk.db.enums import AuditAction, RequisitionStatus
from probatedesk.db.models import Matter, Requisition
from probatedesk.services import audit_service
from probatedesk.utils.datetime_parsing import parse_optional_datetime


def list_requisitions(db: Session, matter_id: UUID) -> list[Requisition]:
    return (
        db.query(Requisition)
        .filter(Requisition.matter_id == matter_id)
        .order_by(Requisition.created_at.desc(), Requisition.id)
        .all()
    )


def create_requisition(
    db: Session,
    matter: Matter,
    title: str,
    details: str | None = None,
    received_at: str | None = None,
    actor_user_id: UUID | None = None,
) -> Requisition:
    if not title or not title.strip():
        raise ValidationError("Title is required", fields={"title": "Required"})
    requisition = Requisition(
        matter_id=matter.id,
        title=title.strip(),
        details=details,
        received_at=parse_optional_datetime(received_at) or datetime.now(timezone.utc),
        status=RequisitionStatus.OPEN.value,
    )
    db.add(requisition)
    db.commit()
    db.refresh(requisition)

    audit_service.log_event(
        db,
        matter.id,
        AuditAction.REQUISITION_CREATED,
        actor_user_id=actor_user_id,
        meta={"requisition_id": str(requisition.id)},
    )
    return requisition


def update_requisition(
    db: Session,
    matter: Matter,
    requisition_id: UUID,
    *,
    status: str | None = None,
    response: str | None = None,
    details: str | None = None,
    actor_user_id: UUID | None = None,
) -> Requisition:
    """Patch a requisition. Resolving stamps resolved_at; re-opening clears it."""
    requisition = (
        db.query(Requisition)
        .filter(Requisition.id == requisition_id, Requisition.matter_id == matter.id)
        .first()
    )
    if requisition is None:
        raise NotFound("Requisition not found")

    if status is not None:
        try:
            target = RequisitionStatus(status)
        except ValueError:
            raise ValidationError(
                "Unknown requisition status", fields={"status": f"Unknown status '{status}'"}
            )
        if target == RequisitionStatus.RESOLVED and requisition.status != target.value:
            requisition.resolved_at = datetime.now(timezone.utc)
        elif target != RequisitionStatus.RESOLVED:
            requisition.resolved_at = None
        requisition.status = target.value
    if response is not None:
        requisition.response = response
    if details is not None:
        requisition.details = details

    db.commit()
    db.refresh(requisition)

    audit_service.log_event(
        db,
        matter.id,
        AuditAction.REQUISITION_UPDATED,
        actor_user_id=actor_user_id,
        meta={"requisition_id": str(requisition.id), "status": requisition.status},
    )
    return requisition

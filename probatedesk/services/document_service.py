"""Document generation orchestrator.

For a (matter, kind) key there is exactly one current phase record. A
generation call renders and stores the artifact first, then upserts the
record and advances the portal marker in one transaction. Render or storage
failure aborts before any database write; a failed commit deletes the
artifact it just stored.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable
from uuid import UUID

from sqlalchemy.orm import Session

from probatedesk.core.config import settings
from probatedesk.core.errors import Conflict, NotFound, UpstreamFailure, ValidationError
from probatedesk.core.matter_access import get_owned_matter
from probatedesk.core.structured_logging import matter_log_context
from probatedesk.db.enums import (
    AuditAction,
    DocumentKind,
    DocumentStatus,
    PortalStatus,
    RightFitStatus,
    ScheduleKind,
)
from probatedesk.db.models import (
    GeneratedPack,
    IntakeDraft,
    Matter,
    SupplementalSchedule,
    User,
    WillSearchRequest,
)
from probatedesk.services import (
    audit_service,
    email_service,
    pdf_service,
    portal_status_service,
    storage_service,
)
from probatedesk.services.upsert import insert_missing, upsert_current

logger = logging.getLogger(__name__)


# =============================================================================
# Payload helpers
# =============================================================================

def _section(payload: dict, name: str) -> dict:
    value = payload.get(name)
    return value if isinstance(value, dict) else {}


def _executors(payload: dict) -> list[dict]:
    listed = payload.get("executors")
    if isinstance(listed, list) and listed:
        return [e for e in listed if isinstance(e, dict)]
    single = _section(payload, "executor")
    return [single] if single else []


def _beneficiaries(payload: dict) -> list[dict]:
    listed = payload.get("beneficiaries")
    return [b for b in listed if isinstance(b, dict)] if isinstance(listed, list) else []


def _person_line(person: dict) -> dict[str, Any]:
    return {
        "name": person.get("fullName") or person.get("name"),
        "relationship": person.get("relationToDeceased") or person.get("relationship"),
        "address": person.get("address") or person.get("city"),
    }


def _header(matter: Matter, payload: dict) -> dict[str, Any]:
    deceased = _section(payload, "deceased")
    return {
        "case_code": matter.case_code,
        "deceased_name": deceased.get("fullName") or matter.deceased_name,
    }


def _will_search_data(matter: Matter, payload: dict, schedule_kind: ScheduleKind | None) -> dict:
    executor = _section(payload, "executor")
    deceased = _section(payload, "deceased")
    return {
        **_header(matter, payload),
        "sections": {
            "Applicant": {
                "full_name": executor.get("fullName"),
                "email": _section(payload, "welcome").get("email"),
                "phone": executor.get("phone"),
                "city": executor.get("city"),
                "relationship": executor.get("relationToDeceased"),
            },
            "Deceased": {
                "full_name": deceased.get("fullName"),
                "date_of_death": deceased.get("dateOfDeath"),
                "city_province": deceased.get("cityProvince"),
                "had_will": deceased.get("hadWill"),
            },
        },
    }


def _probate_pack_data(matter: Matter, payload: dict, schedule_kind: ScheduleKind | None) -> dict:
    deceased = _section(payload, "deceased")
    will = _section(payload, "will")
    return {
        **_header(matter, payload),
        "sections": {
            "Grant type": {"path": matter.path_type},
            "Deceased": {
                "full_name": deceased.get("fullName"),
                "date_of_death": deceased.get("dateOfDeath"),
                "city_province": deceased.get("cityProvince"),
            },
            "Will": {
                "location": will.get("willLocation"),
                "estate_value_range": will.get("estateValueRange"),
                "real_property": will.get("anyRealProperty"),
            },
            "Executors": [_person_line(e) for e in _executors(payload)],
            "Beneficiaries": [_person_line(b) for b in _beneficiaries(payload)],
        },
    }


def _schedule_data(matter: Matter, payload: dict, schedule_kind: ScheduleKind | None) -> dict:
    if schedule_kind == ScheduleKind.EXECUTORS:
        rows = [_person_line(e) for e in _executors(payload)]
    else:
        rows = [_person_line(b) for b in _beneficiaries(payload)]
    return {
        **_header(matter, payload),
        "schedule_kind": schedule_kind.value if schedule_kind else None,
        "sections": {schedule_kind.value.title() if schedule_kind else "Schedule": rows},
    }


# =============================================================================
# Kind registry
# =============================================================================

@dataclass(frozen=True)
class DocumentKindSpec:
    """How one document kind is built and where its current record lives."""

    kind: DocumentKind
    label: str
    model: type
    build_data: Callable[[Matter, dict, ScheduleKind | None], dict]
    ready_status: PortalStatus | None = None
    keyed_by_schedule: bool = False
    notify: bool = False


DOCUMENT_KINDS: dict[DocumentKind, DocumentKindSpec] = {
    DocumentKind.WILL_SEARCH_PACKET: DocumentKindSpec(
        kind=DocumentKind.WILL_SEARCH_PACKET,
        label="Will search packet",
        model=WillSearchRequest,
        build_data=_will_search_data,
        ready_status=PortalStatus.WILL_SEARCH_READY,
        notify=True,
    ),
    DocumentKind.PROBATE_PACK: DocumentKindSpec(
        kind=DocumentKind.PROBATE_PACK,
        label="Probate package",
        model=GeneratedPack,
        build_data=_probate_pack_data,
        ready_status=PortalStatus.PROBATE_PACKAGE_READY,
        notify=True,
    ),
    DocumentKind.SUPPLEMENTAL_SCHEDULE: DocumentKindSpec(
        kind=DocumentKind.SUPPLEMENTAL_SCHEDULE,
        label="Supplemental schedule",
        model=SupplementalSchedule,
        build_data=_schedule_data,
        keyed_by_schedule=True,
    ),
}


def _record_key(spec: DocumentKindSpec, matter_id: UUID, schedule_kind: ScheduleKind | None) -> dict:
    key: dict[str, Any] = {"matter_id": matter_id}
    if spec.keyed_by_schedule:
        key["kind"] = schedule_kind.value
    return key


def get_current_record(
    db: Session,
    matter_id: UUID,
    kind: DocumentKind,
    schedule_kind: ScheduleKind | None = None,
):
    spec = DOCUMENT_KINDS[kind]
    query = db.query(spec.model).filter(spec.model.matter_id == matter_id)
    if spec.keyed_by_schedule:
        query = query.filter(spec.model.kind == schedule_kind.value)
    return query.first()


def list_documents(db: Session, matter_id: UUID) -> dict[str, Any]:
    """Current phase records for a matter."""
    return {
        "will_search": get_current_record(db, matter_id, DocumentKind.WILL_SEARCH_PACKET),
        "probate_pack": get_current_record(db, matter_id, DocumentKind.PROBATE_PACK),
        "schedules": (
            db.query(SupplementalSchedule)
            .filter(SupplementalSchedule.matter_id == matter_id)
            .order_by(SupplementalSchedule.kind)
            .all()
        ),
    }


def seed_will_search_request(db: Session, matter: Matter) -> None:
    """Create the DRAFT will search record at intake submit, if none. Does not commit."""
    insert_missing(
        db,
        WillSearchRequest,
        [{"matter_id": matter.id, "status": DocumentStatus.DRAFT.value, "data": {}}],
        index_elements=["matter_id"],
    )


# =============================================================================
# Orchestration
# =============================================================================

def _validate(
    db: Session,
    matter: Matter,
    spec: DocumentKindSpec,
    schedule_kind: ScheduleKind | str | None,
) -> tuple[IntakeDraft, ScheduleKind | None]:
    fields: dict[str, str] = {}
    parsed_schedule: ScheduleKind | None = None
    if spec.keyed_by_schedule:
        if schedule_kind is None:
            fields["schedule_kind"] = "Required for supplemental schedules"
        else:
            try:
                parsed_schedule = ScheduleKind(schedule_kind)
            except ValueError:
                fields["schedule_kind"] = f"Unknown schedule kind '{schedule_kind}'"

    draft = db.query(IntakeDraft).filter(IntakeDraft.matter_id == matter.id).first()
    if draft is None:
        fields["draft"] = "Complete intake before generating documents"

    if fields:
        raise ValidationError("Invalid document request", fields=fields)

    if matter.right_fit_status == RightFitStatus.NOT_FIT.value:
        raise Conflict("This matter did not pass screening and cannot progress")
    return draft, parsed_schedule


def _render_and_store(spec: DocumentKindSpec, matter: Matter, data: dict, schedule_kind: ScheduleKind | None):
    render_kind = spec.kind.value
    if schedule_kind is not None:
        render_kind = f"{render_kind}:{schedule_kind.value}"
    try:
        pdf_bytes = pdf_service.render(render_kind, data)
    except Exception as exc:
        logger.error("Render failed matter_id=%s kind=%s", matter.id, render_kind, exc_info=True)
        raise UpstreamFailure("Document rendering failed. Please try again.") from exc
    if not pdf_bytes:
        raise UpstreamFailure("Document rendering failed. Please try again.")

    key = storage_service.build_key(matter.id, render_kind.replace(":", "-"))
    try:
        return storage_service.store(key, pdf_bytes)
    except Exception as exc:
        logger.error("Storage failed matter_id=%s key=%s", matter.id, key, exc_info=True)
        raise UpstreamFailure("Document storage failed. Please try again.") from exc


def _discard(key: str) -> None:
    try:
        storage_service.delete(key)
    except Exception:
        logger.warning("Failed to delete artifact %s", key, exc_info=True)


def generate_document(
    db: Session,
    matter: Matter,
    kind: DocumentKind,
    *,
    schedule_kind: ScheduleKind | str | None = None,
    actor_user_id: UUID | None = None,
):
    """
    Generate (or regenerate) the current artifact for (matter, kind).

    Returns the single current phase record.

    Raises:
        ValidationError: bad schedule kind, or no intake draft yet
        Conflict: matter failed screening
        UpstreamFailure: render or storage failed (nothing committed)
    """
    spec = DOCUMENT_KINDS[kind]
    draft, parsed_schedule = _validate(db, matter, spec, schedule_kind)
    now = datetime.now(timezone.utc)

    data = spec.build_data(matter, draft.payload or {}, parsed_schedule)
    stored = _render_and_store(spec, matter, data, parsed_schedule)

    previous = get_current_record(db, matter.id, kind, parsed_schedule)
    previous_key = previous.storage_key if previous is not None else None

    try:
        record = upsert_current(
            db,
            spec.model,
            key=_record_key(spec, matter.id, parsed_schedule),
            values={
                "status": DocumentStatus.GENERATED.value,
                "pdf_url": stored.url,
                "storage_key": stored.key,
                "data": data,
                "generated_at": now,
            },
        )
        if spec.ready_status is not None:
            portal_status_service.apply_status(db, matter, spec.ready_status, now)
        db.commit()
    except Exception:
        db.rollback()
        _discard(stored.key)
        raise
    db.refresh(record)

    if previous_key and previous_key != stored.key:
        _discard(previous_key)

    logger.info(
        "Document generated matter_id=%s kind=%s schedule=%s",
        matter.id,
        kind.value,
        parsed_schedule.value if parsed_schedule else None,
        extra=matter_log_context(matter, user_id=actor_user_id),
    )
    audit_service.log_event(
        db,
        matter.id,
        AuditAction.DOCUMENT_GENERATED,
        actor_user_id=actor_user_id,
        meta={
            "kind": kind.value,
            "schedule_kind": parsed_schedule.value if parsed_schedule else None,
            "record_id": str(record.id),
        },
    )
    if spec.notify:
        _notify_ready(db, matter, spec)
    return record


def generate_for_owner(
    db: Session,
    user_id: UUID,
    matter_id: UUID,
    kind: DocumentKind,
    schedule_kind: ScheduleKind | str | None = None,
):
    """Resolve the caller's matter (NotFound otherwise) and generate."""
    matter = get_owned_matter(db, matter_id, user_id)
    return generate_document(
        db, matter, kind, schedule_kind=schedule_kind, actor_user_id=user_id
    )


def _notify_ready(db: Session, matter: Matter, spec: DocumentKindSpec) -> None:
    """Best-effort "your document is ready" email."""
    user = db.get(User, matter.user_id) if matter.user_id else None
    if user is None:
        return
    result = email_service.send_template_email(
        to=user.email,
        template="packet_ready",
        variables={
            "document_label": spec.label,
            "case_code": matter.case_code or "",
            "portal_url": f"{settings.app_url}/portal/documents",
        },
    )
    if not result.success:
        logger.warning("Ready notification failed matter_id=%s: %s", matter.id, result.error)


def download_url(
    db: Session,
    matter: Matter,
    kind: DocumentKind,
    schedule_kind: ScheduleKind | None = None,
) -> str:
    """Short-lived download URL for the current artifact of (matter, kind)."""
    spec = DOCUMENT_KINDS[kind]
    if spec.keyed_by_schedule and schedule_kind is None:
        raise ValidationError("Invalid document request", fields={"schedule_kind": "Required for supplemental schedules"})
    record = get_current_record(db, matter.id, kind, schedule_kind)
    if record is None or not record.storage_key:
        raise NotFound("Document not generated yet")
    url = storage_service.generate_signed_url(record.storage_key)
    if not url:
        raise UpstreamFailure("Download link could not be created. Please try again.")
    return url

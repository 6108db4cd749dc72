"""Documents router - phase artifacts (will search, probate pack, schedules)."""

from uuid import UUID

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from sqlalchemy.orm import Session

from probatedesk.core.config import settings
from probatedesk.core.deps import get_current_session, get_db, require_csrf_header
from probatedesk.core.errors import NotFound
from probatedesk.core.matter_access import get_matter_for_ops, get_owned_matter
from probatedesk.db.enums import DocumentKind, Role, ScheduleKind
from probatedesk.schemas.auth import UserSession
from probatedesk.schemas.documents import (
    DocumentsRead,
    DownloadUrlRead,
    PhaseRecordRead,
    ScheduleGenerateRequest,
    ScheduleRead,
)
from probatedesk.services import document_service, storage_service

router = APIRouter()


def documents_read(documents: dict) -> DocumentsRead:
    will_search = documents["will_search"]
    probate_pack = documents["probate_pack"]
    return DocumentsRead(
        will_search=PhaseRecordRead.model_validate(will_search) if will_search else None,
        probate_pack=PhaseRecordRead.model_validate(probate_pack) if probate_pack else None,
        schedules=[ScheduleRead.model_validate(s) for s in documents["schedules"]],
    )


@router.get("/matters/{matter_id}/documents", response_model=DocumentsRead)
def list_documents(
    matter_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    matter = get_owned_matter(db, matter_id, session.user_id)
    return documents_read(document_service.list_documents(db, matter.id))


@router.post(
    "/matters/{matter_id}/documents/will-search",
    response_model=PhaseRecordRead,
    dependencies=[Depends(require_csrf_header)],
)
def generate_will_search(
    matter_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Generate the will search packet. Moves the matter to will_search_ready."""
    record = document_service.generate_for_owner(
        db, session.user_id, matter_id, DocumentKind.WILL_SEARCH_PACKET
    )
    return PhaseRecordRead.model_validate(record)


@router.post(
    "/matters/{matter_id}/documents/probate-pack",
    response_model=PhaseRecordRead,
    dependencies=[Depends(require_csrf_header)],
)
def generate_probate_pack(
    matter_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Generate the probate filing package. Moves the matter to probate_package_ready."""
    record = document_service.generate_for_owner(
        db, session.user_id, matter_id, DocumentKind.PROBATE_PACK
    )
    return PhaseRecordRead.model_validate(record)


@router.post(
    "/matters/{matter_id}/documents/schedules",
    response_model=ScheduleRead,
    dependencies=[Depends(require_csrf_header)],
)
def generate_schedule(
    matter_id: UUID,
    data: ScheduleGenerateRequest,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    record = document_service.generate_for_owner(
        db,
        session.user_id,
        matter_id,
        DocumentKind.SUPPLEMENTAL_SCHEDULE,
        schedule_kind=data.schedule_kind,
    )
    return ScheduleRead.model_validate(record)


@router.get("/matters/{matter_id}/documents/download-url", response_model=DownloadUrlRead)
def get_download_url(
    matter_id: UUID,
    kind: DocumentKind,
    schedule_kind: ScheduleKind | None = None,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Short-lived link to the current artifact (signed S3 URL or the local route)."""
    matter = get_owned_matter(db, matter_id, session.user_id)
    return DownloadUrlRead(url=document_service.download_url(db, matter, kind, schedule_kind))


def _key_matter_id(key: str) -> UUID:
    parts = key.split("/")
    if len(parts) < 3 or parts[0] != "matters":
        raise NotFound()
    try:
        return UUID(parts[1])
    except ValueError:
        raise NotFound()


@router.get("/documents/local/{key:path}")
def download_local(
    key: str,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Serve a locally stored PDF (local storage backend only)."""
    if settings.STORAGE_BACKEND != "local" or settings.is_production:
        raise NotFound()
    matter_id = _key_matter_id(key)
    if session.role == Role.OPS:
        get_matter_for_ops(db, matter_id)
    else:
        get_owned_matter(db, matter_id, session.user_id)
    try:
        data = storage_service.read_local(key)
    except (ValueError, OSError):
        raise NotFound()
    return Response(content=data, media_type="application/pdf")

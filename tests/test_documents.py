"""Tests for the document orchestrator: single current record, rollback on failure."""

import os
import threading
import time

import pytest
from sqlalchemy.exc import OperationalError

from probatedesk.core.config import settings
from probatedesk.core.errors import Conflict, NotFound, UpstreamFailure, ValidationError
from probatedesk.db.enums import (
    AuditAction,
    DocumentKind,
    DocumentStatus,
    PortalStatus,
    RightFitStatus,
)
from probatedesk.db.models import (
    AuditLog,
    GeneratedPack,
    IntakeDraft,
    Matter,
    SupplementalSchedule,
    WillSearchRequest,
)
from probatedesk.db.session import SessionLocal
from probatedesk.services import (
    document_service,
    matter_service,
    pdf_service,
    portal_status_service,
    storage_service,
)


def _stored_path(key: str) -> str:
    return os.path.join(settings.LOCAL_STORAGE_PATH, key)


def _matter_files(matter) -> list[str]:
    root = os.path.join(settings.LOCAL_STORAGE_PATH, "matters", str(matter.id))
    found = []
    for dirpath, _dirs, files in os.walk(root):
        found.extend(os.path.join(dirpath, f) for f in files)
    return found


# =============================================================================
# Single current record
# =============================================================================

def test_generating_twice_keeps_one_current_record(db, matter):
    first = document_service.generate_document(db, matter, DocumentKind.WILL_SEARCH_PACKET)
    first_key, first_url = first.storage_key, first.pdf_url

    second = document_service.generate_document(db, matter, DocumentKind.WILL_SEARCH_PACKET)

    rows = db.query(WillSearchRequest).filter(WillSearchRequest.matter_id == matter.id).all()
    assert len(rows) == 1
    assert rows[0].id == second.id
    assert rows[0].status == DocumentStatus.GENERATED.value
    assert rows[0].pdf_url == second.pdf_url
    assert rows[0].pdf_url != first_url
    assert rows[0].generated_at is not None

    # The superseded artifact is removed; only the current one remains
    assert not os.path.exists(_stored_path(first_key))
    assert os.path.exists(_stored_path(second.storage_key))
    assert _matter_files(matter) == [_stored_path(second.storage_key)]


def test_concurrent_regeneration_keeps_one_record(db, matter):
    urls: list[str] = []
    errors: list[Exception] = []
    lock = threading.Lock()

    def worker():
        session = SessionLocal()
        try:
            # SQLite may refuse a contended write outright; retry like a client would
            for _ in range(20):
                try:
                    own = session.get(Matter, matter.id)
                    record = document_service.generate_document(
                        session, own, DocumentKind.WILL_SEARCH_PACKET
                    )
                except OperationalError:
                    session.rollback()
                    time.sleep(0.05)
                    continue
                with lock:
                    urls.append(record.pdf_url)
                return
            raise RuntimeError("could not generate")
        except Exception as e:
            with lock:
                errors.append(e)
        finally:
            session.close()

    threads = [threading.Thread(target=worker) for _ in range(6)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert len(urls) == 6

    db.expire_all()
    rows = db.query(WillSearchRequest).filter(WillSearchRequest.matter_id == matter.id).all()
    assert len(rows) == 1
    assert rows[0].status == DocumentStatus.GENERATED.value
    assert rows[0].pdf_url in urls
    assert os.path.exists(_stored_path(rows[0].storage_key))


def test_generation_updates_seeded_draft_record(db, matter):
    document_service.seed_will_search_request(db, matter)
    db.commit()
    seeded = db.query(WillSearchRequest).filter(WillSearchRequest.matter_id == matter.id).one()
    assert seeded.status == DocumentStatus.DRAFT.value

    record = document_service.generate_document(db, matter, DocumentKind.WILL_SEARCH_PACKET)
    assert record.id == seeded.id
    assert record.status == DocumentStatus.GENERATED.value


def test_will_search_url_points_at_local_download(db, matter):
    record = document_service.generate_document(db, matter, DocumentKind.WILL_SEARCH_PACKET)
    assert record.storage_key.startswith(f"matters/{matter.id}/will_search_packet/")
    assert record.pdf_url == f"/portal/documents/local/{record.storage_key}"


def test_will_search_payload_comes_from_draft(db, matter, fake_pdf):
    record = document_service.generate_document(db, matter, DocumentKind.WILL_SEARCH_PACKET)

    kind, data = fake_pdf[-1]
    assert kind == DocumentKind.WILL_SEARCH_PACKET.value
    assert data["case_code"] == matter.case_code
    assert data["sections"]["Deceased"]["full_name"] == "Alex Deceased"
    assert data["sections"]["Applicant"]["email"] == "executor@test.com"
    assert record.data == data


# =============================================================================
# Portal marker
# =============================================================================

def test_will_search_marks_portal_ready(db, matter):
    document_service.generate_document(db, matter, DocumentKind.WILL_SEARCH_PACKET)
    db.refresh(matter)
    assert matter.portal_status == PortalStatus.WILL_SEARCH_READY.value


def test_probate_pack_marks_package_ready(db, matter):
    matter.portal_status = PortalStatus.NOTICES_WAITING_21_DAYS.value
    db.commit()

    record = document_service.generate_document(db, matter, DocumentKind.PROBATE_PACK)

    db.refresh(matter)
    assert matter.portal_status == PortalStatus.PROBATE_PACKAGE_READY.value
    assert db.query(GeneratedPack).filter(GeneratedPack.matter_id == matter.id).one().id == record.id


def test_regeneration_never_lowers_status(db, matter):
    matter.portal_status = PortalStatus.WAITING_FOR_GRANT.value
    db.commit()

    document_service.generate_document(db, matter, DocumentKind.WILL_SEARCH_PACKET)

    db.refresh(matter)
    assert matter.portal_status == PortalStatus.WAITING_FOR_GRANT.value


def test_schedules_are_keyed_by_kind(db, matter, fake_pdf):
    executors = document_service.generate_document(
        db, matter, DocumentKind.SUPPLEMENTAL_SCHEDULE, schedule_kind="EXECUTORS"
    )
    beneficiaries = document_service.generate_document(
        db, matter, DocumentKind.SUPPLEMENTAL_SCHEDULE, schedule_kind="BENEFICIARIES"
    )
    again = document_service.generate_document(
        db, matter, DocumentKind.SUPPLEMENTAL_SCHEDULE, schedule_kind="EXECUTORS"
    )

    assert again.id == executors.id
    assert beneficiaries.id != executors.id
    assert db.query(SupplementalSchedule).filter(SupplementalSchedule.matter_id == matter.id).count() == 2
    assert fake_pdf[0][0] == "supplemental_schedule:EXECUTORS"
    assert "supplemental_schedule-EXECUTORS" in again.storage_key

    # Schedules do not move the portal status
    db.refresh(matter)
    assert matter.portal_status == PortalStatus.INTAKE_COMPLETE.value


# =============================================================================
# Validation
# =============================================================================

def test_schedule_kind_is_required(db, matter):
    with pytest.raises(ValidationError) as exc_info:
        document_service.generate_document(db, matter, DocumentKind.SUPPLEMENTAL_SCHEDULE)
    assert "schedule_kind" in exc_info.value.fields


def test_unknown_schedule_kind_is_rejected(db, matter):
    with pytest.raises(ValidationError) as exc_info:
        document_service.generate_document(
            db, matter, DocumentKind.SUPPLEMENTAL_SCHEDULE, schedule_kind="WITNESSES"
        )
    assert "WITNESSES" in exc_info.value.fields["schedule_kind"]


def test_generation_requires_a_draft(db, client_user):
    bare = matter_service.create_matter(db, user_id=client_user.id)
    db.commit()
    with pytest.raises(ValidationError) as exc_info:
        document_service.generate_document(db, bare, DocumentKind.WILL_SEARCH_PACKET)
    assert "draft" in exc_info.value.fields


def test_not_fit_matter_cannot_generate(db, matter, fake_pdf):
    matter.right_fit_status = RightFitStatus.NOT_FIT.value
    db.commit()
    with pytest.raises(Conflict):
        document_service.generate_document(db, matter, DocumentKind.WILL_SEARCH_PACKET)
    assert fake_pdf == []


def test_generate_for_owner_hides_foreign_matters(db, matter, user_factory):
    stranger = user_factory()
    with pytest.raises(NotFound):
        document_service.generate_for_owner(db, stranger.id, matter.id, DocumentKind.WILL_SEARCH_PACKET)


# =============================================================================
# Failure handling
# =============================================================================

def test_render_failure_commits_nothing(db, matter, monkeypatch):
    def broken_render(kind, data):
        raise RuntimeError("renderer down")

    monkeypatch.setattr(pdf_service, "render", broken_render)

    with pytest.raises(UpstreamFailure):
        document_service.generate_document(db, matter, DocumentKind.WILL_SEARCH_PACKET)

    assert db.query(WillSearchRequest).filter(WillSearchRequest.matter_id == matter.id).count() == 0
    db.refresh(matter)
    assert matter.portal_status == PortalStatus.INTAKE_COMPLETE.value
    assert _matter_files(matter) == []


def test_empty_render_is_a_failure(db, matter, monkeypatch):
    monkeypatch.setattr(pdf_service, "render", lambda kind, data: b"")
    with pytest.raises(UpstreamFailure):
        document_service.generate_document(db, matter, DocumentKind.PROBATE_PACK)
    assert db.query(GeneratedPack).count() == 0


def test_storage_failure_commits_nothing(db, matter, monkeypatch, fake_pdf):
    def broken_store(key, data, content_type="application/pdf"):
        raise OSError("disk full")

    monkeypatch.setattr(storage_service, "store", broken_store)

    with pytest.raises(UpstreamFailure):
        document_service.generate_document(db, matter, DocumentKind.PROBATE_PACK)

    assert len(fake_pdf) == 1
    assert db.query(GeneratedPack).filter(GeneratedPack.matter_id == matter.id).count() == 0
    db.refresh(matter)
    assert matter.portal_status == PortalStatus.INTAKE_COMPLETE.value
    assert _matter_files(matter) == []


def test_commit_failure_removes_stored_artifact(db, matter, monkeypatch):
    def broken_apply(*args, **kwargs):
        raise RuntimeError("status write failed")

    monkeypatch.setattr(portal_status_service, "apply_status", broken_apply)

    with pytest.raises(RuntimeError):
        document_service.generate_document(db, matter, DocumentKind.WILL_SEARCH_PACKET)

    assert db.query(WillSearchRequest).filter(WillSearchRequest.matter_id == matter.id).count() == 0
    assert _matter_files(matter) == []


def test_failed_regeneration_keeps_previous_record(db, matter, monkeypatch):
    first = document_service.generate_document(db, matter, DocumentKind.WILL_SEARCH_PACKET)

    def broken_render(kind, data):
        raise OSError("disk full")

    monkeypatch.setattr(pdf_service, "render", broken_render)
    with pytest.raises(UpstreamFailure):
        document_service.generate_document(db, matter, DocumentKind.WILL_SEARCH_PACKET)

    current = db.query(WillSearchRequest).filter(WillSearchRequest.matter_id == matter.id).one()
    assert current.pdf_url == first.pdf_url
    assert os.path.exists(_stored_path(first.storage_key))


# =============================================================================
# Side effects
# =============================================================================

def test_ready_email_goes_to_matter_owner(db, matter, client_user, outbox):
    document_service.generate_document(db, matter, DocumentKind.WILL_SEARCH_PACKET)

    assert len(outbox) == 1
    assert outbox[0].to == client_user.email
    assert outbox[0].template == "packet_ready"
    assert outbox[0].variables["document_label"] == "Will search packet"


def test_schedules_send_no_email(db, matter, outbox):
    document_service.generate_document(
        db, matter, DocumentKind.SUPPLEMENTAL_SCHEDULE, schedule_kind="BENEFICIARIES"
    )
    assert outbox == []


def test_generation_is_audited(db, matter, client_user):
    record = document_service.generate_document(
        db, matter, DocumentKind.PROBATE_PACK, actor_user_id=client_user.id
    )
    entry = (
        db.query(AuditLog)
        .filter(AuditLog.matter_id == matter.id, AuditLog.action == AuditAction.DOCUMENT_GENERATED.value)
        .one()
    )
    assert entry.actor_user_id == client_user.id
    assert entry.meta["kind"] == DocumentKind.PROBATE_PACK.value
    assert entry.meta["record_id"] == str(record.id)


def test_list_documents_returns_current_records(db, matter):
    assert document_service.list_documents(db, matter.id) == {
        "will_search": None,
        "probate_pack": None,
        "schedules": [],
    }
    document_service.generate_document(db, matter, DocumentKind.WILL_SEARCH_PACKET)
    docs = document_service.list_documents(db, matter.id)
    assert docs["will_search"].status == DocumentStatus.GENERATED.value
    assert docs["probate_pack"] is None


def test_draft_is_untouched_by_generation(db, matter):
    document_service.generate_document(db, matter, DocumentKind.WILL_SEARCH_PACKET)
    draft = db.query(IntakeDraft).filter(IntakeDraft.matter_id == matter.id).one()
    assert draft.submitted_at is None

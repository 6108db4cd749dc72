"""Tests for resume tokens: 24h expiry, repeatable redemption, link throttle."""

from datetime import datetime, timedelta, timezone

import pytest

from probatedesk.core.errors import Expired, NotFound, RateLimited
from probatedesk.core.rate_limit import ResumeLinkThrottle
from probatedesk.db.enums import AuditAction
from probatedesk.db.models import AuditLog, IntakeDraft, ResumeToken
from probatedesk.services import email_service, matter_service, resume_token_service
from probatedesk.utils.datetime_parsing import ensure_utc


T0 = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def test_issue_sets_24_hour_expiry(db, matter, outbox):
    token = resume_token_service.issue(db, matter.id, "executor@test.com", now=T0)

    assert ensure_utc(token.expires_at) == T0 + timedelta(hours=24)
    assert len(token.token) >= 32
    assert outbox[-1].to == "executor@test.com"
    assert outbox[-1].template == "resume_token"
    assert outbox[-1].variables["resume_link"] == f"https://portal.test/resume/{token.token}"


def test_issue_audits_without_raw_email(db, matter):
    resume_token_service.issue(db, matter.id, "executor@test.com", now=T0)
    entry = (
        db.query(AuditLog)
        .filter(AuditLog.matter_id == matter.id, AuditLog.action == AuditAction.RESUME_TOKEN_ISSUED.value)
        .one()
    )
    assert "executor@test.com" not in str(entry.meta)
    assert "token" not in entry.meta


def test_failed_email_leaves_token_redeemable(db, matter, monkeypatch):
    def failing_send(**kwargs):
        return email_service.SendResult(success=False, error="provider down")

    monkeypatch.setattr(email_service, "send_template_email", failing_send)

    token = resume_token_service.issue(db, matter.id, "executor@test.com", now=T0)

    assert db.query(ResumeToken).filter(ResumeToken.token == token.token).count() == 1
    result = resume_token_service.redeem(db, token.token, now=T0 + timedelta(hours=1))
    assert result.matter_id == matter.id


def test_redeem_within_window_returns_draft(db, matter):
    token = resume_token_service.issue(db, matter.id, "executor@test.com", now=T0)

    result = resume_token_service.redeem(db, token.token, now=T0 + timedelta(hours=23))

    assert result.matter_id == matter.id
    assert result.email == "executor@test.com"
    assert result.draft_snapshot["deceased"]["fullName"] == "Alex Deceased"
    assert result.submitted is False


def test_redeem_after_expiry_fails(db, matter):
    token = resume_token_service.issue(db, matter.id, "executor@test.com", now=T0)
    with pytest.raises(Expired):
        resume_token_service.redeem(db, token.token, now=T0 + timedelta(hours=25))


def test_redeem_at_exact_expiry_still_works(db, matter):
    token = resume_token_service.issue(db, matter.id, "executor@test.com", now=T0)
    result = resume_token_service.redeem(db, token.token, now=T0 + timedelta(hours=24))
    assert result.matter_id == matter.id


def test_redemption_is_repeatable(db, matter):
    token = resume_token_service.issue(db, matter.id, "executor@test.com", now=T0)

    first = resume_token_service.redeem(db, token.token, now=T0 + timedelta(hours=1))
    second = resume_token_service.redeem(db, token.token, now=T0 + timedelta(hours=2))

    assert first.matter_id == second.matter_id
    assert db.query(ResumeToken).filter(ResumeToken.token == token.token).count() == 1


def test_redeem_reflects_latest_draft(db, matter):
    token = resume_token_service.issue(db, matter.id, "executor@test.com", now=T0)

    draft = db.query(IntakeDraft).filter(IntakeDraft.matter_id == matter.id).one()
    draft.payload = {**draft.payload, "will": {"dated": "2020-01-01"}}
    db.commit()

    result = resume_token_service.redeem(db, token.token, now=T0 + timedelta(hours=1))
    assert result.draft_snapshot["will"] == {"dated": "2020-01-01"}


def test_redeem_unknown_token(db):
    with pytest.raises(NotFound) as excinfo:
        resume_token_service.redeem(db, "no-such-token", now=T0)
    assert "start again" in excinfo.value.detail


def test_redeem_deleted_matter(db, matter, ops_user):
    token = resume_token_service.issue(db, matter.id, "executor@test.com", now=T0)
    matter_service.soft_delete_matter(db, matter, ops_user.id)
    with pytest.raises(NotFound):
        resume_token_service.redeem(db, token.token, now=T0 + timedelta(hours=1))


def test_each_issue_creates_distinct_token(db, matter):
    a = resume_token_service.issue(db, matter.id, "executor@test.com", now=T0)
    b = resume_token_service.issue(db, matter.id, "executor@test.com", now=T0)
    assert a.token != b.token


# =============================================================================
# Request a new link
# =============================================================================

def test_request_link_for_known_address(db, matter, outbox):
    throttle = ResumeLinkThrottle(requests_per_hour=3)

    assert resume_token_service.request_link(db, "Executor@Test.com ", throttle) is True

    assert outbox[-1].to == "executor@test.com"
    assert db.query(ResumeToken).filter(ResumeToken.matter_id == matter.id).count() == 1


def test_request_link_for_account_email(db, matter, client_user, outbox):
    throttle = ResumeLinkThrottle(requests_per_hour=3)
    assert resume_token_service.request_link(db, client_user.email, throttle) is True
    assert outbox[-1].to == client_user.email


def test_request_link_unknown_address_sends_nothing(db, outbox):
    throttle = ResumeLinkThrottle(requests_per_hour=3)
    assert resume_token_service.request_link(db, "nobody@test.com", throttle) is False
    assert outbox == []


def test_request_link_is_throttled_per_address(db, matter):
    throttle = ResumeLinkThrottle(requests_per_hour=2)

    resume_token_service.request_link(db, "executor@test.com", throttle)
    resume_token_service.request_link(db, "EXECUTOR@test.com", throttle)
    with pytest.raises(RateLimited):
        resume_token_service.request_link(db, "executor@test.com", throttle)

    # Other addresses have their own window
    assert resume_token_service.request_link(db, "someone-else@test.com", throttle) is False

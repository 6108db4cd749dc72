"""Tests for template rendering and the Resend client."""

import json

import httpx
import pytest

from probatedesk.core.config import settings
from probatedesk.services import email_service
from probatedesk.services.email_service import render_template, render_template_string

# The autouse outbox fixture replaces the module attribute; keep the real one.
real_send_template_email = email_service.send_template_email


def _mock_resend(monkeypatch, handler) -> list[httpx.Request]:
    seen: list[httpx.Request] = []
    real_client = httpx.Client

    def record(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    def client_factory(**kwargs):
        return real_client(transport=httpx.MockTransport(record), **kwargs)

    monkeypatch.setattr(settings, "RESEND_API_KEY", "re_test_key")
    monkeypatch.setattr(email_service.httpx, "Client", client_factory)
    return seen


def test_render_template_string_blanks_unknown_variables():
    rendered = render_template_string("Hi {{ name }}, case {{case_code}}", {"name": "Sam"})
    assert rendered == "Hi Sam, case "


def test_render_template_resume_link():
    subject, body = render_template(
        "resume_token", {"resume_link": "https://portal.test/resume/abc", "expires_hours": 24}
    )
    assert subject == "Your ProbateDesk resume link"
    assert "https://portal.test/resume/abc" in body
    assert "24 hours" in body


def test_render_unknown_template_raises():
    with pytest.raises(KeyError):
        render_template("birthday", {})


def test_unknown_template_is_reported_not_raised():
    result = real_send_template_email(to="a@test.com", template="birthday")
    assert result.success is False
    assert "birthday" in result.error


def test_without_api_key_outside_production_logs_and_succeeds():
    result = real_send_template_email(
        to="a@test.com", template="packet_ready", variables={"document_label": "Probate pack"}
    )
    assert result.success is True
    assert result.message_id is None


def test_without_api_key_in_production_fails(monkeypatch):
    monkeypatch.setattr(settings, "ENV", "production")
    result = real_send_template_email(to="a@test.com", template="packet_ready")
    assert result.success is False
    assert result.error == "Email provider not configured"


def test_sends_through_resend(monkeypatch):
    seen = _mock_resend(monkeypatch, lambda request: httpx.Response(200, json={"id": "email_123"}))

    result = real_send_template_email(
        to="executor@test.com",
        template="reminder",
        variables={"subject": "Notices wait is over", "body": "You can file now.", "case_code": "PD-1"},
    )

    assert result.success is True
    assert result.message_id == "email_123"
    assert len(seen) == 1
    request = seen[0]
    assert str(request.url) == email_service.RESEND_SEND_URL
    assert request.headers["Authorization"] == "Bearer re_test_key"
    payload = json.loads(request.content)
    assert payload["to"] == ["executor@test.com"]
    assert payload["subject"] == "Notices wait is over"
    assert "You can file now." in payload["text"]
    assert "<" not in payload["text"]


def test_provider_error_status_is_reported(monkeypatch):
    _mock_resend(monkeypatch, lambda request: httpx.Response(422, json={"message": "bad"}))

    result = real_send_template_email(to="executor@test.com", template="resume_token")

    assert result.success is False
    assert "422" in result.error


def test_transport_error_is_reported(monkeypatch):
    def boom(request):
        raise httpx.ConnectError("no route", request=request)

    _mock_resend(monkeypatch, boom)

    result = real_send_template_email(to="executor@test.com", template="resume_token")

    assert result.success is False
    assert result.error == "Email request failed"

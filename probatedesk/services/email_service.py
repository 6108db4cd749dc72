"""Transactional email via the Resend API.

send_template_email never raises: it reports success or an error string.
Without RESEND_API_KEY outside production it logs the would-be email and
reports success so local flows keep working.
"""

from __future__ import annotations

import html as html_module
import logging
import re
from dataclasses import dataclass
from typing import Any

import httpx

from probatedesk.core.config import settings

logger = logging.getLogger(__name__)

RESEND_SEND_URL = "https://api.resend.com/emails"
RESEND_TIMEOUT_SECONDS = 20.0

_VARIABLE_PATTERN = re.compile(r"\{\{\s*([a-zA-Z0-9_]+)\s*\}\}")


@dataclass(frozen=True)
class EmailTemplate:
    subject: str
    body_html: str


DEFAULT_TEMPLATES: dict[str, EmailTemplate] = {
    "intake_submitted": EmailTemplate(
        subject="Your ProbateDesk intake for case {{case_code}}",
        body_html=(
            "<p>Thanks, your intake is saved.</p>"
            '<p>Resume anytime: <a href="{{resume_link}}">{{resume_link}}</a></p>'
            "<p>This link expires in {{expires_hours}} hours.</p>"
        ),
    ),
    "resume_token": EmailTemplate(
        subject="Your ProbateDesk resume link",
        body_html=(
            '<p>Pick up where you left off: <a href="{{resume_link}}">{{resume_link}}</a></p>'
            "<p>This link expires in {{expires_hours}} hours. "
            "If it has expired, start again to get a new one.</p>"
        ),
    ),
    "packet_ready": EmailTemplate(
        subject="{{document_label}} is ready for case {{case_code}}",
        body_html=(
            "<p>Your {{document_label}} has been generated.</p>"
            '<p>Download it from your portal: <a href="{{portal_url}}">{{portal_url}}</a></p>'
        ),
    ),
    "reminder": EmailTemplate(
        subject="{{subject}}",
        body_html=(
            "<p>{{body}}</p>"
            '<p>Case {{case_code}}: <a href="{{portal_url}}">open your portal</a></p>'
        ),
    ),
}


@dataclass(frozen=True)
class SendResult:
    success: bool
    error: str | None = None
    message_id: str | None = None


def render_template_string(template: str, variables: dict[str, Any]) -> str:
    """Substitute {{name}} placeholders; unknown names render empty."""
    def replace(match: re.Match) -> str:
        value = variables.get(match.group(1))
        return "" if value is None else str(value)

    return _VARIABLE_PATTERN.sub(replace, template)


def render_template(name: str, variables: dict[str, Any]) -> tuple[str, str]:
    """Render (subject, html) for a named template."""
    template = DEFAULT_TEMPLATES.get(name)
    if template is None:
        raise KeyError(f"Unknown email template: {name}")
    return (
        render_template_string(template.subject, variables),
        render_template_string(template.body_html, variables),
    )


def _html_to_text(content: str) -> str:
    text = re.sub(r"<(script|style)[^>]*>.*?</\1>", "", content, flags=re.DOTALL | re.I)
    text = re.sub(r"<[^>]+>", " ", text)
    text = re.sub(r"\s+", " ", text).strip()
    return html_module.unescape(text)


def send_template_email(
    *,
    to: str,
    template: str,
    variables: dict[str, Any] | None = None,
    subject: str | None = None,
) -> SendResult:
    """Render and send a template email."""
    try:
        rendered_subject, body = render_template(template, variables or {})
    except KeyError as exc:
        return SendResult(success=False, error=str(exc))
    subject = subject or rendered_subject

    if not settings.RESEND_API_KEY:
        if settings.is_production:
            logger.error("RESEND_API_KEY not configured; email template=%s not sent", template)
            return SendResult(success=False, error="Email provider not configured")
        logger.info("[dev email] template=%s subject=%r body=%s", template, subject, _html_to_text(body))
        return SendResult(success=True)

    payload: dict[str, object] = {
        "from": settings.EMAIL_FROM,
        "to": [to],
        "subject": subject,
        "html": body,
        "text": _html_to_text(body),
    }
    headers = {
        "Authorization": f"Bearer {settings.RESEND_API_KEY}",
        "Content-Type": "application/json",
    }

    try:
        with httpx.Client(timeout=RESEND_TIMEOUT_SECONDS) as client:
            response = client.post(RESEND_SEND_URL, json=payload, headers=headers)
    except httpx.HTTPError as exc:
        logger.warning("Resend request failed for template=%s", template, exc_info=exc)
        return SendResult(success=False, error="Email request failed")

    if response.status_code >= 400:
        logger.warning("Resend returned %s for template=%s", response.status_code, template)
        return SendResult(success=False, error=f"Email provider returned {response.status_code}")

    message_id = None
    try:
        message_id = response.json().get("id")
    except ValueError:
        pass
    return SendResult(success=True, message_id=message_id)

"""Structured log context for matter-scoped events.

The dict goes into ``extra=`` so each field lands on the LogRecord. Only ids,
case codes and statuses are carried; emails and draft payloads never are.
"""

from typing import Any
from uuid import UUID

from probatedesk.db.models import Matter


def build_log_context(
    *,
    matter_id: UUID | str | None = None,
    case_code: str | None = None,
    portal_status: str | None = None,
    user_id: UUID | str | None = None,
    request_id: str | None = None,
    route: str | None = None,
    method: str | None = None,
) -> dict[str, Any]:
    """Return the provided fields as strings; empty values are dropped."""
    fields = {
        "matter_id": matter_id,
        "case_code": case_code,
        "portal_status": portal_status,
        "user_id": user_id,
        "request_id": request_id,
        "route": route,
        "method": method,
    }
    return {key: str(value) for key, value in fields.items() if value}


def matter_log_context(matter: Matter, **extra: Any) -> dict[str, Any]:
    """Context for a log line about one matter, at its current status."""
    return build_log_context(
        matter_id=matter.id,
        case_code=matter.case_code,
        portal_status=matter.portal_status,
        **extra,
    )

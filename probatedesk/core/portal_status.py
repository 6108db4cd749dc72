"""Portal status ordering and gating rules.

The lifecycle is a linear sequence: a status is "reached" when the matter's
current status sits at or after it. Everything that asks "has this case
passed X" goes through here.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime

from probatedesk.core.config import settings
from probatedesk.db.enums import PortalStatus
from probatedesk.utils.datetime_parsing import ensure_utc

PORTAL_STATUS_ORDER: tuple[PortalStatus, ...] = tuple(PortalStatus)

_POSITION: dict[str, int] = {status.value: idx for idx, status in enumerate(PORTAL_STATUS_ORDER)}

DEFAULT_STATUS = PortalStatus.INTAKE_COMPLETE

PORTAL_STATUS_LABELS: dict[PortalStatus, str] = {
    PortalStatus.INTAKE_COMPLETE: "Intake complete",
    PortalStatus.WILL_SEARCH_PREPPING: "Preparing will search",
    PortalStatus.WILL_SEARCH_READY: "Will search ready to mail",
    PortalStatus.WILL_SEARCH_SENT: "Will search sent",
    PortalStatus.NOTICES_IN_PROGRESS: "Preparing notices",
    PortalStatus.NOTICES_WAITING_21_DAYS: "Waiting 21 days after notices",
    PortalStatus.PROBATE_PACKAGE_PREPPING: "Preparing probate package",
    PortalStatus.PROBATE_PACKAGE_READY: "Probate package ready",
    PortalStatus.PROBATE_FILING_READY: "Ready to file",
    PortalStatus.PROBATE_FILING_IN_PROGRESS: "Filing in progress",
    PortalStatus.PROBATE_FILED: "Filed with the court",
    PortalStatus.WAITING_FOR_GRANT: "Waiting for grant",
    PortalStatus.GRANT_COMPLETE: "Grant received",
    PortalStatus.POST_GRANT_ACTIVE: "Administering the estate",
    PortalStatus.ESTATE_CLOSEOUT: "Closing out the estate",
    PortalStatus.DONE: "Done",
}


def status_position(status: PortalStatus | str) -> int:
    """Index of a status in the lifecycle order; unknown values raise ValueError."""
    value = status.value if isinstance(status, PortalStatus) else status
    try:
        return _POSITION[value]
    except KeyError:
        raise ValueError(f"Unknown portal status: {value!r}")


def normalize_status(
    raw: str | PortalStatus | None,
    fallback: PortalStatus = DEFAULT_STATUS,
) -> PortalStatus:
    """Coerce a stored/untrusted value to a known status, else the fallback."""
    if isinstance(raw, PortalStatus):
        return raw
    if isinstance(raw, str):
        value = raw.strip().lower()
        if value in _POSITION:
            return PortalStatus(value)
    return fallback


def has_reached_status(current: str | PortalStatus | None, target: PortalStatus) -> bool:
    """True when ``current`` is at or past ``target`` in the lifecycle."""
    return status_position(normalize_status(current)) >= status_position(target)


def is_transition_allowed(current: str | PortalStatus | None, target: PortalStatus) -> bool:
    """
    Normal-path transitions move forward (or stay put), never backward.

    Skipping ahead is allowed: the client may e.g. mark notices mailed
    without an intermediate "in progress" step.
    """
    return status_position(target) >= status_position(normalize_status(current))


def notice_wait_days_remaining(notices_mailed_at: datetime | None, now: datetime) -> int | None:
    """Whole days left in the notice wait, or None when notices were never mailed."""
    mailed_at = ensure_utc(notices_mailed_at)
    if mailed_at is None:
        return None
    elapsed_days = math.floor((ensure_utc(now) - mailed_at).total_seconds() / 86400)
    return max(0, settings.NOTICE_WAIT_DAYS - elapsed_days)


@dataclass(frozen=True)
class PortalGates:
    """Which portal sections the client may open."""

    will_search: bool
    notices: bool
    probate_filing: bool
    grant: bool
    post_grant: bool
    notice_wait_days_remaining: int | None


def portal_gates(
    portal_status: str | None,
    notices_mailed_at: datetime | None,
    now: datetime,
    *,
    not_fit: bool = False,
) -> PortalGates:
    """Derive section access from the current status and notice wait."""
    status = normalize_status(portal_status)
    remaining = notice_wait_days_remaining(notices_mailed_at, now)

    if not_fit:
        return PortalGates(False, False, False, False, False, remaining)

    wait_finished = remaining == 0
    filing_open = (
        has_reached_status(status, PortalStatus.PROBATE_PACKAGE_READY)
        and not has_reached_status(status, PortalStatus.POST_GRANT_ACTIVE)
    ) or (status == PortalStatus.NOTICES_WAITING_21_DAYS and wait_finished)

    return PortalGates(
        will_search=True,
        notices=has_reached_status(status, PortalStatus.WILL_SEARCH_SENT),
        probate_filing=filing_open,
        grant=has_reached_status(status, PortalStatus.PROBATE_FILED),
        post_grant=has_reached_status(status, PortalStatus.GRANT_COMPLETE),
        notice_wait_days_remaining=remaining,
    )

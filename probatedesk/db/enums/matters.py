"""Matter (case) enums."""

from enum import Enum


class PortalStatus(str, Enum):
    """
    Coarse lifecycle phase of a matter, in fixed forward order.

    Definition order IS the lifecycle order; see core.portal_status.
    """

    INTAKE_COMPLETE = "intake_complete"
    WILL_SEARCH_PREPPING = "will_search_prepping"
    WILL_SEARCH_READY = "will_search_ready"
    WILL_SEARCH_SENT = "will_search_sent"
    NOTICES_IN_PROGRESS = "notices_in_progress"
    NOTICES_WAITING_21_DAYS = "notices_waiting_21_days"
    PROBATE_PACKAGE_PREPPING = "probate_package_prepping"
    PROBATE_PACKAGE_READY = "probate_package_ready"
    PROBATE_FILING_READY = "probate_filing_ready"
    PROBATE_FILING_IN_PROGRESS = "probate_filing_in_progress"
    PROBATE_FILED = "probate_filed"
    WAITING_FOR_GRANT = "waiting_for_grant"
    GRANT_COMPLETE = "grant_complete"
    POST_GRANT_ACTIVE = "post_grant_active"
    ESTATE_CLOSEOUT = "estate_closeout"
    DONE = "done"


class RightFitStatus(str, Enum):
    """Eligibility verdict persisted on the matter."""

    ELIGIBLE = "ELIGIBLE"
    NOT_FIT = "NOT_FIT"


class PathType(str, Enum):
    """Grant type: probate when a will exists, administration otherwise."""

    PROBATE = "probate"
    ADMINISTRATION = "administration"


class JourneyStatus(str, Enum):
    """Per-step checklist status (advisory)."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    DONE = "done"


class ReminderType(str, Enum):
    WILL_SEARCH_FOLLOWUP = "willSearchFollowup"
    NOTICES_WAIT = "notices21DayWait"

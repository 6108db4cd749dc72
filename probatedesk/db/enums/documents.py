"""Phase artifact enums."""

from enum import Enum


class DocumentKind(str, Enum):
    """Kinds of generated phase artifacts."""

    WILL_SEARCH_PACKET = "will_search_packet"
    PROBATE_PACK = "probate_pack"
    SUPPLEMENTAL_SCHEDULE = "supplemental_schedule"


class DocumentStatus(str, Enum):
    """Status of a phase record (WillSearchRequest, GeneratedPack, SupplementalSchedule)."""

    DRAFT = "DRAFT"
    GENERATED = "GENERATED"


class ScheduleKind(str, Enum):
    """Supplemental schedule variants attached to the probate pack."""

    EXECUTORS = "EXECUTORS"
    BENEFICIARIES = "BENEFICIARIES"

"""SQLAlchemy ORM models."""

from probatedesk.db.models.audit import AuditLog
from probatedesk.db.models.auth import User
from probatedesk.db.models.documents import (
    GeneratedPack,
    SupplementalSchedule,
    WillSearchRequest,
)
from probatedesk.db.models.matters import (
    CaseCounter,
    IntakeDraft,
    Matter,
    MatterStepProgress,
    Reminder,
    ResumeToken,
)
from probatedesk.db.models.scheduling import AvailabilitySlot, CallbackSchedule, Requisition

__all__ = [
    "AuditLog",
    "AvailabilitySlot",
    "CallbackSchedule",
    "CaseCounter",
    "GeneratedPack",
    "IntakeDraft",
    "Matter",
    "MatterStepProgress",
    "Reminder",
    "Requisition",
    "ResumeToken",
    "SupplementalSchedule",
    "User",
    "WillSearchRequest",
]

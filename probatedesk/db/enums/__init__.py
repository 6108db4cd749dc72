"""Enum definitions for application constants."""

from probatedesk.db.enums.audit import AuditAction
from probatedesk.db.enums.auth import Role
from probatedesk.db.enums.documents import DocumentKind, DocumentStatus, ScheduleKind
from probatedesk.db.enums.matters import (
    JourneyStatus,
    PathType,
    PortalStatus,
    ReminderType,
    RightFitStatus,
)
from probatedesk.db.enums.scheduling import CallbackStatus, RequisitionStatus

__all__ = [
    "AuditAction",
    "CallbackStatus",
    "DocumentKind",
    "DocumentStatus",
    "JourneyStatus",
    "PathType",
    "PortalStatus",
    "ReminderType",
    "RequisitionStatus",
    "RightFitStatus",
    "Role",
    "ScheduleKind",
]

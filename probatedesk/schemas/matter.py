"""Matter / portal schemas."""

from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class PortalGatesRead(BaseModel):
    will_search: bool
    notices: bool
    probate_filing: bool
    grant: bool
    post_grant: bool
    notice_wait_days_remaining: int | None


class JourneyStepRead(BaseModel):
    id: str
    title: str
    subtitle: str
    status: str
    updated_at: str | None = None


class JourneyRead(BaseModel):
    steps: list[JourneyStepRead]
    progress_percent: int
    next_step: str


class MatterStatusRead(BaseModel):
    """Everything the portal shell needs to render navigation."""
    matter_id: UUID
    case_code: str | None
    path_type: str | None
    right_fit_status: str | None
    portal_status: str
    portal_status_label: str
    gates: PortalGatesRead
    journey: JourneyRead
    will_search_mailed_at: datetime | None
    notices_mailed_at: datetime | None
    probate_filed_at: datetime | None
    grant_issued_at: datetime | None


class StatusAdvanceRequest(BaseModel):
    status: str


class DatedActionRequest(BaseModel):
    """Optional client-supplied date; bad or missing values mean "now"."""
    date: str | None = Field(None, max_length=64)


class JourneyStepUpdate(BaseModel):
    status: Literal["not_started", "in_progress", "done", "completed"]


class MatterSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    case_code: str | None
    user_id: UUID | None
    deceased_name: str | None
    path_type: str | None
    right_fit_status: str | None
    portal_status: str
    created_at: datetime
    updated_at: datetime


class MatterListResponse(BaseModel):
    items: list[MatterSummary]
    total: int


class AuditEntryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    action: str
    actor_user_id: UUID | None
    meta: dict[str, Any] | None
    created_at: datetime


class StatusOverrideRequest(BaseModel):
    status: str
    reason: str | None = Field(None, max_length=500)

"""Intake schemas - screening, draft autosave, submission."""

from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Right-fit screening
# =============================================================================

class RightFitAnswers(BaseModel):
    """Screening answers (camelCase on the wire, as the intake UI sends them)."""
    model_config = ConfigDict(populate_by_name=True)

    estate_in_bc: Literal["yes", "no", "unsure"] = Field(..., alias="estateInBC")
    is_executor: Literal["yes", "no", "unsure", "helper"] = Field(..., alias="isExecutor")
    will_straightforward: Literal["yes", "no", "no-will"] = Field(..., alias="willStraightforward")
    assets_common: Literal["yes", "no", "unsure"] = Field(..., alias="assetsCommon")
    complex_assets_notes: str = Field("", alias="complexAssetsNotes", max_length=2000)


class RightFitRequest(BaseModel):
    answers: RightFitAnswers


class EligibilityDecisionRead(BaseModel):
    status: Literal["eligible", "not_fit"]
    reasons: list[str]
    referral_message: str | None = None


class RightFitResponse(BaseModel):
    matter_id: UUID | None = None
    decision: EligibilityDecisionRead


# =============================================================================
# Draft + submit
# =============================================================================

class DraftSaveRequest(BaseModel):
    client_key: str = Field(..., min_length=4, max_length=64)
    matter_id: UUID | None = None
    answers: dict[str, Any]


class DraftRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    matter_id: UUID
    email: str | None
    payload: dict[str, Any]
    submitted_at: datetime | None
    updated_at: datetime


class SubmitRequest(BaseModel):
    client_key: str = Field(..., min_length=4, max_length=64)
    matter_id: UUID | None = None
    answers: dict[str, Any] | None = None


class SubmitResponse(BaseModel):
    matter_id: UUID
    case_code: str | None
    path_type: str | None
    resume_link: str

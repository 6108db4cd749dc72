"""Resume token schemas."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, EmailStr


class ResumeIssueRequest(BaseModel):
    email: EmailStr


class ResumeIssueResponse(BaseModel):
    expires_at: datetime


class ResumeRedeemResponse(BaseModel):
    matter_id: UUID
    draft: dict[str, Any]
    submitted: bool
    expires_at: datetime


class ResumeLinkRequest(BaseModel):
    email: EmailStr


class ResumeLinkResponse(BaseModel):
    """Same answer whether or not the address is known."""
    sent: bool = True

"""Callback scheduling and requisition schemas."""

from datetime import date, datetime, time
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Availability + callbacks
# =============================================================================

class SlotInput(BaseModel):
    slot_date: date
    slot_time: time


class SlotCreateRequest(BaseModel):
    slots: list[SlotInput] = Field(..., min_length=1, max_length=200)


class SlotCreateResponse(BaseModel):
    created: int


class SlotRead(BaseModel):
    id: UUID
    slot_date: date
    slot_time: time
    starts_at: datetime
    booked: bool


class CallbackBookRequest(BaseModel):
    slot_id: UUID
    phone: str = Field(..., min_length=7, max_length=32)
    notes: str | None = Field(None, max_length=2000)


class CallbackRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    matter_id: UUID
    slot_id: UUID | None
    scheduled_for: datetime
    status: str
    notes: str | None
    created_at: datetime


class CallbackStatusUpdate(BaseModel):
    status: Literal["completed", "cancelled", "no_show"]


# =============================================================================
# Requisitions
# =============================================================================

class RequisitionCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    details: str | None = None
    received_at: str | None = None


class RequisitionUpdate(BaseModel):
    status: Literal["open", "responded", "resolved"] | None = None
    response: str | None = None
    details: str | None = None


class RequisitionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    matter_id: UUID
    title: str
    details: str | None
    response: str | None
    status: str
    received_at: datetime | None
    resolved_at: datetime | None
    created_at: datetime

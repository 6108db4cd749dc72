"""Phase artifact schemas."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class PhaseRecordRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    matter_id: UUID
    status: str
    pdf_url: str | None
    generated_at: datetime | None
    updated_at: datetime


class ScheduleRead(PhaseRecordRead):
    kind: str


class ScheduleGenerateRequest(BaseModel):
    schedule_kind: Literal["EXECUTORS", "BENEFICIARIES"]


class DocumentsRead(BaseModel):
    will_search: PhaseRecordRead | None
    probate_pack: PhaseRecordRead | None
    schedules: list[ScheduleRead]


class DownloadUrlRead(BaseModel):
    url: str

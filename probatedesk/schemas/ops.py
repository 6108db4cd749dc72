"""Ops console schemas."""

from pydantic import BaseModel

from probatedesk.schemas.documents import DocumentsRead
from probatedesk.schemas.matter import AuditEntryRead, MatterStatusRead, MatterSummary
from probatedesk.schemas.scheduling import CallbackRead, RequisitionRead


class OpsMatterDetail(BaseModel):
    summary: MatterSummary
    status: MatterStatusRead
    documents: DocumentsRead
    callbacks: list[CallbackRead]
    requisitions: list[RequisitionRead]
    audit: list[AuditEntryRead]

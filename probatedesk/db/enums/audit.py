"""Audit enums."""

from enum import Enum


class AuditAction(str, Enum):
    """
    Matter-scoped audit actions.

    Groups:
    - INTAKE_*: screening and intake
    - STATUS_*: portal status changes (STATUS_OVERRIDE is the privileged path)
    - DOCUMENT_*: phase artifact generation
    - RESUME_*: resume token issue/redeem
    """

    RIGHT_FIT_RECORDED = "intake.right_fit"
    INTAKE_DRAFT_SAVED = "intake.draft_saved"
    INTAKE_SUBMITTED = "intake.submitted"

    STATUS_ADVANCED = "status.advanced"
    STATUS_OVERRIDE = "status.override"
    JOURNEY_STEP_UPDATED = "journey.step_updated"

    DOCUMENT_GENERATED = "document.generated"

    RESUME_TOKEN_ISSUED = "resume.issued"
    RESUME_TOKEN_REDEEMED = "resume.redeemed"

    CALLBACK_BOOKED = "callback.booked"
    REQUISITION_CREATED = "requisition.created"
    REQUISITION_UPDATED = "requisition.updated"

    MATTER_DELETED = "matter.deleted"

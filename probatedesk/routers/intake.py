"""Intake router - screening, draft autosave, submission."""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from probatedesk.core.deps import (
    get_current_session,
    get_db,
    get_optional_session,
    require_csrf_header,
)
from probatedesk.core.errors import NotFound
from probatedesk.core.matter_access import get_owned_matter
from probatedesk.schemas.auth import UserSession
from probatedesk.schemas.intake import (
    DraftRead,
    DraftSaveRequest,
    EligibilityDecisionRead,
    RightFitRequest,
    RightFitResponse,
    SubmitRequest,
    SubmitResponse,
)
from probatedesk.services import eligibility_service, intake_service, matter_service
from probatedesk.services.eligibility_service import EligibilityAnswers

router = APIRouter()


@router.post(
    "/right-fit",
    response_model=RightFitResponse,
    dependencies=[Depends(require_csrf_header)],
)
def right_fit(
    data: RightFitRequest,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """
    Screen a client and record the verdict on their matter.

    A "not_fit" outcome is a normal response carrying reasons and a referral.
    """
    answers = EligibilityAnswers(
        estate_in_bc=data.answers.estate_in_bc,
        is_executor=data.answers.is_executor,
        will_straightforward=data.answers.will_straightforward,
        assets_common=data.answers.assets_common,
        complex_assets_notes=data.answers.complex_assets_notes,
    )
    decision = eligibility_service.evaluate(answers)
    matter = matter_service.record_right_fit(db, session.user_id, answers, decision)
    return RightFitResponse(
        matter_id=matter.id,
        decision=EligibilityDecisionRead(
            status=decision.status,
            reasons=decision.reasons,
            referral_message=decision.referral_message,
        ),
    )


@router.post(
    "/draft",
    response_model=DraftRead,
    dependencies=[Depends(require_csrf_header)],
)
def save_draft(
    data: DraftSaveRequest,
    session: UserSession | None = Depends(get_optional_session),
    db: Session = Depends(get_db),
):
    """Autosave intake answers. Anonymous callers are identified by client key."""
    user_id = session.user_id if session else None
    matter = matter_service.ensure_matter(
        db, data.client_key, matter_id=data.matter_id, user_id=user_id
    )
    draft = intake_service.save_draft(db, matter, data.answers, actor_user_id=user_id)
    return DraftRead.model_validate(draft)


@router.get("/draft/{matter_id}", response_model=DraftRead)
def get_draft(
    matter_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    matter = get_owned_matter(db, matter_id, session.user_id)
    draft = intake_service.get_draft(db, matter.id)
    if draft is None:
        raise NotFound("Draft not found")
    return DraftRead.model_validate(draft)


@router.post(
    "/submit",
    response_model=SubmitResponse,
    dependencies=[Depends(require_csrf_header)],
)
def submit(
    data: SubmitRequest,
    session: UserSession | None = Depends(get_optional_session),
    db: Session = Depends(get_db),
):
    result = intake_service.submit_intake(
        db,
        data.client_key,
        matter_id=data.matter_id,
        answers=data.answers,
        user_id=session.user_id if session else None,
    )
    return SubmitResponse(
        matter_id=result.matter.id,
        case_code=result.matter.case_code,
        path_type=result.matter.path_type,
        resume_link=result.resume_link,
    )

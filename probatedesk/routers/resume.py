"""Resume router - email links that reopen an unfinished intake."""

from uuid import UUID

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from probatedesk.core.deps import get_current_session, get_db, require_csrf_header
from probatedesk.core.matter_access import get_owned_matter
from probatedesk.core.rate_limit import ResumeLinkThrottle, get_resume_link_throttle, limiter
from probatedesk.schemas.auth import UserSession
from probatedesk.schemas.resume import (
    ResumeIssueRequest,
    ResumeIssueResponse,
    ResumeLinkRequest,
    ResumeLinkResponse,
    ResumeRedeemResponse,
)
from probatedesk.services import resume_token_service

router = APIRouter()


@router.post(
    "/matters/{matter_id}/resume-token",
    response_model=ResumeIssueResponse,
    dependencies=[Depends(require_csrf_header)],
)
def issue_token(
    matter_id: UUID,
    data: ResumeIssueRequest,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    matter = get_owned_matter(db, matter_id, session.user_id)
    token = resume_token_service.issue(db, matter.id, data.email, actor_user_id=session.user_id)
    return ResumeIssueResponse(expires_at=token.expires_at)


@router.get("/resume/{token}", response_model=ResumeRedeemResponse)
@limiter.limit("30/minute")
def redeem_token(request: Request, token: str, db: Session = Depends(get_db)):
    """
    Reopen a draft from an emailed link.

    Public: possession of the token is the credential. Expired links answer
    410 so the UI can offer a fresh one.
    """
    redemption = resume_token_service.redeem(db, token)
    return ResumeRedeemResponse(
        matter_id=redemption.matter_id,
        draft=redemption.draft_snapshot,
        submitted=redemption.submitted,
        expires_at=redemption.expires_at,
    )


@router.post(
    "/resume/request-link",
    response_model=ResumeLinkResponse,
    dependencies=[Depends(require_csrf_header)],
)
@limiter.limit("5/minute")
def request_link(
    request: Request,
    data: ResumeLinkRequest,
    db: Session = Depends(get_db),
    throttle: ResumeLinkThrottle = Depends(get_resume_link_throttle),
):
    """Send a new link to an address. Same answer whether or not it is known."""
    resume_token_service.request_link(db, data.email, throttle)
    return ResumeLinkResponse()

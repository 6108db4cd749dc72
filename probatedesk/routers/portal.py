"""Portal router - status, lifecycle actions, journey checklist."""

from datetime import datetime, timezone
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from probatedesk.core.deps import get_current_session, get_db, require_csrf_header
from probatedesk.core.errors import NotFound, ValidationError
from probatedesk.core.matter_access import get_owned_matter
from probatedesk.core.portal_status import PORTAL_STATUS_LABELS, normalize_status, portal_gates
from probatedesk.db.enums import PortalStatus, RightFitStatus
from probatedesk.db.models import Matter
from probatedesk.schemas.auth import UserSession
from probatedesk.schemas.matter import (
    DatedActionRequest,
    JourneyRead,
    JourneyStepRead,
    JourneyStepUpdate,
    MatterStatusRead,
    PortalGatesRead,
    StatusAdvanceRequest,
)
from probatedesk.services import journey_service, matter_service, portal_status_service

router = APIRouter()


# =============================================================================
# Helper Functions
# =============================================================================

def _journey_read(state: dict) -> JourneyRead:
    state = journey_service.normalize_state(state)
    return JourneyRead(
        steps=[
            JourneyStepRead(
                id=step.id,
                title=step.title,
                subtitle=step.subtitle,
                status=state[step.id]["status"],
                updated_at=state[step.id].get("updatedAt"),
            )
            for step in journey_service.JOURNEY_STEPS
        ],
        progress_percent=journey_service.progress_percent(state),
        next_step=journey_service.next_step(state).id,
    )


def matter_status_read(matter: Matter, now: datetime | None = None) -> MatterStatusRead:
    """Build the portal status view for a matter."""
    now = now or datetime.now(timezone.utc)
    status = normalize_status(matter.portal_status)
    gates = portal_gates(
        status.value,
        matter.notices_mailed_at,
        now,
        not_fit=matter.right_fit_status == RightFitStatus.NOT_FIT.value,
    )
    return MatterStatusRead(
        matter_id=matter.id,
        case_code=matter.case_code,
        path_type=matter.path_type,
        right_fit_status=matter.right_fit_status,
        portal_status=status.value,
        portal_status_label=PORTAL_STATUS_LABELS[status],
        gates=PortalGatesRead(
            will_search=gates.will_search,
            notices=gates.notices,
            probate_filing=gates.probate_filing,
            grant=gates.grant,
            post_grant=gates.post_grant,
            notice_wait_days_remaining=gates.notice_wait_days_remaining,
        ),
        journey=_journey_read(matter.journey_status),
        will_search_mailed_at=matter.will_search_mailed_at,
        notices_mailed_at=matter.notices_mailed_at,
        probate_filed_at=matter.probate_filed_at,
        grant_issued_at=matter.grant_issued_at,
    )


# =============================================================================
# Status
# =============================================================================

@router.get("/matter", response_model=MatterStatusRead)
def current_matter(
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """The caller's current matter (most recently updated)."""
    matter = matter_service.resolve_portal_matter(db, session.user_id)
    if matter is None:
        raise NotFound("No matter yet")
    return matter_status_read(matter)


@router.get("/matters/{matter_id}/status", response_model=MatterStatusRead)
def get_status(
    matter_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return matter_status_read(get_owned_matter(db, matter_id, session.user_id))


@router.post(
    "/matters/{matter_id}/status",
    response_model=MatterStatusRead,
    dependencies=[Depends(require_csrf_header)],
)
def advance_status(
    matter_id: UUID,
    data: StatusAdvanceRequest,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    target = normalize_status(data.status, fallback=None)  # type: ignore[arg-type]
    if target is None:
        raise ValidationError("Unknown portal status", fields={"status": f"Unknown status '{data.status}'"})
    matter = get_owned_matter(db, matter_id, session.user_id)
    matter = portal_status_service.advance_status(db, matter, target, session.user_id)
    return matter_status_read(matter)


@router.post(
    "/matters/{matter_id}/will-search/mailed",
    response_model=MatterStatusRead,
    dependencies=[Depends(require_csrf_header)],
)
def will_search_mailed(
    matter_id: UUID,
    data: DatedActionRequest | None = None,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    matter = get_owned_matter(db, matter_id, session.user_id)
    matter = portal_status_service.mark_will_search_mailed(
        db, matter, data.date if data else None, session.user_id
    )
    return matter_status_read(matter)


@router.post(
    "/matters/{matter_id}/notices/mailed",
    response_model=MatterStatusRead,
    dependencies=[Depends(require_csrf_header)],
)
def notices_mailed(
    matter_id: UUID,
    data: DatedActionRequest | None = None,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    matter = get_owned_matter(db, matter_id, session.user_id)
    matter = portal_status_service.mark_notices_mailed(
        db, matter, data.date if data else None, session.user_id
    )
    return matter_status_read(matter)


@router.post(
    "/matters/{matter_id}/probate/filed",
    response_model=MatterStatusRead,
    dependencies=[Depends(require_csrf_header)],
)
def probate_filed(
    matter_id: UUID,
    data: DatedActionRequest | None = None,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    matter = get_owned_matter(db, matter_id, session.user_id)
    matter = portal_status_service.mark_probate_filed(
        db, matter, data.date if data else None, session.user_id
    )
    return matter_status_read(matter)


@router.post(
    "/matters/{matter_id}/grant/received",
    response_model=MatterStatusRead,
    dependencies=[Depends(require_csrf_header)],
)
def grant_received(
    matter_id: UUID,
    data: DatedActionRequest | None = None,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    matter = get_owned_matter(db, matter_id, session.user_id)
    matter = portal_status_service.mark_grant_received(
        db, matter, data.date if data else None, session.user_id
    )
    return matter_status_read(matter)


# =============================================================================
# Journey
# =============================================================================

@router.put(
    "/matters/{matter_id}/journey/{step_id}",
    response_model=JourneyRead,
    dependencies=[Depends(require_csrf_header)],
)
def set_journey_step(
    matter_id: UUID,
    step_id: str,
    data: JourneyStepUpdate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    matter = get_owned_matter(db, matter_id, session.user_id)
    state = journey_service.set_step_status(db, matter, step_id, data.status, session.user_id)
    return _journey_read(state)

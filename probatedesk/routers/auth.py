"""Session endpoints. Sign-in itself is handled by the identity provider."""

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from probatedesk.core.deps import COOKIE_NAME, get_current_session, get_db, require_csrf_header
from probatedesk.db.models import User
from probatedesk.schemas.auth import MeResponse, UserSession

router = APIRouter()


@router.get("/me", response_model=MeResponse)
def get_me(
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Current user, used by the portal to bootstrap auth state."""
    user = db.get(User, session.user_id)
    return MeResponse(
        user_id=user.id,
        email=user.email,
        display_name=user.display_name,
        phone=user.phone,
        role=session.role,
    )


@router.post("/logout", dependencies=[Depends(require_csrf_header)])
def logout(
    response: Response,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """
    Clear the session cookie and revoke outstanding tokens.

    Bumping token_version invalidates every JWT minted for this user.
    """
    user = db.get(User, session.user_id)
    user.token_version += 1
    db.commit()
    response.delete_cookie(COOKIE_NAME, path="/")
    return {"status": "logged_out"}

"""Development-only endpoints for seeding and signing in without an identity provider."""

from uuid import UUID

from fastapi import APIRouter, Depends, Header, Response
from sqlalchemy.orm import Session

from probatedesk.core.config import settings
from probatedesk.core.deps import COOKIE_NAME, get_db
from probatedesk.core.errors import Forbidden, NotFound
from probatedesk.core.security import create_session_token
from probatedesk.db.enums import Role
from probatedesk.db.models import User

router = APIRouter()


def _verify_dev_secret(x_dev_secret: str = Header(...)):
    if not settings.DEV_SECRET or x_dev_secret != settings.DEV_SECRET:
        raise Forbidden("Invalid dev secret")


@router.post("/seed", dependencies=[Depends(_verify_dev_secret)])
def seed_users(db: Session = Depends(get_db)):
    """Create one client and one ops user. Idempotent."""
    users_data = [
        ("client@test.com", "Test Client", Role.CLIENT),
        ("ops@test.com", "Test Ops", Role.OPS),
    ]
    seeded = []
    for email, name, role in users_data:
        user = db.query(User).filter(User.email == email).first()
        if user is None:
            user = User(email=email, display_name=name, role=role.value)
            db.add(user)
            db.flush()
        seeded.append({"email": email, "user_id": str(user.id), "role": user.role})
    db.commit()
    return {"status": "seeded", "users": seeded}


@router.post("/login-as/{user_id}", dependencies=[Depends(_verify_dev_secret)])
def login_as(
    user_id: UUID,
    response: Response,
    db: Session = Depends(get_db),
):
    """Set a session cookie for any active user."""
    user = db.get(User, user_id)
    if user is None or not user.is_active:
        raise NotFound("User not found")

    token = create_session_token(user.id, user.role, user.token_version)
    response.set_cookie(
        key=COOKIE_NAME,
        value=token,
        max_age=settings.JWT_EXPIRES_HOURS * 3600,
        httponly=True,
        samesite="lax",
        secure=settings.cookie_secure,
        path="/",
    )
    return {"status": "logged_in", "user_id": str(user.id), "role": user.role}

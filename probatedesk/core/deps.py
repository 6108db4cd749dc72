"""FastAPI dependencies for authentication, authorization, and database access."""

from typing import Generator
from uuid import UUID

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from probatedesk.core.errors import Forbidden, Unauthorized
from probatedesk.core.security import decode_session_token
from probatedesk.db.session import SessionLocal


# Cookie and header names
COOKIE_NAME = "probatedesk_session"
CSRF_HEADER = "X-Requested-With"
CSRF_HEADER_VALUE = "XMLHttpRequest"


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency.

    Yields a database session and ensures it's closed after the request.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_user(request: Request, db: Session = Depends(get_db)):
    """
    Get authenticated user from session cookie.

    Validates:
    - Session cookie exists
    - JWT is valid and not expired
    - User exists and is active
    - Token version matches (for revocation support)

    Raises:
        Unauthorized: Authentication failed (no detail is leaked)
    """
    # Import here to avoid circular imports
    from probatedesk.db.models import User

    token = request.cookies.get(COOKIE_NAME)
    if not token:
        raise Unauthorized()

    try:
        payload = decode_session_token(token)
    except Exception:
        raise Unauthorized()

    user = db.query(User).filter(User.id == _parse_subject(payload.get("sub"))).first()
    if not user or not user.is_active:
        raise Unauthorized()

    if user.token_version != payload.get("token_version"):
        raise Unauthorized()

    return user


def _parse_subject(raw) -> UUID:
    try:
        return UUID(str(raw))
    except (TypeError, ValueError):
        raise Unauthorized()


def get_current_session(request: Request, db: Session = Depends(get_db)):
    """
    Get session context: user_id, role, email.

    This is the PRIMARY auth dependency for most endpoints.

    Raises:
        Unauthorized: Not authenticated
        Forbidden: Unknown role
    """
    from probatedesk.db.enums import Role
    from probatedesk.schemas.auth import UserSession

    user = get_current_user(request, db)

    if not Role.has_value(user.role):
        raise Forbidden(f"Unknown role '{user.role}'. Contact support.")

    return UserSession(
        user_id=user.id,
        role=Role(user.role),
        email=user.email,
        display_name=user.display_name,
    )


def get_optional_session(request: Request, db: Session = Depends(get_db)):
    """Session context when a valid cookie is present, otherwise None."""
    if not request.cookies.get(COOKIE_NAME):
        return None
    try:
        return get_current_session(request, db)
    except Unauthorized:
        return None


def require_roles(allowed_roles: list):
    """
    Dependency factory for role-based authorization.

    Usage:
        @router.get("/ops/matters", dependencies=[Depends(require_roles([Role.OPS]))])
    """
    def dependency(request: Request, db: Session = Depends(get_db)):
        session = get_current_session(request, db)
        if session.role not in allowed_roles:
            raise Forbidden(f"Role '{session.role.value}' not authorized for this action")
        return session
    return dependency


def require_csrf_header(request: Request) -> None:
    """
    Verify CSRF header on mutations.

    Apply to state-changing endpoints (POST, PATCH, PUT, DELETE).
    """
    if request.headers.get(CSRF_HEADER) != CSRF_HEADER_VALUE:
        raise Forbidden(f"Missing CSRF header. Include '{CSRF_HEADER}: {CSRF_HEADER_VALUE}'")

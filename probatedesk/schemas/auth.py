"""Authentication-related Pydantic schemas."""

from uuid import UUID

from pydantic import BaseModel

from probatedesk.db.enums import Role


class UserSession(BaseModel):
    """
    Session context for authenticated requests.

    Returned by the get_current_session dependency.
    """
    user_id: UUID
    role: Role
    email: str
    display_name: str | None = None


class MeResponse(BaseModel):
    user_id: UUID
    email: str
    display_name: str | None
    phone: str | None
    role: Role

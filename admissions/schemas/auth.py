"""Authentication-related Pydantic schemas."""

from uuid import UUID

from pydantic import BaseModel

from admissions.db.enums import Role


class UserSession(BaseModel):
    """
    Session context for authenticated requests.

    counselor_id is set only for users with a counselor profile.
    """
    user_id: UUID
    role: Role
    email: str
    display_name: str
    counselor_id: UUID | None = None

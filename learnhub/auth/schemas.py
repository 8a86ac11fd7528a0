"""Authentication schemas."""

from uuid import UUID

from pydantic import BaseModel

from learnhub.auth.permissions import UserRole


class UserResponse(BaseModel):
    """Authenticated caller, built from verified token claims."""

    id: UUID
    email: str
    role: UserRole
    name: str | None = None

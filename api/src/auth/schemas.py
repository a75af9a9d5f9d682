"""Pydantic schemas for the authenticated caller."""

from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field


class UserRole(str, Enum):
    """Platform roles carried in access tokens.

    Course-level rights (instructor of a course) are decided by ownership,
    not by role.
    """

    STUDENT = "student"
    INSTRUCTOR = "instructor"
    ADMIN = "admin"


class CurrentUserResponse(BaseModel):
    """Caller identity decoded from the access token."""

    id: UUID = Field(description="User ID")
    email: str | None = Field(None, description="User email")
    role: UserRole = Field(UserRole.STUDENT, description="Platform role")

"""
Authentication Models

A Principal is who the app acts for; a UserRecord is what the local
auth provider persists about them.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class AuthErrorCode(str, Enum):
    """Named failure conditions raised by auth providers."""
    USER_NOT_FOUND = "auth/user-not-found"
    WRONG_PASSWORD = "auth/wrong-password"
    INVALID_EMAIL = "auth/invalid-email"
    TOO_MANY_REQUESTS = "auth/too-many-requests"
    EMAIL_ALREADY_IN_USE = "auth/email-already-in-use"
    WEAK_PASSWORD = "auth/weak-password"


class Principal(BaseModel):
    """The authenticated user every query is scoped to."""
    model_config = ConfigDict(frozen=True)

    uid: str = Field(..., min_length=1)
    email: Optional[str] = None
    display_name: Optional[str] = None
    provider: str = Field(
        default="password",
        description="'password' or the name of an external identity provider"
    )

    @property
    def label(self) -> str:
        """Name shown in the header."""
        return self.display_name or self.email or self.uid


class UserRecord(BaseModel):
    """Stored account for the local auth provider."""

    uid: str
    email: str
    display_name: Optional[str] = None
    provider: str = "password"
    provider_subject: Optional[str] = None
    password_hash: Optional[str] = None
    created_at: Optional[datetime] = None

    def to_principal(self) -> Principal:
        return Principal(
            uid=self.uid,
            email=self.email,
            display_name=self.display_name,
            provider=self.provider,
        )

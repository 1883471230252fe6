"""Pydantic schemas for authentication.

Request and response models for:
- Session exchange (ID token -> session token)
- Sign-up
- The authenticated principal
"""

from datetime import datetime

from pydantic import Field, field_validator

from src.auth.models import User
from src.auth.permissions import UserRole
from src.core.schemas import CamelModel


# ==============================================================================
# Principal
# ==============================================================================


class Principal(CamelModel):
    """The verified caller attached to a request."""

    id: str
    email: str = ""
    role: str = UserRole.AUTHENTICATED.value
    username: str = ""

    @classmethod
    def from_user(cls, user: User) -> "Principal":
        return cls(id=user.id, email=user.email, role=user.role, username=user.username)

    def to_claims(self) -> dict[str, str]:
        """Claims embedded in a session token."""
        return {
            "sub": self.id,
            "email": self.email,
            "role": self.role,
            "username": self.username,
        }

    @classmethod
    def from_claims(cls, claims: dict) -> "Principal":
        return cls(
            id=claims["sub"],
            email=claims.get("email") or "",
            role=claims.get("role") or UserRole.AUTHENTICATED.value,
            username=claims.get("username") or "",
        )


# ==============================================================================
# Request Schemas
# ==============================================================================


class SessionRequest(CamelModel):
    """ID token exchange. The token may also come as a Bearer header."""

    id_token: str | None = Field(None, description="Firebase ID token")


class SignUpRequest(CamelModel):
    """Profile fields supplied at sign-up."""

    id_token: str | None = Field(None, description="Firebase ID token")
    username: str = Field(..., min_length=1, max_length=20)
    first_name: str = Field("", max_length=100)
    last_name: str = Field("", max_length=100)
    phone_number: str = Field("", max_length=30)

    @field_validator("username", "first_name", "last_name", "phone_number")
    @classmethod
    def strip_value(cls, v: str) -> str:
        return v.strip()

    @field_validator("username")
    @classmethod
    def username_not_blank(cls, v: str) -> str:
        if not v:
            msg = "Username cannot be blank"
            raise ValueError(msg)
        return v


# ==============================================================================
# Response Schemas
# ==============================================================================


class UserResponse(CamelModel):
    """Public view of a user document."""

    id: str
    email: str
    username: str
    first_name: str = ""
    last_name: str = ""
    display_name: str = ""
    role: str
    photo_url: str = Field("", serialization_alias="photoURL")
    bio: str = ""
    phone_number: str = ""
    interests: list[str] = Field(default_factory=list)
    notifications: dict[str, bool] = Field(default_factory=dict)
    favorites: list[str] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            email=user.email,
            username=user.username,
            first_name=user.first_name,
            last_name=user.last_name,
            display_name=user.display_name,
            role=user.role,
            photo_url=user.photo_url,
            bio=user.bio,
            phone_number=user.phone_number,
            interests=user.interests,
            notifications=user.notifications,
            favorites=user.favorites,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


class SessionResponse(CamelModel):
    """Signed-in user plus session token."""

    message: str
    user: UserResponse
    token: str
    expires_in: int = Field(..., description="Token lifetime in seconds")

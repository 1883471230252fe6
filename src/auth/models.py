"""User document model.

Users live in the ``users`` collection keyed by the identity provider's uid.
Field names in the store are camelCase.
"""

from datetime import datetime
from typing import Any

from src.auth.permissions import UserRole
from src.core.database import Document


USERS_COLLECTION = "users"

DEFAULT_NOTIFICATIONS: dict[str, bool] = {
    "email": True,
    "inApp": True,
    "newsletter": False,
}


def username_from_email(email: str) -> str:
    """Default username: the email's local part."""
    return email.split("@", 1)[0] if email else ""


class User:
    """User entity.

    Attributes:
        id: Identity provider uid (document id)
        email: Lowercased email address
        username: Display handle, defaults to the email local part (not unique)
        role: ``authenticated`` or ``admin``
        interests: Topics the user follows
        notifications: Preference flags (email, inApp, newsletter)
        favorites: Favourited post ids
    """

    def __init__(
        self,
        id: str,
        email: str = "",
        username: str = "",
        first_name: str = "",
        last_name: str = "",
        display_name: str = "",
        role: str = UserRole.AUTHENTICATED.value,
        photo_url: str = "",
        bio: str = "",
        phone_number: str = "",
        interests: list[str] | None = None,
        notifications: dict[str, bool] | None = None,
        favorites: list[str] | None = None,
        google_id: str | None = None,
        provider: str | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.id = id
        self.email = email.lower().strip()
        self.username = username or username_from_email(self.email)
        self.first_name = first_name
        self.last_name = last_name
        self.display_name = display_name
        self.role = role
        self.photo_url = photo_url
        self.bio = bio
        self.phone_number = phone_number
        self.interests = list(interests or [])
        self.notifications = {**DEFAULT_NOTIFICATIONS, **(notifications or {})}
        self.favorites = list(favorites or [])
        self.google_id = google_id
        self.provider = provider
        self.created_at = created_at
        self.updated_at = updated_at

    @classmethod
    def from_document(cls, doc: Document) -> "User":
        """Create User instance from a stored document."""
        data = doc.data
        return cls(
            id=doc.id,
            email=data.get("email") or "",
            username=data.get("username") or "",
            first_name=data.get("firstName") or "",
            last_name=data.get("lastName") or "",
            display_name=data.get("displayName") or "",
            role=data.get("role") or UserRole.AUTHENTICATED.value,
            photo_url=data.get("photoURL") or "",
            bio=data.get("bio") or "",
            phone_number=data.get("phoneNumber") or "",
            interests=data.get("interests"),
            notifications=data.get("notifications"),
            favorites=data.get("favorites"),
            google_id=data.get("googleId"),
            provider=data.get("provider"),
            created_at=data.get("createdAt"),
            updated_at=data.get("updatedAt"),
        )

    def to_document(self) -> dict[str, Any]:
        """Stored fields, excluding id and timestamps."""
        data: dict[str, Any] = {
            "email": self.email,
            "username": self.username,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "displayName": self.display_name,
            "role": self.role,
            "photoURL": self.photo_url,
            "bio": self.bio,
            "phoneNumber": self.phone_number,
            "interests": self.interests,
            "notifications": self.notifications,
            "favorites": self.favorites,
        }
        if self.google_id:
            data["googleId"] = self.google_id
        if self.provider:
            data["provider"] = self.provider
        return data

    def __repr__(self) -> str:
        return f"<User {self.email} ({self.role})>"

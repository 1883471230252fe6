"""Pydantic schemas for the profile API."""

from pydantic import AliasChoices, Field, field_validator

from src.core.schemas import CamelModel


MAX_INTERESTS = 50


class UpdateProfileRequest(CamelModel):
    """Editable profile fields. Omitted fields are left unchanged.

    Role, email and favourites are not editable here.
    """

    username: str | None = Field(None, min_length=1, max_length=20)
    first_name: str | None = Field(None, max_length=100)
    last_name: str | None = Field(None, max_length=100)
    display_name: str | None = Field(None, max_length=100)
    bio: str | None = Field(None, max_length=500)
    phone_number: str | None = Field(None, max_length=30)
    photo_url: str | None = Field(
        None,
        max_length=2048,
        validation_alias=AliasChoices("photoURL", "photoUrl", "photo_url"),
    )

    @field_validator(
        "username",
        "first_name",
        "last_name",
        "display_name",
        "bio",
        "phone_number",
        "photo_url",
    )
    @classmethod
    def strip_value(cls, v: str | None) -> str | None:
        return v.strip() if v is not None else None

    @field_validator("username")
    @classmethod
    def username_not_blank(cls, v: str | None) -> str | None:
        if v is not None and not v:
            msg = "Username cannot be blank"
            raise ValueError(msg)
        return v


class InterestsRequest(CamelModel):
    interests: list[str] = Field(..., max_length=MAX_INTERESTS)

    @field_validator("interests")
    @classmethod
    def clean_interests(cls, v: list[str]) -> list[str]:
        return list(dict.fromkeys(i.strip() for i in v if i.strip()))


class InterestsResponse(CamelModel):
    interests: list[str]


class NotificationSettings(CamelModel):
    """Notification preference flags."""

    email: bool = True
    in_app: bool = True
    newsletter: bool = False


class NotificationsRequest(CamelModel):
    notifications: NotificationSettings


class FavoriteRequest(CamelModel):
    post_id: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("postId", "favoriteId", "post_id"),
    )


class AvatarResponse(CamelModel):
    photo_url: str = Field(..., serialization_alias="photoURL")


class CommunityResponse(CamelModel):
    discord_invite: str

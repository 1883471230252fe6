"""Profile API endpoints.

All routes act on the signed-in user's own profile.
"""

from typing import Annotated

from fastapi import APIRouter, File, Request, UploadFile

from src.auth.dependencies import CurrentUser
from src.auth.schemas import UserResponse
from src.core.errors import ValidationError

from .dependencies import ProfileServiceDep
from .schemas import (
    AvatarResponse,
    CommunityResponse,
    FavoriteRequest,
    InterestsRequest,
    InterestsResponse,
    NotificationSettings,
    NotificationsRequest,
    UpdateProfileRequest,
)


router = APIRouter(prefix="/api/profile", tags=["profile"])


@router.get("", response_model=UserResponse, summary="Get profile")
async def get_profile(
    profile_service: ProfileServiceDep,
    user: CurrentUser,
) -> UserResponse:
    profile = await profile_service.get_profile(user.id)
    return UserResponse.from_user(profile)


@router.put("", response_model=UserResponse, summary="Update profile")
async def update_profile(
    data: UpdateProfileRequest,
    profile_service: ProfileServiceDep,
    user: CurrentUser,
) -> UserResponse:
    """Update editable profile fields; omitted fields are left unchanged."""
    profile = await profile_service.update_profile(user.id, data)
    return UserResponse.from_user(profile)


@router.put("/upload-avatar", response_model=AvatarResponse, summary="Upload avatar")
async def upload_avatar(
    profile_service: ProfileServiceDep,
    user: CurrentUser,
    avatar: Annotated[UploadFile | None, File()] = None,
) -> AvatarResponse:
    if avatar is None or not avatar.filename:
        raise ValidationError("No file uploaded.")

    photo_url = await profile_service.upload_avatar(
        user.id, avatar.filename, await avatar.read(), avatar.content_type
    )
    return AvatarResponse(photo_url=photo_url)


@router.put("/interests", response_model=InterestsResponse, summary="Set interests")
async def set_interests(
    data: InterestsRequest,
    profile_service: ProfileServiceDep,
    user: CurrentUser,
) -> InterestsResponse:
    interests = await profile_service.set_interests(user.id, data.interests)
    return InterestsResponse(interests=interests)


@router.get(
    "/notifications",
    response_model=NotificationSettings,
    summary="Get notification settings",
)
async def get_notifications(
    profile_service: ProfileServiceDep,
    user: CurrentUser,
) -> NotificationSettings:
    notifications = await profile_service.get_notifications(user.id)
    return NotificationSettings.model_validate(notifications)


@router.put(
    "/notifications",
    response_model=NotificationSettings,
    summary="Update notification settings",
)
async def set_notifications(
    data: NotificationsRequest,
    profile_service: ProfileServiceDep,
    user: CurrentUser,
) -> NotificationSettings:
    notifications = await profile_service.set_notifications(
        user.id, data.notifications
    )
    return NotificationSettings.model_validate(notifications)


@router.get("/favorites", response_model=list[str], summary="List favourites")
async def get_favorites(
    profile_service: ProfileServiceDep,
    user: CurrentUser,
) -> list[str]:
    return await profile_service.get_favorites(user.id)


@router.post("/favorites", response_model=list[str], summary="Add favourite")
async def add_favorite(
    data: FavoriteRequest,
    profile_service: ProfileServiceDep,
    user: CurrentUser,
) -> list[str]:
    """Bookmark a post (``postId``). Returns the updated list."""
    return await profile_service.add_favorite(user.id, data.post_id)


@router.delete(
    "/favorites/{post_id}",
    response_model=list[str],
    summary="Remove favourite",
)
async def remove_favorite(
    post_id: str,
    profile_service: ProfileServiceDep,
    user: CurrentUser,
) -> list[str]:
    return await profile_service.remove_favorite(user.id, post_id)


@router.get("/community", response_model=CommunityResponse, summary="Community links")
async def get_community(request: Request, user: CurrentUser) -> CommunityResponse:
    return CommunityResponse(discord_invite=request.app.state.settings.discord_invite)

"""Profile service layer.

Business logic for:
- Reading and editing the signed-in user's profile
- Avatar upload
- Interests, notification preferences and favourite posts
"""

import structlog

from src.auth.models import DEFAULT_NOTIFICATIONS, USERS_COLLECTION, User
from src.auth.service import UserService
from src.config.settings import Settings
from src.core.database import SERVER_TIMESTAMP, ArrayRemove, ArrayUnion, DocumentStore
from src.core.errors import NotFound, UpstreamFailure
from src.posts.models import POSTS_COLLECTION
from src.storage.service import ImageHost, StorageNotConfiguredError
from src.utils.uploads import validate_image

from .schemas import NotificationSettings, UpdateProfileRequest


logger = structlog.get_logger(__name__)

# Request field -> stored field
_PROFILE_FIELDS = {
    "username": "username",
    "first_name": "firstName",
    "last_name": "lastName",
    "display_name": "displayName",
    "bio": "bio",
    "phone_number": "phoneNumber",
    "photo_url": "photoURL",
}


class ProfileService:
    """Self-service edits to documents in the ``users`` collection."""

    def __init__(
        self,
        store: DocumentStore,
        user_service: UserService,
        avatar_storage: ImageHost | None,
        settings: Settings,
    ):
        self.store = store
        self.users = user_service
        self.avatar_storage = avatar_storage
        self.settings = settings

    async def get_profile(self, user_id: str) -> User:
        try:
            return await self.users.get_user(user_id)
        except NotFound as e:
            raise NotFound("User profile not found") from e

    async def _update(self, user_id: str, fields: dict) -> User:
        # Fail with a profile-specific message before writing
        await self.get_profile(user_id)
        await self.store.update(
            USERS_COLLECTION, user_id, {**fields, "updatedAt": SERVER_TIMESTAMP}
        )
        return await self.get_profile(user_id)

    async def update_profile(self, user_id: str, data: UpdateProfileRequest) -> User:
        """Apply the explicitly supplied profile fields."""
        supplied = data.model_dump(exclude_unset=True, exclude_none=True)
        updates = {_PROFILE_FIELDS[name]: value for name, value in supplied.items()}
        if not updates:
            return await self.get_profile(user_id)

        user = await self._update(user_id, updates)
        logger.info("profile_updated", user_id=user_id, fields=sorted(updates))
        return user

    async def upload_avatar(
        self,
        user_id: str,
        filename: str | None,
        content: bytes,
        content_type: str | None,
    ) -> str:
        """Store an avatar image and point ``photoURL`` at it.

        Returns:
            The public URL of the stored avatar
        """
        detected_type = validate_image(
            content,
            content_type,
            max_bytes=self.settings.upload_max_file_size_mb * 1024 * 1024,
            allowed_types=frozenset(self.settings.upload_allowed_image_types),
        )
        if self.avatar_storage is None:
            raise StorageNotConfiguredError

        await self.get_profile(user_id)
        uploaded = await self.avatar_storage.upload(
            filename or "avatar", content, detected_type
        )
        if not uploaded or not uploaded.url:
            raise UpstreamFailure("Avatar storage returned no URL")

        await self._update(user_id, {"photoURL": uploaded.url})
        logger.info("avatar_uploaded", user_id=user_id, file_size=len(content))
        return uploaded.url

    async def set_interests(self, user_id: str, interests: list[str]) -> list[str]:
        user = await self._update(user_id, {"interests": interests})
        return user.interests

    async def get_notifications(self, user_id: str) -> dict[str, bool]:
        user = await self.get_profile(user_id)
        return user.notifications

    async def set_notifications(
        self, user_id: str, notifications: NotificationSettings
    ) -> dict[str, bool]:
        stored = {**DEFAULT_NOTIFICATIONS, **notifications.model_dump(by_alias=True)}
        user = await self._update(user_id, {"notifications": stored})
        return user.notifications

    async def get_favorites(self, user_id: str) -> list[str]:
        user = await self.get_profile(user_id)
        return user.favorites

    async def add_favorite(self, user_id: str, post_id: str) -> list[str]:
        """Bookmark a post. Adding it twice keeps a single entry."""
        try:
            await self.store.get(POSTS_COLLECTION, post_id)
        except NotFound as e:
            raise NotFound("Post not found") from e

        user = await self._update(user_id, {"favorites": ArrayUnion([post_id])})
        return user.favorites

    async def remove_favorite(self, user_id: str, post_id: str) -> list[str]:
        user = await self._update(user_id, {"favorites": ArrayRemove([post_id])})
        return user.favorites

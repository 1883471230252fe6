"""Post service layer.

Business logic for:
- Post creation with optional hosted image
- Category listing with cursor pagination
- Owner/admin updates and deletes
- Post likes
"""

from dataclasses import dataclass

import structlog

from src.auth.permissions import Action, authorize
from src.auth.schemas import Principal
from src.auth.service import UserService
from src.comments.service import CommentService
from src.config.settings import Settings
from src.core.database import SERVER_TIMESTAMP, ArrayRemove, ArrayUnion, DocumentStore
from src.core.errors import NotFound, UpstreamFailure, ValidationError
from src.storage.service import (
    ImageHost,
    StorageNotConfiguredError,
    UploadedImage,
    build_image_filename,
)
from src.utils.sanitize import sanitize_html
from src.utils.uploads import validate_image

from .models import (
    ALL_CATEGORIES,
    POSTS_COLLECTION,
    Post,
    image_fields,
    new_post_fields,
)


logger = structlog.get_logger(__name__)

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 50
REQUIRED_FIELDS = ("title", "description", "category")


@dataclass
class ImageUpload:
    """An image file received with a create or update request."""

    filename: str | None
    content: bytes
    content_type: str | None


class PostService:
    """Posts stored in the ``posts`` collection."""

    def __init__(
        self,
        store: DocumentStore,
        image_host: ImageHost | None,
        user_service: UserService,
        comment_service: CommentService,
        settings: Settings,
    ):
        self.store = store
        self.image_host = image_host
        self.users = user_service
        self.comments = comment_service
        self.settings = settings

    # ==========================================================================
    # Images
    # ==========================================================================

    async def _upload_image(self, image: ImageUpload) -> UploadedImage:
        """Validate and host an image, requiring both url and hash back."""
        detected_type = validate_image(
            image.content,
            image.content_type,
            max_bytes=self.settings.upload_max_file_size_mb * 1024 * 1024,
            allowed_types=frozenset(self.settings.upload_allowed_image_types),
        )

        if self.image_host is None:
            raise StorageNotConfiguredError

        uploaded = await self.image_host.upload(
            build_image_filename(image.filename), image.content, detected_type
        )
        if not uploaded or not uploaded.url or not uploaded.hash:
            raise UpstreamFailure("Image host returned an incomplete result")
        return uploaded

    async def _remove_comments(self, post_id: str) -> int | None:
        """Best-effort comment cascade; returns None when it failed."""
        try:
            return await self.comments.delete_for_post(post_id)
        except Exception as e:  # noqa: BLE001
            logger.warning(
                "post_comments_cleanup_failed",
                post_id=post_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return None

    async def _release_image(self, image: UploadedImage | None, post_id: str) -> None:
        """Best-effort blob removal; failures are logged, never raised."""
        if image is None or self.image_host is None:
            return
        try:
            await self.image_host.delete(image)
        except Exception as e:  # noqa: BLE001
            logger.warning(
                "image_release_failed",
                post_id=post_id,
                image_url=image.url,
                error=str(e),
                error_type=type(e).__name__,
            )

    # ==========================================================================
    # Reads
    # ==========================================================================

    async def get_post(self, post_id: str) -> Post:
        try:
            doc = await self.store.get(POSTS_COLLECTION, post_id)
        except NotFound as e:
            raise NotFound("Post not found") from e
        return Post.from_document(doc)

    async def get_posts(
        self,
        category: str | None = ALL_CATEGORIES,
        limit: int = DEFAULT_PAGE_SIZE,
        cursor: str | None = None,
    ) -> tuple[list[Post], str | None]:
        """Newest-first posts, optionally restricted to one category.

        Returns:
            Tuple of (posts, next_cursor); next_cursor is None on the last page.
        """
        if limit < 1:
            raise ValidationError("limit must be positive")
        limit = min(limit, MAX_PAGE_SIZE)

        filters = []
        if category and category != ALL_CATEGORIES:
            filters.append(("category", "==", category))

        page = await self.store.query(
            POSTS_COLLECTION,
            filters=filters,
            order_by="createdAt",
            descending=True,
            limit=limit,
            cursor=cursor,
        )
        return [Post.from_document(doc) for doc in page.documents], page.next_cursor

    async def get_multi_category_posts(
        self, categories: list[str], limit: int = 5
    ) -> dict[str, list[Post]]:
        """Latest posts for each of several categories."""
        result: dict[str, list[Post]] = {}
        for category in dict.fromkeys(c.strip() for c in categories if c.strip()):
            posts, _ = await self.get_posts(category=category, limit=limit)
            result[category] = posts
        return result

    # ==========================================================================
    # Writes
    # ==========================================================================

    @staticmethod
    def _require_fields(fields: dict[str, str | None], names: tuple[str, ...]) -> None:
        missing = [name for name in names if not (fields.get(name) or "").strip()]
        if missing:
            raise ValidationError(
                f"Missing required fields: {', '.join(missing)}",
            )

    async def create_post(
        self,
        fields: dict[str, str | None],
        author: Principal,
        image: ImageUpload | None = None,
    ) -> Post:
        """Create a post.

        Required fields are checked before any upload; the image (if any) is
        hosted before the post document is written.

        Raises:
            ValidationError: Missing title/description/category or bad image
            UpstreamFailure: Image host failed or returned no url/hash
        """
        self._require_fields(fields, REQUIRED_FIELDS)

        uploaded = await self._upload_image(image) if image else None

        username = await self.users.get_username(author.id)
        post_id = await self.store.add(
            POSTS_COLLECTION,
            new_post_fields(
                title=fields["title"].strip(),
                description=fields["description"].strip(),
                category=fields["category"].strip(),
                author_id=author.id,
                author_username=username,
                image=uploaded,
                additional_content=sanitize_html(fields.get("additionalContent")),
                graph_content=sanitize_html(fields.get("graphContent")),
            ),
        )

        logger.info(
            "post_created",
            post_id=post_id,
            category=fields["category"],
            has_image=uploaded is not None,
        )
        return await self.get_post(post_id)

    async def update_post(
        self,
        post_id: str,
        fields: dict[str, str | None],
        requester: Principal,
        image: ImageUpload | None = None,
        remove_image: bool = False,
    ) -> Post:
        """Update a post. Owner or admin only.

        Only supplied fields change; supplied required fields may not be
        blank. A replaced or removed image is released after the write.
        """
        post = await self.get_post(post_id)
        authorize(Action.POST_UPDATE, requester, post.created_by)

        supplied = {k: v for k, v in fields.items() if v is not None}
        self._require_fields(
            supplied, tuple(name for name in REQUIRED_FIELDS if name in supplied)
        )

        updates: dict = {}
        for name in REQUIRED_FIELDS:
            if name in supplied:
                updates[name] = supplied[name].strip()
        if "additionalContent" in supplied:
            updates["additionalContent"] = sanitize_html(supplied["additionalContent"])
        if "graphContent" in supplied:
            updates["graphContent"] = sanitize_html(supplied["graphContent"])

        previous_image = post.image
        replaced = False
        if image is not None:
            updates.update(image_fields(await self._upload_image(image)))
            replaced = True
        elif remove_image and previous_image is not None:
            updates.update(image_fields(None))
            replaced = True

        updates["updatedAt"] = SERVER_TIMESTAMP
        await self.store.update(POSTS_COLLECTION, post_id, updates)
        logger.info("post_updated", post_id=post_id, fields=sorted(updates))

        updated = await self.get_post(post_id)
        if replaced and previous_image is not None and previous_image != updated.image:
            await self._release_image(previous_image, post_id)
        return updated

    async def delete_post(self, post_id: str, requester: Principal) -> None:
        """Delete a post and its comments. Owner or admin only.

        The post document is the source of truth. Once it is gone the delete
        has succeeded; removing the comments and the image blob afterwards is
        best-effort and failures are only logged.
        """
        post = await self.get_post(post_id)
        authorize(Action.POST_DELETE, requester, post.created_by)

        await self.store.delete(POSTS_COLLECTION, post_id)
        removed = await self._remove_comments(post_id)
        logger.info("post_deleted", post_id=post_id, comments_removed=removed)

        await self._release_image(post.image, post_id)

    async def toggle_like(self, post_id: str, user_id: str) -> Post:
        """Flip ``user_id``'s like on a post."""
        post = await self.get_post(post_id)
        liked = user_id not in post.likes
        transform = ArrayUnion([user_id]) if liked else ArrayRemove([user_id])
        await self.store.update(POSTS_COLLECTION, post_id, {"likes": transform})
        logger.info("post_like_set", post_id=post_id, liked=liked)
        return await self.get_post(post_id)

"""Comment system service layer.

Business logic for:
- Comment CRUD with threading support
- Likes as an atomic set toggle
- Soft delete that keeps replies attached
- Threaded and batched reads
"""

import structlog

from src.auth.permissions import Action, authorize
from src.auth.schemas import Principal
from src.auth.service import UserService
from src.core.database import SERVER_TIMESTAMP, ArrayRemove, ArrayUnion, DocumentStore
from src.core.errors import InvalidParent, NotFound, ValidationError
from src.posts.models import POSTS_COLLECTION
from src.utils.sanitize import sanitize_text

from .models import (
    COMMENTS_COLLECTION,
    Comment,
    new_comment_fields,
    soft_delete_fields,
)
from .tree import Thread, build_thread


logger = structlog.get_logger(__name__)

# Firestore caps the number of values in an ``in`` filter
MAX_IN_VALUES = 30


class CommentService:
    """Comments stored flat in the ``comments`` collection."""

    def __init__(self, store: DocumentStore, user_service: UserService):
        self.store = store
        self.users = user_service

    # ==========================================================================
    # Reads
    # ==========================================================================

    async def get_comment(self, comment_id: str, post_id: str | None = None) -> Comment:
        """Fetch one comment, optionally checking it belongs to ``post_id``."""
        try:
            doc = await self.store.get(COMMENTS_COLLECTION, comment_id)
        except NotFound as e:
            raise NotFound("Comment not found") from e

        comment = Comment.from_document(doc)
        if post_id is not None and comment.post_id != post_id:
            raise NotFound("Comment not found")
        return comment

    async def list_comments(self, post_id: str) -> list[Comment]:
        """All comments on a post, oldest first."""
        page = await self.store.query(
            COMMENTS_COLLECTION,
            filters=[("postId", "==", post_id)],
            order_by="createdAt",
        )
        return [Comment.from_document(doc) for doc in page.documents]

    async def get_thread(
        self,
        post_id: str,
        max_depth: int | None = None,
        limit: int | None = None,
    ) -> Thread[Comment]:
        """Threaded view of a post's comments."""
        comments = await self.list_comments(post_id)
        thread = build_thread(comments, max_depth=max_depth, limit=limit)
        if thread.detached:
            logger.warning(
                "detached_comments_found",
                post_id=post_id,
                count=len(thread.detached),
            )
        return thread

    async def get_batch_comments(self, post_ids: list[str]) -> dict[str, list[Comment]]:
        """Comments for several posts, grouped by post id (oldest first)."""
        unique_ids = list(dict.fromkeys(pid for pid in post_ids if pid))
        grouped: dict[str, list[Comment]] = {pid: [] for pid in unique_ids}

        for start in range(0, len(unique_ids), MAX_IN_VALUES):
            chunk = unique_ids[start : start + MAX_IN_VALUES]
            page = await self.store.query(
                COMMENTS_COLLECTION,
                filters=[("postId", "in", chunk)],
                order_by="createdAt",
            )
            for doc in page.documents:
                comment = Comment.from_document(doc)
                grouped[comment.post_id].append(comment)

        return grouped

    # ==========================================================================
    # Writes
    # ==========================================================================

    async def add_comment(
        self,
        post_id: str,
        text: str,
        author: Principal,
        parent_comment_id: str | None = None,
    ) -> Comment:
        """Create a comment or reply.

        Raises:
            NotFound: Post does not exist
            ValidationError: Text is empty after sanitization
            InvalidParent: Parent missing, deleted or on another post
        """
        try:
            await self.store.get(POSTS_COLLECTION, post_id)
        except NotFound as e:
            raise NotFound("Post not found") from e

        safe_text = sanitize_text(text)
        if not safe_text:
            raise ValidationError("Comment text is required.")

        if parent_comment_id:
            await self._check_parent(post_id, parent_comment_id)

        username = author.username or await self.users.get_username(author.id)
        comment_id = await self.store.add(
            COMMENTS_COLLECTION,
            new_comment_fields(
                post_id=post_id,
                text=safe_text,
                user_id=author.id,
                username=username,
                user_role=author.role,
                parent_comment_id=parent_comment_id or None,
            ),
        )

        logger.info(
            "comment_created",
            comment_id=comment_id,
            post_id=post_id,
            parent_comment_id=parent_comment_id,
        )
        return await self.get_comment(comment_id)

    async def _check_parent(self, post_id: str, parent_comment_id: str) -> None:
        try:
            parent = await self.get_comment(parent_comment_id)
        except NotFound as e:
            raise InvalidParent from e
        if parent.post_id != post_id:
            raise InvalidParent

    async def toggle_like(
        self,
        comment_id: str,
        user_id: str,
        liked: bool | None = None,
        post_id: str | None = None,
    ) -> Comment:
        """Add or remove ``user_id`` from a comment's likes.

        ``liked=True`` likes, ``liked=False`` unlikes and ``None`` flips the
        current state. Repeating a like or unlike is a no-op, never an error.
        """
        comment = await self.get_comment(comment_id, post_id)
        if comment.is_deleted:
            raise NotFound("Comment not found")

        if liked is None:
            liked = not comment.liked_by(user_id)

        transform = ArrayUnion([user_id]) if liked else ArrayRemove([user_id])
        await self.store.update(COMMENTS_COLLECTION, comment_id, {"likes": transform})

        logger.info("comment_like_set", comment_id=comment_id, liked=liked)
        return await self.get_comment(comment_id)

    async def update_comment(
        self,
        comment_id: str,
        text: str,
        requester: Principal,
        post_id: str | None = None,
    ) -> Comment:
        """Edit a comment's text. Author only."""
        comment = await self.get_comment(comment_id, post_id)
        if comment.is_deleted:
            raise NotFound("Comment not found")

        authorize(Action.COMMENT_UPDATE, requester, comment.user_id)

        safe_text = sanitize_text(text)
        if not safe_text:
            raise ValidationError("Comment text is required.")

        await self.store.update(
            COMMENTS_COLLECTION,
            comment_id,
            {"text": safe_text, "isEdited": True, "updatedAt": SERVER_TIMESTAMP},
        )

        logger.info("comment_updated", comment_id=comment_id)
        return await self.get_comment(comment_id)

    async def delete_comment(
        self,
        comment_id: str,
        requester: Principal,
        post_id: str | None = None,
    ) -> None:
        """Soft delete a comment. Author only.

        Replies stay attached and render under a placeholder. Deleting an
        already-deleted comment is a no-op.
        """
        comment = await self.get_comment(comment_id, post_id)

        authorize(Action.COMMENT_DELETE, requester, comment.user_id)

        if comment.is_deleted:
            return

        await self.store.update(COMMENTS_COLLECTION, comment_id, soft_delete_fields())
        logger.info("comment_deleted", comment_id=comment_id, post_id=comment.post_id)

    async def delete_for_post(self, post_id: str) -> int:
        """Hard delete every comment on a post. Returns the number removed."""
        page = await self.store.query(
            COMMENTS_COLLECTION, filters=[("postId", "==", post_id)]
        )
        for doc in page.documents:
            await self.store.delete(COMMENTS_COLLECTION, doc.id)
        return len(page.documents)

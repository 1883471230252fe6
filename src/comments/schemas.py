"""Pydantic schemas for the comment API.

Request and response models for:
- Comment CRUD and likes
- Threaded views
- Batch comment loading for post lists
"""

from datetime import datetime

from pydantic import AliasChoices, Field, field_validator

from src.core.schemas import CamelModel

from .models import Comment
from .tree import Thread, ThreadNode


MAX_COMMENT_LENGTH = 10000
MAX_BATCH_POSTS = 50


# ==============================================================================
# Request Schemas
# ==============================================================================


class CreateCommentRequest(CamelModel):
    """Request to create a new comment or reply."""

    text: str = Field(
        ...,
        max_length=MAX_COMMENT_LENGTH,
        validation_alias=AliasChoices("text", "commentText"),
    )
    parent_comment_id: str | None = None

    @field_validator("text")
    @classmethod
    def strip_text(cls, v: str) -> str:
        return v.strip()


class UpdateCommentRequest(CamelModel):
    """Request to update a comment."""

    text: str = Field(
        ...,
        max_length=MAX_COMMENT_LENGTH,
        validation_alias=AliasChoices("text", "commentText"),
    )

    @field_validator("text")
    @classmethod
    def strip_text(cls, v: str) -> str:
        return v.strip()


class BatchCommentsRequest(CamelModel):
    """Post ids whose comments should be loaded together."""

    post_ids: list[str] = Field(..., max_length=MAX_BATCH_POSTS)


# ==============================================================================
# Response Schemas
# ==============================================================================


class CommentResponse(CamelModel):
    """A single comment. Deleted comments carry the placeholder text."""

    id: str
    post_id: str
    parent_comment_id: str | None = None
    text: str
    user_id: str | None
    username: str
    user_role: str
    likes: list[str] = Field(default_factory=list)
    like_count: int = 0
    is_edited: bool = False
    is_deleted: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_comment(cls, comment: Comment) -> "CommentResponse":
        return cls(
            id=comment.id,
            post_id=comment.post_id,
            parent_comment_id=comment.parent_comment_id,
            text=comment.display_text,
            user_id=comment.user_id,
            username=comment.username,
            user_role=comment.user_role,
            likes=comment.likes,
            like_count=comment.like_count,
            is_edited=comment.is_edited,
            is_deleted=comment.is_deleted,
            created_at=comment.created_at,
            updated_at=comment.updated_at,
        )


class ThreadNodeResponse(CamelModel):
    """A comment with its rendered replies."""

    comment: CommentResponse
    depth: int
    replies: list["ThreadNodeResponse"] = Field(default_factory=list)
    hidden_replies: int = 0

    @classmethod
    def from_node(cls, node: ThreadNode[Comment]) -> "ThreadNodeResponse":
        # Iterative so very deep reply chains do not hit the recursion limit
        root = cls(comment=CommentResponse.from_comment(node.item), depth=node.depth)
        stack = [(node, root)]
        while stack:
            source, target = stack.pop()
            target.hidden_replies = source.hidden_replies
            for child in source.replies:
                child_response = cls(
                    comment=CommentResponse.from_comment(child.item),
                    depth=child.depth,
                )
                target.replies.append(child_response)
                stack.append((child, child_response))
        return root


class ThreadResponse(CamelModel):
    """Threaded view of a post's comments."""

    post_id: str
    comments: list[ThreadNodeResponse]
    detached: list[CommentResponse] = Field(default_factory=list)
    has_more: bool = False
    total_top_level: int = 0

    @classmethod
    def from_thread(cls, post_id: str, thread: Thread[Comment]) -> "ThreadResponse":
        return cls(
            post_id=post_id,
            comments=[ThreadNodeResponse.from_node(n) for n in thread.roots],
            detached=[CommentResponse.from_comment(c) for c in thread.detached],
            has_more=thread.has_more,
            total_top_level=thread.total_roots,
        )


class BatchCommentsResponse(CamelModel):
    """Comments grouped by post id."""

    comments: dict[str, list[CommentResponse]]

"""Comment document model.

Architecture: adjacency list for threaded comments
- ``parentCommentId`` references another comment on the same post (None for
  top-level comments)
- Author username and role are denormalised at write time
- Deletes are soft: the document stays with ``isDeleted`` set so replies keep
  their parent
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from src.core.database import SERVER_TIMESTAMP, Document


COMMENTS_COLLECTION = "comments"

DELETED_PLACEHOLDER = "[comment deleted]"


@dataclass
class Comment:
    """Comment on a post, optionally replying to another comment."""

    id: str
    post_id: str
    text: str
    user_id: str | None
    username: str
    user_role: str = "authenticated"
    parent_comment_id: str | None = None
    likes: list[str] = field(default_factory=list)
    is_edited: bool = False
    is_deleted: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_document(cls, doc: Document) -> "Comment":
        """Create Comment from a stored document."""
        data = doc.data
        return cls(
            id=doc.id,
            post_id=data.get("postId") or "",
            text=data.get("text") or "",
            user_id=data.get("userId"),
            username=data.get("username") or "Anonymous",
            user_role=data.get("userRole") or "authenticated",
            parent_comment_id=data.get("parentCommentId") or None,
            likes=list(data.get("likes") or []),
            is_edited=bool(data.get("isEdited")),
            is_deleted=bool(data.get("isDeleted")),
            created_at=data.get("createdAt"),
            updated_at=data.get("updatedAt") or data.get("createdAt"),
        )

    @property
    def display_text(self) -> str:
        return DELETED_PLACEHOLDER if self.is_deleted else self.text

    @property
    def like_count(self) -> int:
        return len(self.likes)

    def liked_by(self, user_id: str) -> bool:
        return user_id in self.likes


# ==============================================================================
# Factory Functions
# ==============================================================================


def new_comment_fields(
    post_id: str,
    text: str,
    user_id: str,
    username: str,
    user_role: str,
    parent_comment_id: str | None = None,
) -> dict[str, Any]:
    """Fields for a freshly created comment document."""
    return {
        "postId": post_id,
        "parentCommentId": parent_comment_id,
        "text": text,
        "userId": user_id,
        "username": username,
        "userRole": user_role,
        "likes": [],
        "isEdited": False,
        "isDeleted": False,
        "createdAt": SERVER_TIMESTAMP,
        "updatedAt": SERVER_TIMESTAMP,
    }


def soft_delete_fields() -> dict[str, Any]:
    """Partial update applied when a comment is deleted."""
    return {
        "isDeleted": True,
        "text": "",
        "likes": [],
        "updatedAt": SERVER_TIMESTAMP,
    }

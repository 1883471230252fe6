"""Post document model.

Posts live in the ``posts`` collection with camelCase field names.
``imageUrl`` and ``imageHash`` are written together or not at all.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from src.core.database import SERVER_TIMESTAMP, Document
from src.storage.service import UploadedImage


POSTS_COLLECTION = "posts"

ALL_CATEGORIES = "All"


@dataclass
class Post:
    """Blog post with optional hosted image and sanitized rich content."""

    id: str
    title: str
    description: str
    category: str
    created_by: str | None
    created_by_username: str
    image_url: str | None = None
    image_hash: str | None = None
    additional_content: str = ""
    graph_content: str = ""
    likes: list[str] = field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_document(cls, doc: Document) -> "Post":
        """Create Post from a stored document."""
        data = doc.data
        image_url = data.get("imageUrl") or None
        image_hash = data.get("imageHash") or None
        if not (image_url and image_hash):
            image_url = image_hash = None
        return cls(
            id=doc.id,
            title=data.get("title") or "",
            description=data.get("description") or "",
            category=data.get("category") or "",
            created_by=data.get("createdBy"),
            created_by_username=data.get("createdByUsername") or "",
            image_url=image_url,
            image_hash=image_hash,
            additional_content=data.get("additionalContent") or "",
            graph_content=data.get("graphContent") or "",
            likes=list(data.get("likes") or []),
            created_at=data.get("createdAt"),
            updated_at=data.get("updatedAt"),
        )

    @property
    def image(self) -> UploadedImage | None:
        if self.image_url and self.image_hash:
            return UploadedImage(url=self.image_url, hash=self.image_hash)
        return None

    @property
    def like_count(self) -> int:
        return len(self.likes)


def image_fields(image: UploadedImage | None) -> dict[str, Any]:
    """Both image fields, set or cleared together."""
    if image is None:
        return {"imageUrl": None, "imageHash": None}
    return {"imageUrl": image.url, "imageHash": image.hash}


def new_post_fields(
    title: str,
    description: str,
    category: str,
    author_id: str,
    author_username: str,
    image: UploadedImage | None = None,
    additional_content: str = "",
    graph_content: str = "",
) -> dict[str, Any]:
    """Fields for a freshly created post document."""
    return {
        "title": title,
        "description": description,
        "category": category,
        "createdBy": author_id,
        "createdByUsername": author_username,
        **image_fields(image),
        "additionalContent": additional_content,
        "graphContent": graph_content,
        "likes": [],
        "createdAt": SERVER_TIMESTAMP,
        "updatedAt": SERVER_TIMESTAMP,
    }

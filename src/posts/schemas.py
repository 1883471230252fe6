"""Pydantic schemas for the post API."""

from datetime import datetime

from pydantic import Field

from src.core.schemas import CamelModel

from .models import Post


class PostResponse(CamelModel):
    """A post as returned by the API."""

    id: str
    title: str
    description: str
    category: str
    image_url: str | None = None
    image_hash: str | None = None
    additional_content: str = ""
    graph_content: str = ""
    created_by: str | None = None
    created_by_username: str = ""
    likes: list[str] = Field(default_factory=list)
    like_count: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_post(cls, post: Post) -> "PostResponse":
        return cls(
            id=post.id,
            title=post.title,
            description=post.description,
            category=post.category,
            image_url=post.image_url,
            image_hash=post.image_hash,
            additional_content=post.additional_content,
            graph_content=post.graph_content,
            created_by=post.created_by,
            created_by_username=post.created_by_username,
            likes=post.likes,
            like_count=post.like_count,
            created_at=post.created_at,
            updated_at=post.updated_at,
        )


class PostListResponse(CamelModel):
    """One page of posts. ``nextCursor`` is null on the last page."""

    posts: list[PostResponse]
    next_cursor: str | None = None


class CreatePostResponse(CamelModel):
    post: PostResponse
    message: str


class MultiCategoryResponse(CamelModel):
    """Latest posts keyed by category."""

    data: dict[str, list[PostResponse]]


class DeleteResponse(CamelModel):
    success: bool = True

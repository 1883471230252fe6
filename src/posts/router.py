"""Post API endpoints.

Provides routes for:
- Listing posts by category with cursor pagination
- Latest posts for several categories at once
- Creating and updating posts (multipart, optional image)
- Deleting and liking posts
"""

from typing import Annotated

from fastapi import APIRouter, File, Form, Query, UploadFile, status

from src.auth.dependencies import CurrentUser

from .dependencies import PostServiceDep
from .models import ALL_CATEGORIES
from .schemas import (
    CreatePostResponse,
    DeleteResponse,
    MultiCategoryResponse,
    PostListResponse,
    PostResponse,
)
from .service import DEFAULT_PAGE_SIZE, ImageUpload


router = APIRouter(prefix="/api/posts", tags=["posts"])


async def _read_image(image: UploadFile | None) -> ImageUpload | None:
    # Browsers send an empty part when no file was picked
    if image is None or not image.filename:
        return None
    return ImageUpload(
        filename=image.filename,
        content=await image.read(),
        content_type=image.content_type,
    )


@router.get(
    "",
    response_model=PostListResponse,
    summary="List posts",
)
async def list_posts(
    post_service: PostServiceDep,
    category: str = ALL_CATEGORIES,
    limit: Annotated[int, Query(ge=1, le=50)] = DEFAULT_PAGE_SIZE,
    start_after: Annotated[str | None, Query(alias="startAfter")] = None,
) -> PostListResponse:
    """Newest posts first. Pass ``nextCursor`` back as ``startAfter``."""
    posts, next_cursor = await post_service.get_posts(
        category=category, limit=limit, cursor=start_after
    )
    return PostListResponse(
        posts=[PostResponse.from_post(p) for p in posts],
        next_cursor=next_cursor,
    )


@router.get(
    "/multi-category",
    response_model=MultiCategoryResponse,
    summary="Latest posts per category",
)
async def multi_category_posts(
    post_service: PostServiceDep,
    categories: str = "",
    limit: Annotated[int, Query(ge=1, le=50)] = 5,
) -> MultiCategoryResponse:
    """Comma-separated ``categories``."""
    grouped = await post_service.get_multi_category_posts(
        categories.split(","), limit=limit
    )
    return MultiCategoryResponse(
        data={
            category: [PostResponse.from_post(p) for p in posts]
            for category, posts in grouped.items()
        }
    )


@router.get(
    "/{post_id}",
    response_model=PostResponse,
    summary="Get post",
)
async def get_post(
    post_id: str,
    post_service: PostServiceDep,
) -> PostResponse:
    post = await post_service.get_post(post_id)
    return PostResponse.from_post(post)


@router.post(
    "",
    response_model=CreatePostResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create post",
)
async def create_post(
    post_service: PostServiceDep,
    user: CurrentUser,
    title: Annotated[str, Form()] = "",
    description: Annotated[str, Form()] = "",
    category: Annotated[str, Form()] = "",
    additional_content: Annotated[str, Form(alias="additionalContent")] = "",
    graph_content: Annotated[str, Form(alias="graphContent")] = "",
    image: Annotated[UploadFile | None, File()] = None,
) -> CreatePostResponse:
    """Create a post. The image, if any, is hosted before the post is saved."""
    post = await post_service.create_post(
        fields={
            "title": title,
            "description": description,
            "category": category,
            "additionalContent": additional_content,
            "graphContent": graph_content,
        },
        author=user,
        image=await _read_image(image),
    )
    return CreatePostResponse(
        post=PostResponse.from_post(post),
        message="Post created successfully.",
    )


@router.put(
    "/{post_id}",
    response_model=PostResponse,
    summary="Update post",
)
async def update_post(
    post_id: str,
    post_service: PostServiceDep,
    user: CurrentUser,
    title: Annotated[str | None, Form()] = None,
    description: Annotated[str | None, Form()] = None,
    category: Annotated[str | None, Form()] = None,
    additional_content: Annotated[str | None, Form(alias="additionalContent")] = None,
    graph_content: Annotated[str | None, Form(alias="graphContent")] = None,
    remove_image: Annotated[bool, Form(alias="removeImage")] = False,
    image: Annotated[UploadFile | None, File()] = None,
) -> PostResponse:
    """Update a post. Owner or admin only; omitted fields are left as is."""
    post = await post_service.update_post(
        post_id,
        fields={
            "title": title,
            "description": description,
            "category": category,
            "additionalContent": additional_content,
            "graphContent": graph_content,
        },
        requester=user,
        image=await _read_image(image),
        remove_image=remove_image,
    )
    return PostResponse.from_post(post)


@router.delete(
    "/{post_id}",
    response_model=DeleteResponse,
    summary="Delete post",
)
async def delete_post(
    post_id: str,
    post_service: PostServiceDep,
    user: CurrentUser,
) -> DeleteResponse:
    """Delete a post with its comments. Owner or admin only."""
    await post_service.delete_post(post_id, user)
    return DeleteResponse(success=True)


@router.post(
    "/{post_id}/like",
    response_model=PostResponse,
    summary="Like or unlike post",
)
async def like_post(
    post_id: str,
    post_service: PostServiceDep,
    user: CurrentUser,
) -> PostResponse:
    post = await post_service.toggle_like(post_id, user.id)
    return PostResponse.from_post(post)

"""Comment API endpoints.

Comments are nested under their post:
- CRUD on ``/api/posts/{post_id}/comments``
- Like/unlike on a single comment
- Threaded view and batch loading for post lists

Every route checks the comment belongs to the post in the URL.
"""

from typing import Annotated

from fastapi import APIRouter, Query, Response, status

from src.auth.dependencies import CurrentUser

from .dependencies import CommentServiceDep
from .schemas import (
    MAX_BATCH_POSTS,
    BatchCommentsRequest,
    BatchCommentsResponse,
    CommentResponse,
    CreateCommentRequest,
    ThreadResponse,
    UpdateCommentRequest,
)


router = APIRouter(prefix="/api/posts", tags=["comments"])


def _split_ids(raw: str | None) -> list[str]:
    return [part.strip() for part in (raw or "").split(",") if part.strip()]


async def _batch(
    comment_service: CommentServiceDep, post_ids: list[str]
) -> BatchCommentsResponse:
    grouped = await comment_service.get_batch_comments(post_ids[:MAX_BATCH_POSTS])
    return BatchCommentsResponse(
        comments={
            post_id: [CommentResponse.from_comment(c) for c in comments]
            for post_id, comments in grouped.items()
        }
    )


@router.get(
    "/batch-comments",
    response_model=BatchCommentsResponse,
    summary="Comments for several posts",
)
async def get_batch_comments(
    comment_service: CommentServiceDep,
    post_ids: Annotated[str | None, Query(alias="postIds")] = None,
) -> BatchCommentsResponse:
    """Comma-separated ``postIds``; unknown posts map to an empty list."""
    return await _batch(comment_service, _split_ids(post_ids))


@router.post(
    "/batch-comments",
    response_model=BatchCommentsResponse,
    summary="Comments for several posts",
)
async def post_batch_comments(
    data: BatchCommentsRequest,
    comment_service: CommentServiceDep,
) -> BatchCommentsResponse:
    return await _batch(comment_service, data.post_ids)


@router.get(
    "/{post_id}/comments",
    response_model=list[CommentResponse],
    summary="List comments",
)
async def list_comments(
    post_id: str,
    comment_service: CommentServiceDep,
) -> list[CommentResponse]:
    """Flat list of a post's comments, oldest first."""
    comments = await comment_service.list_comments(post_id)
    return [CommentResponse.from_comment(c) for c in comments]


@router.get(
    "/{post_id}/comments/thread",
    response_model=ThreadResponse,
    summary="Threaded comments",
)
async def get_thread(
    post_id: str,
    comment_service: CommentServiceDep,
    limit: Annotated[int | None, Query(ge=1, le=200)] = None,
    max_depth: Annotated[int | None, Query(alias="maxDepth", ge=0, le=50)] = None,
) -> ThreadResponse:
    """Top-level comments (``limit`` at a time) with nested replies."""
    thread = await comment_service.get_thread(post_id, max_depth=max_depth, limit=limit)
    return ThreadResponse.from_thread(post_id, thread)


@router.post(
    "/{post_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add comment",
)
async def add_comment(
    post_id: str,
    data: CreateCommentRequest,
    comment_service: CommentServiceDep,
    user: CurrentUser,
) -> CommentResponse:
    """Add a comment, or a reply when ``parentCommentId`` is set."""
    comment = await comment_service.add_comment(
        post_id=post_id,
        text=data.text,
        author=user,
        parent_comment_id=data.parent_comment_id,
    )
    return CommentResponse.from_comment(comment)


@router.put(
    "/{post_id}/comments/{comment_id}",
    response_model=CommentResponse,
    summary="Edit comment",
)
async def update_comment(
    post_id: str,
    comment_id: str,
    data: UpdateCommentRequest,
    comment_service: CommentServiceDep,
    user: CurrentUser,
) -> CommentResponse:
    comment = await comment_service.update_comment(
        comment_id, data.text, user, post_id=post_id
    )
    return CommentResponse.from_comment(comment)


@router.delete(
    "/{post_id}/comments/{comment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete comment",
)
async def delete_comment(
    post_id: str,
    comment_id: str,
    comment_service: CommentServiceDep,
    user: CurrentUser,
) -> Response:
    """Soft delete: replies stay and the comment shows a placeholder."""
    await comment_service.delete_comment(comment_id, user, post_id=post_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{post_id}/comments/{comment_id}/like",
    response_model=CommentResponse,
    summary="Like comment",
)
async def like_comment(
    post_id: str,
    comment_id: str,
    comment_service: CommentServiceDep,
    user: CurrentUser,
) -> CommentResponse:
    comment = await comment_service.toggle_like(
        comment_id, user.id, liked=True, post_id=post_id
    )
    return CommentResponse.from_comment(comment)


@router.post(
    "/{post_id}/comments/{comment_id}/unlike",
    response_model=CommentResponse,
    summary="Unlike comment",
)
async def unlike_comment(
    post_id: str,
    comment_id: str,
    comment_service: CommentServiceDep,
    user: CurrentUser,
) -> CommentResponse:
    comment = await comment_service.toggle_like(
        comment_id, user.id, liked=False, post_id=post_id
    )
    return CommentResponse.from_comment(comment)

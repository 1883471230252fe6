"""FastAPI dependencies for posts."""

from typing import Annotated

from fastapi import Depends, Request

from .service import PostService


async def get_post_service(request: Request) -> PostService:
    """Get post service from app state."""
    return request.app.state.post_service


PostServiceDep = Annotated[PostService, Depends(get_post_service)]

"""FastAPI dependencies for profiles."""

from typing import Annotated

from fastapi import Depends, Request

from .service import ProfileService


async def get_profile_service(request: Request) -> ProfileService:
    """Get profile service from app state."""
    return request.app.state.profile_service


ProfileServiceDep = Annotated[ProfileService, Depends(get_profile_service)]

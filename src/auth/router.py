"""Authentication API endpoints.

Provides routes for:
- Exchanging a Firebase ID token for a session token
- Sign-up with profile fields
- Sign-out
"""

from typing import Annotated

import structlog
from fastapi import APIRouter, Body, Depends, Request, status

from src.auth.dependencies import (
    CurrentUser,
    IdentityVerifierDep,
    UserServiceDep,
    get_token_from_header,
)
from src.auth.models import User
from src.auth.schemas import (
    Principal,
    SessionRequest,
    SessionResponse,
    SignUpRequest,
    UserResponse,
)
from src.auth.security import create_session_token
from src.core.errors import Unauthorized
from src.core.middleware import set_user_context
from src.core.schemas import MessageResponse


logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])

BearerToken = Annotated[str | None, Depends(get_token_from_header)]


def _id_token(body_token: str | None, header_token: str | None) -> str:
    token = body_token or header_token
    if not token:
        raise Unauthorized("No token provided")
    return token


def _session_response(request: Request, user: User, message: str) -> SessionResponse:
    settings = request.app.state.settings
    token = create_session_token(
        Principal.from_user(user).to_claims(), settings=settings
    )
    return SessionResponse(
        message=message,
        user=UserResponse.from_user(user),
        token=token,
        expires_in=settings.session_expire_minutes * 60,
    )


@router.post(
    "/session",
    response_model=SessionResponse,
    summary="Exchange an ID token for a session",
)
async def create_session(
    request: Request,
    users: UserServiceDep,
    verifier: IdentityVerifierDep,
    header_token: BearerToken,
    data: Annotated[SessionRequest | None, Body()] = None,
) -> SessionResponse:
    """Verify a Firebase ID token, creating the user on first sign-in."""
    identity = await verifier.verify(
        _id_token(data.id_token if data else None, header_token)
    )
    user, created = await users.get_or_create_from_identity(identity)
    set_user_context(user.id)

    logger.info("session_created", user_id=user.id, first_sign_in=created)
    message = "User created successfully." if created else "Sign in successful."
    return _session_response(request, user, message)


@router.post(
    "/signup",
    response_model=SessionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Sign up with profile fields",
)
async def sign_up(
    request: Request,
    data: SignUpRequest,
    users: UserServiceDep,
    verifier: IdentityVerifierDep,
    header_token: BearerToken,
) -> SessionResponse:
    """Create a user for a verified identity whose email is not yet in use."""
    identity = await verifier.verify(_id_token(data.id_token, header_token))
    user = await users.sign_up(identity, data)
    set_user_context(user.id)
    return _session_response(request, user, "User signed up successfully.")


@router.post("/signout", response_model=MessageResponse, summary="Sign out")
async def sign_out(user: CurrentUser) -> MessageResponse:
    """Session tokens are stateless; the client discards its copy."""
    logger.info("session_ended", user_id=user.id)
    return MessageResponse(message="Sign out successful.")

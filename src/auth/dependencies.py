"""FastAPI dependencies for authentication.

Provides dependency injection for:
- Bearer token extraction
- Principal resolution from a session JWT or a Firebase ID token
"""

from typing import Annotated

from fastapi import Depends, Request
from jose import JWTError

from src.auth.schemas import Principal
from src.auth.security import decode_session_token, looks_like_session_token
from src.auth.service import UserService
from src.auth.verifier import IdentityVerifier
from src.config.settings import Settings
from src.core.errors import NotFound, Unauthorized
from src.core.middleware import set_user_context


def get_token_from_header(request: Request) -> str | None:
    """Extract Bearer token from Authorization header."""
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        return None

    expected_parts = 2
    parts = auth_header.split()
    if len(parts) != expected_parts or parts[0].lower() != "bearer":
        return None

    return parts[1]


def get_user_service(request: Request) -> UserService:
    """Get user service from app state."""
    return request.app.state.user_service


def get_identity_verifier(request: Request) -> IdentityVerifier:
    """Get identity verifier from app state."""
    return request.app.state.identity_verifier


async def resolve_principal(
    token: str,
    verifier: IdentityVerifier,
    users: UserService,
    settings: Settings | None = None,
) -> Principal:
    """Turn a bearer credential into a principal.

    Session tokens are checked locally; anything else is treated as an ID
    token and verified with the identity provider, after which the user
    document supplies role and username.

    Raises:
        Unauthorized: Invalid or expired credential
        NotFound: Verified identity with no user document
    """
    if looks_like_session_token(token, settings):
        try:
            payload = decode_session_token(token, settings)
        except JWTError as e:
            raise Unauthorized("Invalid or expired token") from e
        return Principal.from_claims(payload)

    identity = await verifier.verify(token)
    try:
        user = await users.get_user(identity.uid)
    except NotFound as e:
        raise NotFound("User not found in database") from e
    return Principal.from_user(user)


async def get_current_user(
    request: Request,
    token: Annotated[str | None, Depends(get_token_from_header)],
) -> Principal:
    """Get the authenticated principal.

    Raises:
        Unauthorized: If the token is missing or invalid
    """
    if not token:
        raise Unauthorized("No token provided")

    principal = await resolve_principal(
        token,
        get_identity_verifier(request),
        get_user_service(request),
        request.app.state.settings,
    )

    # Set user_id in context for logging
    set_user_context(principal.id)
    request.state.user = principal
    return principal


# ==============================================================================
# Type Aliases for Cleaner Code
# ==============================================================================

CurrentUser = Annotated[Principal, Depends(get_current_user)]

UserServiceDep = Annotated[UserService, Depends(get_user_service)]

IdentityVerifierDep = Annotated[IdentityVerifier, Depends(get_identity_verifier)]

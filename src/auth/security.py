"""Session token utilities.

After a Firebase ID token is verified at ``/api/auth/session`` the API issues
its own short-lived JWT so later requests do not need a round trip to the
identity provider. The token carries the principal (id, email, username,
role) and a ``type`` claim of ``"session"``.
"""

from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt

from src.config.settings import Settings, get_settings


SESSION_TOKEN_TYPE = "session"


def create_session_token(
    data: dict[str, Any],
    expires_delta: timedelta | None = None,
    settings: Settings | None = None,
) -> str:
    """Create a signed session JWT.

    Args:
        data: Claims, typically {"sub": uid, "email", "username", "role"}
        expires_delta: Token lifetime (default from settings)
        settings: Settings to sign with (default ``get_settings()``)

    Returns:
        Encoded JWT string
    """
    settings = settings or get_settings()

    now = datetime.now(UTC)
    to_encode = data.copy()
    to_encode.update(
        {
            "exp": now
            + (expires_delta or timedelta(minutes=settings.session_expire_minutes)),
            "iat": now,
            "type": SESSION_TOKEN_TYPE,
        }
    )

    return jwt.encode(
        to_encode,
        settings.session_secret_key,
        algorithm=settings.session_algorithm,
    )


def decode_session_token(
    token: str, settings: Settings | None = None
) -> dict[str, Any]:
    """Decode and validate a session token.

    Validates signature, expiry, the ``type`` claim and presence of ``sub``.

    Raises:
        JWTError: If the token is invalid, expired or not a session token
    """
    settings = settings or get_settings()

    payload = jwt.decode(
        token,
        settings.session_secret_key,
        algorithms=[settings.session_algorithm],
    )

    if payload.get("type") != SESSION_TOKEN_TYPE:
        msg = "Invalid token type: expected 'session'"
        raise JWTError(msg)

    if not payload.get("sub"):
        msg = "Session token missing sub claim"
        raise JWTError(msg)

    return payload


def looks_like_session_token(token: str, settings: Settings | None = None) -> bool:
    """Cheap header check: was this JWT signed with our algorithm?

    Firebase ID tokens are RS256; session tokens use the configured HMAC
    algorithm. Only the unverified header is read.
    """
    settings = settings or get_settings()
    try:
        header = jwt.get_unverified_header(token)
    except JWTError:
        return False
    return header.get("alg") == settings.session_algorithm

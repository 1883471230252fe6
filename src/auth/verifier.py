"""Identity provider adapter.

Verifies Firebase ID tokens through the Admin SDK. The verifier lives on
``app.state`` so tests can substitute a fake implementing the same
``verify`` coroutine.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Protocol

import firebase_admin
import structlog
from firebase_admin import auth as firebase_auth

from src.core.errors import Unauthorized, UpstreamFailure


logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class VerifiedIdentity:
    """Claims taken from a verified ID token."""

    uid: str
    email: str
    name: str | None = None
    picture: str | None = None
    provider: str | None = None

    @classmethod
    def from_claims(cls, claims: dict[str, Any]) -> "VerifiedIdentity":
        firebase_claims = claims.get("firebase") or {}
        return cls(
            uid=claims["uid"],
            email=(claims.get("email") or "").lower().strip(),
            name=claims.get("name"),
            picture=claims.get("picture"),
            provider=firebase_claims.get("sign_in_provider"),
        )


class IdentityVerifier(Protocol):
    async def verify(self, id_token: str) -> VerifiedIdentity: ...


class FirebaseIdentityVerifier:
    """Verify ID tokens with ``firebase_admin.auth``."""

    def __init__(self, app: firebase_admin.App, check_revoked: bool = False) -> None:
        self._app = app
        self._check_revoked = check_revoked

    async def verify(self, id_token: str) -> VerifiedIdentity:
        try:
            claims = await asyncio.to_thread(
                firebase_auth.verify_id_token,
                id_token,
                app=self._app,
                check_revoked=self._check_revoked,
            )
        except firebase_auth.ExpiredIdTokenError as e:
            raise Unauthorized("Token expired") from e
        except (
            firebase_auth.InvalidIdTokenError,
            firebase_auth.RevokedIdTokenError,
            firebase_auth.UserDisabledError,
            ValueError,
        ) as e:
            logger.info("id_token_rejected", error_type=type(e).__name__)
            raise Unauthorized("Authentication failed") from e
        except firebase_auth.CertificateFetchError as e:
            logger.error("id_token_certificates_unavailable", error=str(e))
            raise UpstreamFailure("Identity provider unavailable") from e

        return VerifiedIdentity.from_claims(claims)


class UnconfiguredIdentityVerifier:
    """Stand-in used when Firebase credentials are absent.

    Session JWTs keep working; raw ID tokens are rejected.
    """

    async def verify(self, id_token: str) -> VerifiedIdentity:
        raise Unauthorized("Identity provider is not configured")

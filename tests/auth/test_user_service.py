"""Tests for UserService sign-in and sign-up."""

import pytest

from src.auth.schemas import SignUpRequest
from src.auth.service import UNKNOWN_USERNAME, UserService
from src.auth.verifier import VerifiedIdentity
from src.core.errors import ValidationError


def _identity(uid: str = "u1", email: str = "New.User@Example.com") -> VerifiedIdentity:
    return VerifiedIdentity(
        uid=uid, email=email, name="New User", provider="google.com"
    )


class TestGetOrCreate:
    """First sign-in creates the user document once."""

    @pytest.mark.asyncio
    async def test_first_sign_in_creates_user(self, user_service: UserService) -> None:
        user, created = await user_service.get_or_create_from_identity(_identity())

        assert created is True
        assert user.email == "new.user@example.com"
        assert user.username == "new.user"
        assert user.display_name == "New User"
        assert user.role == "authenticated"
        assert user.google_id == "u1"
        assert user.notifications == {"email": True, "inApp": True, "newsletter": False}

    @pytest.mark.asyncio
    async def test_second_sign_in_reuses_user(self, user_service: UserService) -> None:
        await user_service.get_or_create_from_identity(_identity())
        user, created = await user_service.get_or_create_from_identity(_identity())
        assert created is False
        assert user.id == "u1"


class TestSignUp:
    """Sign-up with explicit profile fields."""

    @pytest.mark.asyncio
    async def test_sign_up(self, user_service: UserService) -> None:
        user = await user_service.sign_up(
            _identity(),
            SignUpRequest(username=" surfer ", first_name="Ada", last_name="L"),
        )
        assert user.username == "surfer"
        assert user.first_name == "Ada"

    @pytest.mark.asyncio
    async def test_email_in_use(self, user_service: UserService) -> None:
        await user_service.get_or_create_from_identity(_identity())
        with pytest.raises(ValidationError, match="already in use"):
            await user_service.sign_up(
                _identity(uid="u2", email="new.user@example.com"),
                SignUpRequest(username="other"),
            )

    @pytest.mark.asyncio
    async def test_identity_without_email(self, user_service: UserService) -> None:
        with pytest.raises(ValidationError):
            await user_service.sign_up(
                _identity(email=""), SignUpRequest(username="nomail")
            )

    def test_blank_username_rejected(self) -> None:
        with pytest.raises(ValueError):
            SignUpRequest(username="   ")


class TestGetUsername:
    """Username snapshots."""

    @pytest.mark.asyncio
    async def test_unknown_user(self, user_service: UserService) -> None:
        assert await user_service.get_username("ghost") == UNKNOWN_USERNAME

    @pytest.mark.asyncio
    async def test_known_user(self, user_service: UserService) -> None:
        await user_service.get_or_create_from_identity(_identity())
        assert await user_service.get_username("u1") == "new.user"

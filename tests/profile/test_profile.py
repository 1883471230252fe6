"""Tests for the profile API."""

from collections.abc import Callable

import pytest
from fastapi.testclient import TestClient

from src.core.database import InMemoryDocumentStore
from src.posts.models import POSTS_COLLECTION
from src.profile.schemas import FavoriteRequest, InterestsRequest
from src.profile.service import ProfileService
from src.storage.service import StorageNotConfiguredError
from tests.fakes import PNG_BYTES, FakeImageHost


SignIn = Callable[..., dict[str, str]]


class TestProfileSchemas:
    """Request schema normalisation."""

    def test_interests_are_stripped_and_deduped(self) -> None:
        data = InterestsRequest(interests=[" ai ", "ml", "ai", "  "])
        assert data.interests == ["ai", "ml"]

    @pytest.mark.parametrize("key", ["postId", "favoriteId", "post_id"])
    def test_favorite_accepts_aliases(self, key: str) -> None:
        assert FavoriteRequest.model_validate({key: "p1"}).post_id == "p1"


class TestProfileRoutes:
    """Reading and editing the signed-in user's profile."""

    def test_requires_auth(self, client: TestClient) -> None:
        response = client.get("/api/profile")
        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_get_profile(self, client: TestClient, sign_in: SignIn) -> None:
        headers = sign_in("alice", "alice@example.com")
        response = client.get("/api/profile", headers=headers)

        assert response.status_code == 200
        body = response.json()
        assert body["id"] == "alice"
        assert body["username"] == "alice"
        assert body["role"] == "authenticated"
        assert "photoURL" in body

    def test_partial_update(self, client: TestClient, sign_in: SignIn) -> None:
        headers = sign_in("alice")
        response = client.put(
            "/api/profile",
            json={"bio": " Surfing the AI wave ", "photoURL": "https://x.test/a.png"},
            headers=headers,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["bio"] == "Surfing the AI wave"
        assert body["photoURL"] == "https://x.test/a.png"
        assert body["username"] == "alice"

    def test_blank_username_rejected(
        self, client: TestClient, sign_in: SignIn
    ) -> None:
        headers = sign_in("alice")
        response = client.put("/api/profile", json={"username": "  "}, headers=headers)
        assert response.status_code == 400
        assert response.json()["code"] == "validation_error"

    def test_role_cannot_be_changed(self, client: TestClient, sign_in: SignIn) -> None:
        headers = sign_in("alice")
        response = client.put("/api/profile", json={"role": "admin"}, headers=headers)
        assert response.status_code == 200
        assert response.json()["role"] == "authenticated"

    def test_interests(self, client: TestClient, sign_in: SignIn) -> None:
        headers = sign_in("alice")
        response = client.put(
            "/api/profile/interests",
            json={"interests": ["LLMs", "LLMs", "Robotics"]},
            headers=headers,
        )
        assert response.status_code == 200
        assert response.json() == {"interests": ["LLMs", "Robotics"]}

    def test_notifications_defaults_and_update(
        self, client: TestClient, sign_in: SignIn
    ) -> None:
        headers = sign_in("alice")

        response = client.get("/api/profile/notifications", headers=headers)
        assert response.json() == {"email": True, "inApp": True, "newsletter": False}

        response = client.put(
            "/api/profile/notifications",
            json={"notifications": {"newsletter": True, "inApp": False}},
            headers=headers,
        )
        assert response.status_code == 200
        assert response.json() == {"email": True, "inApp": False, "newsletter": True}

    def test_community(self, client: TestClient, sign_in: SignIn) -> None:
        headers = sign_in("alice")
        response = client.get("/api/profile/community", headers=headers)
        assert response.status_code == 200
        assert response.json()["discordInvite"].startswith("https://discord.gg/")


class TestAvatar:
    """Avatar upload."""

    def test_upload_sets_photo_url(
        self,
        client: TestClient,
        sign_in: SignIn,
        avatar_storage: FakeImageHost,
    ) -> None:
        headers = sign_in("alice")
        response = client.put(
            "/api/profile/upload-avatar",
            files={"avatar": ("me.png", PNG_BYTES, "image/png")},
            headers=headers,
        )

        assert response.status_code == 200
        url = response.json()["photoURL"]
        assert url.startswith(avatar_storage.base_url)

        profile = client.get("/api/profile", headers=headers).json()
        assert profile["photoURL"] == url

    def test_missing_file(self, client: TestClient, sign_in: SignIn) -> None:
        headers = sign_in("alice")
        response = client.put("/api/profile/upload-avatar", headers=headers)
        assert response.status_code == 400
        assert response.json()["message"] == "No file uploaded."

    def test_not_an_image(
        self,
        client: TestClient,
        sign_in: SignIn,
        avatar_storage: FakeImageHost,
    ) -> None:
        headers = sign_in("alice")
        response = client.put(
            "/api/profile/upload-avatar",
            files={"avatar": ("me.png", b"definitely text", "image/png")},
            headers=headers,
        )
        assert response.status_code == 400
        assert avatar_storage.uploads == []

    @pytest.mark.asyncio
    async def test_storage_not_configured(
        self,
        profile_service: ProfileService,
        store: InMemoryDocumentStore,
    ) -> None:
        await store.set("users", "alice", {"email": "alice@example.com"})
        profile_service.avatar_storage = None

        with pytest.raises(StorageNotConfiguredError):
            await profile_service.upload_avatar(
                "alice", "me.png", PNG_BYTES, "image/png"
            )


class TestFavorites:
    """Favourite posts."""

    @pytest.mark.asyncio
    async def test_add_is_idempotent_and_remove(
        self,
        profile_service: ProfileService,
        store: InMemoryDocumentStore,
    ) -> None:
        await store.set("users", "alice", {"email": "alice@example.com"})
        post_id = await store.add(POSTS_COLLECTION, {"title": "Saved"})

        await profile_service.add_favorite("alice", post_id)
        favorites = await profile_service.add_favorite("alice", post_id)
        assert favorites == [post_id]

        assert await profile_service.remove_favorite("alice", post_id) == []
        assert await profile_service.remove_favorite("alice", post_id) == []

    def test_routes(self, client: TestClient, sign_in: SignIn) -> None:
        headers = sign_in("alice")
        post_id = client.post(
            "/api/posts",
            data={"title": "Saved", "description": "d", "category": "AI"},
            headers=headers,
        ).json()["post"]["id"]

        response = client.post(
            "/api/profile/favorites", json={"favoriteId": post_id}, headers=headers
        )
        assert response.status_code == 200
        assert response.json() == [post_id]

        assert client.get("/api/profile/favorites", headers=headers).json() == [
            post_id
        ]

        response = client.delete(f"/api/profile/favorites/{post_id}", headers=headers)
        assert response.json() == []

    def test_unknown_post(self, client: TestClient, sign_in: SignIn) -> None:
        headers = sign_in("alice")
        response = client.post(
            "/api/profile/favorites", json={"postId": "ghost"}, headers=headers
        )
        assert response.status_code == 404
        assert response.json()["message"] == "Post not found"

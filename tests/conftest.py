"""Shared fixtures.

The app runs against the in-memory document store with fake identity
provider and image hosts, so no test touches the network.
"""

import os


# Must be set before src.main builds its module-level app
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("LOG_TO_FILE", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("STORE_BACKEND", "memory")

from collections.abc import Callable, Iterator  # noqa: E402

import pytest  # noqa: E402
from fastapi import FastAPI  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from src.auth.permissions import UserRole  # noqa: E402
from src.auth.schemas import Principal  # noqa: E402
from src.auth.security import create_session_token  # noqa: E402
from src.auth.service import UserService  # noqa: E402
from src.comments.service import CommentService  # noqa: E402
from src.config.settings import Settings  # noqa: E402
from src.core.database import InMemoryDocumentStore  # noqa: E402
from src.main import create_app  # noqa: E402
from src.posts.service import PostService  # noqa: E402
from src.profile.service import ProfileService  # noqa: E402
from tests.fakes import FakeIdentityVerifier, FakeImageHost  # noqa: E402


# ==============================================================================
# Components
# ==============================================================================


@pytest.fixture
def settings() -> Settings:
    return Settings(
        environment="testing",
        store_backend="memory",
        log_to_file=False,
        log_level="WARNING",
        log_requests=False,
        session_secret_key="test-session-secret-key-at-least-32-chars",
    )


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def identity_verifier() -> FakeIdentityVerifier:
    return FakeIdentityVerifier()


@pytest.fixture
def image_host() -> FakeImageHost:
    return FakeImageHost()


@pytest.fixture
def avatar_storage() -> FakeImageHost:
    return FakeImageHost(base_url="https://avatars.test")


@pytest.fixture
def user_service(store: InMemoryDocumentStore) -> UserService:
    return UserService(store)


@pytest.fixture
def comment_service(
    store: InMemoryDocumentStore, user_service: UserService
) -> CommentService:
    return CommentService(store, user_service)


@pytest.fixture
def post_service(
    store: InMemoryDocumentStore,
    image_host: FakeImageHost,
    user_service: UserService,
    comment_service: CommentService,
    settings: Settings,
) -> PostService:
    return PostService(
        store=store,
        image_host=image_host,
        user_service=user_service,
        comment_service=comment_service,
        settings=settings,
    )


@pytest.fixture
def profile_service(
    store: InMemoryDocumentStore,
    user_service: UserService,
    avatar_storage: FakeImageHost,
    settings: Settings,
) -> ProfileService:
    return ProfileService(
        store=store,
        user_service=user_service,
        avatar_storage=avatar_storage,
        settings=settings,
    )


@pytest.fixture
def alice() -> Principal:
    return Principal(id="alice", email="alice@example.com", username="alice")


@pytest.fixture
def bob() -> Principal:
    return Principal(id="bob", email="bob@example.com", username="bob")


@pytest.fixture
def admin() -> Principal:
    return Principal(
        id="admin",
        email="admin@example.com",
        username="admin",
        role=UserRole.ADMIN.value,
    )


# ==============================================================================
# Application
# ==============================================================================


@pytest.fixture
def app(
    settings: Settings,
    store: InMemoryDocumentStore,
    identity_verifier: FakeIdentityVerifier,
    image_host: FakeImageHost,
    avatar_storage: FakeImageHost,
) -> FastAPI:
    return create_app(
        settings,
        store=store,
        identity_verifier=identity_verifier,
        image_host=image_host,
        avatar_storage=avatar_storage,
    )


@pytest.fixture
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def sign_in(
    client: TestClient, identity_verifier: FakeIdentityVerifier
) -> Callable[..., dict[str, str]]:
    """Sign a user in through /api/auth/session and return auth headers."""

    def _sign_in(uid: str, email: str | None = None) -> dict[str, str]:
        id_token = identity_verifier.register(uid, email)
        response = client.post("/api/auth/session", json={"idToken": id_token})
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['token']}"}

    return _sign_in


@pytest.fixture
def admin_headers(settings: Settings) -> dict[str, str]:
    """Session token for an admin principal."""
    token = create_session_token(
        {
            "sub": "admin",
            "email": "admin@example.com",
            "username": "admin",
            "role": UserRole.ADMIN.value,
        },
        settings=settings,
    )
    return {"Authorization": f"Bearer {token}"}

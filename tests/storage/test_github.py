"""Tests for the GitHub image host and image host selection."""

import base64
import json

import httpx
import pytest

from src.config.settings import Settings
from src.storage.dependencies import create_image_host
from src.storage.github import GitHubImageHost
from src.storage.service import (
    FirebaseStorageService,
    StorageNotConfiguredError,
    StorageUploadError,
    UploadedImage,
    build_image_filename,
)


RAW = "https://raw.githubusercontent.com/owner/images-repo/main"


class FakeGitHub:
    """Minimal contents API backed by a dict of path -> (sha, content)."""

    def __init__(self) -> None:
        self.files: dict[str, tuple[str, bytes]] = {}
        self.requests: list[httpx.Request] = []
        self.fail_with: int | None = None
        self.omit_sha = False

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_with:
            return httpx.Response(self.fail_with, json={"message": "boom"})

        prefix = "/repos/owner/images-repo/contents/"
        path = request.url.path.removeprefix(prefix)

        if request.method == "GET":
            if path not in self.files:
                return httpx.Response(404, json={"message": "Not Found"})
            return httpx.Response(200, json={"sha": self.files[path][0]})

        body = json.loads(request.content)
        if request.method == "PUT":
            if path in self.files and body.get("sha") != self.files[path][0]:
                return httpx.Response(409, json={"message": "sha mismatch"})
            sha = f"sha-{len(self.requests)}"
            self.files[path] = (sha, base64.b64decode(body["content"]))
            content = {} if self.omit_sha else {"sha": sha}
            return httpx.Response(201, json={"content": content})

        if request.method == "DELETE":
            if path not in self.files:
                return httpx.Response(404, json={"message": "Not Found"})
            del self.files[path]
            return httpx.Response(200, json={})

        return httpx.Response(405)


@pytest.fixture
def github() -> FakeGitHub:
    return FakeGitHub()


@pytest.fixture
def host(github: FakeGitHub) -> GitHubImageHost:
    return GitHubImageHost(
        token="t0ken",
        repo="owner/images-repo",
        transport=httpx.MockTransport(github),
    )


class TestUpload:
    """Uploading through the contents API."""

    @pytest.mark.asyncio
    async def test_upload_returns_raw_url_and_sha(
        self, host: GitHubImageHost, github: FakeGitHub
    ) -> None:
        image = await host.upload("1_chart.png", b"png-bytes", "image/png")

        assert image.url == f"{RAW}/images/1_chart.png"
        assert image.hash == github.files["images/1_chart.png"][0]
        assert github.files["images/1_chart.png"][1] == b"png-bytes"
        assert github.requests[-1].headers["Authorization"] == "Bearer t0ken"

    @pytest.mark.asyncio
    async def test_overwrite_sends_existing_sha(
        self, host: GitHubImageHost, github: FakeGitHub
    ) -> None:
        first = await host.upload("same.png", b"one", "image/png")
        second = await host.upload("same.png", b"two", "image/png")

        assert second.hash != first.hash
        put = github.requests[-1]
        assert json.loads(put.content)["sha"] == first.hash

    @pytest.mark.asyncio
    async def test_http_error_becomes_upload_error(
        self, host: GitHubImageHost, github: FakeGitHub
    ) -> None:
        github.fail_with = 502
        with pytest.raises(StorageUploadError):
            await host.upload("x.png", b"x", "image/png")

    @pytest.mark.asyncio
    async def test_missing_sha_is_rejected(
        self, host: GitHubImageHost, github: FakeGitHub
    ) -> None:
        github.omit_sha = True
        with pytest.raises(StorageUploadError, match="no content hash"):
            await host.upload("x.png", b"x", "image/png")


class TestDelete:
    """Deleting committed images."""

    @pytest.mark.asyncio
    async def test_delete_removes_file(
        self, host: GitHubImageHost, github: FakeGitHub
    ) -> None:
        image = await host.upload("gone.png", b"x", "image/png")
        await host.delete(image)

        assert "images/gone.png" not in github.files
        assert json.loads(github.requests[-1].content)["sha"] == image.hash

    @pytest.mark.asyncio
    async def test_delete_missing_file_is_quiet(self, host: GitHubImageHost) -> None:
        await host.delete(UploadedImage(url=f"{RAW}/images/never.png", hash="abc"))

    @pytest.mark.asyncio
    async def test_foreign_url_is_rejected(self, host: GitHubImageHost) -> None:
        with pytest.raises(StorageUploadError):
            await host.delete(
                UploadedImage(url="https://elsewhere.test/a.png", hash="h")
            )


class TestConfiguration:
    """Host construction from settings."""

    def test_bad_repo_name(self) -> None:
        with pytest.raises(StorageNotConfiguredError):
            GitHubImageHost(token="t", repo="no-slash")

    def test_unconfigured_github_gives_no_host(self) -> None:
        assert create_image_host(Settings(image_host="github")) is None

    def test_configured_github(self) -> None:
        settings = Settings(
            image_host="github", github_token="t", github_repo="owner/images-repo"
        )
        assert isinstance(create_image_host(settings), GitHubImageHost)

    def test_firebase_host(self) -> None:
        settings = Settings(
            image_host="firebase",
            firebase_credentials_path="/tmp/creds.json",
            firebase_storage_bucket="bucket.appspot.com",
        )
        assert isinstance(create_image_host(settings), FirebaseStorageService)


class TestFilenames:
    """Image naming helpers."""

    def test_build_image_filename(self) -> None:
        name = build_image_filename("../../my summer photo.png", now_ms=1700)
        assert name == "1700_my_summer_photo.png"

    def test_build_image_filename_default(self) -> None:
        assert build_image_filename(None, now_ms=1) == "1_image"

    def test_firebase_url_round_trip(self) -> None:
        service = FirebaseStorageService(
            Settings(firebase_storage_bucket="bucket.appspot.com"), folder="avatars"
        )
        path, digest = service.storage_path("me.png", b"abc")
        assert path == f"avatars/{digest}-me.png"
        assert service.path_from_url(service.public_url(path)) == path

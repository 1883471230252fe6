"""GitHub contents API image host."""

import base64

import httpx
import structlog

from src.config.settings import Settings
from src.storage.service import (
    StorageNotConfiguredError,
    StorageUploadError,
    UploadedImage,
)


logger = structlog.get_logger(__name__)

RAW_BASE_URL = "https://raw.githubusercontent.com"


class GitHubImageHost:
    """Store images as files committed to a GitHub repository.

    The file's blob sha returned by the contents API is kept as the image
    hash; it is required later to delete the file.
    """

    def __init__(
        self,
        token: str,
        repo: str,
        branch: str = "main",
        directory: str = "images",
        api_url: str = "https://api.github.com",
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        owner, sep, name = repo.partition("/")
        if not sep or not owner or not name:
            raise StorageNotConfiguredError(
                f"GitHub repository must be 'owner/repo', got {repo!r}"
            )
        self.owner = owner
        self.repo = name
        self.branch = branch
        self.directory = directory.strip("/")
        self._client = httpx.AsyncClient(
            base_url=api_url,
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
            },
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "GitHubImageHost":
        if not settings.github_configured:
            raise StorageNotConfiguredError("GITHUB_TOKEN and GITHUB_REPO are required")
        return cls(
            token=settings.github_token,
            repo=settings.github_repo,
            branch=settings.github_branch,
            directory=settings.github_dir,
            api_url=settings.github_api_url,
            timeout=settings.github_timeout,
            transport=transport,
        )

    @property
    def _raw_prefix(self) -> str:
        return f"{RAW_BASE_URL}/{self.owner}/{self.repo}/{self.branch}/"

    def _contents_url(self, path: str) -> str:
        return f"/repos/{self.owner}/{self.repo}/contents/{path}"

    def path_for(self, filename: str) -> str:
        return f"{self.directory}/{filename}" if self.directory else filename

    def raw_url(self, path: str) -> str:
        return self._raw_prefix + path

    async def _existing_sha(self, path: str) -> str | None:
        response = await self._client.get(
            self._contents_url(path), params={"ref": self.branch}
        )
        if response.status_code == httpx.codes.NOT_FOUND:
            return None
        response.raise_for_status()
        return response.json().get("sha")

    async def upload(
        self, filename: str, content: bytes, content_type: str
    ) -> UploadedImage:
        path = self.path_for(filename)
        body = {
            "message": f"Upload image {filename}",
            "content": base64.b64encode(content).decode("ascii"),
            "branch": self.branch,
        }

        try:
            sha = await self._existing_sha(path)
            if sha:
                # Overwriting an existing file requires its current sha
                body["sha"] = sha
            response = await self._client.put(self._contents_url(path), json=body)
            response.raise_for_status()
            new_sha = (response.json().get("content") or {}).get("sha")
        except httpx.HTTPError as e:
            logger.error(
                "github_upload_failed",
                path=path,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise StorageUploadError("Failed to upload image") from e

        if not new_sha:
            logger.error("github_upload_missing_sha", path=path)
            raise StorageUploadError("Image host returned no content hash")

        logger.info(
            "github_image_uploaded",
            path=path,
            content_type=content_type,
            file_size=len(content),
        )
        return UploadedImage(url=self.raw_url(path), hash=new_sha)

    async def delete(self, image: UploadedImage) -> None:
        if not image.url.startswith(self._raw_prefix):
            raise StorageUploadError(
                f"Image is not hosted in this repository: {image.url}"
            )
        path = image.url[len(self._raw_prefix) :]

        try:
            response = await self._client.request(
                "DELETE",
                self._contents_url(path),
                json={
                    "message": f"Delete image {path.rsplit('/', 1)[-1]}",
                    "sha": image.hash,
                    "branch": self.branch,
                },
            )
            if response.status_code == httpx.codes.NOT_FOUND:
                logger.warning("github_image_already_gone", path=path)
                return
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error("github_delete_failed", path=path, error=str(e))
            raise StorageUploadError("Failed to delete image") from e

        logger.info("github_image_deleted", path=path)

    async def aclose(self) -> None:
        await self._client.aclose()

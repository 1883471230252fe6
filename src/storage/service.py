"""Image hosting for post images and avatars.

Two hosts implement ``ImageHost``:
- ``GitHubImageHost`` (``src.storage.github``) commits images to a repository
  through the contents API and serves them from raw.githubusercontent.com
- ``FirebaseStorageService`` stores content-addressed blobs in Firebase
  Storage and makes them public

Uploads return an ``UploadedImage`` carrying both the public URL and the
host's content hash; callers must have both before recording the image.
"""

import asyncio
import hashlib
import re
import time
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import TYPE_CHECKING, Protocol
from urllib.parse import quote, unquote, urlparse

import structlog

from src.config.settings import Settings
from src.core.errors import UpstreamFailure


if TYPE_CHECKING:
    import firebase_admin
    from google.cloud.storage import Bucket


logger = structlog.get_logger(__name__)


class StorageError(UpstreamFailure):
    """Base error for image host operations."""

    code = "storage_error"
    default_message = "Image storage failure"


class StorageNotConfiguredError(StorageError):
    """The selected image host has no credentials."""

    code = "storage_not_configured"
    default_message = "Image storage is not configured"


class StorageUploadError(StorageError):
    """The host rejected or failed an upload or delete."""

    code = "upload_error"
    default_message = "Failed to store image"


@dataclass(frozen=True)
class UploadedImage:
    """Where an image ended up and the host's hash for it."""

    url: str
    hash: str


class ImageHost(Protocol):
    async def upload(
        self, filename: str, content: bytes, content_type: str
    ) -> UploadedImage: ...

    async def delete(self, image: UploadedImage) -> None: ...


_WHITESPACE = re.compile(r"\s+")


def build_image_filename(original_name: str | None, now_ms: int | None = None) -> str:
    """Timestamped, whitespace-free file name for a post image.

    Only the final path component of ``original_name`` is kept.
    """
    name = PurePosixPath((original_name or "image").replace("\\", "/")).name or "image"
    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    return f"{stamp}_{_WHITESPACE.sub('_', name)}"


class FirebaseStorageService:
    """Content-addressed image storage in Firebase Storage.

    Objects are named ``{folder}/{md5}-{filename}``, so re-uploading the same
    bytes under the same name reuses the existing object.
    """

    def __init__(
        self,
        settings: Settings,
        folder: str = "images",
        app: "firebase_admin.App | None" = None,
    ) -> None:
        self.settings = settings
        self.folder = folder.strip("/")
        self._app = app
        self._bucket: Bucket | None = None

    @property
    def is_configured(self) -> bool:
        return self.settings.firebase_storage_configured

    def _get_bucket(self) -> "Bucket":
        if self._bucket is None:
            if not self.is_configured:
                raise StorageNotConfiguredError

            # Lazy import to avoid loading Firebase SDK unless needed
            from firebase_admin import storage  # noqa: PLC0415

            from src.core.firebase import init_firebase  # noqa: PLC0415

            app = self._app or init_firebase(self.settings)
            self._bucket = storage.bucket(
                self.settings.firebase_storage_bucket, app=app
            )
        return self._bucket

    def storage_path(self, filename: str, content: bytes) -> tuple[str, str]:
        """Return ``(path, md5)`` for content stored under ``filename``."""
        digest = hashlib.md5(content).hexdigest()  # noqa: S324
        safe_name = PurePosixPath(filename.replace("\\", "/")).name or "image"
        return f"{self.folder}/{digest}-{safe_name}", digest

    def public_url(self, storage_path: str) -> str:
        bucket = self.settings.firebase_storage_bucket
        return (
            f"https://firebasestorage.googleapis.com/v0/b/{bucket}/o/"
            f"{quote(storage_path, safe='')}?alt=media"
        )

    @staticmethod
    def path_from_url(url: str) -> str | None:
        """Recover the object path from a URL built by ``public_url``."""
        parsed = urlparse(url)
        _, sep, encoded = parsed.path.partition("/o/")
        if not sep or not encoded:
            return None
        return unquote(encoded)

    def _store(self, storage_path: str, content: bytes, content_type: str) -> bool:
        bucket = self._get_bucket()
        blob = bucket.blob(storage_path)
        if blob.exists():
            return False
        blob.cache_control = "public, max-age=31536000, immutable"
        blob.upload_from_string(content, content_type=content_type)
        blob.make_public()
        return True

    async def upload(
        self, filename: str, content: bytes, content_type: str
    ) -> UploadedImage:
        storage_path, digest = self.storage_path(filename, content)

        try:
            created = await asyncio.to_thread(
                self._store, storage_path, content, content_type
            )
        except StorageError:
            raise
        except Exception as e:
            logger.exception(
                "firebase_upload_failed", storage_path=storage_path, error=str(e)
            )
            raise StorageUploadError(f"Failed to upload image: {e}") from e

        logger.info(
            "firebase_image_stored",
            storage_path=storage_path,
            content_type=content_type,
            file_size=len(content),
            reused=not created,
        )
        return UploadedImage(url=self.public_url(storage_path), hash=digest)

    def _remove(self, storage_path: str) -> bool:
        blob = self._get_bucket().blob(storage_path)
        if not blob.exists():
            return False
        blob.delete()
        return True

    async def delete(self, image: UploadedImage) -> None:
        storage_path = self.path_from_url(image.url)
        if storage_path is None:
            raise StorageError(f"Not a Firebase Storage URL: {image.url}")

        try:
            deleted = await asyncio.to_thread(self._remove, storage_path)
        except StorageError:
            raise
        except Exception as e:
            logger.exception(
                "firebase_delete_failed", storage_path=storage_path, error=str(e)
            )
            raise StorageUploadError(f"Failed to delete image: {e}") from e

        if not deleted:
            logger.warning("delete_file_not_found", storage_path=storage_path)
        else:
            logger.info("file_deleted", storage_path=storage_path)

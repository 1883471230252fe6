"""Image storage for post images and avatars."""

from src.storage.dependencies import create_image_host
from src.storage.github import GitHubImageHost
from src.storage.service import (
    FirebaseStorageService,
    ImageHost,
    StorageError,
    StorageNotConfiguredError,
    StorageUploadError,
    UploadedImage,
    build_image_filename,
)


__all__ = [
    "FirebaseStorageService",
    "GitHubImageHost",
    "ImageHost",
    "StorageError",
    "StorageNotConfiguredError",
    "StorageUploadError",
    "UploadedImage",
    "build_image_filename",
    "create_image_host",
]

"""Image host selection."""

import structlog

from src.config.settings import Settings
from src.storage.github import GitHubImageHost
from src.storage.service import FirebaseStorageService, ImageHost


logger = structlog.get_logger(__name__)


def create_image_host(settings: Settings) -> ImageHost | None:
    """Build the post image host selected by ``settings.image_host``.

    Returns None when the selected host has no credentials; posts without
    images still work and uploads fail with ``StorageNotConfiguredError``.
    """
    if settings.image_host == "firebase":
        if not settings.firebase_storage_configured:
            logger.warning("image_host_not_configured", image_host="firebase")
            return None
        return FirebaseStorageService(settings, folder="images")

    if not settings.github_configured:
        logger.warning("image_host_not_configured", image_host="github")
        return None
    return GitHubImageHost.from_settings(settings)

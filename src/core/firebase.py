"""Firebase Admin SDK bootstrap.

The app is initialised once from the application lifespan and shared by the
Firestore store, the identity verifier and Firebase Storage.
"""

from pathlib import Path

import firebase_admin
import structlog
from firebase_admin import credentials

from src.config.settings import Settings
from src.core.errors import UpstreamFailure


logger = structlog.get_logger(__name__)


class FirebaseNotConfiguredError(UpstreamFailure):
    """Firebase credentials are missing or unusable."""

    code = "firebase_not_configured"
    default_message = "Firebase is not configured"


def _credential(settings: Settings) -> credentials.Certificate:
    source = settings.firebase_service_account()
    if isinstance(source, dict):
        return credentials.Certificate(source)

    creds_path = source
    if creds_path and not Path(creds_path).is_absolute():
        # Relative paths are resolved against the project root
        project_root = Path(__file__).parent.parent.parent
        creds_path = str(project_root / creds_path)

    if not creds_path or not Path(creds_path).exists():
        raise FirebaseNotConfiguredError(
            f"Firebase credentials file not found: {creds_path}"
        )
    return credentials.Certificate(creds_path)


def init_firebase(settings: Settings) -> firebase_admin.App:
    """Return the default Firebase app, initialising it on first use.

    Raises:
        FirebaseNotConfiguredError: If credentials are absent or invalid.
    """
    try:
        return firebase_admin.get_app()
    except ValueError:
        pass

    if not settings.firebase_configured:
        raise FirebaseNotConfiguredError

    options = {}
    if settings.firebase_project_id:
        options["projectId"] = settings.firebase_project_id
    if settings.firebase_storage_bucket:
        options["storageBucket"] = settings.firebase_storage_bucket

    try:
        app = firebase_admin.initialize_app(_credential(settings), options)
    except FirebaseNotConfiguredError:
        raise
    except (ValueError, OSError) as e:
        logger.exception("firebase_init_failed", error=str(e))
        raise FirebaseNotConfiguredError(f"Failed to initialize Firebase: {e}") from e

    logger.info(
        "firebase_initialized",
        project_id=settings.firebase_project_id,
        bucket=settings.firebase_storage_bucket,
    )
    return app

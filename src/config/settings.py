"""Application settings using Pydantic Settings."""

import base64
import json
from functools import lru_cache
from typing import Any, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="wave-rider", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")
    environment: Literal["development", "staging", "production", "testing"] = Field(
        default="development", description="Environment name"
    )
    debug: bool = Field(default=True, description="Debug mode")

    # API Server
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=4000, description="API port")

    # Session tokens (issued after identity-provider sign-in)
    session_secret_key: str = Field(
        default="dev-session-secret-key-change-in-production!",
        description="Session JWT signing key (min 32 chars)",
    )
    session_algorithm: str = Field(default="HS256", description="JWT algorithm")
    session_expire_minutes: int = Field(
        default=60, description="Session token lifetime (minutes)"
    )

    # Document store
    store_backend: Literal["firestore", "memory"] = Field(
        default="memory", description="Document store implementation"
    )

    # Firebase (Firestore, Auth, Storage)
    firebase_credentials_path: str | None = Field(
        default=None, description="Path to Firebase service account JSON file"
    )
    firebase_service_account_json: str | None = Field(
        default=None,
        description="Base64-encoded service account JSON (takes precedence)",
    )
    firebase_project_id: str | None = Field(
        default=None, description="Firebase project ID"
    )
    firebase_storage_bucket: str | None = Field(
        default=None,
        description="Firebase Storage bucket (e.g., project-id.appspot.com)",
    )

    # Image hosting
    image_host: Literal["github", "firebase"] = Field(
        default="github", description="Where post images are stored"
    )
    github_token: str | None = Field(default=None, description="GitHub API token")
    github_repo: str | None = Field(
        default=None, description="Image repository as owner/repo"
    )
    github_branch: str = Field(default="main", description="Image repository branch")
    github_dir: str = Field(default="images", description="Image directory in repo")
    github_api_url: str = Field(
        default="https://api.github.com", description="GitHub API base URL"
    )
    github_timeout: float = Field(default=15.0, description="GitHub request timeout")

    # Upload Settings
    upload_max_file_size_mb: int = Field(
        default=5, description="Maximum file size for uploads in MB"
    )
    upload_allowed_image_types: list[str] = Field(
        default=["image/jpeg", "image/png", "image/webp", "image/gif"],
        description="Allowed image MIME types",
    )

    # Public caching
    cache_max_age_seconds: int = Field(
        default=300, description="Cache-Control max-age for public post reads"
    )
    cache_paths: list[str] = Field(
        default=["/api/posts"], description="Path prefixes eligible for caching"
    )

    # Community
    discord_invite: str = Field(
        default="https://discord.gg/your-invite-code",
        description="Community invite link shown on profiles",
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="DEBUG", description="Log level"
    )
    log_format: Literal["json", "console"] = Field(
        default="console", description="Log format"
    )
    log_include_caller_info: bool = Field(
        default=True, description="Include caller info"
    )
    log_to_file: bool = Field(default=True, description="Write rotating log files")
    log_dir: str = Field(default="logs", description="Directory for log files")
    log_file_max_bytes: int = Field(
        default=10 * 1024 * 1024, description="Max size per log file (10MB default)"
    )
    log_file_backup_count: int = Field(
        default=5, description="Number of backup log files to keep"
    )
    log_requests: bool = Field(
        default=True, description="Log HTTP request start/finish"
    )
    log_quiet_paths: list[str] = Field(
        default=["/health"],
        description="Path prefixes left out of request logging",
    )

    # CORS
    cors_origins: list[str] = Field(
        default=["http://localhost:5173"], description="CORS origins"
    )
    cors_allow_credentials: bool = Field(default=True, description="Allow credentials")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PUT", "DELETE"], description="Allowed methods"
    )
    cors_allow_headers: list[str] = Field(default=["*"], description="Allowed headers")
    cors_max_age: int = Field(default=600, description="CORS max age")

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"

    @property
    def is_testing(self) -> bool:
        """Check if running in testing mode."""
        return self.environment == "testing"

    @property
    def firebase_configured(self) -> bool:
        """Check if Firebase credentials are available."""
        return bool(
            self.firebase_service_account_json or self.firebase_credentials_path
        )

    @property
    def github_configured(self) -> bool:
        """Check if GitHub image hosting is configured."""
        return bool(self.github_token and self.github_repo)

    @property
    def firebase_storage_configured(self) -> bool:
        """Check if Firebase Storage is configured."""
        return bool(self.firebase_configured and self.firebase_storage_bucket)

    def firebase_service_account(self) -> dict[str, Any] | str | None:
        """Service account credentials as a dict (inline) or a file path."""
        if self.firebase_service_account_json:
            raw = base64.b64decode(self.firebase_service_account_json).decode("utf-8")
            return json.loads(raw)
        return self.firebase_credentials_path


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

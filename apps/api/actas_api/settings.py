"""Application settings and configuration."""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

MB = 1024 * 1024


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str = "sqlite:///./actas.db"

    # API
    environment: str = "development"
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    public_base_url: str = "http://localhost:8000"

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"

    # Blob storage
    storage_backend: str = "local"  # local, s3
    upload_dir: str = "./uploads"
    minio_endpoint: str = "localhost:9000"
    minio_access_key: Optional[str] = None  # Required when storage_backend=s3
    minio_secret_key: Optional[str] = None  # Required when storage_backend=s3
    minio_bucket: str = "actas-documentos"
    minio_use_ssl: bool = False
    upload_url_ttl_seconds: int = 600

    # Upload limits
    proxy_upload_max_bytes: int = 10 * MB
    direct_upload_max_bytes: int = 100 * MB
    proxy_upload_threshold_bytes: int = 10 * MB
    approval_photo_max_bytes: int = 5 * MB

    # Signed links
    link_signing_secret: Optional[str] = None

    # Session verification (tokens are issued by the login service)
    session_secret_key: str = "dev-session-secret-change-in-production"
    session_algorithm: str = "HS256"

    # Notifications
    resend_api_key: Optional[str] = None
    resend_api_url: str = "https://api.resend.com/emails"
    notification_from_email: str = "onboarding@resend.dev"
    notification_from_name: str = "Gestor de Impuestos"
    notification_timeout_seconds: int = 10

    # Workflow
    approver_policy: str = "last_approver"  # last_approver, administrator

    # CORS
    cors_origins: list[str] = ["*"]
    cors_allow_credentials: bool = True
    cors_allow_methods: list[str] = ["*"]
    cors_allow_headers: list[str] = ["*"]

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development."""
        return self.environment.lower() in ("development", "dev", "test")

    @property
    def public_base_url_clean(self) -> str:
        return self.public_base_url.rstrip("/")

    def validate_production_settings(self):
        """Validate settings for non-development environments."""
        if self.approver_policy not in ("last_approver", "administrator"):
            raise ValueError(
                f"APPROVER_POLICY must be last_approver or administrator, got {self.approver_policy}"
            )
        if self.storage_backend not in ("local", "s3"):
            raise ValueError(f"STORAGE_BACKEND must be local or s3, got {self.storage_backend}")
        if self.storage_backend == "s3" and (
            not self.minio_access_key or not self.minio_secret_key
        ):
            raise ValueError(
                "MINIO_ACCESS_KEY and MINIO_SECRET_KEY are required when STORAGE_BACKEND=s3."
            )
        if self.is_development:
            return
        if not self.link_signing_secret:
            raise ValueError("LINK_SIGNING_SECRET is required outside development.")
        if self.session_secret_key.startswith("dev-"):
            raise ValueError(
                "SESSION_SECRET_KEY must be set outside development. "
                "Do not use the default secret."
            )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

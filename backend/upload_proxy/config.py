"""
Application configuration using Pydantic Settings.
All environment variables are loaded here with sensible defaults.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Shared secret the editor sends in X-Upload-Api-Key.
    # Unset means every upload is rejected with 401.
    upload_api_key: Optional[str] = None

    # Optional: restrict uploads to one origin (e.g. "https://yourdomain.com").
    # Leave empty to accept any origin (CORS echoes the caller's origin).
    allowed_origin: str = ""

    # Public base URL of the bucket, e.g. "https://pub-abc123.r2.dev"
    # (from Cloudflare R2 dashboard -> Public Access)
    r2_public_url: str = ""

    # Cloudflare R2 / S3-compatible storage
    r2_endpoint: Optional[str] = None  # e.g., https://<account_id>.r2.cloudflarestorage.com
    r2_bucket: str = "email-builder-images"  # Bucket name
    r2_access_key: Optional[str] = None  # R2 access key ID
    r2_secret_key: Optional[str] = None  # R2 secret access key
    r2_region: str = "auto"  # R2 uses "auto" for region
    storage_timeout_seconds: float = 5.0  # Upper bound for a single put

    # In-memory rate limiting (per client IP, per instance)
    rate_limit_max: int = 20  # max uploads per IP per window
    rate_limit_window_ms: int = 60_000  # 1 minute

    # Header carrying the verified client IP, injected by the edge platform
    client_ip_header: str = "CF-Connecting-IP"

    # Environment
    environment: str = "dev"
    log_level: str = "INFO"

    # Prometheus exposition port (disabled when unset)
    metrics_port: Optional[int] = None

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


# Global settings instance
settings = Settings()

from __future__ import annotations

from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    app_name: str = "Top100 Self-Service"
    app_version: str = "0.1.0"
    environment: str = "development"
    debug: bool = True
    log_level: str = "INFO"

    # Database
    database_url: str | None = None
    db_pool_min_size: int = 1
    db_pool_max_size: int = 5

    # Storage
    supabase_url: str | None = None
    supabase_service_key: str | None = None
    supabase_avatar_bucket: str = "awardees"
    avatar_max_bytes: int = 5 * 1024 * 1024
    avatar_allowed_content_types: list[str] = [
        "image/jpeg",
        "image/png",
        "image/webp",
        "image/gif",
    ]

    # Collaborators
    data_api_base_url: str = "http://localhost:8000"
    collaborator_timeout_seconds: float = 10.0

    # Self-service workflow
    self_service_enabled: bool = True
    email_match_policy: str = "normalized"
    feature_request_amount: int = 40000
    feature_request_currency: str = "NGN"
    public_profile_path: str = "/awardees/{slug}"
    verify_rate_limit_window_seconds: int = 60
    verify_rate_limit_max_requests: int = 5

    # Admin
    admin_api_key: str | None = None
    board_refresh_interval_seconds: float = 30.0

    # Security
    cors_origins: list[str] = []  # Empty by default for security

    # Sentry
    sentry_dsn: str | None = None

    # Metrics
    metrics_backend: str = "stdout"
    metrics_namespace: str = "self_service"
    metrics_disable: bool = False
    metrics_sample_rate: float = 1.0
    metrics_statsd_host: str = "127.0.0.1"
    metrics_statsd_port: int = 8125

    def public_profile_url(self, slug: str) -> str:
        """Return the public profile path for an awardee slug."""
        return self.public_profile_path.format(slug=slug)

    model_config = ConfigDict(env_file=".env", case_sensitive=False)


settings = Settings()

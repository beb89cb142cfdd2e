"""
Application configuration.

Loads settings from environment variables with sensible defaults.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_JWT_SECRET = "dev-jwt-secret-change-in-production"


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ==========================================================================
    # Environment
    # ==========================================================================

    environment: str = "development"
    debug: bool = True
    log_level: str = "INFO"

    # ==========================================================================
    # API Server
    # ==========================================================================

    api_host: str = "0.0.0.0"
    api_port: int = 8000
    cors_origins: str = "http://localhost:5173,http://localhost:3000"
    frontend_url: str = "http://localhost:5173"

    # ==========================================================================
    # Authentication
    # ==========================================================================

    jwt_secret_key: str = DEFAULT_JWT_SECRET
    jwt_algorithm: str = "HS256"
    jwt_access_token_expire_minutes: int = 60 * 24 * 10  # 10 days

    bcrypt_rounds: int = 10
    password_min_length: int = 6
    password_reset_expire_minutes: int = 60

    # Reject tokens issued before the last password change/reset
    revoke_sessions_on_password_change: bool = True

    # Cookie read when no Authorization header is sent; set by Google sign-in
    session_cookie_name: str = "jwt"

    # ==========================================================================
    # Google Sign-In
    # ==========================================================================

    google_oauth_client_id: str = ""
    google_oauth_client_secret: str = ""
    google_oauth_redirect_uri: str = "http://localhost:8000/auth/google/callback"

    # ==========================================================================
    # Storage
    # ==========================================================================

    storage_backend: str = "memory"  # memory | dynamodb

    aws_region: str = "us-east-1"
    aws_access_key_id: str = ""
    aws_secret_access_key: str = ""
    aws_dynamodb_table_prefix: str = "crewbase_"
    aws_dynamodb_endpoint_url: str = ""  # e.g. http://localhost:8000 for DynamoDB Local

    # ==========================================================================
    # Email
    # ==========================================================================

    aws_ses_from_email: str = ""

    # ==========================================================================
    # Optional Services
    # ==========================================================================

    sentry_dsn: str = ""

    # ==========================================================================
    # Helpers
    # ==========================================================================

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def google_oauth_enabled(self) -> bool:
        return bool(self.google_oauth_client_id and self.google_oauth_client_secret)

    @property
    def use_aws(self) -> bool:
        """Whether AWS services should be used."""
        return bool(self.aws_access_key_id and self.aws_secret_access_key)

    def validate_for_startup(self) -> None:
        """Refuse to boot production with development secrets."""
        if self.is_production and self.jwt_secret_key == DEFAULT_JWT_SECRET:
            raise RuntimeError(
                "JWT_SECRET_KEY must be set in production. "
                "Refusing to start with the development default."
            )
        if self.storage_backend not in ("memory", "dynamodb"):
            raise RuntimeError(f"Unknown STORAGE_BACKEND: {self.storage_backend}")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

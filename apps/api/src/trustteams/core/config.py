"""
Application Configuration

All runtime settings are read from environment variables (or a local .env file)
through pydantic-settings. Import ``settings`` for the cached instance.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-driven settings for the TrustTeams API."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Runtime
    python_env: str = "development"
    log_level: str = "INFO"
    port: int = 3001
    port_retry_attempts: int = 5

    # Database
    db_host: str = "localhost"
    db_port: int = 5432
    db_user: str = "postgres"
    db_password: str = "postgres"
    db_name: str = "trustteams"
    db_pool_size: int = Field(default=10, ge=1)
    db_max_overflow: int = Field(default=5, ge=0)
    db_echo: bool = False

    # CORS
    cors_origins: str = "http://localhost:5173"

    # Email (Resend)
    resend_api_key: str | None = None
    email_from: str = "TrustTeams <noreply@trustteams.dev>"
    frontend_url: str = "http://localhost:5173"

    # Auth
    jwt_secret_key: str = "change-this-secret-in-production"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60
    refresh_token_expire_days: int = 7
    trust_user_id_header: bool = True
    verification_token_expiry_hours: int = 24

    # Opportunity broadcast
    notification_concurrency: int = Field(default=5, ge=1)
    notification_max_attempts: int = Field(default=3, ge=1)
    notification_retry_base_seconds: float = Field(default=1.0, ge=0)

    # Background jobs
    auto_close_interval_minutes: int = Field(default=15, ge=1)

    @property
    def database_url(self) -> str:
        """Async SQLAlchemy URL for PostgreSQL."""
        return (
            f"postgresql+asyncpg://{self.db_user}:{self.db_password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )

    @property
    def is_development(self) -> bool:
        return self.python_env.lower() == "development"

    @property
    def is_production(self) -> bool:
        return self.python_env.lower() == "production"

    @property
    def cors_origins_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()

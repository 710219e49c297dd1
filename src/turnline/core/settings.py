"""Application settings and configuration.

This module defines all configuration options for the Turnline service.
Settings are loaded from environment variables with sensible defaults.
"""

from datetime import time

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Turnline", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Security and authentication
    secret_key: str = Field(alias="SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(
        default=60 * 12,
        alias="ACCESS_TOKEN_EXPIRE_MINUTES",
    )

    # Database configuration
    database_url: str = Field(default="sqlite:///./turnline.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Service day and numbering
    service_timezone: str = Field(default="America/Panama", alias="SERVICE_TIMEZONE")
    start_number_default: int | None = Field(default=None, alias="START_NUMBER_DEFAULT")
    recent_limit_max: int = Field(default=50, alias="RECENT_LIMIT_MAX")

    # Daily rollover
    rollover_enabled: bool = Field(default=True, alias="ROLLOVER_ENABLED")
    rollover_at: str = Field(default="23:59", alias="ROLLOVER_AT")
    rollover_cooldown_seconds: int = Field(default=60, alias="ROLLOVER_COOLDOWN_SECONDS")
    rollover_retry_seconds: int = Field(default=60, alias="ROLLOVER_RETRY_SECONDS")
    fact_retention_days: int = Field(default=7, alias="FACT_RETENTION_DAYS")
    reset_confirmation_phrase: str = Field(
        default="I am sure I want to delete.",
        alias="RESET_CONFIRMATION_PHRASE",
    )

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(
        default=["*"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(
        default=["*"],
        alias="CORS_ALLOW_HEADERS",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @field_validator("rollover_at")
    @classmethod
    def _validate_rollover_at(cls, value: str) -> str:
        time.fromisoformat(value)
        return value

    @property
    def rollover_time(self) -> time:
        """Return the configured local rollover time of day."""
        return time.fromisoformat(self.rollover_at)

    @property
    def effective_database_url(self) -> str:
        """Return the database URL respecting testing overrides."""
        if self.use_testing_database and self.test_database_url:
            return self.test_database_url
        return self.database_url


settings = Settings()  # type: ignore[call-arg]

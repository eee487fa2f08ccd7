"""Application configuration using Pydantic Settings"""

import logging
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Twitch OAuth
    twitch_client_id: str = Field(..., description="Twitch OAuth Client ID")
    twitch_client_secret: str = Field(..., description="Twitch OAuth Client Secret")

    # Discord OAuth
    discord_client_id: str = Field(..., description="Discord OAuth Client ID")
    discord_client_secret: str = Field(..., description="Discord OAuth Client Secret")
    discord_bot_permissions: str = Field(
        default="309237902400", description="Permissions integer requested on bot invite"
    )

    # Database
    database_url: str = Field(..., description="PostgreSQL database URL")
    run_migrations: bool = Field(default=True, description="Apply pending migrations at startup")

    # Server
    api_url: str = Field(
        default="http://localhost:3000", description="Public base URL used for OAuth callbacks"
    )
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=3000, description="Server port")

    # Environment
    environment: str = Field(default="production", description="Environment name")
    log_level: str = Field(default="INFO", description="Logging level")

    # Token lifecycle
    http_timeout: float = Field(default=10.0, description="Outbound provider call timeout (s)")
    state_ttl_seconds: int = Field(default=3600, description="OAuth state lifetime (s)")
    refresh_window_minutes: int = Field(
        default=30, description="Refresh tokens expiring within this many minutes"
    )
    token_sweep_interval: int = Field(default=3600, description="Seconds between token sweeps")
    bot_token_interval: int = Field(default=3600, description="Seconds between bot token checks")
    sweep_concurrency: int = Field(default=1, ge=1, description="Parallel introspection calls")

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Validate database URL is a PostgreSQL DSN"""
        if not v.startswith(("postgresql://", "postgres://")):
            raise ValueError("DATABASE_URL must start with 'postgresql://'")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a valid logging level"""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            logger.warning(f"Invalid log level '{v}', defaulting to INFO")
            return "INFO"
        return v_upper

    @field_validator("api_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @property
    def is_production(self) -> bool:
        """Check if running in production environment"""
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment"""
        return self.environment.lower() == "development"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()  # type: ignore[call-arg]

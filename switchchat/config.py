"""Client configuration using pydantic-settings."""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Client settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="SWITCHCHAT_",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    environment: str = "development"
    log_level: str = "info"

    # Chat API
    api_base_url: str = "http://localhost:4321"
    auth_token: Optional[str] = None
    request_timeout_seconds: float = Field(default=60.0, gt=0)

    # Pagination (server caps page size at 100)
    messages_page_size: int = Field(default=50, ge=1, le=100)
    conversations_page_size: int = Field(default=50, ge=1, le=100)

    # Composer
    max_message_chars: int = Field(default=10_000, ge=1)
    temp_id_prefix: str = "temp-user-"


settings = Settings()


def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return settings

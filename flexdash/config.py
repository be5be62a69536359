"""
Application Configuration
=========================
Centralized configuration management using Pydantic Settings.
"""

from functools import lru_cache
from typing import Literal

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
    app_env: Literal["development", "staging", "production"] = "development"
    app_debug: bool = False
    app_host: str = "0.0.0.0"
    app_port: int = 8080

    # Upstream Token Flex API
    aps_base_url: str = "https://developer.api.autodesk.com/tokenflex/v1"
    aps_access_token: str | None = None
    request_timeout: float = Field(default=30.0, gt=0)

    # Retry / backoff
    retry_max_attempts: int = Field(default=3, ge=1)
    retry_backoff_multiplier: float = Field(default=1.0, ge=0)
    retry_backoff_max: float = Field(default=60.0, ge=0)

    # Query polling
    poll_interval: float = Field(default=1.0, ge=0)
    poll_max_attempts: int | None = Field(default=300, ge=1)
    result_page_size: int = Field(default=25, ge=1, le=1000)

    # Query catalog path
    queries_config_path: str = "config/queries.yaml"

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    log_format: Literal["json", "console"] = "json"

    # Metrics
    metrics_enabled: bool = True

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()

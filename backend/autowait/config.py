"""
Application configuration management using Pydantic Settings.
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

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Playwright
    browser: Literal["chromium", "firefox", "webkit"] = "chromium"
    playwright_headless: bool = True
    playwright_slow_mo: int = 0

    # Timeouts (milliseconds, 0 or unset = unbounded)
    global_timeout: int | None = Field(default=None, ge=0)
    test_timeout: int = Field(default=30000, ge=0)
    action_timeout: int | None = Field(default=None, ge=0)
    navigation_timeout: int | None = Field(default=None, ge=0)
    expect_timeout: int = Field(default=5000, ge=0)
    polling_interval: int = Field(default=100, ge=1)

    # Runner
    workers: int = Field(default=1, ge=1)

    # Applications under test
    ajax_demo_url: str = "https://uitestingplayground.com/ajax"
    form_layouts_url: str = "http://localhost:4200/"

    # Logging
    log_level: str = "INFO"
    log_format: Literal["json", "console"] = "json"

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()

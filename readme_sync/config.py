"""Application settings using pydantic-settings."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # ==========================================================================
    # Application
    # ==========================================================================
    app_name: str = "Readme Sync"
    app_version: str = "0.1.0"
    debug: bool = False
    environment: Literal["development", "staging", "production"] = "development"

    # ==========================================================================
    # Database
    # ==========================================================================
    database_url: str = Field(default="sqlite+aiosqlite:///./readme_sync.db")
    database_pool_size: int = 5
    database_max_overflow: int = 10

    # ==========================================================================
    # GitHub App
    # ==========================================================================
    github_api_url: str = "https://api.github.com"
    github_app_id: int = 0
    github_private_key: str = Field(default="")
    github_hook_secret: str = Field(default="")
    github_timeout_seconds: float = 30.0
    installation_cache_ttl_seconds: int = 5 * 60
    installation_cache_size: int = 1024

    # ==========================================================================
    # Jobs
    # ==========================================================================
    job_timeout_seconds: float = 60.0
    integration_branch: str = "readme-sync"
    readme_path: str = "README.md"
    config_path: str = ".readme-sync.json"

    bot_name: str = "readme-sync"
    bot_email: str = "readme-sync@users.noreply.github.com"
    commit_message: str = "Update readme according to package docs"
    pr_title: str = "readme: Update according to package docs"
    pr_body: str = (
        "This PR was opened automatically by readme-sync.\n\n"
        "The README was regenerated from the package documentation on the default branch."
    )
    credits_url: str = "https://github.com/apps/readme-sync"

    # ==========================================================================
    # API
    # ==========================================================================
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    cors_origins: list[str] = Field(default=["http://localhost:3000"])


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

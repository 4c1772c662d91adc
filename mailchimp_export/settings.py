"""Client settings using pydantic-settings.

Loads configuration from environment variables with .env file support.
"""

from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Export client configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,  # Allow both field name and alias
    )

    # Environment
    environment: Literal["development", "staging", "production", "testing"] = "development"
    debug: bool = False
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # MailChimp Export API
    mailchimp_api_key: SecretStr = Field(
        default=SecretStr(""),
        description="MailChimp API key in the form <key>-<datacenter> (e.g. 0123abcd-us1)",
        validation_alias=AliasChoices("mailchimp_api_key", "mc_api_key"),
    )
    mailchimp_secure: bool = Field(
        default=False,
        description="Use HTTPS (port 443) instead of plain HTTP (port 80)",
    )
    mailchimp_user_agent: str = Field(
        default="",
        description="Prefix for the User-Agent header sent with every export request",
    )
    export_api_version: str = Field(
        default="1.0",
        description="Export API version segment of the endpoint path",
    )
    export_timeout: float = Field(
        default=300.0,
        gt=0,
        description="Request timeout in seconds (exports of large lists are slow)",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Uses lru_cache to ensure settings are loaded once and reused.
    """
    return Settings()

"""
Configuration Management Module

This module handles all application configuration using Pydantic Settings.
Configuration is loaded from environment variables with strong typing and validation.

Design Decisions:
- Use Pydantic Settings for automatic environment variable loading
- Secret, token and channel are optional so the server can boot without them
- Missing values are reported at startup, never raised (health checks keep working)
- Accept the legacy CHANNEL_ID variable name alongside DISCORD_CHANNEL_ID
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when a required setting is missing for the requested operation."""
    pass


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All sensitive values are loaded from environment variables only,
    never hardcoded or logged.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True
    )

    # =========================================================================
    # GitHub Webhook Configuration
    # =========================================================================
    github_webhook_secret: Optional[str] = Field(
        default=None,
        description="Webhook secret for signature verification"
    )

    webhook_path: str = Field(
        default="/api/github-webhook",
        description="Route that receives GitHub webhook deliveries"
    )

    quick_ack: bool = Field(
        default=False,
        description="Acknowledge with 202 before delivering the notification"
    )

    # =========================================================================
    # Discord Configuration
    # =========================================================================
    discord_token: Optional[str] = Field(
        default=None,
        description="Discord bot token"
    )

    discord_channel_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("discord_channel_id", "channel_id"),
        description="Destination Discord channel ID"
    )

    discord_api_base: str = Field(
        default="https://discord.com/api/v10",
        description="Discord REST API base URL"
    )

    discord_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Timeout in seconds for Discord API calls"
    )

    discord_rate_limit: int = Field(
        default=5,
        ge=1,
        description="Maximum messages sent per 5 seconds"
    )

    # =========================================================================
    # Keep-alive Configuration
    # =========================================================================
    keepalive_url: Optional[str] = Field(
        default=None,
        description="URL to ping periodically to keep the host awake"
    )

    keepalive_interval: float = Field(
        default=600.0,
        ge=1.0,
        description="Seconds between keep-alive pings"
    )

    # =========================================================================
    # Server Configuration
    # =========================================================================
    host: str = Field(
        default="0.0.0.0",
        description="Host to bind the server"
    )

    port: int = Field(
        default=3000,
        ge=1,
        le=65535,
        description="Port to bind the server"
    )

    # =========================================================================
    # Logging Configuration
    # =========================================================================
    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )

    log_json_format: bool = Field(
        default=True,
        description="Enable JSON logging format"
    )

    log_requests: bool = Field(
        default=False,
        description="Enable request/response logging"
    )

    # =========================================================================
    # Validators
    # =========================================================================
    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is valid."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v_upper

    @field_validator("webhook_path")
    @classmethod
    def validate_webhook_path(cls, v: str) -> str:
        """Ensure the webhook path is absolute and has no trailing slash."""
        v = v.strip()
        if not v.startswith("/"):
            v = "/" + v
        if len(v) > 1:
            v = v.rstrip("/")
        return v

    @field_validator("github_webhook_secret", "discord_token", "discord_channel_id", "keepalive_url")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        """Treat empty strings from the environment as unset."""
        if v is not None and not v.strip():
            return None
        return v

    # =========================================================================
    # Computed Properties
    # =========================================================================
    @property
    def notifier_configured(self) -> bool:
        """Whether both a bot token and a channel are available."""
        return not self.missing_notifier_settings()

    def missing_notifier_settings(self) -> List[str]:
        """Names of the environment variables the notifier still needs."""
        missing = []
        if not self.discord_token:
            missing.append("DISCORD_TOKEN")
        if not self.discord_channel_id:
            missing.append("CHANNEL_ID")
        return missing

    def require_notifier_settings(self) -> None:
        """
        Ensure the notifier can run.

        Raises:
            ConfigurationError: If the token or channel is missing
        """
        missing = self.missing_notifier_settings()
        if missing:
            raise ConfigurationError(
                f"Discord notifier not configured. Missing: {', '.join(missing)}"
            )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses lru_cache to ensure settings are only loaded once,
    which is important for performance and consistency.

    Returns:
        Settings instance
    """
    return Settings()

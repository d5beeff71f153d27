# ABOUTME: Configuration management for uptimebeat using pydantic-settings
# ABOUTME: Ambient settings come from the environment; run inputs are validated per invocation

from typing import Annotated

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from uptimebeat.errors import ConfigurationError

DEFAULT_INTERVAL_SECONDS = 60
DEFAULT_GRACE_SECONDS = 300


class Settings(BaseSettings):
    """uptimebeat settings loaded from environment."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # UptimeRobot API
    uptimerobot_api_key: str | None = None  # Used when --api-key is omitted
    uptimerobot_api_url: str = "https://api.uptimerobot.com/v2"
    api_timeout: float = 30.0

    # Verification ping
    initial_ping_delay: float = 5.0
    ping_timeout: float = 10.0

    # Cron entry
    cron_schedule: str = "* * * * *"
    cron_retries: int = 2

    log_level: str = "WARNING"

    @field_validator("uptimerobot_api_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    def validate_ready(self) -> list[str]:
        """Check ambient settings for obvious mistakes. Returns list of errors."""
        errors = []

        if not self.uptimerobot_api_url.startswith(("http://", "https://")):
            errors.append(f"UPTIMEROBOT_API_URL must be an http(s) URL: {self.uptimerobot_api_url}")

        if self.api_timeout <= 0:
            errors.append("API_TIMEOUT must be positive")

        if self.ping_timeout <= 0:
            errors.append("PING_TIMEOUT must be positive")

        if self.initial_ping_delay < 0:
            errors.append("INITIAL_PING_DELAY must not be negative")

        if len(self.cron_schedule.split()) != 5:
            errors.append(f"CRON_SCHEDULE must have five fields: {self.cron_schedule!r}")

        if self.cron_retries < 0:
            errors.append("CRON_RETRIES must not be negative")

        return errors


class InstallConfig(BaseModel):
    """
    Inputs for a single install run.

    Attributes:
        api_key: UptimeRobot main API key
        friendly_name: Display name for the new monitor
        email: Value of an existing email alert contact to attach
        app_id: Optional alert contact ID to attach as well
        app_name: Optional case-insensitive friendly_name fragment to attach
        interval: Heartbeat interval in seconds (default: 60)
        grace: Grace period in seconds (default: 300)
        list_only: Print available alert contacts instead of installing
    """

    api_key: str | None = None
    friendly_name: str | None = None
    email: str | None = None
    app_id: str | None = None
    app_name: str | None = None
    interval: Annotated[int, Field(gt=0)] = DEFAULT_INTERVAL_SECONDS
    grace: Annotated[int, Field(gt=0)] = DEFAULT_GRACE_SECONDS
    list_only: bool = False

    @field_validator("api_key", "friendly_name", "email", "app_id", "app_name")
    @classmethod
    def blank_to_none(cls, v: str | None) -> str | None:
        """Treat empty or whitespace-only flag values as not given."""
        if v is None or not v.strip():
            return None
        return v

    @model_validator(mode="after")
    def check_contact_flags(self) -> "InstallConfig":
        if self.app_id and self.app_name:
            raise ValueError("Use only one of --app-id or --app-name (not both).")
        return self

    def missing_required(self) -> list[str]:
        """Flags that must be supplied for this run but were not."""
        required = [("--api-key", self.api_key)]
        if not self.list_only:
            required += [("--name", self.friendly_name), ("--email", self.email)]
        return [flag for flag, value in required if not value]

    def require_complete(self) -> None:
        """
        Raise ConfigurationError if required inputs are missing.

        Raises:
            ConfigurationError: listing the missing flags
        """
        missing = self.missing_required()
        if missing:
            raise ConfigurationError(f"{', '.join(missing)} required.")


def get_settings() -> Settings:
    """Get settings instance."""
    return Settings()

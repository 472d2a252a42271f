"""Application settings and configuration."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _is_testing() -> bool:
    """Check if we're running in a test environment."""
    import sys

    return "pytest" in sys.modules


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env" if not _is_testing() else None,  # Don't load .env in tests
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Application
    app_env: Literal["local", "staging", "prod", "test"] = Field(
        default="local", description="Application environment"
    )
    log_level: str = Field(default="INFO", description="Logging level")

    # Metrics
    metrics_enabled: bool = Field(default=True, description="Enable Prometheus metrics")

    # Timers
    scheduler_enabled: bool = Field(
        default=False, description="Run countdowns on APScheduler instead of the event loop"
    )

    # Escalation defaults
    check_in_timeout_seconds: int = Field(
        default=30, ge=1, description="Default grace countdown after a due check-in"
    )
    message_threshold: int = Field(
        default=1, ge=1, description="Missed check-ins before contacts are messaged"
    )
    call_threshold: int = Field(
        default=3, ge=1, description="Missed check-ins before the primary contact is called"
    )
    refractory_seconds: float = Field(
        default=5.0, ge=0, description="Minimum spacing between reflex triggers"
    )
    motion_sensitivity: float = Field(
        default=15.0, gt=0, description="Default shake magnitude threshold (m/s^2)"
    )
    voice_sensitivity: float = Field(
        default=70.0, ge=0, le=100, description="Default recognizer confidence percent"
    )

    # Notifier
    notifier_backend: Literal["log", "http", "twilio"] = Field(
        default="log", description="Where escalation actions are delivered"
    )
    notifier_url: str | None = Field(default=None, description="Notifier backend URL")
    notifier_timeout_sec: float = Field(
        default=10.0, description="Notifier backend request timeout"
    )
    twilio_account_sid: str | None = Field(default=None, description="Twilio account SID")
    twilio_auth_token: str | None = Field(default=None, description="Twilio auth token")
    twilio_from_number: str | None = Field(
        default=None, description="Twilio caller ID in E.164"
    )
    twilio_voice_url: str | None = Field(
        default=None, description="TwiML URL played on escalation calls"
    )

    # Contacts backend
    contacts_api_base: str = Field(
        default="http://localhost:3001/api", description="Auth/contacts backend base URL"
    )

    @model_validator(mode="after")
    def validate_notifier_config(self) -> "Settings":
        """Validate notifier configuration."""
        if self.notifier_backend == "http" and not self.notifier_url:
            raise ValueError("NOTIFIER_URL is required when NOTIFIER_BACKEND=http")
        if self.notifier_backend == "twilio" and not (
            self.twilio_account_sid and self.twilio_auth_token and self.twilio_from_number
        ):
            raise ValueError(
                "TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN and TWILIO_FROM_NUMBER are "
                "required when NOTIFIER_BACKEND=twilio"
            )
        return self

    @classmethod
    def from_env(cls) -> "Settings":
        """Create settings from environment variables."""
        return cls()


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings.from_env()

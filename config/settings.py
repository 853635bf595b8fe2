"""Application configuration using Pydantic Settings."""

from typing import Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# NOTE: logfire.configure() is not called here. Logfire is configured once at
# startup (observability/logfire_config.py) or in pytest hooks (conftest.py).


class Settings(BaseSettings):
    """
    Process-level settings loaded from environment variables.

    Per-user validation behaviour (thresholds, language, debounce) lives in
    config.validation_config and is persisted through the host settings store.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Application Settings
    environment: str = Field(default="development", description="Environment: development, staging, production")
    service_name: str = Field(default="name-validator", description="Service name reported to Logfire")

    # Observability
    logfire_token: Optional[str] = Field(default=None, description="Logfire observability token")
    diagnostic_log_size: int = Field(default=1000, description="Maximum entries kept in the diagnostic log")

    # Greeting detection
    primary_language: str = Field(
        default="en",
        description="Language used when automatic detection is inconclusive"
    )

    @field_validator("primary_language")
    @classmethod
    def validate_primary_language(cls, v: str) -> str:
        """Primary language must be a concrete pattern set, never 'auto'."""
        value = v.strip().lower()
        if value not in ("en", "de", "fr"):
            raise ValueError("primary_language must be one of: en, de, fr")
        return value

    @field_validator("diagnostic_log_size")
    @classmethod
    def validate_diagnostic_log_size(cls, v: int) -> int:
        if v < 1:
            raise ValueError("diagnostic_log_size must be positive")
        return v


# Create a singleton instance
settings = Settings()


def get_settings() -> "Settings":
    """Return the singleton settings instance."""
    return settings

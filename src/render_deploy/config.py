"""Configuration with pydantic-settings.

All settings are read from ``RENDER_*`` environment variables (or a ``.env``
file). Only the API key is required:

    export RENDER_API_KEY=rnd_xxx
    render-deploy web-api --wait
"""

from typing import Literal

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from render_deploy.errors import ConfigurationError


class RenderSettings(BaseSettings):
    """render-deploy settings."""

    model_config = SettingsConfigDict(
        env_prefix="RENDER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    api_key: str = Field(..., description="Render API key (Bearer token)")

    api_url: str = Field(
        default="https://api.render.com/v1",
        description="Render REST API base URL",
    )
    dashboard_url: str = Field(
        default="https://dashboard.render.com",
        description="Render dashboard base URL, used for deploy links",
    )

    poll_interval: float = Field(
        default=5.0,
        ge=0,
        description="Seconds between deploy status checks while waiting",
    )
    request_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Per-request HTTP timeout in seconds",
    )

    log_format: Literal["json", "console"] = Field(
        default="console",
        description="Log output format",
    )
    log_level: str = Field(
        default="WARNING",
        description="Log level (DEBUG, INFO, WARNING, ERROR)",
    )

    @field_validator("api_key")
    @classmethod
    def validate_api_key(cls, v: str) -> str:
        """Reject blank keys."""
        v = v.strip()
        if not v:
            raise ValueError("API key must not be empty")
        return v

    @field_validator("api_url", "dashboard_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is valid."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_v = v.upper()
        if upper_v not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return upper_v


def load_settings(api_key: str | None = None) -> RenderSettings:
    """Load settings, letting an explicit API key override the environment.

    Raises:
        ConfigurationError: If the settings are missing or invalid.
    """
    overrides = {"api_key": api_key} if api_key is not None else {}
    try:
        return RenderSettings(**overrides)
    except ValidationError as e:
        problems = []
        for error in e.errors():
            field = ".".join(str(part) for part in error["loc"]) or "settings"
            if field == "api_key" and error["type"] == "missing":
                problems.append("api_key: set RENDER_API_KEY or pass --api-key")
            else:
                problems.append(f"{field}: {error['msg']}")
        raise ConfigurationError(
            "Invalid configuration: " + "; ".join(problems),
            {"errors": problems},
        ) from e

"""
Configuration for the Dapr client.

Values are resolved with the precedence: explicit override > environment
variable > .env file > built-in default. Environment variables use the
DAPR_ prefix (DAPR_HTTP_ENDPOINT, DAPR_API_TOKEN, DAPR_REQUIRED,
DAPR_HTTP_TIMEOUT_SECONDS).
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from loguru import logger
from pydantic import ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from dapr_core.runtime.options import (
    DEFAULT_HTTP_ENDPOINT,
    DEFAULT_REQUEST_TIMEOUT,
    ClientOptions,
)

# Determine project root for .env file loading (allows running from any CWD)
PROJECT_ROOT = Path(__file__).resolve().parent.parent

_TRUE_VALUES = {"true", "1", "yes", "on"}
_FALSE_VALUES = {"false", "0", "no", "off"}


class DaprSettings(BaseSettings):
    """
    Stored configuration for the Dapr client.

    Unparseable values for REQUIRED and HTTP_TIMEOUT_SECONDS are ignored with
    a warning and the default is used instead.
    """

    HTTP_ENDPOINT: str = DEFAULT_HTTP_ENDPOINT
    API_TOKEN: str | None = None
    REQUIRED: bool = True
    HTTP_TIMEOUT_SECONDS: float = DEFAULT_REQUEST_TIMEOUT

    model_config = SettingsConfigDict(
        env_prefix="DAPR_",
        env_file=PROJECT_ROOT / ".env",
        env_ignore_empty=True,
        extra="ignore",
    )

    @field_validator("HTTP_ENDPOINT", "API_TOKEN", mode="before")
    @classmethod
    def _blank_is_unset(cls, value: Any, info: ValidationInfo) -> Any:
        if isinstance(value, str) and not value.strip():
            return cls.model_fields[info.field_name].default
        return value

    @field_validator("REQUIRED", mode="before")
    @classmethod
    def _parse_required(cls, value: Any) -> Any:
        if isinstance(value, bool):
            return value
        text = str(value).strip().lower()
        if text in _TRUE_VALUES:
            return True
        if text in _FALSE_VALUES:
            return False
        logger.warning(f"Ignoring invalid DAPR_REQUIRED value {value!r}; using default")
        return True

    @field_validator("HTTP_TIMEOUT_SECONDS", mode="before")
    @classmethod
    def _parse_timeout(cls, value: Any) -> Any:
        try:
            seconds = float(value)
        except (TypeError, ValueError):
            seconds = 0.0
        if seconds <= 0:
            logger.warning(
                f"Ignoring invalid DAPR_HTTP_TIMEOUT_SECONDS value {value!r}; using default"
            )
            return DEFAULT_REQUEST_TIMEOUT
        return seconds

    def to_options(self) -> ClientOptions:
        """Convert the settings into client options."""
        return ClientOptions(
            endpoint=self.HTTP_ENDPOINT,
            api_token=self.API_TOKEN,
            request_timeout=self.HTTP_TIMEOUT_SECONDS,
            fail_fast=self.REQUIRED,
        )


def resolve_options(
    *,
    endpoint: str | None = None,
    api_token: str | None = None,
    request_timeout: float | None = None,
    fail_fast: bool | None = None,
    settings: DaprSettings | None = None,
) -> ClientOptions:
    """Resolve client options from overrides, environment, .env and defaults.

    Args:
        endpoint: Override for the sidecar endpoint.
        api_token: Override for the API token.
        request_timeout: Override for the request timeout in seconds.
        fail_fast: Override for fail-fast behaviour.
        settings: Pre-loaded settings; loaded from the environment if None.

    Returns:
        The resolved ClientOptions.
    """
    base = (settings or DaprSettings()).to_options()
    overrides: dict[str, Any] = {
        "endpoint": endpoint,
        "api_token": api_token,
        "request_timeout": request_timeout,
        "fail_fast": fail_fast,
    }
    update = {k: v for k, v in overrides.items() if v is not None}
    if not update:
        return base
    return ClientOptions(**{**base.model_dump(), **update})

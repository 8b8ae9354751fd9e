"""Configuration management and environment variable utilities."""

import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

from kquai_monitor.helpers.constants import (
    AUTO_INTERVAL,
    DEFAULT_CHUNK_SIZE,
    DEFAULT_TIMEOUT,
    DEFAULT_WINDOW_SIZE,
    LOOKUP_TIMEOUT,
    MAX_ITEMS_PER_POST,
)
from kquai_monitor.helpers.logging import LOG_LEVELS


# Load environment variables from .env file
load_dotenv()


def get_required_env(key: str) -> str:
    """Get a required environment variable.

    Args:
        key: Environment variable name

    Returns:
        Environment variable value

    Raises:
        ValueError: If the environment variable is not set

    Example:
        ```python
        from kquai_monitor.helpers.config import get_required_env

        rpc_url = get_required_env("KQUAI_RPC_URL")
        ```
    """
    value = os.getenv(key)
    if not value:
        msg = f"{key} environment variable is not set"
        raise ValueError(msg)
    return value


def get_optional_env(key: str, default: str | None = None) -> str | None:
    """Get an optional environment variable with a default value.

    Args:
        key: Environment variable name
        default: Default value if not set

    Returns:
        Environment variable value or default

    Example:
        ```python
        window = int(get_optional_env("KQUAI_WINDOW_SIZE", "4000"))
        ```
    """
    return os.getenv(key, default)


def get_rpc_url(rpc_url: str | None = None) -> str:
    """Get the node RPC URL from parameter or environment.

    Args:
        rpc_url: Optional RPC URL to use directly

    Returns:
        Node JSON-RPC URL

    Raises:
        ValueError: If RPC URL is not provided and KQUAI_RPC_URL env var is not set
    """
    if rpc_url:
        return rpc_url

    env_rpc_url = os.getenv("KQUAI_RPC_URL")
    if not env_rpc_url:
        msg = "KQUAI_RPC_URL must be provided or set in environment variables"
        raise ValueError(msg)

    return env_rpc_url


class MonitorSettings(BaseModel):
    """Validated runtime settings for the metrics engine."""

    rpc_url: str = Field(..., description="Node JSON-RPC endpoint")
    window_size: int = Field(default=DEFAULT_WINDOW_SIZE, description="Samples kept (W)")
    chunk_size: int = Field(default=DEFAULT_CHUNK_SIZE, description="Samples per chunk (C)")
    max_items_per_post: int = Field(
        default=MAX_ITEMS_PER_POST, description="Largest batch slice per POST"
    )
    bulk_timeout: float = Field(
        default=DEFAULT_TIMEOUT, description="Timeout for historical batches (s)"
    )
    lookup_timeout: float = Field(
        default=LOOKUP_TIMEOUT, description="Timeout for single lookups (s)"
    )
    auto_interval: float = Field(
        default=AUTO_INTERVAL, description="Pause between auto cycles (s)"
    )
    log_level: str = Field(default="INFO", description="Logging level name")

    @field_validator("rpc_url")
    @classmethod
    def rpc_url_not_empty(cls, value: str) -> str:
        value = value.strip()
        if not value:
            msg = "RPC URL cannot be empty"
            raise ValueError(msg)
        return value

    @field_validator("window_size", "chunk_size", "max_items_per_post")
    @classmethod
    def positive_counts(cls, value: int) -> int:
        if value <= 0:
            msg = "Window, chunk and batch sizes must be positive"
            raise ValueError(msg)
        return value

    @field_validator("bulk_timeout", "lookup_timeout", "auto_interval")
    @classmethod
    def positive_durations(cls, value: float) -> float:
        if value <= 0:
            msg = "Timeouts and intervals must be positive"
            raise ValueError(msg)
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, value: object) -> str:
        level = str(value or "INFO").strip().upper()
        if level not in LOG_LEVELS:
            msg = f"Invalid log level: {value}"
            raise ValueError(msg)
        return level


def load_settings(**overrides: object) -> MonitorSettings:
    """Build settings from the environment, letting explicit values win.

    Args:
        **overrides: Field values that replace environment values; None is ignored

    Returns:
        Validated MonitorSettings

    Raises:
        ValueError: If the RPC URL is missing or a value is invalid

    Example:
        ```python
        settings = load_settings(window_size=1000)
        ```
    """
    env_values: dict[str, object] = {
        "rpc_url": get_optional_env("KQUAI_RPC_URL"),
        "window_size": get_optional_env("KQUAI_WINDOW_SIZE"),
        "chunk_size": get_optional_env("KQUAI_CHUNK_SIZE"),
        "max_items_per_post": get_optional_env("KQUAI_MAX_BATCH_ITEMS"),
        "bulk_timeout": get_optional_env("KQUAI_BULK_TIMEOUT"),
        "lookup_timeout": get_optional_env("KQUAI_LOOKUP_TIMEOUT"),
        "auto_interval": get_optional_env("KQUAI_AUTO_INTERVAL"),
        "log_level": get_optional_env("LOG_LEVEL"),
    }
    env_values.update({k: v for k, v in overrides.items() if v is not None})

    values = {k: v for k, v in env_values.items() if v not in (None, "")}
    values["rpc_url"] = get_rpc_url(values.get("rpc_url"))  # type: ignore[arg-type]
    return MonitorSettings.model_validate(values)


__all__ = [
    "MonitorSettings",
    "get_optional_env",
    "get_required_env",
    "get_rpc_url",
    "load_settings",
]

"""Client configuration loading and validation."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, ClassVar, Dict, Literal, Optional

import yaml
from pydantic import Field, NonNegativeFloat, NonNegativeInt, PositiveFloat, PositiveInt
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

CONFIG_FILE_ENV = "PROGRESS_STREAM_CONFIG_FILE"

DEFAULT_CONFIG_LOCATIONS: tuple[Path, ...] = (
    Path("/etc/progress-stream/client.yaml"),
    Path("/etc/progress-stream/client.yml"),
    Path("./config/client.yaml"),
    Path("./config/client.yml"),
)


class StreamSettings(BaseSettings):
    """Validated settings for the streaming-update client."""

    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_prefix="PROGRESS_STREAM_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Endpoint + transport
    endpoint_url: str | None = Field(
        default=None,
        description="Default progress endpoint (http/https/ws/wss) used when none is given explicitly.",
    )
    transport: Literal["dummy", "websocket"] = Field(
        default="websocket",
        description="Transport implementation used by the default transport factory.",
    )
    open_timeout_seconds: PositiveFloat = Field(
        default=10.0,
        description="Seconds allowed for the opening handshake before it counts as a failed attempt.",
    )
    max_message_bytes: PositiveInt = Field(
        default=2**20,
        description="Largest inbound frame accepted by the WebSocket transport.",
    )

    # Reconnection
    max_reconnect_attempts: NonNegativeInt = Field(
        default=5,
        description="Consecutive reconnect attempts before the session is reported closed.",
    )
    reconnect_base_delay_seconds: NonNegativeFloat = Field(
        default=1.0,
        description="Base delay for reconnection backoff; doubles on every attempt.",
    )
    reconnect_max_delay_seconds: PositiveFloat | None = Field(
        default=None,
        description="Optional ceiling for the reconnection delay.",
    )
    reconnect_jitter: float = Field(
        default=0.0,
        ge=0.0,
        le=1.0,
        description="Jitter factor applied to reconnection backoff (0.0-1.0).",
    )

    # Message defaults
    default_progress_message: str = Field(
        default="Processing...",
        description="Message reported with progress updates that carry none.",
    )
    default_error_message: str = Field(
        default="Unknown error occurred",
        description="Description reported for error frames that carry none.",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Minimum log level for the command line watcher.",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, value: Any) -> Any:
        return value.upper() if isinstance(value, str) else value

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[StreamSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        # init kwargs > config file > environment > .env
        return (init_settings, _config_file_source, env_settings, dotenv_settings, file_secret_settings)


def _config_file_source(settings_cls: type[StreamSettings] | None = None) -> Dict[str, Any]:
    path = _find_config_file()
    return _read_config_file(path) if path is not None else {}


def _find_config_file() -> Optional[Path]:
    explicit = os.getenv(CONFIG_FILE_ENV)
    if explicit:
        return Path(explicit).expanduser()
    return next((path for path in DEFAULT_CONFIG_LOCATIONS if path.is_file()), None)


def _read_config_file(path: Path) -> Dict[str, Any]:
    """Parse a YAML (or JSON, which YAML accepts) client config file."""

    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise RuntimeError(f"Failed to read client config file {path}") from exc
    try:
        document = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid client config file {path}") from exc
    if document is None:
        return {}
    if not isinstance(document, dict):
        raise ValueError(f"Client config file {path} must contain a mapping at top level.")
    return document


@lru_cache()
def get_settings() -> StreamSettings:
    """Return memoized client settings."""

    return StreamSettings()

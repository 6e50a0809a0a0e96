"""Server configuration.

Values come from, in increasing priority: field defaults, an optional YAML
file, and ``ROWSERVE_*`` environment variables.

Example file::

    server:
      max_connections: 50
      request_timeout: 15s
      enable_cors: false
"""

from __future__ import annotations

import re
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from row_serve.core.exceptions import ConfigError

_DURATION = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(ms|s|m|h)?\s*$")
_UNIT_SECONDS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0, None: 1.0}


def package_version() -> str:
    try:
        return version("row-serve")
    except PackageNotFoundError:
        return "dev"


class ServerConfig(BaseSettings):
    """Settings consumed by the pool, the dispatcher and the HTTP server."""

    model_config = SettingsConfigDict(env_prefix="ROWSERVE_", extra="ignore")

    max_connections: int = Field(default=100, ge=1, description="Pool capacity ceiling")
    request_timeout: float = Field(
        default=30.0, gt=0, description="Seconds allowed for each backend operation"
    )
    shutdown_timeout: float = Field(
        default=30.0, gt=0, description="Seconds allowed for graceful shutdown"
    )
    enable_mcp: bool = Field(default=True, description="Serve the JSON-RPC endpoint")
    enable_cors: bool = Field(default=True, description="Add permissive CORS headers")
    mcp_path: str = Field(default="/mcp", description="Path of the JSON-RPC endpoint")
    server_name: str = "row-serve"
    server_version: str = Field(default_factory=package_version)
    log_level: str = "INFO"

    @field_validator("request_timeout", "shutdown_timeout", mode="before")
    @classmethod
    def parse_duration(cls, value: Any) -> Any:
        """Accept durations such as ``"30s"``, ``"500ms"`` or ``"2m"``."""
        if not isinstance(value, str):
            return value
        match = _DURATION.match(value)
        if match is None:
            raise ValueError(f"invalid duration: {value!r}")
        return float(match.group(1)) * _UNIT_SECONDS[match.group(2)]

    @field_validator("mcp_path")
    @classmethod
    def check_path(cls, value: str) -> str:
        if not value.startswith("/"):
            raise ValueError("mcp_path must start with '/'")
        return value

    @field_validator("log_level")
    @classmethod
    def normalize_level(cls, value: str) -> str:
        return value.upper()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Environment wins over file values passed in as init kwargs.
        return env_settings, init_settings, dotenv_settings, file_secret_settings


def load_config(path: Path | str | None = None) -> ServerConfig:
    """Build a ServerConfig from an optional YAML file plus the environment.

    A missing file is not an error; defaults and environment apply.

    Raises:
        ConfigError: The file cannot be read or holds invalid values.
    """
    data: dict[str, Any] = {}
    if path is not None and Path(path).exists():
        data = _read_yaml(Path(path))

    try:
        return ServerConfig(**data)
    except ValidationError as e:
        raise ConfigError(f"invalid configuration: {e}") from e


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"failed to read config file {path}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigError(f"config file {path} must contain a mapping")
    section = raw.get("server")
    return dict(section) if isinstance(section, dict) else raw

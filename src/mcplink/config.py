"""Settings for the server launch and client timeouts.

Settings are plain pydantic models, optionally loaded from a YAML file::

    server:
      command: akeyless
      args: mcp --gateway-url ${AKEYLESS_GATEWAY}
      handshake_timeout: 180
    telemetry:
      enabled: true
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError

from mcplink.errors import ConfigError
from mcplink.mcp.client import HANDSHAKE_TIMEOUT, REQUEST_TIMEOUT
from mcplink.mcp.service import CONNECT_TIMEOUT

DEFAULT_COMMAND = "akeyless"
DEFAULT_ARGS = "mcp --gateway-url https://api.akeyless.io"


class ServerSettings(BaseModel):
    """How to launch the MCP server and how long to wait on it."""

    command: str = DEFAULT_COMMAND
    args: str | None = DEFAULT_ARGS
    working_directory: str | None = None
    handshake_timeout: float = Field(default=HANDSHAKE_TIMEOUT, gt=0)
    request_timeout: float = Field(default=REQUEST_TIMEOUT, gt=0)
    connect_timeout: float = Field(default=CONNECT_TIMEOUT, gt=0)
    auto_inject_auth: bool = True
    profile_path: Path | None = None


class TelemetrySettings(BaseModel):
    """Optional telemetry configuration."""

    enabled: bool = False
    otlp_endpoint: str | None = None


class LinkSettings(BaseModel):
    """Top-level settings document."""

    server: ServerSettings = Field(default_factory=ServerSettings)
    telemetry: TelemetrySettings | None = None


class SettingsLoader:
    """Load and validate a YAML settings file into :class:`LinkSettings`."""

    def __init__(self, path: Path) -> None:
        self._path = path

    def load(self) -> LinkSettings:
        """Read YAML, interpolate env vars, and validate.

        ``${VAR}`` and ``$VAR`` references are expanded with
        :func:`os.path.expandvars` before parsing.  An empty file yields the
        defaults.

        Raises:
            ConfigError: On read errors, YAML errors or validation failures.
        """
        try:
            raw = self._path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ConfigError(f"Cannot read {self._path}: {exc}") from exc

        try:
            data: Any = yaml.safe_load(os.path.expandvars(raw))
        except yaml.YAMLError as exc:
            raise ConfigError(f"YAML parse error: {exc}") from exc

        if data is None:
            return LinkSettings()
        if not isinstance(data, dict):
            raise ConfigError("Settings YAML must be a mapping")

        try:
            return LinkSettings.model_validate(data)
        except ValidationError as exc:
            raise ConfigError(str(exc)) from exc

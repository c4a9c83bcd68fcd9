"""Typed access to Parley's configuration.

`settings` reads through the attached ConfigManager, so values follow
config file reloads. Before a manager is attached (tests, scripts) each
option falls back to its environment variable and then to its default.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from parley.agents.config import ChatAgentConfig
from parley.config.constants import DEFAULT_DB_FILE_NAME, DEFAULT_SSE_PING_INTERVAL
from parley.config.manager import ConfigManager
from parley.config.schema import (
    ConfigValidationError,
    parse_agent_config,
    validate_config,
)

_TRUTHY = ("true", "1", "yes", "on")


def _from_env(env_key: str, default: Any) -> Any:
    raw = os.getenv(env_key)
    if not raw:
        return default
    if isinstance(default, bool):
        return raw.lower() in _TRUTHY
    if isinstance(default, int | float):
        return type(default)(raw)
    return raw


class Settings:
    def __init__(
        self,
        config_manager: ConfigManager | None = None,
        workdir: Path | None = None,
    ):
        self._config_manager = config_manager
        self.workdir = workdir

    def attach(self, config_manager: ConfigManager, workdir: Path | None = None) -> None:
        self._config_manager = config_manager
        if workdir is not None:
            self.workdir = workdir

    def _get(self, key: str, default: Any, env_key: str | None = None) -> Any:
        if self._config_manager is not None:
            return self._config_manager.lookup(key, default)
        if env_key:
            return _from_env(env_key, default)
        return default

    @property
    def server_host(self) -> str:
        return self._get("server_host", "localhost", "SERVER_HOST")

    @property
    def server_port(self) -> int:
        return self._get("server_port", 8765, "SERVER_PORT")

    @property
    def database_path(self) -> Path:
        """History database file. PARLEY_DB_PATH wins over the config file.

        Relative paths resolve against `workdir`.
        """
        raw = os.getenv("PARLEY_DB_PATH") or self._get(
            "database_path", DEFAULT_DB_FILE_NAME
        )
        path = Path(raw).expanduser()
        return path if path.is_absolute() else (self.workdir or Path.cwd()) / path

    @property
    def sse_ping_interval(self) -> float:
        """Seconds between keep-alive comments on conversation streams; 0 means none."""
        return self._get(
            "sse_ping_interval", DEFAULT_SSE_PING_INTERVAL, "SSE_PING_INTERVAL"
        )

    @property
    def openai_api_key(self) -> str | None:
        return self._get("agent.api_key", None) or os.getenv("OPENAI_API_KEY")

    @property
    def agent_config(self) -> ChatAgentConfig:
        """The agent block as a ChatAgentConfig; raises ConfigValidationError."""
        raw = self._get("agent", {})
        block = dict(raw) if isinstance(raw, dict) else raw
        if isinstance(block, dict) and not block.get("api_key"):
            if key := self.openai_api_key:
                block["api_key"] = key
        return parse_agent_config(block)

    def validate_or_raise(self) -> None:
        if self._config_manager is not None:
            validate_config(self._config_manager.snapshot())
        agent = self.agent_config
        if agent.enabled and not agent.is_usable():
            raise ConfigValidationError(
                [
                    "OPENAI_API_KEY is required for OpenAI models. Set 'agent.api_key' "
                    "in .parley/config.json or the OPENAI_API_KEY environment variable."
                ]
            )

    def validation_status(self) -> tuple[bool, list[str]]:
        try:
            self.validate_or_raise()
        except ConfigValidationError as exc:
            return False, list(exc.errors)
        return True, []

    @property
    def log_level(self) -> str:
        return self._get("log_level", "INFO", "LOG_LEVEL")

    @property
    def log_format(self) -> str:
        return self._get("log_format", "pretty", "LOG_FORMAT")

    @property
    def log_colors(self) -> bool:
        return self._get("log_colors", True, "LOG_COLORS")


settings = Settings()

"""In-memory view of the config file, refreshed when the file changes."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from parley.config.constants import CONFIG_FILE_NAME
from parley.config.providers import ConfigProvider, LocalFileConfigProvider
from parley.utils.logger import config_logger


@dataclass(frozen=True)
class ConfigChange:
    """A reloaded configuration and the top-level sections that differ."""

    config: dict[str, Any]
    changed: frozenset[str]


ChangeListener = Callable[[ConfigChange], None]


class ConfigManager:
    def __init__(self, provider: ConfigProvider):
        self.provider = provider
        self._config: dict[str, Any] = {}
        self._listeners: list[ChangeListener] = []

    async def initialize(self) -> None:
        self._config = await self.provider.load()
        config_logger.info("Configuration loaded", sections=sorted(self._config))

    async def start_watching(self) -> None:
        await self.provider.watch(self.apply)

    async def stop_watching(self) -> None:
        await self.provider.stop_watching()

    def get(self, key: str, default: Any = None) -> Any:
        return self._config.get(key, default)

    def lookup(self, dotted_key: str, default: Any = None) -> Any:
        """Resolve ``section.option`` paths; missing parts yield `default`."""
        node: Any = self._config
        for part in dotted_key.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def snapshot(self) -> dict[str, Any]:
        return dict(self._config)

    def subscribe(self, listener: ChangeListener) -> None:
        self._listeners.append(listener)

    def apply(self, new_config: dict[str, Any]) -> ConfigChange:
        """Replace the current configuration and tell every listener what changed."""
        previous, self._config = self._config, new_config
        change = ConfigChange(
            config=dict(new_config),
            changed=frozenset(
                key
                for key in previous.keys() | new_config.keys()
                if previous.get(key) != new_config.get(key)
            ),
        )
        if not change.changed:
            config_logger.debug("Configuration reloaded without changes")
            return change

        config_logger.info("Configuration reloaded", changed=sorted(change.changed))
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception:
                config_logger.exception(
                    "Configuration listener failed",
                    listener=getattr(listener, "__qualname__", repr(listener)),
                )
        return change


def create_config_manager(
    config_dir: Path, *, defaults: dict[str, Any] | None = None
) -> ConfigManager:
    """Build a manager over ``<config_dir>/config.json``."""
    config_path = config_dir / CONFIG_FILE_NAME
    config_logger.debug("Using config file", path=str(config_path))
    return ConfigManager(LocalFileConfigProvider(config_path, defaults=defaults))

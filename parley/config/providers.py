"""Where configuration documents come from.

`LocalFileConfigProvider` keeps the configuration in one JSON file. The
file may hold only the options a user changed; they are merged over the
built-in defaults on every load. Edits to the file are picked up by a
watchdog observer and pushed to the registered callback.
"""

from __future__ import annotations

import asyncio
import json
from abc import ABC, abstractmethod
from collections.abc import Callable
from pathlib import Path
from typing import Any

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from parley.config.schema import ConfigValidationError, deep_merge, validate_config
from parley.utils.logger import config_logger

ReloadCallback = Callable[[dict[str, Any]], Any]


class ConfigProvider(ABC):
    @abstractmethod
    async def load(self) -> dict[str, Any]:
        """Return the full configuration document."""

    @abstractmethod
    async def save(self, config: dict[str, Any]) -> None:
        """Validate and persist a configuration document."""

    @abstractmethod
    async def watch(self, callback: ReloadCallback) -> None:
        """Call `callback` with the reloaded document after each change."""

    @abstractmethod
    async def stop_watching(self) -> None: ...


class _UnreadableConfig(Exception):
    pass


class _ConfigFileEvents(FileSystemEventHandler):
    """Forwards writes to the config file from the observer thread to the loop."""

    def __init__(
        self, provider: LocalFileConfigProvider, loop: asyncio.AbstractEventLoop
    ):
        self.provider = provider
        self.loop = loop
        self.target = provider.config_path.resolve()

    def _forward(self, event: FileSystemEvent) -> None:
        paths = (event.src_path, getattr(event, "dest_path", ""))
        if event.is_directory or all(
            not p or Path(p).resolve() != self.target for p in paths
        ):
            return
        if not self.provider.changed_on_disk() or self.loop.is_closed():
            return
        asyncio.run_coroutine_threadsafe(self.provider.reload(), self.loop)

    on_modified = _forward
    on_created = _forward
    on_moved = _forward


class LocalFileConfigProvider(ConfigProvider):
    """JSON file provider; an unreadable file leaves the last good document in force."""

    def __init__(
        self,
        config_path: Path,
        defaults: dict[str, Any] | None = None,
        *,
        create_if_missing: bool = True,
    ):
        self.config_path = config_path
        self.defaults = defaults or {}
        self.create_if_missing = create_if_missing
        self._callback: ReloadCallback | None = None
        self._observer: Any = None
        self._seen_mtime: float | None = None
        self._last_good: dict[str, Any] | None = None

    def changed_on_disk(self) -> bool:
        try:
            return self.config_path.stat().st_mtime != self._seen_mtime
        except FileNotFoundError:
            return False

    def _read_overrides(self) -> dict[str, Any]:
        try:
            text = self.config_path.read_text(encoding="utf-8")
            self._seen_mtime = self.config_path.stat().st_mtime
            overrides = json.loads(text)
        except json.JSONDecodeError as e:
            raise _UnreadableConfig(f"invalid JSON at line {e.lineno}: {e.msg}") from e
        except OSError as e:
            raise _UnreadableConfig(str(e)) from e
        if not isinstance(overrides, dict):
            raise _UnreadableConfig("top level must be a JSON object")
        return overrides

    async def load(self) -> dict[str, Any]:
        if not self.config_path.exists():
            document = deep_merge(self.defaults, {})
            if self.create_if_missing:
                config_logger.info(
                    "Writing default configuration", path=str(self.config_path)
                )
                await self.save(document)
            self._last_good = document
            return deep_merge(document, {})

        try:
            document = deep_merge(self.defaults, self._read_overrides())
        except _UnreadableConfig as e:
            kept = self._last_good if self._last_good is not None else self.defaults
            config_logger.error(
                "Config file unreadable, keeping previous configuration",
                path=str(self.config_path),
                problem=str(e),
                had_previous=self._last_good is not None,
            )
            return deep_merge(kept, {})

        self._last_good = document
        return deep_merge(document, {})

    async def save(self, config: dict[str, Any]) -> None:
        """Write `config` merged over the defaults; invalid documents are refused."""
        document = deep_merge(self.defaults, config)
        try:
            validate_config(document)
        except ConfigValidationError as e:
            config_logger.error(
                "Refusing to write invalid configuration",
                path=str(self.config_path),
                errors=e.errors,
            )
            raise

        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        staging = self.config_path.with_name(self.config_path.name + ".tmp")
        staging.write_text(
            json.dumps(document, ensure_ascii=False, indent=2) + "\n", encoding="utf-8"
        )
        staging.replace(self.config_path)
        self._seen_mtime = self.config_path.stat().st_mtime
        self._last_good = document

    async def reload(self) -> None:
        document = await self.load()
        if self._callback is not None:
            self._callback(document)

    async def watch(self, callback: ReloadCallback) -> None:
        self._callback = callback
        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        observer = Observer()
        # Editors often replace the file, so the directory is watched
        observer.schedule(
            _ConfigFileEvents(self, asyncio.get_running_loop()),
            str(self.config_path.parent),
            recursive=False,
        )
        observer.start()
        self._observer = observer
        config_logger.info("Watching config file", path=str(self.config_path))

    async def stop_watching(self) -> None:
        observer, self._observer = self._observer, None
        if observer is None:
            return
        observer.stop()
        try:
            await asyncio.wait_for(asyncio.to_thread(observer.join, 1.0), timeout=2.0)
        except TimeoutError:
            config_logger.debug("Config watcher did not stop in time")
        else:
            config_logger.info("Stopped watching config file")

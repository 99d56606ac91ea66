"""Configuration providers - abstract and local-file implementations."""

import asyncio
import json
import os
from abc import ABC, abstractmethod
from collections.abc import Callable
from pathlib import Path
from typing import Any

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from inkagent.config.schema import ConfigValidationError, deep_merge, validate_config
from inkagent.utils.logger import get_logger

logger = get_logger("config.providers")


class ConfigProvider(ABC):
    """Abstract base class for configuration providers."""

    @abstractmethod
    async def load(self) -> dict[str, Any]:
        """Load configuration from the provider."""
        pass

    @abstractmethod
    async def save(self, config: dict[str, Any]) -> None:
        """Save configuration to the provider."""
        pass

    @abstractmethod
    async def watch(self, callback: Callable[[dict[str, Any]], None]) -> None:
        """Watch for configuration changes and call callback when changed."""
        pass

    @abstractmethod
    async def stop_watching(self) -> None:
        """Stop watching for configuration changes."""
        pass


class LocalFileConfigProvider(ConfigProvider):
    """Configuration stored as a JSON file layered over defaults.

    Only the user's own keys are written back; defaults stay in code.
    """

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
        self._observer: Any = None
        self._callback: Callable[[dict[str, Any]], None] | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._last_mtime: float | None = None
        self._last_valid_config: dict[str, Any] | None = None
        # Original user config without defaults
        self._user_config: dict[str, Any] | None = None

    async def load(self) -> dict[str, Any]:
        """Read, merge over defaults and validate.

        Raises:
            ConfigValidationError: the file parses but its values are invalid.
        """
        if not self.config_path.exists():
            self._user_config = {}
            if not self.create_if_missing:
                logger.info(
                    "Config file not found, using defaults",
                    path=str(self.config_path),
                )
                self._last_valid_config = self.defaults.copy()
                return self.defaults.copy()
            logger.info(
                "Config file not found, creating with defaults",
                path=str(self.config_path),
            )
            await self.save(self.defaults.copy())
            self._user_config = {}
            return self.defaults.copy()

        try:
            config = json.loads(self.config_path.read_text(encoding="utf-8"))
            self._last_mtime = self.config_path.stat().st_mtime
        except json.JSONDecodeError as e:
            logger.error(
                "Invalid JSON syntax in config file",
                error=str(e),
                line=e.lineno,
                column=e.colno,
                path=str(self.config_path),
            )
            return self._fallback_config()
        except OSError as e:
            logger.error(
                "Failed to read config", error=str(e), path=str(self.config_path)
            )
            return self._fallback_config()

        if not isinstance(config, dict):
            logger.error(
                "Config file must hold a JSON object", path=str(self.config_path)
            )
            return self._fallback_config()

        merged = deep_merge(self.defaults, config)
        try:
            validate_config(merged)
        except ConfigValidationError as exc:
            logger.error(
                "Invalid configuration structure",
                errors=exc.errors,
                path=str(self.config_path),
            )
            raise

        self._last_valid_config = merged.copy()
        self._user_config = config.copy()
        logger.debug("Config loaded from file", path=str(self.config_path))
        return merged

    def _fallback_config(self) -> dict[str, Any]:
        if self._last_valid_config is not None:
            logger.warning(
                "Using last valid configuration", path=str(self.config_path)
            )
            return self._last_valid_config.copy()
        logger.warning(
            "No previous valid config, using defaults", path=str(self.config_path)
        )
        return self.defaults.copy()

    async def save(self, config: dict[str, Any]) -> None:
        """Validate, then atomically replace the config file."""
        merged = deep_merge(self.defaults, config)
        try:
            validate_config(merged)
        except ConfigValidationError as exc:
            logger.error(
                "Refusing to save invalid configuration",
                errors=exc.errors,
                path=str(self.config_path),
            )
            raise

        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self.config_path.with_suffix(".tmp")
            tmp_path.write_text(
                json.dumps(config, ensure_ascii=False, indent=2), encoding="utf-8"
            )
            tmp_path.replace(self.config_path)
            self._last_mtime = self.config_path.stat().st_mtime
        except OSError as e:
            logger.error(
                "Failed to save config", error=str(e), path=str(self.config_path)
            )
            raise

        self._user_config = config.copy()
        self._last_valid_config = merged.copy()
        logger.debug("Config saved to file", path=str(self.config_path))

    async def watch(self, callback: Callable[[dict[str, Any]], None]) -> None:
        """Reload on file changes and hand valid configs to ``callback``."""
        self._callback = callback
        self._loop = asyncio.get_running_loop()

        self._observer = Observer()
        # Watching the file directly doesn't work on all systems
        self._observer.schedule(
            _ConfigFileHandler(self.config_path, self._schedule_reload),
            str(self.config_path.parent),
            recursive=False,
        )
        self._observer.start()

        logger.info("Started watching config file", path=str(self.config_path))

    def _schedule_reload(self) -> None:
        """Called from the watchdog thread."""
        try:
            current_mtime = self.config_path.stat().st_mtime
        except FileNotFoundError:
            return
        # Our own saves and duplicate events share the same mtime
        if self._last_mtime == current_mtime:
            return
        if self._loop is None or self._loop.is_closed():
            return
        logger.debug("Config file changed, reloading", path=str(self.config_path))
        asyncio.run_coroutine_threadsafe(self._handle_file_change(), self._loop)

    async def _handle_file_change(self) -> None:
        try:
            new_config = await self.load()
        except ConfigValidationError:
            # Already logged by load(); keep serving the previous config
            return
        if self._callback:
            self._callback(new_config)

    async def stop_watching(self) -> None:
        if self._observer is None:
            return
        observer, self._observer = self._observer, None
        loop = asyncio.get_running_loop()
        try:
            await asyncio.wait_for(loop.run_in_executor(None, observer.stop), 2.0)
            await asyncio.wait_for(
                loop.run_in_executor(None, lambda: observer.join(timeout=1.0)), 2.0
            )
            logger.info("Stopped watching config file")
        except (TimeoutError, asyncio.CancelledError) as e:
            logger.debug("Observer stop interrupted", reason=type(e).__name__)
            observer.stop()


class _ConfigFileHandler(FileSystemEventHandler):
    """Forwards events touching one file; editors often save via rename."""

    def __init__(self, config_path: Path, on_change: Callable[[], None]):
        self.config_path = config_path.resolve()
        self.on_change = on_change

    def _matches(self, raw_path: str | bytes) -> bool:
        return Path(os.fsdecode(raw_path)).resolve() == self.config_path

    def on_modified(self, event):
        if not event.is_directory and self._matches(event.src_path):
            self.on_change()

    def on_created(self, event):
        self.on_modified(event)

    def on_moved(self, event):
        if not event.is_directory and self._matches(event.dest_path):
            self.on_change()

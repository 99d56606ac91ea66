"""Configuration manager with hot-reload support."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

from inkagent.config.providers import ConfigProvider, LocalFileConfigProvider
from inkagent.config.schema import deep_merge
from inkagent.utils.logger import get_logger

logger = get_logger("config.manager")

ChangeCallback = Callable[[dict[str, Any]], None]


def changed_paths(old: Any, new: Any, prefix: str = "") -> list[str]:
    """Dotted paths of the leaves that differ between two config trees."""
    if isinstance(old, dict) and isinstance(new, dict):
        paths: list[str] = []
        for key in sorted(set(old) | set(new), key=str):
            path = f"{prefix}.{key}" if prefix else str(key)
            paths.extend(changed_paths(old.get(key), new.get(key), path))
        return paths
    return [] if old == new else [prefix or "<root>"]


class ConfigManager:
    """Holds the merged configuration and fans out reloads to callbacks.

    Values are addressed by dotted path (``llm.api_key``); ``last_changed``
    lists the paths touched by the most recent reload or update.
    """

    def __init__(self, provider: ConfigProvider):
        self.provider = provider
        self._config: dict[str, Any] = {}
        self._change_callbacks: list[ChangeCallback] = []
        self.last_changed: list[str] = []

    async def initialize(self) -> None:
        self._config = await self.provider.load()
        logger.info("Configuration initialized", sections=sorted(self._config))

    async def start_watching(self) -> None:
        await self.provider.watch(self._on_config_changed)

    async def stop_watching(self) -> None:
        await self.provider.stop_watching()

    def get(self, key: str, default: Any = None) -> Any:
        return self._config.get(key, default)

    def get_path(self, path: str, default: Any = None) -> Any:
        """Resolve a dotted path; missing segments and explicit nulls give ``default``."""
        node: Any = self._config
        for part in path.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return default if node is None else node

    def get_all(self) -> dict[str, Any]:
        return self._config.copy()

    async def update(self, updates: dict[str, Any]) -> None:
        """Merge ``updates`` into the live config and persist the user layer.

        Only what the user configured is written back, never the defaults.
        """
        new_config = deep_merge(self._config, updates)

        user_cfg = getattr(self.provider, "_user_config", None)
        await self.provider.save(
            deep_merge(user_cfg, updates) if isinstance(user_cfg, dict) else new_config
        )

        self._apply(new_config, reason="update")

    def register_change_callback(self, callback: ChangeCallback) -> None:
        self._change_callbacks.append(callback)

    def _on_config_changed(self, new_config: dict[str, Any]) -> None:
        self._apply(new_config, reason="reload")

    def _apply(self, new_config: dict[str, Any], *, reason: str) -> None:
        self.last_changed = changed_paths(self._config, new_config)
        self._config = new_config
        if not self.last_changed:
            logger.debug("Configuration unchanged", reason=reason)
            return
        logger.info("Configuration changed", reason=reason, paths=self.last_changed)
        self._notify_callbacks()

    def _notify_callbacks(self) -> None:
        for callback in self._change_callbacks:
            try:
                callback(self._config.copy())
            except Exception as e:
                logger.error(
                    "Error in config change callback",
                    error=str(e),
                    callback=getattr(callback, "__name__", repr(callback)),
                )


_config_manager: ConfigManager | None = None


def create_config_manager(
    config_dir: Path,
    *,
    defaults: dict[str, Any] | None = None,
) -> ConfigManager:
    """Create the global config manager backed by <config_dir>/config.json."""
    global _config_manager

    config_path = config_dir / "config.json"
    provider = LocalFileConfigProvider(config_path, defaults=defaults)
    _config_manager = ConfigManager(provider)

    logger.info("Config manager created", config_path=str(config_path))
    return _config_manager


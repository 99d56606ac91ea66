"""Configuration settings for inkagent.

This module provides a Settings class that wraps the ConfigManager,
providing property-based access to configuration values with hot-reload
support and environment variable fallbacks.
"""

from __future__ import annotations

import os
from typing import Any

from inkagent.config.constants import (
    DEFAULT_CHAT_MAX_TOKENS,
    DEFAULT_CHAT_TEMPERATURE,
    DEFAULT_MAX_ITERATIONS,
    DEFAULT_REASONING_CLOSE_MARKER,
    DEFAULT_REASONING_OPEN_MARKER,
    DEFAULT_RETRIEVAL_LIMIT,
    DEFAULT_SEARCH_TIMEOUT,
)
from inkagent.config.manager import ConfigManager


class Settings:
    """Application settings with hot-reload support."""

    def __init__(self, config_manager: ConfigManager | None = None):
        self._config_manager = config_manager

    def validate_or_raise(self) -> None:
        """Raise ValueError when the chat model cannot be used."""
        if not self.model:
            raise ValueError(
                "LLM model is not configured. Set llm.model in .inkagent/config.json "
                "or via env INKAGENT_MODEL."
            )
        if not self.openai_api_key:
            raise ValueError(
                "OPENAI_API_KEY is required. Configure it in .inkagent/config.json "
                "under 'llm.api_key' or via env OPENAI_API_KEY."
            )

    def validation_status(self) -> tuple[bool, list[str]]:
        """Return (is_valid, errors) without raising."""
        try:
            self.validate_or_raise()
            return True, []
        except ValueError as exc:
            return False, [str(exc)]

    def _get(
        self,
        key: str,
        default: Any,
        env_key: str | None = None,
    ) -> Any:
        """Config value at dotted ``key``, then env ``env_key``, then ``default``."""
        if self._config_manager is not None:
            value = self._config_manager.get_path(key)
            if value is not None:
                return value
        if env_key and (env_val := os.getenv(env_key)):
            if isinstance(default, bool):
                return env_val.lower() in ("true", "1", "yes")
            elif isinstance(default, int):
                return int(env_val)
            elif isinstance(default, float):
                return float(env_val)
            return env_val
        return default

    # LLM
    @property
    def model(self) -> str | None:
        return self._get("llm.model", None, "INKAGENT_MODEL")

    @property
    def openai_api_key(self) -> str | None:
        return self._get("llm.api_key", None, "OPENAI_API_KEY")

    @property
    def openai_base_url(self) -> str | None:
        return self._get("llm.base_url", None, "OPENAI_BASE_URL")

    @property
    def temperature(self) -> float:
        return float(self._get("llm.temperature", DEFAULT_CHAT_TEMPERATURE))

    @property
    def max_tokens(self) -> int:
        return int(self._get("llm.max_tokens", DEFAULT_CHAT_MAX_TOKENS))

    # Agent loop
    @property
    def max_iterations(self) -> int:
        return self._get(
            "agent.max_iterations", DEFAULT_MAX_ITERATIONS, "AGENT_MAX_ITERATIONS"
        )

    @property
    def agent_verbose(self) -> bool:
        return self._get("agent.verbose", False, "AGENT_VERBOSE")

    # Tag-delimited stream
    @property
    def reasoning_open_marker(self) -> str:
        return self._get("stream.reasoning_open_marker", DEFAULT_REASONING_OPEN_MARKER)

    @property
    def reasoning_close_marker(self) -> str:
        return self._get(
            "stream.reasoning_close_marker", DEFAULT_REASONING_CLOSE_MARKER
        )

    # Knowledge search
    @property
    def search_url(self) -> str | None:
        return self._get("knowledge.search_url", None, "KNOWLEDGE_SEARCH_URL")

    @property
    def retrieval_limit(self) -> int:
        return self._get(
            "knowledge.retrieval_limit", DEFAULT_RETRIEVAL_LIMIT, "RETRIEVAL_LIMIT"
        )

    @property
    def search_timeout(self) -> float:
        return float(self._get("knowledge.timeout", DEFAULT_SEARCH_TIMEOUT))

    # Server
    @property
    def server_host(self) -> str:
        return self._get("server_host", "localhost", "SERVER_HOST")

    @property
    def server_port(self) -> int:
        return self._get("server_port", 8765, "SERVER_PORT")

    # Logging
    @property
    def log_level(self) -> str:
        return self._get("log_level", "INFO", "LOG_LEVEL")

    @property
    def log_format(self) -> str:
        return self._get("log_format", "pretty", "LOG_FORMAT")

    @property
    def log_colors(self) -> bool:
        return self._get("log_colors", True, "LOG_COLORS")


# Global settings instance (bound to the config manager at startup)
settings = Settings()

"""Default configuration values for inkagent."""

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


def get_default_config() -> dict[str, Any]:
    """Return the default configuration dictionary."""
    return {
        # Chat model used by both the agent loop and the knowledge chat.
        # api_key/base_url fall back to OPENAI_API_KEY/OPENAI_BASE_URL.
        "llm": {
            "type": "openai",
            "model": "gpt-4o-mini",
            "api_key": None,
            "base_url": None,
            "temperature": DEFAULT_CHAT_TEMPERATURE,
            "max_tokens": DEFAULT_CHAT_MAX_TOKENS,
        },
        "agent": {
            "max_iterations": DEFAULT_MAX_ITERATIONS,
            "verbose": False,
        },
        # Markers of the model's private reasoning span, dropped from <content>
        "stream": {
            "reasoning_open_marker": DEFAULT_REASONING_OPEN_MARKER,
            "reasoning_close_marker": DEFAULT_REASONING_CLOSE_MARKER,
        },
        "knowledge": {
            "search_url": None,
            "retrieval_limit": DEFAULT_RETRIEVAL_LIMIT,
            "timeout": DEFAULT_SEARCH_TIMEOUT,
        },
        "server_host": "localhost",
        "server_port": 8765,
        "log_level": "INFO",
        "log_format": "pretty",
        "log_colors": True,
    }

"""Chat model provider backed by langchain-openai.

Anything OpenAI-compatible works through ``llm.base_url``.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any

from langchain_core.messages import BaseMessage
from langchain_openai import ChatOpenAI

from inkagent.config.constants import DEFAULT_CHAT_MAX_TOKENS, DEFAULT_CHAT_TEMPERATURE
from inkagent.utils.logger import agent_logger


def extract_text(chunk: Any) -> str:
    """Return the text carried by a model stream chunk.

    Accepts plain strings, message chunks whose ``content`` is a string, and
    content given as a list of parts (strings or ``{"text": ...}`` blocks).
    """
    if isinstance(chunk, str):
        return chunk

    content = getattr(chunk, "content", None)
    if content is None and isinstance(chunk, dict):
        content = chunk.get("content")

    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, str):
                parts.append(part)
            elif isinstance(part, dict) and isinstance(part.get("text"), str):
                parts.append(part["text"])
        return "".join(parts)
    return ""


class ChatModelProvider:
    """Builds the chat model from settings and streams completions."""

    def __init__(
        self,
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
        api_key: str | None = None,
        base_url: str | None = None,
    ):
        if not model:
            raise ValueError(
                "LLM model not specified. Configure llm.model in your config."
            )

        self.model: str = model
        self.api_key = api_key
        self.base_url = base_url
        self.temperature = (
            temperature if temperature is not None else DEFAULT_CHAT_TEMPERATURE
        )
        self.max_tokens = (
            max_tokens if max_tokens is not None else DEFAULT_CHAT_MAX_TOKENS
        )

        agent_logger.info(
            "Initializing LLM provider",
            model=self.model,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            base_url=self.base_url,
        )

        kwargs: dict[str, Any] = {
            "model": self.model,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }
        if self.base_url:
            kwargs["base_url"] = self.base_url
        if self.api_key:
            kwargs["api_key"] = self.api_key
        self.llm = ChatOpenAI(**kwargs)

    @classmethod
    def from_settings(cls, settings) -> ChatModelProvider:
        return cls(
            model=settings.model,
            temperature=settings.temperature,
            max_tokens=settings.max_tokens,
            api_key=settings.openai_api_key,
            base_url=settings.openai_base_url,
        )

    def stream(self, messages: list[BaseMessage]) -> AsyncIterator[Any]:
        """Start a streaming completion; chunks are LangChain message chunks."""
        return self.llm.astream(messages)

    def get_model_name(self) -> str:
        return self.model

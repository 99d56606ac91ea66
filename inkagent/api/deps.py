from __future__ import annotations

from inkagent.config import settings
from inkagent.services.chat_service import ChatService
from inkagent.tools.registry import ToolRegistry, tool_registry

# Global chat service instance
_chat_service: ChatService | None = None


def get_registry() -> ToolRegistry:
    return tool_registry


def get_chat_service() -> ChatService:
    global _chat_service
    if _chat_service is None:
        _chat_service = ChatService(settings, tool_registry)
    return _chat_service


def set_chat_service(service: ChatService | None) -> None:
    """Replace the shared chat service (None resets to lazy creation)."""
    global _chat_service
    _chat_service = service

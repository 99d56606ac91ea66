from .system import get_agent_system_prompt, get_knowledge_system_prompt

__all__ = ["get_agent_system_prompt", "get_knowledge_system_prompt"]

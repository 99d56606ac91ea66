from __future__ import annotations

from .registry import ToolRegistry, tool_registry


def build_registry(
    searcher=None,
    *,
    registry: ToolRegistry | None = None,
    include: set[str] | None = None,
    exclude: set[str] | None = None,
) -> ToolRegistry:
    """Register the built-in capabilities.

    Populates the process-wide ``tool_registry`` unless another registry is
    passed. Capabilities needing a collaborator that was not supplied are
    skipped.
    """
    registry = registry if registry is not None else tool_registry

    include = include or set()
    exclude = exclude or set()

    from inkagent.services.knowledge import make_search_articles_capability

    builtin = []
    if searcher is not None:
        builtin.append(make_search_articles_capability(searcher))

    for capability in builtin:
        if include and capability.name not in include:
            continue
        if capability.name in exclude:
            continue
        registry.register(capability)

    return registry

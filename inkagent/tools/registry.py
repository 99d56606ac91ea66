from __future__ import annotations

import threading
from collections.abc import Mapping

from inkagent.utils.logger import agent_logger

from .protocol import INVOCATION_GUIDE, NO_TOOLS_AVAILABLE
from .types import Capability

CATALOG_HEADER = "可用工具列表："


class ToolRegistry:
    """Name-keyed set of capabilities offered to the model.

    Writes take a lock and swap in a new mapping; readers work on whatever
    snapshot was current when they started.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._capabilities: Mapping[str, Capability] = {}

    def register(self, capability: Capability) -> None:
        if not capability.name:
            raise ValueError("Capability name must be a non-empty string")
        if not isinstance(capability.parameters, Mapping):
            raise ValueError(
                f"Capability '{capability.name}' requires a parameters mapping"
            )
        with self._lock:
            if capability.name in self._capabilities:
                agent_logger.warning(
                    "Overwriting registered capability", name=capability.name
                )
            updated = dict(self._capabilities)
            updated[capability.name] = capability
            self._capabilities = updated
        agent_logger.debug("Capability registered", name=capability.name)

    def get(self, name: str) -> Capability | None:
        return self._capabilities.get(name)

    def list_capabilities(self) -> list[Capability]:
        return list(self._capabilities.values())

    def names(self) -> list[str]:
        return list(self._capabilities.keys())

    def __contains__(self, name: object) -> bool:
        return name in self._capabilities

    def __len__(self) -> int:
        return len(self._capabilities)

    def describe_all(self) -> str:
        """Render the capability catalog that is embedded into the system prompt."""
        capabilities = self.list_capabilities()
        if not capabilities:
            return NO_TOOLS_AVAILABLE

        blocks = [_describe(capability) for capability in capabilities]
        return f"{CATALOG_HEADER}\n\n" + "\n\n".join(blocks) + f"\n\n{INVOCATION_GUIDE}"


def _describe(capability: Capability) -> str:
    lines = [
        f"**{capability.name}**",
        f"描述: {capability.description}",
        "参数:",
    ]
    if not capability.parameters:
        lines.append("  无参数")
    for key, spec in capability.parameters.items():
        flag = "必需" if spec.required else "可选"
        lines.append(f"  - {key} ({spec.type})（{flag}）: {spec.description}")
    return "\n".join(lines)


# Process-wide registry, populated once by build_registry() at startup
tool_registry = ToolRegistry()

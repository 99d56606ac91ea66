from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

__all__ = [
    "Capability",
    "CapabilityHandler",
    "InvocationRequest",
    "InvocationResult",
    "ParameterSpec",
]

CapabilityHandler = Callable[[dict[str, Any]], "Awaitable[Any] | Any"]


@dataclass(frozen=True)
class ParameterSpec:
    """One declared capability parameter.

    Parameters are required unless explicitly marked otherwise.
    """

    type: str
    description: str = ""
    required: bool = True


@dataclass(frozen=True)
class Capability:
    """A named, schema-described function the model may ask to run."""

    name: str
    description: str
    parameters: Mapping[str, ParameterSpec]
    handler: CapabilityHandler = field(compare=False, repr=False)

    def __post_init__(self) -> None:
        if self.parameters is None or not isinstance(self.parameters, Mapping):
            raise ValueError(f"Capability '{self.name}' requires a parameters mapping")
        # Read-only snapshot preserving declaration order
        object.__setattr__(
            self, "parameters", MappingProxyType(dict(self.parameters))
        )

    def required_parameters(self) -> list[str]:
        return [key for key, spec in self.parameters.items() if spec.required]


@dataclass(frozen=True)
class InvocationRequest:
    """One model-requested call, produced only by the tool call parser."""

    id: str | int
    capability_name: str
    arguments: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class InvocationResult:
    """Outcome of one invocation: ``ok`` with ``data`` or not ``ok`` with ``error``."""

    ok: bool
    data: Any = None
    error: str | None = None

    @classmethod
    def success(cls, data: Any = None) -> InvocationResult:
        return cls(ok=True, data=data)

    @classmethod
    def failure(cls, error: str) -> InvocationResult:
        return cls(ok=False, error=error)

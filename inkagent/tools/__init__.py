from .build_registry import build_registry
from .parser import parse_tool_calls, strip_tool_call_markers, strip_tool_calls
from .protocol import (
    CONTINUE_INSTRUCTION,
    TIMEOUT_ANSWER,
    TOOL_CALL_EXAMPLE,
    format_jsonrpc_response,
    render_observation,
)
from .registry import ToolRegistry, tool_registry
from .tool_executor import ToolExecutor
from .types import (
    Capability,
    CapabilityHandler,
    InvocationRequest,
    InvocationResult,
    ParameterSpec,
)

__all__ = [
    "CONTINUE_INSTRUCTION",
    "TIMEOUT_ANSWER",
    "TOOL_CALL_EXAMPLE",
    "Capability",
    "CapabilityHandler",
    "InvocationRequest",
    "InvocationResult",
    "ParameterSpec",
    "ToolExecutor",
    "ToolRegistry",
    "build_registry",
    "format_jsonrpc_response",
    "parse_tool_calls",
    "render_observation",
    "strip_tool_call_markers",
    "strip_tool_calls",
    "tool_registry",
]

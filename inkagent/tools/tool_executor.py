from __future__ import annotations

import inspect
import time

from inkagent.utils.logger import agent_logger

from .registry import ToolRegistry, tool_registry
from .types import InvocationRequest, InvocationResult


class ToolExecutor:
    """Runs parsed invocation requests against a registry.

    Every outcome, including unknown capabilities and handler crashes, comes
    back as an InvocationResult paired with the request's correlation id.
    """

    def __init__(self, registry: ToolRegistry | None = None) -> None:
        self.registry = registry if registry is not None else tool_registry

    async def execute(
        self, request: InvocationRequest
    ) -> tuple[InvocationResult, str | int]:
        name = request.capability_name
        capability = self.registry.get(name)
        if capability is None:
            agent_logger.warning("Capability not found", tool=name, id=request.id)
            return InvocationResult.failure(f"capability {name} not found"), request.id

        arguments = request.arguments or {}
        for key in capability.required_parameters():
            if key not in arguments:
                agent_logger.warning(
                    "Missing required parameter", tool=name, parameter=key
                )
                return (
                    InvocationResult.failure(f"missing required parameter: {key}"),
                    request.id,
                )

        agent_logger.info("Tool call", tool=name, args=arguments, id=request.id)
        started = time.perf_counter()
        try:
            outcome = capability.handler(dict(arguments))
            if inspect.isawaitable(outcome):
                outcome = await outcome
        except Exception as e:
            agent_logger.error(
                "Tool execution failed",
                tool=name,
                error=str(e),
                error_type=type(e).__name__,
            )
            return InvocationResult.failure(str(e) or type(e).__name__), request.id

        result = (
            outcome
            if isinstance(outcome, InvocationResult)
            else InvocationResult.success(outcome)
        )
        agent_logger.info(
            "Tool result",
            tool=name,
            ok=result.ok,
            duration_ms=round((time.perf_counter() - started) * 1000, 1),
        )
        return result, request.id

"""Thought / Action / Observation agent loop over a streaming chat model.

Tool calls are requested in-band through the ``<tool_call>`` grammar, so the
model needs no native function calling support.
"""

from __future__ import annotations

import inspect
from collections.abc import AsyncIterator, Awaitable, Callable, Mapping, Sequence
from enum import Enum
from typing import Any

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from inkagent.config.constants import DEFAULT_MAX_ITERATIONS
from inkagent.domain.events import EventFactory, LifecycleEvent
from inkagent.llm.provider import extract_text
from inkagent.tools import (
    CONTINUE_INSTRUCTION,
    TIMEOUT_ANSWER,
    ToolExecutor,
    ToolRegistry,
    format_jsonrpc_response,
    parse_tool_calls,
    render_observation,
    strip_tool_call_markers,
    strip_tool_calls,
    tool_registry,
)
from inkagent.utils.logger import agent_logger, stream_log

ModelCall = Callable[
    [list[BaseMessage]], "AsyncIterator[Any] | Awaitable[AsyncIterator[Any]]"
]
EventSink = Callable[[LifecycleEvent], "Awaitable[None] | None"]


def history_messages(history: Sequence[Any]) -> list[BaseMessage]:
    """Convert prior turns (``{role, content}`` mappings or objects) to messages.

    Anything not from the user is treated as an assistant turn.
    """
    messages: list[BaseMessage] = []
    for item in history:
        if isinstance(item, Mapping):
            role, content = item.get("role"), item.get("content", "")
        else:
            role, content = getattr(item, "role", None), getattr(item, "content", "")
        if role == "user":
            messages.append(HumanMessage(content=content))
        else:
            messages.append(AIMessage(content=content))
    return messages


class AgentState(str, Enum):
    IDLE = "idle"
    THINKING = "thinking"
    TOOL_DISPATCH = "tool_dispatch"
    ANSWERED = "answered"
    TIMED_OUT = "timed_out"
    FAILED = "failed"


class ReactAgent:
    """Runs the reasoning loop and reports progress as lifecycle events.

    ``model_call(messages)`` must return an async iterator of chunks (plain
    strings or LangChain message chunks). The event sink may be sync or
    async. Every run ends with exactly one ``done`` event.
    """

    def __init__(
        self,
        model_call: ModelCall,
        system_prompt: str,
        registry: ToolRegistry | None = None,
        executor: ToolExecutor | None = None,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        verbose: bool = False,
    ):
        if max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        self.model_call = model_call
        self.system_prompt = system_prompt
        self.registry = registry if registry is not None else tool_registry
        self.executor = executor or ToolExecutor(self.registry)
        self.max_iterations = max_iterations
        self.verbose = verbose

    async def run(
        self,
        input: str,
        history: Sequence[Any] | None = None,
        on_event: EventSink | None = None,
    ) -> AgentState:
        """Run the loop to completion and return the terminal state.

        Failures are reported through ``error`` + ``done`` events rather than
        raised. Cancellation propagates.
        """
        state = AgentState.IDLE
        messages = self._build_messages(input, history or [])
        agent_logger.info(
            "Agent run",
            max_iterations=self.max_iterations,
            history=len(messages) - 2,
            tools=self.registry.names(),
        )

        try:
            for iteration in range(1, self.max_iterations + 1):
                state = AgentState.THINKING
                if self.verbose:
                    agent_logger.info(
                        "Agent iteration",
                        iteration=iteration,
                        max_iterations=self.max_iterations,
                        messages=len(messages),
                    )

                response_text = await self._stream_turn(messages, on_event)
                calls = parse_tool_calls(response_text)

                if not calls:
                    answer = self._clean_answer(response_text)
                    if answer:
                        await self._emit(on_event, EventFactory.answer(answer))
                    else:
                        agent_logger.warning(
                            "Model produced no answer text", iteration=iteration
                        )
                    state = AgentState.ANSWERED
                    break

                state = AgentState.TOOL_DISPATCH
                if self.verbose:
                    agent_logger.info(
                        "Tool calls detected",
                        count=len(calls),
                        tools=[call.capability_name for call in calls],
                    )
                transcript = response_text
                for call in calls:
                    await self._emit(
                        on_event,
                        EventFactory.action(
                            call.capability_name, call.arguments, call.id
                        ),
                    )
                    result, call_id = await self.executor.execute(call)
                    envelope = format_jsonrpc_response(call_id, result)
                    await self._emit(on_event, EventFactory.observation(envelope))
                    transcript += render_observation(envelope)

                messages.append(AIMessage(content=transcript))
                messages.append(HumanMessage(content=CONTINUE_INSTRUCTION))
            else:
                state = AgentState.TIMED_OUT
                agent_logger.warning(
                    "Max iterations reached", max_iterations=self.max_iterations
                )
                await self._emit(on_event, EventFactory.answer(TIMEOUT_ANSWER))
        except Exception as e:
            state = AgentState.FAILED
            agent_logger.error(
                "Agent run failed",
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
            await self._emit_terminal(
                on_event, EventFactory.error(str(e) or type(e).__name__)
            )

        await self._emit_terminal(on_event, EventFactory.done())
        agent_logger.info("Agent run finished", state=state.value)
        return state

    def _build_messages(
        self, input: str, history: Sequence[Any]
    ) -> list[BaseMessage]:
        return [
            SystemMessage(content=self.system_prompt),
            *history_messages(history),
            HumanMessage(content=input),
        ]

    async def _stream_turn(
        self, messages: list[BaseMessage], on_event: EventSink | None
    ) -> str:
        """Stream one model turn, emitting each text increment as a thought."""
        stream = self.model_call(messages)
        if inspect.isawaitable(stream):
            stream = await stream

        parts: list[str] = []
        try:
            async for chunk in stream:
                text = extract_text(chunk)
                if not text:
                    continue
                parts.append(text)
                await self._emit(on_event, EventFactory.thought(text))
        finally:
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()

        response_text = "".join(parts)
        if self.verbose:
            agent_logger.info(
                "Model turn finished",
                chunks=len(parts),
                length=len(response_text),
                preview=response_text[:300],
            )
        return response_text

    @staticmethod
    def _clean_answer(text: str) -> str:
        """Strip invocation blocks, falling back to markers only, then raw text."""
        return (
            strip_tool_calls(text) or strip_tool_call_markers(text) or text.strip()
        )

    async def _emit(self, on_event: EventSink | None, event: LifecycleEvent) -> None:
        if on_event is None:
            return
        content = event.payload()
        stream_log(
            agent_logger,
            event.type.value,
            content if isinstance(content, str) else None,
        )
        outcome = on_event(event)
        if inspect.isawaitable(outcome):
            await outcome

    async def _emit_terminal(
        self, on_event: EventSink | None, event: LifecycleEvent
    ) -> None:
        try:
            await self._emit(on_event, event)
        except Exception as e:
            agent_logger.error(
                "Failed to deliver terminal event",
                event_type=event.type.value,
                error=str(e),
            )

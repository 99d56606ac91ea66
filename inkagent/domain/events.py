"""Lifecycle event types emitted by the agent loop.

Each event kind is one frozen dataclass; ``LifecycleEvent`` is the closed
union of them. Encoders go through ``event_payload`` whose ``match`` is
exhaustive, so adding a kind without teaching the encoder fails loudly.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, assert_never


class EventType(str, Enum):
    THOUGHT = "thought"
    ACTION = "action"
    OBSERVATION = "observation"
    ANSWER = "answer"
    ERROR = "error"
    DONE = "done"


@dataclass(frozen=True)
class BaseEvent:
    type: ClassVar[EventType]

    def payload(self) -> Any:
        return event_payload(self)  # type: ignore[arg-type]

    def to_sse(self) -> dict[str, str]:
        """Render as an sse-starlette event dict."""
        return {
            "event": self.type.value,
            "data": json.dumps(self.payload(), ensure_ascii=False),
        }


@dataclass(frozen=True)
class ThoughtEvent(BaseEvent):
    type: ClassVar[EventType] = EventType.THOUGHT
    content: str = ""


@dataclass(frozen=True)
class ActionEvent(BaseEvent):
    type: ClassVar[EventType] = EventType.ACTION
    method: str = ""
    params: dict[str, Any] = field(default_factory=dict)
    id: str | int = ""


@dataclass(frozen=True)
class ObservationEvent(BaseEvent):
    type: ClassVar[EventType] = EventType.OBSERVATION
    envelope: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class AnswerEvent(BaseEvent):
    type: ClassVar[EventType] = EventType.ANSWER
    content: str = ""


@dataclass(frozen=True)
class ErrorEvent(BaseEvent):
    type: ClassVar[EventType] = EventType.ERROR
    message: str = ""


@dataclass(frozen=True)
class DoneEvent(BaseEvent):
    type: ClassVar[EventType] = EventType.DONE


LifecycleEvent = (
    ThoughtEvent | ActionEvent | ObservationEvent | AnswerEvent | ErrorEvent | DoneEvent
)

TERMINAL_EVENT_TYPES = frozenset({EventType.ERROR, EventType.DONE})


def event_payload(event: LifecycleEvent) -> Any:
    """Return the JSON-compatible payload carried on the wire for ``event``."""
    match event:
        case ThoughtEvent(content=content):
            return content
        case ActionEvent(method=method, params=params, id=call_id):
            return {"method": method, "params": params, "id": call_id}
        case ObservationEvent(envelope=envelope):
            return envelope
        case AnswerEvent(content=content):
            return content
        case ErrorEvent(message=message):
            return {"message": message}
        case DoneEvent():
            return None
        case _:
            assert_never(event)


def event_from_payload(event_type: str, payload: Any) -> LifecycleEvent:
    """Rebuild an event from its wire type label and decoded JSON payload.

    Raises:
        ValueError: unknown type label or a payload of the wrong shape.
    """
    try:
        kind = EventType(event_type)
    except ValueError as e:
        raise ValueError(f"Unknown event type: {event_type}") from e

    if kind is EventType.DONE:
        return DoneEvent()
    if kind in (EventType.THOUGHT, EventType.ANSWER):
        if not isinstance(payload, str):
            raise ValueError(f"'{kind.value}' payload must be a string")
        if kind is EventType.THOUGHT:
            return ThoughtEvent(content=payload)
        return AnswerEvent(content=payload)
    if not isinstance(payload, dict):
        raise ValueError(f"'{kind.value}' payload must be an object")
    if kind is EventType.ACTION:
        params = payload.get("params") or {}
        if not isinstance(params, dict):
            raise ValueError("'action' params must be an object")
        return ActionEvent(
            method=str(payload.get("method", "")),
            params=dict(params),
            id=payload.get("id", ""),
        )
    if kind is EventType.OBSERVATION:
        return ObservationEvent(envelope=payload)
    return ErrorEvent(message=str(payload.get("message", "")))


class EventFactory:
    @staticmethod
    def thought(content: str) -> ThoughtEvent:
        return ThoughtEvent(content=content)

    @staticmethod
    def action(method: str, params: dict[str, Any], call_id: str | int) -> ActionEvent:
        return ActionEvent(method=method, params=params, id=call_id)

    @staticmethod
    def observation(envelope: dict[str, Any]) -> ObservationEvent:
        return ObservationEvent(envelope=envelope)

    @staticmethod
    def answer(content: str) -> AnswerEvent:
        return AnswerEvent(content=content)

    @staticmethod
    def error(message: str) -> ErrorEvent:
        return ErrorEvent(message=message)

    @staticmethod
    def done() -> DoneEvent:
        return DoneEvent()

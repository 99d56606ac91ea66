"""Discrete event encoding over Server-Sent Events.

Server side: lifecycle events become ``event: <type>\\ndata: <json>\\n\\n``
frames served through sse-starlette. Client side: ``SSEDecoder`` turns an
arbitrarily fragmented byte stream back into lifecycle events.
"""

from __future__ import annotations

import asyncio
import codecs
import json
from collections.abc import AsyncIterator, Callable, Sequence
from contextlib import suppress
from dataclasses import dataclass
from typing import Any

from sse_starlette.sse import EventSourceResponse

from inkagent.domain.events import (
    ActionEvent,
    AnswerEvent,
    DoneEvent,
    ErrorEvent,
    EventFactory,
    LifecycleEvent,
    ObservationEvent,
    ThoughtEvent,
    event_from_payload,
)
from inkagent.utils.logger import stream_log, stream_logger

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "X-Accel-Buffering": "no",
}


def format_sse_message(event: str, data: Any) -> str:
    """Render one SSE frame; ``data`` is serialized as JSON."""
    return f"event: {event}\ndata: {json.dumps(data, ensure_ascii=False)}\n\n"


def encode_event(event: LifecycleEvent) -> str:
    return format_sse_message(event.type.value, event.payload())


class SSEDecoder:
    """Incremental decoder for the discrete event wire format.

    Feed it whatever the transport delivers; a frame is dispatched once its
    ``event`` line, ``data`` line and terminating blank line have all arrived.
    """

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")()
        self._buffer = ""
        self._event: str | None = None
        self._data: list[str] = []

    def feed(self, chunk: bytes | str) -> list[LifecycleEvent]:
        if isinstance(chunk, bytes):
            chunk = self._decoder.decode(chunk)
        self._buffer += chunk

        events: list[LifecycleEvent] = []
        *lines, self._buffer = self._buffer.split("\n")
        for line in lines:
            event = self._process_line(line.removesuffix("\r"))
            if event is not None:
                events.append(event)
        return events

    def close(self) -> None:
        """Discard any partially received frame."""
        if self._buffer or self._event or self._data:
            stream_logger.debug(
                "Discarding incomplete SSE frame",
                pending=(self._buffer or "\n".join(self._data))[:100],
            )
        self._decoder.reset()
        self._buffer = ""
        self._reset_frame()

    def _reset_frame(self) -> None:
        self._event = None
        self._data = []

    def _process_line(self, line: str) -> LifecycleEvent | None:
        if not line:
            return self._dispatch()
        if line.startswith(":"):
            return None

        field, _, value = line.partition(":")
        value = value.removeprefix(" ")
        if field == "event":
            self._event = value
        elif field == "data":
            self._data.append(value)
        return None

    def _dispatch(self) -> LifecycleEvent | None:
        event_type, data = self._event, self._data
        self._reset_frame()
        if event_type is None or not data:
            return None
        try:
            payload = json.loads("\n".join(data))
            return event_from_payload(event_type, payload)
        except ValueError as e:
            stream_logger.warning(
                "Dropping malformed SSE frame",
                event_type=event_type,
                error=str(e),
            )
            return None


@dataclass
class SSEEventHandlers:
    on_thought: Callable[[str], None] | None = None
    on_action: Callable[[dict[str, Any]], None] | None = None
    on_observation: Callable[[dict[str, Any]], None] | None = None
    on_answer: Callable[[str], None] | None = None
    on_error: Callable[[str], None] | None = None
    on_done: Callable[[], None] | None = None


def dispatch_event(event: LifecycleEvent, handlers: SSEEventHandlers) -> None:
    """Route a decoded event to the matching handler, if one is set."""
    match event:
        case ThoughtEvent(content=content):
            if handlers.on_thought:
                handlers.on_thought(content)
        case ActionEvent():
            if handlers.on_action:
                handlers.on_action(event.payload())
        case ObservationEvent(envelope=envelope):
            if handlers.on_observation:
                handlers.on_observation(envelope)
        case AnswerEvent(content=content):
            if handlers.on_answer:
                handlers.on_answer(content)
        case ErrorEvent(message=message):
            if handlers.on_error:
                handlers.on_error(message)
        case DoneEvent():
            if handlers.on_done:
                handlers.on_done()


async def agent_event_stream(
    agent, input: str, history: Sequence[Any] | None = None
) -> AsyncIterator[LifecycleEvent]:
    """Run ``agent`` in a task and yield its events as they are emitted.

    The agent is never more than one event ahead of the consumer. Closing
    the iterator early cancels the run.
    """
    queue: asyncio.Queue[LifecycleEvent] = asyncio.Queue(maxsize=1)
    producer = asyncio.create_task(agent.run(input, history, on_event=queue.put))
    getter: asyncio.Future | None = None

    try:
        while True:
            getter = asyncio.ensure_future(queue.get())
            await asyncio.wait({getter, producer}, return_when=asyncio.FIRST_COMPLETED)
            if getter.done():
                yield getter.result()
                continue

            getter.cancel()
            while not queue.empty():
                yield queue.get_nowait()
            # Surface anything the run raised instead of ending silently
            producer.result()
            break
    finally:
        if getter is not None and not getter.done():
            getter.cancel()
        if not producer.done():
            stream_logger.info("Event stream closed early, cancelling agent run")
            producer.cancel()
            with suppress(asyncio.CancelledError):
                await producer


def sse_response(events: AsyncIterator[LifecycleEvent]) -> EventSourceResponse:
    """Serve lifecycle events as an SSE response that always ends with ``done``."""

    async def guarded_stream() -> AsyncIterator[dict[str, str]]:
        done_sent = False
        error_sent = False
        try:
            async for event in events:
                content = event.payload()
                stream_log(
                    stream_logger,
                    event.type.value,
                    content if isinstance(content, str) else None,
                )
                yield event.to_sse()
                if isinstance(event, DoneEvent):
                    done_sent = True
                elif isinstance(event, ErrorEvent):
                    error_sent = True
        except asyncio.CancelledError:
            stream_logger.info("SSE stream cancelled")
            raise
        except Exception as e:
            stream_logger.error("SSE pipeline crashed", exc_info=True, error=str(e))
            if not error_sent:
                yield EventFactory.error(str(e) or type(e).__name__).to_sse()
        finally:
            aclose = getattr(events, "aclose", None)
            if aclose is not None:
                await aclose()

        if not done_sent:
            yield EventFactory.done().to_sse()

    return EventSourceResponse(guarded_stream(), headers=SSE_HEADERS, sep="\n")

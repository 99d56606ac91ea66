from .sse import (
    SSEDecoder,
    SSEEventHandlers,
    agent_event_stream,
    dispatch_event,
    encode_event,
    format_sse_message,
    sse_response,
)
from .tags import (
    ReasoningTagFilter,
    StreamTag,
    StreamTagGenerator,
    StreamTagParser,
    tagged_stream,
)

__all__ = [
    "ReasoningTagFilter",
    "SSEDecoder",
    "SSEEventHandlers",
    "StreamTag",
    "StreamTagGenerator",
    "StreamTagParser",
    "agent_event_stream",
    "dispatch_event",
    "encode_event",
    "format_sse_message",
    "sse_response",
    "tagged_stream",
]

"""Tag-delimited text encoding for single-channel streams.

Process narration travels as whole ``<think>...</think>`` spans (escaped),
followed by one ``<content>`` span whose body is the model output forwarded
verbatim. Private reasoning the model wraps in its own markers is filtered
out of that body before it is forwarded.
"""

from __future__ import annotations

import codecs
from collections.abc import AsyncIterator, Iterable
from dataclasses import dataclass
from typing import Any, Literal
from xml.sax.saxutils import escape, unescape

from inkagent.config.constants import (
    DEFAULT_REASONING_CLOSE_MARKER,
    DEFAULT_REASONING_OPEN_MARKER,
)
from inkagent.llm.provider import extract_text
from inkagent.utils.logger import stream_logger

THINK_OPEN = "<think>"
THINK_CLOSE = "</think>"
CONTENT_OPEN = "<content>"
CONTENT_CLOSE = "</content>"

_QUOTE_ENTITIES = {'"': "&quot;", "'": "&apos;"}
_QUOTE_UNENTITIES = {value: key for key, value in _QUOTE_ENTITIES.items()}


def escape_xml(text: str) -> str:
    return escape(text, _QUOTE_ENTITIES)


def unescape_xml(text: str) -> str:
    return unescape(text, _QUOTE_UNENTITIES)


class StreamTagGenerator:
    """Produces the UTF-8 encoded pieces of a tagged stream."""

    def generate_think(self, content: str) -> bytes:
        return f"{THINK_OPEN}{escape_xml(content)}{THINK_CLOSE}".encode()

    def start_content(self) -> bytes:
        return CONTENT_OPEN.encode()

    def generate_content(self, content: str) -> bytes:
        return content.encode()

    def end_content(self) -> bytes:
        return CONTENT_CLOSE.encode()


class ReasoningTagFilter:
    """Removes private reasoning spans from a chunked text stream.

    The concatenated output does not depend on where the input was split:
    up to ``len(marker) - 1`` trailing characters are held back whenever
    they could be the start of a marker that has not fully arrived yet.
    """

    def __init__(
        self,
        open_marker: str = DEFAULT_REASONING_OPEN_MARKER,
        close_marker: str = DEFAULT_REASONING_CLOSE_MARKER,
    ):
        if not open_marker or not close_marker:
            raise ValueError("Reasoning markers must be non-empty strings")
        self.open_marker = open_marker
        self.close_marker = close_marker
        self._buffer = ""
        self._inside = False

    @property
    def inside(self) -> bool:
        return self._inside

    def feed(self, chunk: str) -> str:
        self._buffer += chunk
        out: list[str] = []
        while True:
            if not self._inside:
                start = self._buffer.find(self.open_marker)
                if start != -1:
                    out.append(self._buffer[:start])
                    self._buffer = self._buffer[start + len(self.open_marker) :]
                    self._inside = True
                    continue
                safe = len(self._buffer) - (len(self.open_marker) - 1)
                if safe > 0:
                    out.append(self._buffer[:safe])
                    self._buffer = self._buffer[safe:]
                break

            end = self._buffer.find(self.close_marker)
            if end != -1:
                self._buffer = self._buffer[end + len(self.close_marker) :]
                self._inside = False
                continue
            # Only a possible close marker prefix is worth keeping
            keep = len(self.close_marker) - 1
            self._buffer = self._buffer[len(self._buffer) - keep :] if keep else ""
            break
        return "".join(out)

    def finish(self) -> str:
        """Flush what is left; an unterminated private span is dropped."""
        if self._inside:
            stream_logger.debug("Dropping unterminated reasoning span")
            remainder = ""
        else:
            remainder = self._buffer
        self._buffer = ""
        self._inside = False
        return remainder


async def tagged_stream(
    narration: Iterable[str],
    chunks: AsyncIterator[Any],
    reasoning_filter: ReasoningTagFilter | None = None,
) -> AsyncIterator[bytes]:
    """Encode narration and model chunks into the tagged byte stream.

    ``chunks`` is closed when the stream completes, fails or is abandoned
    by its consumer.
    """
    generator = StreamTagGenerator()
    count = 0
    try:
        for text in narration:
            yield generator.generate_think(text)

        yield generator.start_content()
        async for chunk in chunks:
            text = extract_text(chunk)
            if text and reasoning_filter is not None:
                text = reasoning_filter.feed(text)
            if text:
                count += 1
                yield generator.generate_content(text)

        if reasoning_filter is not None and (tail := reasoning_filter.finish()):
            yield generator.generate_content(tail)
        yield generator.end_content()
        stream_logger.debug("Tagged stream finished", chunks=count)
    finally:
        aclose = getattr(chunks, "aclose", None)
        if aclose is not None:
            await aclose()


@dataclass(frozen=True)
class StreamTag:
    type: Literal["think", "content"]
    content: str


class StreamTagParser:
    """Client-side decoder for the tagged stream.

    Content is passed through as sent; only narration is unescaped. Text
    outside any span is ignored.
    """

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")()
        self.reset()

    def reset(self) -> None:
        self._decoder.reset()
        self._buffer = ""
        self._mode: Literal["think", "content"] | None = None

    def feed(self, chunk: bytes | str) -> list[StreamTag]:
        if isinstance(chunk, bytes):
            chunk = self._decoder.decode(chunk)
        self._buffer += chunk
        return self._drain()

    def finish(self) -> list[StreamTag]:
        """Flush an open content span; an unterminated narration span is lost."""
        tags = []
        if self._mode == "content" and self._buffer:
            tags.append(StreamTag("content", self._buffer))
        self.reset()
        return tags

    def _drain(self) -> list[StreamTag]:
        tags: list[StreamTag] = []
        while True:
            if self._mode == "think":
                end = self._buffer.find(THINK_CLOSE)
                if end == -1:
                    break
                tags.append(StreamTag("think", unescape_xml(self._buffer[:end])))
                self._buffer = self._buffer[end + len(THINK_CLOSE) :]
                self._mode = None
                continue

            if self._mode == "content":
                end = self._buffer.find(CONTENT_CLOSE)
                if end == -1:
                    safe = len(self._buffer) - (len(CONTENT_CLOSE) - 1)
                    if safe > 0:
                        tags.append(StreamTag("content", self._buffer[:safe]))
                        self._buffer = self._buffer[safe:]
                    break
                if end > 0:
                    tags.append(StreamTag("content", self._buffer[:end]))
                self._buffer = self._buffer[end + len(CONTENT_CLOSE) :]
                self._mode = None
                continue

            think = self._buffer.find(THINK_OPEN)
            content = self._buffer.find(CONTENT_OPEN)
            if think == -1 and content == -1:
                keep = max(len(THINK_OPEN), len(CONTENT_OPEN)) - 1
                self._buffer = self._buffer[-keep:]
                break
            if content == -1 or (think != -1 and think < content):
                self._mode = "think"
                self._buffer = self._buffer[think + len(THINK_OPEN) :]
            else:
                self._mode = "content"
                self._buffer = self._buffer[content + len(CONTENT_OPEN) :]
        return tags

"""Extraction of invocation requests from raw model output.

A small scanner rather than a regex: model output is untrusted, and a
malformed block must never stop later blocks from being found.
"""

from __future__ import annotations

import json
import uuid
from contextlib import suppress

from inkagent.utils.logger import agent_logger

from .protocol import TOOL_CALL_CLOSE, TOOL_CALL_OPEN
from .types import InvocationRequest

__all__ = ["parse_tool_calls", "strip_tool_call_markers", "strip_tool_calls"]


class _MalformedBlock(Exception):
    """Raised internally for a block that cannot be decoded."""


def _skip_ws(text: str, pos: int) -> int:
    while pos < len(text) and text[pos].isspace():
        pos += 1
    return pos


def _parse_attributes(raw: str) -> dict[str, str]:
    """Parse ``key="value"`` pairs of an open tag."""
    attrs: dict[str, str] = {}
    pos = _skip_ws(raw, 0)
    while pos < len(raw):
        eq = raw.find("=", pos)
        if eq == -1:
            raise _MalformedBlock(f"dangling attribute text: {raw[pos:]!r}")
        key = raw[pos:eq].strip()
        if not key or any(ch.isspace() for ch in key):
            raise _MalformedBlock(f"invalid attribute name: {key!r}")
        quote_pos = _skip_ws(raw, eq + 1)
        if quote_pos >= len(raw) or raw[quote_pos] not in "\"'":
            raise _MalformedBlock(f"attribute {key!r} is not quoted")
        quote = raw[quote_pos]
        end = raw.find(quote, quote_pos + 1)
        if end == -1:
            raise _MalformedBlock(f"unterminated attribute {key!r}")
        attrs[key] = raw[quote_pos + 1 : end]
        pos = _skip_ws(raw, end + 1)
    return attrs


def _match_object(text: str, start: int) -> int:
    """Return the index just past the JSON object starting at ``start``.

    Braces inside string literals are ignored.
    """
    if start >= len(text) or text[start] != "{":
        raise _MalformedBlock("arguments must be a JSON object")
    depth = 0
    in_string = False
    escaped = False
    for pos in range(start, len(text)):
        ch = text[pos]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return pos + 1
    raise _MalformedBlock("unbalanced braces in arguments")


def _read_block(text: str, start: int) -> tuple[InvocationRequest, int]:
    """Decode the block whose open marker begins at ``start``.

    Returns the request and the index just past its close marker.
    """
    tag_start = start + len(TOOL_CALL_OPEN)
    if tag_start >= len(text) or not (
        text[tag_start].isspace() or text[tag_start] == ">"
    ):
        raise _MalformedBlock("not a tool_call tag")
    header_end = text.find(">", tag_start)
    if header_end == -1:
        raise _MalformedBlock("open tag is not closed")

    attrs = _parse_attributes(text[tag_start:header_end])
    name = attrs.get("name", "").strip()
    if not name:
        raise _MalformedBlock("missing capability name")

    body_start = _skip_ws(text, header_end + 1)
    body_end = _match_object(text, body_start)
    try:
        arguments = json.loads(text[body_start:body_end])
    except (ValueError, RecursionError) as e:
        raise _MalformedBlock(f"invalid JSON arguments: {e}") from e

    close_start = _skip_ws(text, body_end)
    if not text.startswith(TOOL_CALL_CLOSE, close_start):
        raise _MalformedBlock("missing </tool_call>")

    call_id: str | int = attrs.get("id") or f"call_{uuid.uuid4().hex[:8]}"
    if isinstance(call_id, str) and call_id.isascii() and call_id.isdecimal():
        # Ids too long for int() stay strings
        with suppress(ValueError):
            call_id = int(call_id)

    request = InvocationRequest(id=call_id, capability_name=name, arguments=arguments)
    return request, close_start + len(TOOL_CALL_CLOSE)


def parse_tool_calls(text: str) -> list[InvocationRequest]:
    """Extract every well-formed invocation block, left to right.

    Malformed blocks are logged and skipped. Capability names are not
    checked against the registry here.
    """
    requests: list[InvocationRequest] = []
    pos = 0
    while True:
        start = text.find(TOOL_CALL_OPEN, pos)
        if start == -1:
            break
        try:
            request, pos = _read_block(text, start)
        except _MalformedBlock as e:
            agent_logger.warning(
                "Skipping malformed tool call block",
                reason=str(e),
                offset=start,
                snippet=text[start : start + 120],
            )
            pos = start + len(TOOL_CALL_OPEN)
            continue
        requests.append(request)
    return requests


def strip_tool_calls(text: str) -> str:
    """Remove whole invocation blocks, including unterminated trailing ones."""
    parts: list[str] = []
    pos = 0
    while True:
        start = text.find(TOOL_CALL_OPEN, pos)
        if start == -1:
            parts.append(text[pos:])
            break
        parts.append(text[pos:start])
        close = text.find(TOOL_CALL_CLOSE, start)
        if close == -1:
            break
        pos = close + len(TOOL_CALL_CLOSE)
    return "".join(parts).strip()


def strip_tool_call_markers(text: str) -> str:
    """Remove only the open/close markers, keeping what they wrapped."""
    parts: list[str] = []
    pos = 0
    while True:
        start = text.find(TOOL_CALL_OPEN, pos)
        if start == -1:
            parts.append(text[pos:])
            break
        parts.append(text[pos:start])
        header_end = text.find(">", start)
        if header_end == -1:
            break
        pos = header_end + 1
    return "".join(parts).replace(TOOL_CALL_CLOSE, "").strip()

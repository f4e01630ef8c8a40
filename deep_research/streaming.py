"""
Incremental decoding of structured (JSON) model output.

Models stream JSON one token at a time. After every chunk the whole buffer
is decoded best-effort with pydantic-core's partial JSON mode, keeping the
prefix of an unterminated string. Text it rejects (a dangling escape, a
partial literal) is cut back to the last complete value and closed by hand.
Callers get a monotonically improving snapshot of the object instead of
waiting for the full response.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, AsyncIterable, AsyncIterator, Callable, Union

from pydantic_core import from_json

from .errors import INVALID_STRUCTURED_OUTPUT
from .llm.protocols import ReasoningDelta, StreamError, StreamEvent, TextDelta

logger = logging.getLogger(__name__)

_CLOSERS = {"{": "}", "[": "]"}


@dataclass(frozen=True)
class ParsedObject:
    """Best-known decoding of everything received so far."""

    value: Any


@dataclass(frozen=True)
class ParsedReasoning:
    """Reasoning delta passed through from the model stream."""

    delta: str


@dataclass(frozen=True)
class ParseError:
    """The upstream stream failed; no further values will arrive."""

    message: str


@dataclass(frozen=True)
class BadEnd:
    """The stream ended without the buffer ever decoding as valid JSON."""

    raw_text: str
    message: str = INVALID_STRUCTURED_OUTPUT


ParseEvent = Union[ParsedObject, ParsedReasoning, ParseError, BadEnd]


def remove_json_markdown(text: str) -> str:
    """Strip a ```json / ``` fence (or a bare leading `json`) around a payload."""
    text = text.strip()
    if text.startswith("```json"):
        text = text[7:]
    elif text.startswith("json"):
        text = text[4:]
    elif text.startswith("```"):
        text = text[3:]
    if text.endswith("```"):
        text = text[:-3]
    return text.strip()


def _scan(text: str) -> tuple[list[str], bool, bool, list[int]]:
    """
    Walk the text once outside of strings.

    Returns the stack of open containers, whether the text ends inside a
    string, whether it ends on a dangling escape, and the positions of
    structural characters that are candidate cut points.
    """
    stack: list[str] = []
    in_string = False
    escaped = False
    cut_points: list[int] = []

    for index, char in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
        elif char in _CLOSERS:
            stack.append(char)
            cut_points.append(index)
        elif char in "}]":
            if stack:
                stack.pop()
            cut_points.append(index)
        elif char in ",:":
            cut_points.append(index)

    return stack, in_string, escaped, cut_points


def _close(text: str) -> str:
    """Close an unterminated string and every open container."""
    stack, in_string, escaped, _ = _scan(text)
    if in_string:
        if escaped:
            text = text[:-1]
        text += '"'
    return text + "".join(_CLOSERS[opener] for opener in reversed(stack))


def parse_partial_json(text: str) -> tuple[Any, str]:
    """
    Decode possibly-truncated JSON.

    Args:
        text: JSON text, possibly cut off anywhere

    Returns:
        Tuple of (value, state) where state is one of "successful-parse",
        "repaired-parse", "failed-parse" or "undefined-input". The value
        is None unless the state is a successful or repaired parse.
    """
    if not text or not text.strip():
        return None, "undefined-input"

    try:
        return json.loads(text), "successful-parse"
    except json.JSONDecodeError:
        pass

    # Prose cannot be repaired into JSON; skip the cut-back search
    if text.lstrip()[0] not in '{["-0123456789tfn':
        return None, "failed-parse"

    try:
        return from_json(text, allow_partial="trailing-strings"), "repaired-parse"
    except ValueError:
        pass

    # Fall back to cutting back to the last structural delimiter
    _, _, _, cut_points = _scan(text)
    candidates = [text]
    for index in reversed(cut_points):
        # Keep an opening bracket, drop any other delimiter
        end = index + 1 if text[index] in _CLOSERS else index
        candidates.append(text[:end])

    for candidate in candidates:
        if not candidate.strip():
            continue
        try:
            return json.loads(_close(candidate)), "repaired-parse"
        except json.JSONDecodeError:
            continue

    return None, "failed-parse"


async def parse_streaming_json(
    stream: AsyncIterable[StreamEvent],
    is_valid: Callable[[Any], bool],
) -> AsyncIterator[ParseEvent]:
    """
    Decode a model event stream into partial JSON snapshots.

    Text deltas are accumulated; after each one the buffer is decoded and a
    ParsedObject is yielded when both the decode and `is_valid` succeed.
    Chunks that do not yet decode are dropped (logged at DEBUG). Reasoning
    deltas are passed through. A provider error ends the stream with a
    ParseError; a stream whose final buffer never decodes ends with BadEnd.

    Args:
        stream: Events from an LLMProvider
        is_valid: Predicate over the decoded value deciding readiness

    Yields:
        ParseEvent instances
    """
    raw_text = ""
    parsed = False

    async for event in stream:
        if isinstance(event, ReasoningDelta):
            yield ParsedReasoning(event.text)
            continue
        if isinstance(event, StreamError):
            yield ParseError(event.message)
            return
        if not isinstance(event, TextDelta):
            logger.debug(f"Ignoring unknown stream event: {event!r}")
            continue

        raw_text += event.text
        value, state = parse_partial_json(remove_json_markdown(raw_text))
        parsed = state in ("successful-parse", "repaired-parse")

        if parsed and is_valid(value):
            yield ParsedObject(value)
        else:
            logger.debug(f"Failed to parse JSON ({state}): {raw_text[-200:]!r}")

    if not parsed:
        logger.warning(f"Stream ended without valid JSON ({len(raw_text)} chars)")
        yield BadEnd(raw_text)

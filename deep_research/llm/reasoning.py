"""Extraction of inline `<think>` reasoning from a content stream."""

from __future__ import annotations

from .protocols import ReasoningDelta, TextDelta

OPEN_TAG = "<think>"
CLOSE_TAG = "</think>"


class ThinkTagExtractor:
    """
    Splits streamed content into answer text and reasoning.

    Some reasoning models (DeepSeek R1 and derivatives) inline their chain
    of thought as `<think>...</think>` at the start of the content. Tags can
    be split across chunks, so a possible partial tag is held back until the
    next chunk arrives.

    Usage:
        extractor = ThinkTagExtractor()
        for chunk in chunks:
            for event in extractor.feed(chunk):
                ...
        for event in extractor.flush():
            ...
    """

    def __init__(self):
        self._buffer = ""
        self._in_reasoning = False

    def feed(self, chunk: str) -> list[TextDelta | ReasoningDelta]:
        """Consume a chunk and return the events that are now certain."""
        self._buffer += chunk
        events: list[TextDelta | ReasoningDelta] = []

        while self._buffer:
            tag = CLOSE_TAG if self._in_reasoning else OPEN_TAG
            index = self._buffer.find(tag)
            if index >= 0:
                self._emit(events, self._buffer[:index])
                self._buffer = self._buffer[index + len(tag):]
                self._in_reasoning = not self._in_reasoning
                continue

            held = _partial_tag_length(self._buffer, tag)
            self._emit(events, self._buffer[: len(self._buffer) - held])
            self._buffer = self._buffer[len(self._buffer) - held:]
            break

        return events

    def flush(self) -> list[TextDelta | ReasoningDelta]:
        """Return whatever is still buffered once the stream has ended."""
        events: list[TextDelta | ReasoningDelta] = []
        self._emit(events, self._buffer)
        self._buffer = ""
        return events

    def _emit(self, events: list, text: str) -> None:
        if not text:
            return
        if self._in_reasoning:
            events.append(ReasoningDelta(text))
        else:
            events.append(TextDelta(text))


def _partial_tag_length(text: str, tag: str) -> int:
    """Length of the longest suffix of `text` that is a proper prefix of `tag`."""
    for size in range(min(len(tag) - 1, len(text)), 0, -1):
        if text.endswith(tag[:size]):
            return size
    return 0

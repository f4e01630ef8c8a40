"""Protocol definitions for LLM providers."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import AsyncIterator, Protocol, Union, runtime_checkable

from pydantic import BaseModel


class MessageRole(str, Enum):
    """Role of a message in a conversation."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class Message(BaseModel):
    """A message in a conversation."""

    role: MessageRole
    content: str


@dataclass(frozen=True)
class TextDelta:
    """A chunk of response text (for structured calls, partial JSON)."""

    text: str


@dataclass(frozen=True)
class ReasoningDelta:
    """A chunk of model reasoning, streamed separately from the answer."""

    text: str


@dataclass(frozen=True)
class StreamError:
    """The provider reported an error; no further deltas will follow."""

    message: str


StreamEvent = Union[TextDelta, ReasoningDelta, StreamError]


@runtime_checkable
class LLMProvider(Protocol):
    """Protocol for LLM providers.

    Implement this protocol to add support for new LLM APIs.
    """

    def stream(
        self,
        prompt: str,
        system_prompt: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> AsyncIterator[StreamEvent]:
        """
        Stream a completion for a simple prompt.

        Args:
            prompt: The user prompt
            system_prompt: Optional system prompt
            temperature: Sampling temperature (0-2), provider default if None
            max_tokens: Maximum tokens to generate

        Returns:
            Async iterator of text deltas, reasoning deltas and errors
        """
        ...

"""LLM provider integrations with protocol-based adapter pattern."""

from .protocols import (
    LLMProvider,
    Message,
    MessageRole,
    ReasoningDelta,
    StreamError,
    StreamEvent,
    TextDelta,
)
from .adapters import (
    AnthropicAdapter,
    DeepSeekAdapter,
    OpenAICompatibleAdapter,
    OpenRouterAdapter,
)
from .completion import complete
from .reasoning import ThinkTagExtractor

__all__ = [
    # Protocols
    "LLMProvider",
    "Message",
    "MessageRole",
    # Stream events
    "ReasoningDelta",
    "StreamError",
    "StreamEvent",
    "TextDelta",
    # Adapters
    "AnthropicAdapter",
    "DeepSeekAdapter",
    "OpenAICompatibleAdapter",
    "OpenRouterAdapter",
    "ThinkTagExtractor",
    # Convenience functions
    "complete",
]

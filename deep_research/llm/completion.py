"""Convenience functions for LLM completions."""

from .protocols import LLMProvider, StreamError, TextDelta
from ..errors import LLMProviderError


async def complete(
    prompt: str,
    provider: LLMProvider,
    system_prompt: str | None = None,
    temperature: float | None = None,
    max_tokens: int | None = None,
) -> str:
    """
    Generate a completion by draining a provider stream.

    Reasoning deltas are discarded.

    Args:
        prompt: The user prompt
        provider: LLM provider to stream from
        system_prompt: Optional system prompt
        temperature: Sampling temperature (0-2)
        max_tokens: Maximum tokens to generate

    Returns:
        The generated text

    Raises:
        LLMProviderError: If the provider reports an error mid-stream
    """
    parts: list[str] = []
    async for event in provider.stream(prompt, system_prompt, temperature, max_tokens):
        if isinstance(event, TextDelta):
            parts.append(event.text)
        elif isinstance(event, StreamError):
            raise LLMProviderError(event.message)
    return "".join(parts)

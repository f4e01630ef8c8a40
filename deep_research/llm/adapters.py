"""Adapter implementations for LLM providers."""

import logging
from typing import Any, AsyncIterator

from openai import APIError, AsyncOpenAI

from ..errors import describe_llm_error
from ..settings import (
    ANTHROPIC_API_KEY,
    DEEPSEEK_API_KEY,
    DEEPSEEK_BASE_URL,
    DEFAULT_MODEL,
    OPENAI_API_KEY,
    OPENAI_BASE_URL,
    OPENROUTER_API_KEY,
    OPENROUTER_BASE_URL,
)
from .protocols import (
    LLMProvider,
    Message,
    MessageRole,
    ReasoningDelta,
    StreamError,
    StreamEvent,
    TextDelta,
)
from .reasoning import ThinkTagExtractor

logger = logging.getLogger(__name__)


class OpenAICompatibleAdapter(LLMProvider):
    """
    Adapter for any OpenAI-compatible chat completions API.

    Streams content deltas, surfaces provider reasoning fields
    (`reasoning_content`, `reasoning`) and inline `<think>` blocks as
    reasoning deltas.

    Usage:
        async with OpenAICompatibleAdapter(model="o3-mini") as llm:
            async for event in llm.stream("What is machine learning?"):
                ...
    """

    provider_name = "openai-compatible"
    default_base_url = OPENAI_BASE_URL

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str | None = None,
    ):
        """
        Initialize the adapter.

        Args:
            api_key: API key. If not provided, uses the provider's env var.
            model: Model to use. Defaults to DEFAULT_MODEL.
            base_url: API base URL. Defaults to the provider's public endpoint.
        """
        self.api_key = api_key or self._default_api_key()
        self.model = model or DEFAULT_MODEL
        self.base_url = base_url or self.default_base_url
        self._client: AsyncOpenAI | None = None

        if not self.api_key:
            raise ValueError(
                f"{self.provider_name} API key required. Set it in .env or the profile config"
            )

        logger.info(f"{self.provider_name} adapter initialized with model: {self.model}")

    def _default_api_key(self) -> str | None:
        return OPENAI_API_KEY

    def _request_options(self) -> dict[str, Any]:
        """Provider-specific extra request options."""
        return {}

    async def __aenter__(self) -> "OpenAICompatibleAdapter":
        self._client = AsyncOpenAI(
            api_key=self.api_key,
            base_url=self.base_url,
            max_retries=3,
            timeout=120.0,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._client:
            await self._client.close()
            self._client = None

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            raise RuntimeError(
                "Client not initialized. Use 'async with' context manager."
            )
        return self._client

    async def stream(
        self,
        prompt: str,
        system_prompt: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> AsyncIterator[StreamEvent]:
        """Stream a completion for a simple prompt."""
        messages = [Message(role=MessageRole.USER, content=prompt)]
        if system_prompt:
            messages.insert(0, Message(role=MessageRole.SYSTEM, content=system_prompt))

        params: dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": msg.role.value, "content": msg.content} for msg in messages
            ],
            "stream": True,
        }
        if temperature is not None:
            params["temperature"] = temperature
        if max_tokens is not None:
            params["max_tokens"] = max_tokens
        params.update(self._request_options())

        logger.info(f"Streaming prompt ({len(prompt)} chars) with {self.model}")

        extractor = ThinkTagExtractor()
        received = 0
        try:
            response = await self.client.chat.completions.create(**params)
            async for chunk in response:
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta

                # DeepSeek uses `reasoning_content`, OpenRouter uses `reasoning`
                reasoning = getattr(delta, "reasoning_content", None) or getattr(
                    delta, "reasoning", None
                )
                if reasoning:
                    yield ReasoningDelta(reasoning)

                if delta.content:
                    received += len(delta.content)
                    for event in extractor.feed(delta.content):
                        yield event
        except APIError as e:
            yield StreamError(describe_llm_error(f"{self.model} stream", e))
            return

        for event in extractor.flush():
            yield event
        logger.info(f"Stream finished ({received} chars)")


class DeepSeekAdapter(OpenAICompatibleAdapter):
    """Adapter for the DeepSeek API (OpenAI-compatible, `reasoning_content` deltas)."""

    provider_name = "deepseek"
    default_base_url = DEEPSEEK_BASE_URL

    def _default_api_key(self) -> str | None:
        return DEEPSEEK_API_KEY


class OpenRouterAdapter(OpenAICompatibleAdapter):
    """
    Adapter for OpenRouter API.

    OpenRouter provides access to many LLMs through an OpenAI-compatible API.
    Reasoning is requested explicitly and arrives in `delta.reasoning`.
    """

    provider_name = "openrouter"
    default_base_url = OPENROUTER_BASE_URL

    def _default_api_key(self) -> str | None:
        return OPENROUTER_API_KEY

    def _request_options(self) -> dict[str, Any]:
        return {"extra_body": {"include_reasoning": True}}


class AnthropicAdapter(LLMProvider):
    """
    Adapter for Anthropic API (direct).

    Uses the Anthropic Python SDK directly for Claude models. Extended
    thinking blocks are surfaced as reasoning deltas.

    Usage:
        async with AnthropicAdapter() as llm:
            async for event in llm.stream("What is machine learning?"):
                ...
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "claude-3-5-haiku-latest",
    ):
        """
        Initialize the Anthropic adapter.

        Args:
            api_key: Optional API key. If not provided, uses ANTHROPIC_API_KEY env var.
            model: Model to use. Defaults to claude-3-5-haiku-latest.
        """
        self.api_key = api_key or ANTHROPIC_API_KEY
        self.model = model
        self._client = None

        if not self.api_key:
            raise ValueError(
                "Anthropic API key required. Set ANTHROPIC_API_KEY in .env"
            )

        logger.info(f"Anthropic adapter initialized with model: {self.model}")

    async def __aenter__(self) -> "AnthropicAdapter":
        import anthropic

        self._client = anthropic.AsyncAnthropic(
            api_key=self.api_key,
            max_retries=3,
            timeout=120.0,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._client:
            await self._client.close()
            self._client = None

    @property
    def client(self):
        if self._client is None:
            raise RuntimeError(
                "Client not initialized. Use 'async with' context manager."
            )
        return self._client

    async def stream(
        self,
        prompt: str,
        system_prompt: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> AsyncIterator[StreamEvent]:
        """Stream a completion for a simple prompt."""
        import anthropic

        params: dict[str, Any] = {
            "model": self.model,
            "max_tokens": max_tokens or 4096,
            "system": system_prompt or "",
            "messages": [{"role": "user", "content": prompt}],
        }
        if temperature is not None:
            params["temperature"] = temperature

        logger.info(f"Streaming prompt ({len(prompt)} chars) with {self.model}")

        try:
            async with self.client.messages.stream(**params) as stream:
                async for event in stream:
                    if event.type != "content_block_delta":
                        continue
                    if event.delta.type == "text_delta":
                        yield TextDelta(event.delta.text)
                    elif event.delta.type == "thinking_delta":
                        yield ReasoningDelta(event.delta.thinking)
        except anthropic.APIError as e:
            yield StreamError(describe_llm_error(f"{self.model} stream", e))

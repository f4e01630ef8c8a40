"""Exception types and user-facing error messages."""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)

# Fixed messages surfaced in `error` progress events
INVALID_STRUCTURED_OUTPUT = (
    "The model did not return valid JSON. Try again or switch to a model "
    "with better structured output support."
)
RESULT_PROCESSING_TIMEOUT = "Timed out while extracting learnings from search results"


class DeepResearchError(Exception):
    """Base class for errors raised by this package."""


class LLMProviderError(DeepResearchError):
    """An LLM provider call failed."""


class WebSearchError(DeepResearchError):
    """A web search call failed."""


class ConfigurationError(DeepResearchError, ValueError):
    """A provider or profile is misconfigured."""


def describe_llm_error(operation: str, error: BaseException) -> str:
    """
    Build a human-readable message for an LLM API error.

    Status code, response body and request URL are appended when the
    error carries them (openai and anthropic SDK errors both do).

    Args:
        operation: Short label of what was being done (e.g. "generate queries")
        error: The exception raised by the provider SDK

    Returns:
        Message suitable for an `error` progress event
    """
    message = str(error) or error.__class__.__name__

    status_code = getattr(error, "status_code", None)
    if status_code:
        message += f" ({status_code})"

    cause = error.__cause__
    if cause is not None:
        message += f"\nCause: {cause}"

    response = getattr(error, "response", None)
    if response is not None:
        body = getattr(response, "text", None)
        if body:
            message += f"\nResponse: {body[:500]}"

    request = getattr(error, "request", None)
    url = getattr(request, "url", None) if request is not None else None
    if url:
        message += f"\nURL: {url}"

    logger.error(f"[{operation}] {message}")
    return message


def describe_error(error: BaseException) -> str:
    """Short message for an arbitrary exception."""
    return str(error) or error.__class__.__name__

"""Relay of research progress as server-sent events."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import TYPE_CHECKING, AsyncIterator

from pydantic import BaseModel, Field

from .orchestration.models import ResearchNode, ResearchStep

if TYPE_CHECKING:
    from .orchestration.deep_research import DeepResearcher

logger = logging.getLogger(__name__)


class FeedbackItem(BaseModel):
    """A clarifying question and the user's answer."""

    question: str
    answer: str = ""


class ResearchRequest(BaseModel):
    """Body of a research request from a client."""

    model_config = {"populate_by_name": True}

    initial_query: str = Field(alias="initialQuery")
    feedback: list[FeedbackItem] = Field(default_factory=list)
    depth: int = 2
    breadth: int = 3
    language: str = "en"
    search_language: str | None = Field(default=None, alias="searchLanguage")
    retry_node: ResearchNode | None = Field(default=None, alias="retryNode")


def build_research_query(request: ResearchRequest) -> str:
    """Combine the initial query with the clarifying Q&A."""
    qa = "\n".join(f"Q: {item.question}\nA: {item.answer}" for item in request.feedback)
    return (
        f"Initial Query: {request.initial_query}\n"
        f"Follow-up Questions and Answers:\n"
        f"{qa}"
    ).strip()


def format_sse(step: ResearchStep) -> str:
    """Frame one progress event as `data: <json>\\n\\n`."""
    return f"data: {step.model_dump_json(by_alias=True)}\n\n"


async def stream_research(
    researcher: DeepResearcher,
    request: ResearchRequest,
) -> AsyncIterator[bytes]:
    """
    Run a research request and yield its progress as SSE frames.

    Frames are yielded in emission order; the stream ends after the
    `complete` event. If the consumer stops early, the research is cancelled.

    Args:
        researcher: Configured researcher
        request: The client's request

    Yields:
        UTF-8 encoded SSE frames
    """
    queue: asyncio.Queue = asyncio.Queue()
    task = asyncio.create_task(
        researcher.research(
            query=build_research_query(request),
            breadth=request.breadth,
            max_depth=request.depth,
            language=request.language,
            search_language=request.search_language,
            on_progress=queue.put_nowait,
            retry_node=request.retry_node,
        )
    )
    logger.info(f"Streaming research: breadth={request.breadth}, depth={request.depth}")

    try:
        while True:
            step = await queue.get()
            yield format_sse(step).encode("utf-8")
            if step.type == "complete":
                break
        await task
    finally:
        if not task.done():
            logger.info("Client went away, cancelling research")
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

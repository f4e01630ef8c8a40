"""Expansion of a research topic into search sub-queries."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, AsyncIterator, Sequence

from ..streaming import ParsedObject, ParseEvent, parse_streaming_json
from .models import Learning, SearchQuery
from .prompts import (
    QUERY_LEARNINGS_TEMPLATE,
    QUERY_PROMPT_TEMPLATE,
    join_prompt,
    language_prompt,
    schema_prompt,
    search_language_prompt,
    system_prompt,
)

if TYPE_CHECKING:
    from ..llm.protocols import LLMProvider

logger = logging.getLogger(__name__)

# Some models emit the JS placeholder instead of a query
UNDEFINED_QUERY = "undefined"


def _has_first_query(value: Any) -> bool:
    if not isinstance(value, dict):
        return False
    queries = value.get("queries")
    if not isinstance(queries, list) or not queries:
        return False
    first = queries[0]
    return isinstance(first, dict) and bool(first.get("query"))


class QueryGenerator:
    """
    Turns a topic plus prior learnings into SERP queries.

    One structured LLM call per invocation; the response is decoded
    incrementally so callers can show queries while they are written.
    """

    def __init__(self, llm_provider: LLMProvider, temperature: float | None = None):
        """
        Initialize the query generator.

        Args:
            llm_provider: LLM provider used for generation
            temperature: Sampling temperature, provider default if None
        """
        self.llm_provider = llm_provider
        self.temperature = temperature

    @staticmethod
    def schema(num_queries: int) -> dict:
        """JSON schema of the expected response."""
        return {
            "type": "object",
            "properties": {
                "queries": {
                    "type": "array",
                    "description": f"List of SERP queries, max of {num_queries}",
                    "items": {
                        "type": "object",
                        "properties": {
                            "query": {"type": "string", "description": "The SERP query"},
                            "researchGoal": {
                                "type": "string",
                                "description": (
                                    "First talk about the goal of the research that this "
                                    "query is meant to accomplish, then go deeper into how "
                                    "to advance the research once the results are found, "
                                    "mention additional research directions. Be as specific "
                                    "as possible, especially for additional research directions."
                                ),
                            },
                        },
                        "required": ["query", "researchGoal"],
                    },
                },
            },
            "required": ["queries"],
        }

    def build_prompt(
        self,
        query: str,
        num_queries: int,
        learnings: Sequence[Learning] | None = None,
        language: str = "en",
        search_language: str | None = None,
    ) -> str:
        learnings_section = ""
        if learnings:
            learnings_section = QUERY_LEARNINGS_TEMPLATE.format(
                learnings="\n".join(learning.text for learning in learnings)
            )

        return join_prompt(
            QUERY_PROMPT_TEMPLATE.format(num_queries=num_queries, query=query),
            learnings_section,
            schema_prompt(self.schema(num_queries)),
            language_prompt(language),
            search_language_prompt(search_language)
            if search_language and search_language != language
            else "",
        )

    @staticmethod
    def to_queries(value: Any, num_queries: int) -> list[SearchQuery]:
        """
        Convert a (possibly partial) decoded response into queries.

        Items that are not objects and placeholder queries are dropped;
        the list is capped at `num_queries`.
        """
        raw_queries = value.get("queries") if isinstance(value, dict) else None
        if not isinstance(raw_queries, list):
            return []

        queries: list[SearchQuery] = []
        for item in raw_queries:
            if not isinstance(item, dict):
                continue
            query = item.get("query")
            if query == UNDEFINED_QUERY:
                logger.debug("Dropping placeholder query")
                continue
            queries.append(
                SearchQuery(
                    query=str(query or ""),
                    research_goal=str(item.get("researchGoal") or ""),
                )
            )
        return queries[:num_queries]

    async def stream(
        self,
        query: str,
        num_queries: int,
        learnings: Sequence[Learning] | None = None,
        language: str = "en",
        search_language: str | None = None,
    ) -> AsyncIterator[ParseEvent]:
        """
        Generate search queries for a topic.

        Args:
            query: The topic or follow-up prompt to expand
            num_queries: Maximum number of queries
            learnings: Learnings from earlier research, used to sharpen queries
            language: Response language code
            search_language: Language code for the queries themselves

        Yields:
            ParsedObject events whose value is a list[SearchQuery], plus
            reasoning, error and bad-end events from the decoder
        """
        prompt = self.build_prompt(query, num_queries, learnings, language, search_language)
        logger.info(f"Generating up to {num_queries} queries for: {query[:80]!r}")

        events = parse_streaming_json(
            self.llm_provider.stream(prompt, system_prompt(), self.temperature),
            _has_first_query,
        )
        async for event in events:
            if isinstance(event, ParsedObject):
                yield ParsedObject(self.to_queries(event.value, num_queries))
            else:
                yield event

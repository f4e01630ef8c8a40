"""Extraction of learnings and follow-up questions from search results."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, AsyncIterator, Sequence

from ..streaming import ParsedObject, ParseEvent, parse_streaming_json
from ..tokens import TokenEstimator
from .models import Learning, ProcessedResult
from .prompts import (
    RESULT_PROMPT_TEMPLATE,
    join_prompt,
    language_prompt,
    schema_prompt,
    system_prompt,
)

if TYPE_CHECKING:
    from ..llm.protocols import LLMProvider
    from ..web_search.models import SearchResultItem

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TOKEN_BUDGET = 25_000


def _has_learnings(value: Any) -> bool:
    if not isinstance(value, dict):
        return False
    learnings = value.get("learnings")
    return isinstance(learnings, list) and len(learnings) > 0


class ResultProcessor:
    """
    Turns the results of one search into learnings.

    Each result's content is trimmed to a token budget before prompting.
    Learnings carry the URL of the content they came from.
    """

    def __init__(
        self,
        llm_provider: LLMProvider,
        token_estimator: TokenEstimator | None = None,
        content_token_budget: int = DEFAULT_CONTENT_TOKEN_BUDGET,
        temperature: float | None = None,
    ):
        self.llm_provider = llm_provider
        self.token_estimator = token_estimator or TokenEstimator()
        self.content_token_budget = content_token_budget
        self.temperature = temperature

    @staticmethod
    def schema(num_learnings: int, num_follow_up_questions: int) -> dict:
        """JSON schema of the expected response."""
        return {
            "type": "object",
            "properties": {
                "learnings": {
                    "type": "array",
                    "description": f"List of learnings, max of {num_learnings}",
                    "items": {
                        "type": "object",
                        "properties": {
                            "url": {
                                "type": "string",
                                "description": "URL of the content the learning was taken from",
                            },
                            "learning": {"type": "string"},
                        },
                        "required": ["url", "learning"],
                    },
                },
                "followUpQuestions": {
                    "type": "array",
                    "description": (
                        "List of follow-up questions to research the topic further, "
                        f"max of {num_follow_up_questions}"
                    ),
                    "items": {"type": "string"},
                },
            },
            "required": ["learnings", "followUpQuestions"],
        }

    def format_contents(self, results: Sequence[SearchResultItem]) -> str:
        """Render results as <content> blocks, skipping empty ones."""
        blocks = []
        for item in results:
            if not item.content:
                continue
            content = self.token_estimator.trim(item.content, self.content_token_budget)
            blocks.append(f'<content url="{item.url}">\n{content}\n</content>')
        return "<contents>" + "\n".join(blocks) + "</contents>"

    def build_prompt(
        self,
        query: str,
        results: Sequence[SearchResultItem],
        num_learnings: int,
        num_follow_up_questions: int,
        language: str = "en",
    ) -> str:
        return join_prompt(
            RESULT_PROMPT_TEMPLATE.format(query=query, num_learnings=num_learnings),
            self.format_contents(results),
            schema_prompt(self.schema(num_learnings, num_follow_up_questions)),
            language_prompt(language),
        )

    @staticmethod
    def to_result(
        value: Any,
        num_learnings: int,
        num_follow_up_questions: int,
    ) -> ProcessedResult:
        """Convert a (possibly partial) decoded response into a ProcessedResult."""
        if not isinstance(value, dict):
            return ProcessedResult()

        learnings: list[Learning] = []
        for item in value.get("learnings") or []:
            if isinstance(item, dict):
                url = str(item.get("url") or "")
                text = str(item.get("learning") or item.get("text") or "")
            elif isinstance(item, str):
                url, text = "", item
            else:
                continue
            if url or text:
                learnings.append(Learning(url=url, text=text))

        questions = [
            question
            for question in value.get("followUpQuestions") or []
            if isinstance(question, str) and question
        ]

        return ProcessedResult(
            learnings=learnings[:num_learnings],
            follow_up_questions=questions[:num_follow_up_questions],
        )

    async def stream(
        self,
        query: str,
        results: Sequence[SearchResultItem],
        num_learnings: int = 3,
        num_follow_up_questions: int = 3,
        language: str = "en",
    ) -> AsyncIterator[ParseEvent]:
        """
        Extract learnings from the results of a search.

        Args:
            query: The query the results were found for
            results: Search results
            num_learnings: Maximum number of learnings
            num_follow_up_questions: Maximum number of follow-up questions
            language: Response language code

        Yields:
            ParsedObject events whose value is a ProcessedResult, plus
            reasoning, error and bad-end events from the decoder
        """
        prompt = self.build_prompt(
            query, results, num_learnings, num_follow_up_questions, language
        )
        logger.info(f"Processing {len(results)} results for: {query[:80]!r}")

        events = parse_streaming_json(
            self.llm_provider.stream(prompt, system_prompt(), self.temperature),
            _has_learnings,
        )
        async for event in events:
            if isinstance(event, ParsedObject):
                yield ParsedObject(
                    self.to_result(event.value, num_learnings, num_follow_up_questions)
                )
            else:
                yield event

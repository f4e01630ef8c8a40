"""Clarifying questions asked before research starts."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, AsyncIterator

from ..errors import LLMProviderError
from ..streaming import BadEnd, ParsedObject, ParseError, ParseEvent, parse_streaming_json
from .prompts import (
    FEEDBACK_PROMPT_TEMPLATE,
    join_prompt,
    language_prompt,
    schema_prompt,
    system_prompt,
)

if TYPE_CHECKING:
    from ..llm.protocols import LLMProvider

logger = logging.getLogger(__name__)


def _has_question(value: Any) -> bool:
    if not isinstance(value, dict):
        return False
    questions = value.get("questions")
    return isinstance(questions, list) and any(
        isinstance(question, str) and question for question in questions
    )


class FeedbackGenerator:
    """Asks the model which questions would clarify a research query."""

    def __init__(self, llm_provider: LLMProvider, temperature: float | None = None):
        self.llm_provider = llm_provider
        self.temperature = temperature

    @staticmethod
    def schema(num_questions: int) -> dict:
        return {
            "type": "object",
            "properties": {
                "questions": {
                    "type": "array",
                    "description": (
                        "Follow up questions to clarify the research direction, "
                        f"max of {num_questions}"
                    ),
                    "items": {"type": "string"},
                },
            },
            "required": ["questions"],
        }

    def build_prompt(self, query: str, num_questions: int, language: str = "en") -> str:
        return join_prompt(
            FEEDBACK_PROMPT_TEMPLATE.format(num_questions=num_questions, query=query),
            schema_prompt(self.schema(num_questions)),
            language_prompt(language),
        )

    async def stream(
        self,
        query: str,
        num_questions: int = 3,
        language: str = "en",
    ) -> AsyncIterator[ParseEvent]:
        """
        Stream clarifying questions for a query.

        Yields:
            ParsedObject events whose value is a list[str] of questions, plus
            reasoning, error and bad-end events from the decoder
        """
        prompt = self.build_prompt(query, num_questions, language)
        events = parse_streaming_json(
            self.llm_provider.stream(prompt, system_prompt(), self.temperature),
            _has_question,
        )
        async for event in events:
            if isinstance(event, ParsedObject):
                questions = [
                    question
                    for question in event.value.get("questions", [])
                    if isinstance(question, str) and question
                ]
                yield ParsedObject(questions[:num_questions])
            else:
                yield event

    async def generate(
        self,
        query: str,
        num_questions: int = 3,
        language: str = "en",
    ) -> list[str]:
        """
        Generate clarifying questions for a query.

        Args:
            query: The user's research query
            num_questions: Maximum number of questions
            language: Response language code

        Returns:
            The questions, at most `num_questions`

        Raises:
            LLMProviderError: If the model fails or never returns valid JSON
        """
        questions: list[str] = []
        async for event in self.stream(query, num_questions, language):
            if isinstance(event, ParsedObject):
                questions = event.value
            elif isinstance(event, (ParseError, BadEnd)):
                raise LLMProviderError(event.message)

        logger.info(f"Generated {len(questions)} clarifying questions")
        return questions

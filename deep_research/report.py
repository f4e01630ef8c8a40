"""Final report synthesis from aggregated learnings."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, AsyncIterator, Sequence

from .llm.completion import complete
from .orchestration.prompts import (
    CITATION_RULES,
    REPORT_PROMPT_TEMPLATE,
    join_prompt,
    language_prompt,
    system_prompt,
)
from .tokens import TokenEstimator

if TYPE_CHECKING:
    from .llm.protocols import LLMProvider, StreamEvent
    from .orchestration.models import Learning

logger = logging.getLogger(__name__)

DEFAULT_REPORT_TOKEN_BUDGET = 150_000


class ReportSynthesizer:
    """
    Writes the final Markdown report.

    One non-recursive LLM call. Learnings are numbered in order and the
    model cites them as [n]; `write` appends the matching source list.
    """

    def __init__(
        self,
        llm_provider: LLMProvider,
        token_estimator: TokenEstimator | None = None,
        token_budget: int = DEFAULT_REPORT_TOKEN_BUDGET,
        temperature: float | None = None,
    ):
        """
        Initialize the synthesizer.

        Args:
            llm_provider: LLM provider for the report
            token_estimator: Estimator used to fit learnings in the budget
            token_budget: Maximum tokens of learnings put in the prompt
            temperature: Sampling temperature, provider default if None
        """
        self.llm_provider = llm_provider
        self.token_estimator = token_estimator or TokenEstimator()
        self.token_budget = token_budget
        self.temperature = temperature

    def format_learnings(self, learnings: Sequence[Learning]) -> str:
        """Number learnings from 1 and trim them to the token budget."""
        text = "\n".join(
            f'<learning index="{index}">\n{learning.text}\n</learning>'
            for index, learning in enumerate(learnings, start=1)
        )
        return self.token_estimator.trim(text, self.token_budget)

    def build_prompt(
        self,
        prompt: str,
        learnings: Sequence[Learning],
        language: str = "en",
    ) -> str:
        return join_prompt(
            REPORT_PROMPT_TEMPLATE.format(
                prompt=prompt,
                learnings=self.format_learnings(learnings),
            ),
            CITATION_RULES,
            language_prompt(language),
        )

    @staticmethod
    def format_sources(learnings: Sequence[Learning]) -> str:
        """Markdown list of sources, numbered like the citations."""
        lines = [
            f"[{index}] {learning.title or learning.url} - {learning.url}"
            for index, learning in enumerate(learnings, start=1)
        ]
        return "## Sources\n\n" + "\n".join(lines)

    def stream(
        self,
        prompt: str,
        learnings: Sequence[Learning],
        language: str = "en",
    ) -> AsyncIterator[StreamEvent]:
        """Stream the report body (text and reasoning deltas, or an error)."""
        logger.info(f"Writing report from {len(learnings)} learnings")
        return self.llm_provider.stream(
            self.build_prompt(prompt, learnings, language),
            system_prompt(),
            self.temperature,
        )

    async def write(
        self,
        prompt: str,
        learnings: Sequence[Learning],
        language: str = "en",
    ) -> str:
        """
        Write the full report with a `## Sources` section.

        Raises:
            LLMProviderError: If the provider fails mid-stream
        """
        body = await complete(
            self.build_prompt(prompt, learnings, language),
            self.llm_provider,
            system_prompt=system_prompt(),
            temperature=self.temperature,
        )
        if not learnings:
            return body.strip()
        return f"{body.strip()}\n\n{self.format_sources(learnings)}"

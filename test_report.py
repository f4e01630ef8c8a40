"""
Report Synthesizer Tests
"""

import asyncio

import pytest

from deep_research.config.factory import MockLLMProvider
from deep_research.errors import LLMProviderError
from deep_research.llm.protocols import StreamError, TextDelta
from deep_research.orchestration.models import Learning
from deep_research.report import ReportSynthesizer
from deep_research.tokens import TokenEstimator

LEARNINGS = [
    Learning(url="https://a.com", text="Alpha fact", title="Alpha"),
    Learning(url="https://b.com", text="Beta fact"),
]


def test_prompt_numbers_learnings_and_sets_rules():
    synthesizer = ReportSynthesizer(MockLLMProvider())
    prompt = synthesizer.build_prompt("Battery research", LEARNINGS, language="es")

    assert "<prompt>Battery research</prompt>" in prompt
    assert '<learning index="1">\nAlpha fact\n</learning>' in prompt
    assert '<learning index="2">\nBeta fact\n</learning>' in prompt
    assert "[1]" in prompt
    assert "Respond in Spanish." in prompt
    # URLs stay out of the prompt body; they are appended as sources
    assert "https://a.com" not in prompt


def test_learnings_trimmed_to_budget():
    synthesizer = ReportSynthesizer(
        MockLLMProvider(),
        token_estimator=TokenEstimator(chars_per_token=4.0),
        token_budget=200,
    )
    many = [Learning(url=f"https://{i}.com", text="x" * 400) for i in range(20)]
    assert len(synthesizer.format_learnings(many)) <= 800


def test_write_appends_sources():
    synthesizer = ReportSynthesizer(MockLLMProvider())
    report = asyncio.run(synthesizer.write("Battery research", LEARNINGS))

    assert report.startswith("# Mock Report")
    assert report.endswith(
        "## Sources\n\n[1] Alpha - https://a.com\n[2] https://b.com - https://b.com"
    )


def test_write_without_learnings_has_no_sources():
    synthesizer = ReportSynthesizer(MockLLMProvider())
    report = asyncio.run(synthesizer.write("Battery research", []))
    assert "## Sources" not in report


def test_write_propagates_provider_errors():
    class FailingProvider:
        async def stream(self, prompt, system_prompt=None, temperature=None, max_tokens=None):
            yield TextDelta("# Rep")
            yield StreamError("context length exceeded")

    synthesizer = ReportSynthesizer(FailingProvider())
    with pytest.raises(LLMProviderError, match="context length exceeded"):
        asyncio.run(synthesizer.write("Battery research", LEARNINGS))


def test_stream_returns_provider_events():
    synthesizer = ReportSynthesizer(MockLLMProvider(chunk_size=5))

    async def run():
        return [event async for event in synthesizer.stream("topic", LEARNINGS)]

    events = asyncio.run(run())
    assert "".join(event.text for event in events).startswith("# Mock Report")

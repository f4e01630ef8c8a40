"""
Query Generator, Result Processor and Feedback Tests

Tests for the structured LLM calls, driven by the mock LLM provider.
"""

import asyncio
import json

import pytest

from deep_research.config.factory import MockLLMProvider
from deep_research.errors import INVALID_STRUCTURED_OUTPUT, LLMProviderError
from deep_research.orchestration.deduplication import deduplicate_learnings
from deep_research.orchestration.feedback import FeedbackGenerator
from deep_research.orchestration.models import Learning, SearchQuery
from deep_research.orchestration.query_generator import QueryGenerator
from deep_research.orchestration.result_processor import ResultProcessor
from deep_research.streaming import BadEnd, ParsedObject, ParsedReasoning
from deep_research.tokens import TokenEstimator
from deep_research.web_search.models import SearchResultItem


def _collect(stream):
    async def run():
        return [event async for event in stream]

    return asyncio.run(run())


# =============================================================================
# Query generator
# =============================================================================


def test_to_queries_filters_placeholder_and_caps():
    value = {
        "queries": [
            {"query": "undefined", "researchGoal": "broken"},
            {"query": "battery chemistry", "researchGoal": "goal 1"},
            "not an object",
            {"query": "solid electrolytes"},
            {"query": "third"},
        ]
    }
    queries = QueryGenerator.to_queries(value, num_queries=2)
    assert queries == [
        SearchQuery(query="battery chemistry", research_goal="goal 1"),
        SearchQuery(query="solid electrolytes", research_goal=""),
    ]


def test_to_queries_tolerates_partial_values():
    assert QueryGenerator.to_queries({}, 3) == []
    assert QueryGenerator.to_queries({"queries": [{}]}, 3) == [SearchQuery()]
    assert QueryGenerator.to_queries(None, 3) == []


def test_query_prompt_mentions_limits_and_languages():
    generator = QueryGenerator(MockLLMProvider())
    prompt = generator.build_prompt(
        "lithium supply",
        num_queries=4,
        learnings=[Learning(url="https://a", text="Chile produces lithium")],
        language="fr",
        search_language="en",
    )
    assert "maximum of 4 queries" in prompt
    assert "<prompt>lithium supply</prompt>" in prompt
    assert "Chile produces lithium" in prompt
    assert "max of 4" in prompt
    assert "Respond in French." in prompt
    assert "search queries in English" in prompt


def test_query_stream_yields_search_queries():
    generator = QueryGenerator(MockLLMProvider(chunk_size=7, reasoning="let me think"))
    events = _collect(generator.stream("lithium supply", num_queries=2))

    assert events[0] == ParsedReasoning("let me think")
    final = [event for event in events if isinstance(event, ParsedObject)][-1]
    assert [q.query for q in final.value] == ["lithium supply aspect 1", "lithium supply aspect 2"]
    assert final.value[0].research_goal == "Understand aspect 1 of lithium supply"


def test_query_stream_reports_bad_end():
    generator = QueryGenerator(MockLLMProvider(responder=lambda prompt: "I refuse."))
    events = _collect(generator.stream("anything", num_queries=2))
    assert len(events) == 1
    assert isinstance(events[0], BadEnd)
    assert events[0].message == INVALID_STRUCTURED_OUTPUT


# =============================================================================
# Result processor
# =============================================================================


def test_format_contents_trims_and_skips_empty():
    processor = ResultProcessor(
        MockLLMProvider(),
        token_estimator=TokenEstimator(chars_per_token=4.0),
        content_token_budget=100,
    )
    results = [
        SearchResultItem(url="https://a", title="A", content="x" * 2000),
        SearchResultItem(url="https://b", title="B", content=""),
    ]
    contents = processor.format_contents(results)

    assert '<content url="https://a">' in contents
    assert "https://b" not in contents
    assert contents.count("x") <= 400


def test_to_result_accepts_both_learning_shapes():
    value = {
        "learnings": [
            {"url": "https://a", "learning": "fact a"},
            {"url": "https://b", "text": "fact b"},
            "bare fact",
            {"url": "https://c", "learning": "fact c"},
        ],
        "followUpQuestions": ["q1", "", "q2", "q3"],
    }
    result = ResultProcessor.to_result(value, num_learnings=3, num_follow_up_questions=2)

    assert [(l.url, l.text) for l in result.learnings] == [
        ("https://a", "fact a"),
        ("https://b", "fact b"),
        ("", "bare fact"),
    ]
    assert result.follow_up_questions == ["q1", "q2"]


def test_result_stream_attributes_learnings_to_urls():
    processor = ResultProcessor(MockLLMProvider())
    results = [
        SearchResultItem(url="https://a", title="A", content="alpha"),
        SearchResultItem(url="https://b", title="B", content="beta"),
    ]
    events = _collect(
        processor.stream("topic", results, num_learnings=3, num_follow_up_questions=1)
    )
    final = [event for event in events if isinstance(event, ParsedObject)][-1].value

    assert [learning.url for learning in final.learnings] == ["https://a", "https://b"]
    assert len(final.follow_up_questions) == 1


def test_result_schema_uses_camel_case_keys():
    schema = ResultProcessor.schema(3, 2)
    assert set(schema["properties"]) == {"learnings", "followUpQuestions"}
    assert "max of 2" in json.dumps(schema)


# =============================================================================
# Feedback
# =============================================================================


def test_feedback_generate():
    generator = FeedbackGenerator(MockLLMProvider())
    questions = asyncio.run(generator.generate("quantum computing", num_questions=2))
    assert questions == [
        "Mock clarifying question 1 about quantum computing?",
        "Mock clarifying question 2 about quantum computing?",
    ]


def test_feedback_generate_raises_on_invalid_output():
    generator = FeedbackGenerator(MockLLMProvider(responder=lambda prompt: "no json here"))
    with pytest.raises(LLMProviderError):
        asyncio.run(generator.generate("quantum computing"))


# =============================================================================
# Deduplication
# =============================================================================


def test_deduplicate_first_wins():
    first = [Learning(url="https://a", text="first a"), Learning(url="https://b", text="b")]
    second = [Learning(url="https://a", text="second a"), Learning(url="https://c", text="c")]

    merged = deduplicate_learnings(first, second)

    assert [l.url for l in merged] == ["https://a", "https://b", "https://c"]
    assert merged[0].text == "first a"


def test_deduplicate_drops_unattributed():
    merged = deduplicate_learnings([Learning(url="", text="orphan"), Learning(url="https://a")])
    assert [l.url for l in merged] == ["https://a"]

"""
SSE Relay Tests

Tests for request handling, event framing and the streaming relay.
"""

import asyncio
import json

from deep_research.config.factory import MockLLMProvider, MockSearchProvider
from deep_research.orchestration import DeepResearcher, research_step_adapter
from deep_research.orchestration.models import (
    CompleteStep,
    ErrorStep,
    Learning,
    NodeCompleteStep,
    ProcessedResult,
)
from deep_research.sse import (
    ResearchRequest,
    build_research_query,
    format_sse,
    stream_research,
)


def test_build_research_query_with_feedback():
    request = ResearchRequest.model_validate(
        {
            "initialQuery": "EV batteries",
            "feedback": [
                {"question": "Which chemistry?", "answer": "Solid state"},
                {"question": "Time frame?", "answer": "2025"},
            ],
            "depth": 2,
            "breadth": 3,
        }
    )
    assert build_research_query(request) == (
        "Initial Query: EV batteries\n"
        "Follow-up Questions and Answers:\n"
        "Q: Which chemistry?\nA: Solid state\n"
        "Q: Time frame?\nA: 2025"
    )


def test_request_accepts_retry_node():
    request = ResearchRequest.model_validate(
        {
            "initialQuery": "EV batteries",
            "searchLanguage": "en",
            "retryNode": {"nodeId": "0-1", "query": "q", "researchGoal": "g"},
        }
    )
    assert request.search_language == "en"
    assert request.retry_node.node_id == "0-1"


def test_format_sse_framing():
    frame = format_sse(ErrorStep(node_id="0-1", message="boom"))
    assert frame == 'data: {"nodeId":"0-1","type":"error","message":"boom"}\n\n'


def test_format_sse_uses_camel_case():
    step = NodeCompleteStep(
        node_id="0-0",
        result=ProcessedResult(
            learnings=[Learning(url="https://a.com", text="fact")],
            follow_up_questions=["why?"],
        ),
    )
    frame = format_sse(step)
    assert frame.startswith("data: ") and frame.endswith("\n\n")

    payload = json.loads(frame[len("data: "):])
    assert payload["nodeId"] == "0-0"
    assert payload["result"]["followUpQuestions"] == ["why?"]

    parsed = research_step_adapter.validate_python(payload)
    assert parsed == step


def test_stream_research_ends_with_complete():
    researcher = DeepResearcher(MockLLMProvider(), MockSearchProvider())
    request = ResearchRequest(initial_query="EV batteries", depth=1, breadth=2)

    async def run():
        return [frame async for frame in stream_research(researcher, request)]

    frames = asyncio.run(run())
    steps = [
        research_step_adapter.validate_json(frame.decode("utf-8")[len("data: "):].strip())
        for frame in frames
    ]

    assert all(frame.endswith(b"\n\n") for frame in frames)
    assert isinstance(steps[-1], CompleteStep)
    assert sum(isinstance(step, CompleteStep) for step in steps) == 1
    assert len(steps[-1].learnings) == 4


def test_stream_research_cancels_when_consumer_stops():
    researcher = DeepResearcher(MockLLMProvider(), MockSearchProvider())
    request = ResearchRequest(initial_query="EV batteries", depth=2, breadth=2)

    async def run():
        stream = stream_research(researcher, request)
        first = await stream.__anext__()
        await stream.aclose()
        return first

    first = asyncio.run(run())
    assert first.startswith(b"data: ")

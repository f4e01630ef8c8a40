"""Recursive, breadth/depth-bounded deep research over the web."""

from .orchestration import (
    ConcurrencyLimiter,
    DeepResearcher,
    FeedbackGenerator,
    Learning,
    ResearchNode,
    ResearchResult,
    ResearchStep,
    SearchQuery,
)
from .report import ReportSynthesizer
from .sse import ResearchRequest, build_research_query, format_sse, stream_research

__all__ = [
    "ConcurrencyLimiter",
    "DeepResearcher",
    "FeedbackGenerator",
    "Learning",
    "ResearchNode",
    "ResearchResult",
    "ResearchStep",
    "SearchQuery",
    "ReportSynthesizer",
    "ResearchRequest",
    "build_research_query",
    "format_sse",
    "stream_research",
]

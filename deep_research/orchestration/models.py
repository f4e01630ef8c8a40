"""Data models for the research tree and its progress events."""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import AliasChoices, BaseModel, Field, TypeAdapter

from ..web_search.models import SearchResultItem
from .tree_node import ROOT_NODE_ID


class SearchQuery(BaseModel):
    """A search sub-query and the goal it serves."""

    model_config = {"populate_by_name": True}

    query: str = ""
    research_goal: str = Field(default="", alias="researchGoal")


class Learning(BaseModel):
    """A single source-attributed fact."""

    model_config = {"populate_by_name": True}

    url: str = ""
    text: str = Field(default="", validation_alias=AliasChoices("text", "learning"))
    title: str | None = None


class ProcessedResult(BaseModel):
    """Learnings and follow-up questions extracted from one search."""

    model_config = {"populate_by_name": True}

    learnings: list[Learning] = Field(default_factory=list)
    follow_up_questions: list[str] = Field(default_factory=list, alias="followUpQuestions")


class ResearchNode(BaseModel):
    """A node of the research tree, as stored by a client for retries."""

    model_config = {"populate_by_name": True}

    node_id: str = Field(alias="nodeId")
    query: str
    research_goal: str = Field(default="", alias="researchGoal")


class ResearchResult(BaseModel):
    """What a research invocation hands back to its caller."""

    learnings: list[Learning] = Field(default_factory=list)


# =============================================================================
# Progress events
# =============================================================================


class _Step(BaseModel):
    model_config = {"populate_by_name": True}

    node_id: str = Field(alias="nodeId")


class GeneratingQueryStep(_Step):
    """A child query is being generated; `result` is the partial query."""

    type: Literal["generating_query"] = "generating_query"
    result: SearchQuery


class GeneratingQueryReasoningStep(_Step):
    type: Literal["generating_query_reasoning"] = "generating_query_reasoning"
    delta: str


class GeneratedQueryStep(_Step):
    """Query generation for the parent finished; this child is final."""

    type: Literal["generated_query"] = "generated_query"
    query: str
    result: SearchQuery


class SearchingStep(_Step):
    type: Literal["searching"] = "searching"
    query: str


class SearchCompleteStep(_Step):
    type: Literal["search_complete"] = "search_complete"
    urls: list[str]
    results: list[SearchResultItem]


class ProcessingSearchResultStep(_Step):
    type: Literal["processing_search_result"] = "processing_search_result"
    query: str
    result: ProcessedResult


class ProcessingSearchResultReasoningStep(_Step):
    type: Literal["processing_search_result_reasoning"] = "processing_search_result_reasoning"
    delta: str


class NodeCompleteStep(_Step):
    """
    A node finished its own work.

    Emitted for a parent once its queries are generated (no result) and for
    a searched node once its learnings are extracted.
    """

    type: Literal["node_complete"] = "node_complete"
    result: ProcessedResult | None = None


class ErrorStep(_Step):
    type: Literal["error"] = "error"
    message: str


class CompleteStep(_Step):
    """The whole session finished. Always the last event."""

    type: Literal["complete"] = "complete"
    node_id: str = Field(default=ROOT_NODE_ID, alias="nodeId")
    learnings: list[Learning] = Field(default_factory=list)


ResearchStep = Annotated[
    Union[
        GeneratingQueryStep,
        GeneratingQueryReasoningStep,
        GeneratedQueryStep,
        SearchingStep,
        SearchCompleteStep,
        ProcessingSearchResultStep,
        ProcessingSearchResultReasoningStep,
        NodeCompleteStep,
        ErrorStep,
        CompleteStep,
    ],
    Field(discriminator="type"),
]

# Parses a serialized event back into its variant
research_step_adapter: TypeAdapter[ResearchStep] = TypeAdapter(ResearchStep)

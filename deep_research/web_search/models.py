"""Pydantic models for web search results."""

from pydantic import BaseModel, Field


class SearchResultItem(BaseModel):
    """One web search hit."""

    url: str
    title: str | None = None
    content: str | None = None


class SearchOptions(BaseModel):
    """Options for a web search call."""

    max_results: int = Field(5, alias="maxResults")
    language: str | None = None

    model_config = {"populate_by_name": True}


class TavilyResult(BaseModel):
    """Result entry returned by the Tavily /search endpoint."""

    url: str
    title: str | None = None
    content: str | None = None
    raw_content: str | None = None
    score: float | None = None


class TavilyResponse(BaseModel):
    """Response from the Tavily /search endpoint."""

    query: str | None = None
    results: list[TavilyResult] = Field(default_factory=list)


class FirecrawlResult(BaseModel):
    """Result entry returned by the Firecrawl /v1/search endpoint."""

    url: str
    title: str | None = None
    description: str | None = None
    markdown: str | None = None


class FirecrawlResponse(BaseModel):
    """Response from the Firecrawl /v1/search endpoint."""

    success: bool = True
    data: list[FirecrawlResult] = Field(default_factory=list)
    error: str | None = None

"""Adapter implementations for the web search protocol."""

import logging

import httpx

from ..settings import (
    FIRECRAWL_API_KEY,
    FIRECRAWL_BASE_URL,
    TAVILY_API_KEY,
    TAVILY_BASE_URL,
)
from ..errors import WebSearchError
from .client import WebSearchClient
from .models import (
    FirecrawlResponse,
    SearchOptions,
    SearchResultItem,
    TavilyResponse,
)
from .protocols import WebSearchProvider

logger = logging.getLogger(__name__)


class _ClientAdapter:
    """Shared context handling for adapters backed by a WebSearchClient."""

    def __init__(self, client: WebSearchClient):
        self._client = client
        self._entered = False

    async def __aenter__(self):
        await self._client.__aenter__()
        self._entered = True
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self._client.__aexit__(exc_type, exc_val, exc_tb)
        self._entered = False

    def _ensure_entered(self) -> None:
        if not self._entered:
            raise RuntimeError(
                "Adapter not initialized. Use 'async with' context manager."
            )


class TavilyAdapter(_ClientAdapter, WebSearchProvider):
    """
    Adapter for the Tavily search API.

    Usage:
        async with TavilyAdapter() as search:
            results = await search.search("solid state batteries 2025")
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        search_depth: str = "basic",
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the Tavily adapter.

        Args:
            api_key: Optional API key. If not provided, uses TAVILY_API_KEY env var.
            base_url: API base URL override
            search_depth: "basic" or "advanced"
            transport: Optional httpx transport (for testing)
        """
        api_key = api_key or TAVILY_API_KEY
        if not api_key:
            raise ValueError("Tavily API key required. Set TAVILY_API_KEY in .env")

        super().__init__(
            WebSearchClient(
                base_url=base_url or TAVILY_BASE_URL,
                api_key=api_key,
                transport=transport,
            )
        )
        self.search_depth = search_depth

    async def search(
        self,
        query: str,
        options: SearchOptions | None = None,
    ) -> list[SearchResultItem]:
        """Search with Tavily. Tavily has no language filter, so it is ignored."""
        self._ensure_entered()
        options = options or SearchOptions()

        logger.info(f"Searching Tavily: query='{query}', max_results={options.max_results}")
        response = await self._client.post(
            "/search",
            json={
                "query": query,
                "max_results": options.max_results,
                "search_depth": self.search_depth,
                "include_answer": False,
            },
        )
        data = TavilyResponse.model_validate(response.json())
        logger.info(f"Tavily returned {len(data.results)} results for '{query}'")

        return [
            SearchResultItem(url=r.url, title=r.title, content=r.content or r.raw_content)
            for r in data.results
        ]


class FirecrawlAdapter(_ClientAdapter, WebSearchProvider):
    """
    Adapter for the Firecrawl search API.

    Results are scraped to markdown, which gives the result processor full
    page content instead of snippets.
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the Firecrawl adapter.

        Args:
            api_key: Optional API key. If not provided, uses FIRECRAWL_API_KEY env var.
            base_url: API base URL (self-hosted instances)
            timeout: Request timeout in seconds; scraping is slow
            transport: Optional httpx transport (for testing)
        """
        api_key = api_key or FIRECRAWL_API_KEY
        if not api_key:
            raise ValueError("Firecrawl API key required. Set FIRECRAWL_API_KEY in .env")

        super().__init__(
            WebSearchClient(
                base_url=base_url or FIRECRAWL_BASE_URL,
                api_key=api_key,
                timeout=timeout,
                transport=transport,
            )
        )

    async def search(
        self,
        query: str,
        options: SearchOptions | None = None,
    ) -> list[SearchResultItem]:
        """Search with Firecrawl, scraping each hit to markdown."""
        self._ensure_entered()
        options = options or SearchOptions()

        payload: dict = {
            "query": query,
            "limit": options.max_results,
            "scrapeOptions": {"formats": ["markdown"]},
        }
        if options.language:
            payload["lang"] = options.language

        logger.info(f"Searching Firecrawl: query='{query}', limit={options.max_results}")
        response = await self._client.post("/v1/search", json=payload)
        data = FirecrawlResponse.model_validate(response.json())

        if not data.success:
            raise WebSearchError(f"Firecrawl search failed: {data.error or 'unknown error'}")

        logger.info(f"Firecrawl returned {len(data.data)} results for '{query}'")
        return [
            SearchResultItem(url=r.url, title=r.title, content=r.markdown or r.description)
            for r in data.data
        ]

"""Protocol definitions for web search APIs."""

from typing import Protocol, runtime_checkable

from .models import SearchOptions, SearchResultItem


@runtime_checkable
class WebSearchProvider(Protocol):
    """Protocol for web search providers.

    Implement this protocol to add support for new search APIs.
    """

    async def search(
        self,
        query: str,
        options: SearchOptions | None = None,
    ) -> list[SearchResultItem]:
        """
        Search the web.

        Args:
            query: Search query string
            options: Result limit and preferred result language

        Returns:
            List of SearchResultItem objects

        Raises:
            WebSearchError: If the search fails
        """
        ...

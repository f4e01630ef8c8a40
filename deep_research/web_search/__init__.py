"""Web search integration with protocol-based adapter pattern."""

from .models import SearchOptions, SearchResultItem
from .protocols import WebSearchProvider
from .adapters import FirecrawlAdapter, TavilyAdapter
from .client import WebSearchClient

__all__ = [
    # Models
    "SearchOptions",
    "SearchResultItem",
    # Protocols (for implementing custom providers)
    "WebSearchProvider",
    # Adapters
    "FirecrawlAdapter",
    "TavilyAdapter",
    # Low-level client
    "WebSearchClient",
]

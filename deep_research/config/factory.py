"""Factory functions to create backends from configuration."""

from __future__ import annotations

import inspect
import json
import re
from typing import TYPE_CHECKING, AsyncIterator, Callable

from ..errors import ConfigurationError
from ..llm.protocols import ReasoningDelta, StreamEvent, TextDelta
from ..web_search.models import SearchOptions, SearchResultItem

if TYPE_CHECKING:
    from ..llm.protocols import LLMProvider
    from ..orchestration import DeepResearcher, FeedbackGenerator
    from ..report import ReportSynthesizer
    from ..tokens import TokenEstimator
    from ..web_search.protocols import WebSearchProvider
    from .loader import LLMConfig, ProfileConfig, ResearchConfig, WebSearchConfig

# Share of the model context the report learnings may fill
REPORT_CONTEXT_SHARE = 0.8


def _first_int(pattern: str, text: str, default: int) -> int:
    match = re.search(pattern, text)
    return int(match.group(1)) if match else default


def _tag_content(tag: str, text: str) -> str:
    match = re.search(rf"<{tag}>(.*?)</{tag}>", text, re.DOTALL)
    return match.group(1).strip() if match else ""


def mock_response(prompt: str) -> str:
    """
    Canned response for a research prompt.

    Recognizes the response schema embedded in the prompt and answers with
    deterministic JSON: queries derived from the topic, one learning per
    content URL, clarifying questions, or a short report.
    """
    if '"followUpQuestions"' in prompt:
        query = _tag_content("query", prompt)
        num_learnings = _first_int(r"maximum of (\d+) learnings", prompt, 3)
        num_questions = _first_int(r"further, max of (\d+)", prompt, 3)
        urls = re.findall(r'<content url="([^"]*)">', prompt)
        return json.dumps(
            {
                "learnings": [
                    {"url": url, "learning": f"Mock learning about {query} from {url}"}
                    for url in urls[:num_learnings]
                ],
                "followUpQuestions": [
                    f"Mock follow-up {i + 1} on {query}?" for i in range(num_questions)
                ],
            }
        )

    if '"queries"' in prompt:
        topic = (_tag_content("prompt", prompt).splitlines() or [""])[0][:60]
        num_queries = _first_int(r"maximum of (\d+) queries", prompt, 3)
        return json.dumps(
            {
                "queries": [
                    {
                        "query": f"{topic} aspect {i + 1}",
                        "researchGoal": f"Understand aspect {i + 1} of {topic}",
                    }
                    for i in range(num_queries)
                ]
            }
        )

    if '"questions"' in prompt:
        query = _tag_content("query", prompt)
        num_questions = _first_int(r"max of (\d+)", prompt, 3)
        return json.dumps(
            {"questions": [f"Mock clarifying question {i + 1} about {query}?" for i in range(num_questions)]}
        )

    return "# Mock Report\n\nMock findings from the research [1]."


class MockLLMProvider:
    """
    Mock LLM provider for testing.

    Streams a canned response in small chunks so partial decoding is
    exercised. `responder` maps a prompt to the full response text.
    """

    def __init__(
        self,
        responder: Callable[[str], str] | None = None,
        chunk_size: int = 16,
        reasoning: str | None = None,
    ):
        self.responder = responder or mock_response
        self.chunk_size = chunk_size
        self.reasoning = reasoning
        self.prompts: list[str] = []

    async def stream(
        self,
        prompt: str,
        system_prompt: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> AsyncIterator[StreamEvent]:
        """Stream a mock completion."""
        self.prompts.append(prompt)
        if self.reasoning:
            yield ReasoningDelta(self.reasoning)

        text = self.responder(prompt)
        for start in range(0, len(text), self.chunk_size):
            yield TextDelta(text[start : start + self.chunk_size])

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        pass


class MockSearchProvider:
    """
    Mock web search provider for testing.

    Returns `results_per_query` fake pages per query, or delegates to
    `handler(query, options)` (sync or async) when one is given.
    """

    def __init__(self, results_per_query: int = 2, handler: Callable | None = None):
        self.results_per_query = results_per_query
        self.handler = handler
        self.queries: list[str] = []

    async def search(
        self,
        query: str,
        options: SearchOptions | None = None,
    ) -> list[SearchResultItem]:
        """Return mock search results."""
        self.queries.append(query)
        options = options or SearchOptions()

        if self.handler is not None:
            results = self.handler(query, options)
            if inspect.isawaitable(results):
                results = await results
            return results

        slug = re.sub(r"[^a-z0-9]+", "-", query.lower()).strip("-")
        count = min(self.results_per_query, options.max_results)
        return [
            SearchResultItem(
                url=f"https://example.com/{slug}/{i}",
                title=f"Result {i} for {query}",
                content=f"Mock page {i} with facts about {query}.",
            )
            for i in range(count)
        ]

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        pass


def create_llm_provider(config: LLMConfig) -> LLMProvider:
    """Create an LLM backend from configuration.

    Args:
        config: LLM configuration

    Returns:
        LLMProvider instance

    Raises:
        ValueError: If provider type is not supported or the API key is missing
    """
    if config.provider == "openai-compatible":
        from ..llm import OpenAICompatibleAdapter

        return OpenAICompatibleAdapter(
            api_key=config.api_key,
            model=config.model,
            base_url=config.base_url,
        )

    elif config.provider == "openrouter":
        from ..llm import OpenRouterAdapter

        return OpenRouterAdapter(
            api_key=config.api_key,
            model=config.model,
            base_url=config.base_url,
        )

    elif config.provider == "deepseek":
        from ..llm import DeepSeekAdapter

        return DeepSeekAdapter(
            api_key=config.api_key,
            model=config.model or "deepseek-reasoner",
            base_url=config.base_url,
        )

    elif config.provider == "anthropic":
        from ..llm import AnthropicAdapter

        if config.model:
            return AnthropicAdapter(api_key=config.api_key, model=config.model)
        return AnthropicAdapter(api_key=config.api_key)

    elif config.provider == "mock":
        return MockLLMProvider()

    else:
        raise ConfigurationError(f"Unsupported LLM provider: {config.provider}")


def create_search_provider(config: WebSearchConfig) -> WebSearchProvider:
    """Create a web search backend from configuration.

    Args:
        config: Web search configuration

    Returns:
        WebSearchProvider instance

    Raises:
        ValueError: If provider type is not supported or the API key is missing
    """
    if config.provider == "tavily":
        from ..web_search import TavilyAdapter

        return TavilyAdapter(api_key=config.api_key, base_url=config.base_url)

    elif config.provider == "firecrawl":
        from ..web_search import FirecrawlAdapter

        return FirecrawlAdapter(api_key=config.api_key, base_url=config.base_url)

    elif config.provider == "mock":
        return MockSearchProvider()

    else:
        raise ConfigurationError(f"Unsupported web search provider: {config.provider}")


def create_token_estimator(
    use_tiktoken: bool = False,
    chars_per_token: float = 4.0,
) -> TokenEstimator:
    """Create a TokenEstimator.

    Args:
        use_tiktoken: Whether to use tiktoken for accurate counting
        chars_per_token: Average characters per token

    Returns:
        TokenEstimator instance
    """
    from ..tokens import TokenEstimator

    return TokenEstimator(use_tiktoken=use_tiktoken, chars_per_token=chars_per_token)


def create_researcher(
    llm_provider,
    search_provider,
    config: ResearchConfig,
    token_estimator=None,
    temperature: float | None = None,
) -> DeepResearcher:
    """Create a DeepResearcher from configuration."""
    from ..orchestration import DeepResearcher

    return DeepResearcher(
        llm_provider=llm_provider,
        search_provider=search_provider,
        config=config,
        token_estimator=token_estimator,
        temperature=temperature,
    )


def create_report_synthesizer(
    llm_provider,
    config: ResearchConfig,
    context_size: int,
    token_estimator=None,
    temperature: float | None = None,
) -> ReportSynthesizer:
    """Create a ReportSynthesizer whose learnings fit the model context.

    Args:
        llm_provider: LLM provider for the report
        config: Research configuration (report token budget)
        context_size: Model context window in tokens
        token_estimator: Optional token estimator
        temperature: Sampling temperature

    Returns:
        ReportSynthesizer instance
    """
    from ..report import ReportSynthesizer

    return ReportSynthesizer(
        llm_provider=llm_provider,
        token_estimator=token_estimator,
        token_budget=min(config.report_token_budget, int(context_size * REPORT_CONTEXT_SHARE)),
        temperature=temperature,
    )


def create_feedback_generator(llm_provider, temperature: float | None = None) -> FeedbackGenerator:
    """Create a FeedbackGenerator."""
    from ..orchestration import FeedbackGenerator

    return FeedbackGenerator(llm_provider=llm_provider, temperature=temperature)


def create_from_profile(profile: ProfileConfig) -> tuple:
    """Create all backends from a profile configuration.

    Providers are returned unentered; use them as async context managers.

    Args:
        profile: Profile configuration containing all backend configs

    Returns:
        Tuple of (llm_provider, search_provider, researcher, report_synthesizer)

    Raises:
        ValueError: If any backend configuration is invalid
    """
    llm_provider = create_llm_provider(profile.llm)
    search_provider = create_search_provider(profile.web_search)
    token_estimator = create_token_estimator(use_tiktoken=profile.llm.use_tiktoken)

    researcher = create_researcher(
        llm_provider,
        search_provider,
        profile.research,
        token_estimator=token_estimator,
        temperature=profile.llm.temperature,
    )
    report_synthesizer = create_report_synthesizer(
        llm_provider,
        profile.research,
        context_size=profile.llm.context_size,
        token_estimator=token_estimator,
        temperature=profile.llm.temperature,
    )

    return llm_provider, search_provider, researcher, report_synthesizer

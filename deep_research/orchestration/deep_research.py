"""
Recursive deep research driver.

Expands a query into sub-queries, searches each one, extracts learnings and
follow-up questions, and recurses on the follow-ups until the depth limit.
Every invocation reports progress as ResearchStep events; failures are
reported as `error` events scoped to the failing node and never raised.
"""

from __future__ import annotations

import asyncio
import logging
import math
from contextlib import aclosing
from typing import TYPE_CHECKING, Callable, Sequence

from ..errors import RESULT_PROCESSING_TIMEOUT, describe_error
from ..streaming import BadEnd, ParsedObject, ParsedReasoning, ParseError
from ..tokens import TokenEstimator
from ..web_search.models import SearchOptions, SearchResultItem
from .deduplication import deduplicate_learnings
from .limiter import ConcurrencyLimiter
from .models import (
    CompleteStep,
    ErrorStep,
    GeneratedQueryStep,
    GeneratingQueryReasoningStep,
    GeneratingQueryStep,
    Learning,
    NodeCompleteStep,
    ProcessedResult,
    ProcessingSearchResultReasoningStep,
    ProcessingSearchResultStep,
    ResearchNode,
    ResearchResult,
    ResearchStep,
    SearchCompleteStep,
    SearchingStep,
    SearchQuery,
)
from .prompts import follow_up_query
from .query_generator import QueryGenerator
from .result_processor import ResultProcessor
from .tree_node import (
    ROOT_NODE_ID,
    child_node_id,
    is_root_node,
    node_depth,
    parent_node_id,
    search_breadth,
)

if TYPE_CHECKING:
    from ..config.loader import ResearchConfig
    from ..llm.protocols import LLMProvider
    from ..web_search.protocols import WebSearchProvider

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ResearchStep], None]


def _ignore_progress(step: ResearchStep) -> None:
    pass


class DeepResearcher:
    """
    Breadth/depth-bounded recursive researcher.

    All invocations of one session share a ConcurrencyLimiter, so the
    number of in-flight search and extraction calls is bounded across the
    whole tree. A node that recurses raises the limiter's capacity by one
    while its subtree runs.

    Usage:
        researcher = DeepResearcher(llm, search)
        result = await researcher.research("solid state batteries", on_progress=print)
    """

    def __init__(
        self,
        llm_provider: LLMProvider,
        search_provider: WebSearchProvider,
        config: ResearchConfig | None = None,
        token_estimator: TokenEstimator | None = None,
        temperature: float | None = None,
    ):
        """
        Initialize the researcher.

        Args:
            llm_provider: LLM provider for query generation and extraction
            search_provider: Web search provider
            config: Research configuration (defaults if None)
            token_estimator: Estimator used to trim search result content
            temperature: Sampling temperature, provider default if None
        """
        if config is None:
            from ..config.loader import ResearchConfig

            config = ResearchConfig()

        self.search_provider = search_provider
        self.config = config
        self.query_generator = QueryGenerator(llm_provider, temperature=temperature)
        self.result_processor = ResultProcessor(
            llm_provider,
            token_estimator=token_estimator,
            content_token_budget=config.content_token_budget,
            temperature=temperature,
        )

    async def research(
        self,
        query: str,
        breadth: int | None = None,
        max_depth: int | None = None,
        language: str = "en",
        search_language: str | None = None,
        learnings: Sequence[Learning] | None = None,
        on_progress: ProgressCallback | None = None,
        current_depth: int = 1,
        node_id: str = ROOT_NODE_ID,
        retry_node: ResearchNode | None = None,
        limiter: ConcurrencyLimiter | None = None,
    ) -> ResearchResult:
        """
        Research a query, recursing on follow-up questions.

        Never raises: failures become `error` events. The root invocation
        (node "0") emits exactly one `complete` event, after everything else.

        Args:
            query: The research query (or follow-up prompt for recursive calls)
            breadth: Number of sub-queries at this level
            max_depth: Maximum recursion depth
            language: Response language code
            search_language: Language code for search queries, defaults to `language`
            learnings: Learnings accumulated so far
            on_progress: Called synchronously with each progress event
            current_depth: Depth of this invocation (1 for the root)
            node_id: Id of the node whose children are generated here
            retry_node: Re-run only this node's branch, skipping generation
            limiter: Shared limiter; a new one is created for the root

        Returns:
            ResearchResult with learnings deduplicated by URL
        """
        if breadth is None:
            breadth = self.config.breadth
        if max_depth is None:
            max_depth = self.config.depth
        emit = on_progress or _ignore_progress
        if limiter is None:
            limiter = ConcurrencyLimiter(self.config.concurrency_limit)

        try:
            result = await self._research(
                query=query,
                breadth=breadth,
                max_depth=max_depth,
                language=language,
                search_language=search_language,
                learnings=list(learnings or []),
                emit=emit,
                current_depth=current_depth,
                node_id=node_id,
                retry_node=retry_node,
                limiter=limiter,
            )
        except Exception as e:
            logger.exception(f"Research failed at node {node_id}")
            emit(ErrorStep(node_id=node_id, message=describe_error(e)))
            result = ResearchResult()

        if is_root_node(node_id):
            logger.info(f"Research complete: {len(result.learnings)} learnings")
            emit(CompleteStep(node_id=node_id, learnings=result.learnings))
        return result

    async def _research(
        self,
        query: str,
        breadth: int,
        max_depth: int,
        language: str,
        search_language: str | None,
        learnings: list[Learning],
        emit: ProgressCallback,
        current_depth: int,
        node_id: str,
        retry_node: ResearchNode | None,
        limiter: ConcurrencyLimiter,
    ) -> ResearchResult:
        if retry_node is not None and not is_root_node(retry_node.node_id):
            # Re-run a single branch with its stored query
            parent_id = parent_node_id(retry_node.node_id) or ROOT_NODE_ID
            current_depth = node_depth(retry_node.node_id) - 1
            breadth = search_breadth(breadth, parent_id)
            children = [
                (
                    retry_node.node_id,
                    SearchQuery(query=retry_node.query, research_goal=retry_node.research_goal),
                )
            ]
            logger.info(f"Retrying node {retry_node.node_id} at depth {current_depth}")
        else:
            queries = await self._generate_queries(
                query, breadth, learnings, language, search_language, emit, node_id
            )
            children = [
                (child_node_id(node_id, index), search_query)
                for index, search_query in enumerate(queries)
            ]

        tasks = [
            limiter.schedule(
                self._research_child,
                child_id=child_id,
                search_query=search_query,
                breadth=breadth,
                max_depth=max_depth,
                current_depth=current_depth,
                language=language,
                search_language=search_language,
                learnings=learnings,
                emit=emit,
                limiter=limiter,
            )
            for child_id, search_query in children
            if search_query.query
        ]
        contributions = await asyncio.gather(*tasks)

        return ResearchResult(learnings=deduplicate_learnings(*contributions))

    async def _generate_queries(
        self,
        query: str,
        breadth: int,
        learnings: list[Learning],
        language: str,
        search_language: str | None,
        emit: ProgressCallback,
        node_id: str,
    ) -> list[SearchQuery]:
        queries: list[SearchQuery] = []

        events = self.query_generator.stream(
            query,
            num_queries=breadth,
            learnings=learnings,
            language=language,
            search_language=search_language,
        )
        async with aclosing(events):
            async for event in events:
                if isinstance(event, ParsedObject):
                    queries = event.value
                    for index, search_query in enumerate(queries):
                        emit(
                            GeneratingQueryStep(
                                node_id=child_node_id(node_id, index),
                                result=search_query,
                            )
                        )
                elif isinstance(event, ParsedReasoning):
                    emit(GeneratingQueryReasoningStep(node_id=node_id, delta=event.delta))
                elif isinstance(event, (ParseError, BadEnd)):
                    logger.warning(f"Query generation failed at node {node_id}: {event.message}")
                    emit(ErrorStep(node_id=node_id, message=event.message))
                    break

        emit(NodeCompleteStep(node_id=node_id))
        for index, search_query in enumerate(queries):
            if not search_query.query:
                continue
            emit(
                GeneratedQueryStep(
                    node_id=child_node_id(node_id, index),
                    query=search_query.query,
                    result=search_query,
                )
            )

        logger.info(f"Generated {len(queries)} queries at node {node_id}")
        return queries

    async def _process_results(
        self,
        node_id: str,
        search_query: SearchQuery,
        results: list[SearchResultItem],
        num_follow_up_questions: int,
        language: str,
        emit: ProgressCallback,
    ) -> ProcessedResult | None:
        """Stream learnings for one node. Returns None if the stream failed."""
        processed = ProcessedResult()

        events = self.result_processor.stream(
            search_query.query,
            results,
            num_learnings=self.config.num_learnings,
            num_follow_up_questions=num_follow_up_questions,
            language=language,
        )
        async with aclosing(events):
            async for event in events:
                if isinstance(event, ParsedObject):
                    processed = event.value
                    emit(
                        ProcessingSearchResultStep(
                            node_id=node_id,
                            query=search_query.query,
                            result=processed,
                        )
                    )
                elif isinstance(event, ParsedReasoning):
                    emit(
                        ProcessingSearchResultReasoningStep(node_id=node_id, delta=event.delta)
                    )
                elif isinstance(event, (ParseError, BadEnd)):
                    logger.warning(f"Result processing failed at node {node_id}: {event.message}")
                    emit(ErrorStep(node_id=node_id, message=event.message))
                    return None

        return processed

    async def _research_child(
        self,
        child_id: str,
        search_query: SearchQuery,
        breadth: int,
        max_depth: int,
        current_depth: int,
        language: str,
        search_language: str | None,
        learnings: list[Learning],
        emit: ProgressCallback,
        limiter: ConcurrencyLimiter,
    ) -> list[Learning]:
        """Search, extract and maybe recurse for one child. Returns its learnings."""
        try:
            emit(SearchingStep(node_id=child_id, query=search_query.query))
            results = await self.search_provider.search(
                search_query.query,
                SearchOptions(
                    max_results=self.config.max_search_results,
                    language=search_language or language,
                ),
            )
            logger.info(f"Ran {search_query.query!r}, found {len(results)} results")
            emit(
                SearchCompleteStep(
                    node_id=child_id,
                    urls=[item.url for item in results if item.url],
                    results=results,
                )
            )

            # Breadth for the next level is half of the current breadth
            next_breadth = math.ceil(breadth / 2)

            try:
                processed = await asyncio.wait_for(
                    self._process_results(
                        child_id, search_query, results, next_breadth, language, emit
                    ),
                    timeout=self.config.processing_timeout,
                )
            except asyncio.TimeoutError:
                logger.warning(f"Result processing timed out at node {child_id}")
                emit(ErrorStep(node_id=child_id, message=RESULT_PROCESSING_TIMEOUT))
                return []

            if processed is None:
                return []

            titles = {item.url: item.title for item in results}
            processed = processed.model_copy(
                update={
                    "learnings": [
                        learning.model_copy(update={"title": titles.get(learning.url)})
                        if learning.title is None
                        else learning
                        for learning in processed.learnings
                    ]
                }
            )
            emit(NodeCompleteStep(node_id=child_id, result=processed))

            all_learnings = deduplicate_learnings(learnings, processed.learnings)
            next_depth = current_depth + 1

            if next_depth <= max_depth and processed.follow_up_questions:
                logger.info(
                    f"Researching deeper from {child_id}: breadth={next_breadth}, depth={next_depth}"
                )
                with limiter.expanded():
                    deeper = await self.research(
                        query=follow_up_query(
                            search_query.research_goal, processed.follow_up_questions
                        ),
                        breadth=next_breadth,
                        max_depth=max_depth,
                        language=language,
                        search_language=search_language,
                        learnings=all_learnings,
                        on_progress=emit,
                        current_depth=next_depth,
                        node_id=child_id,
                        limiter=limiter,
                    )
                return deduplicate_learnings(all_learnings, deeper.learnings)

            return all_learnings
        except Exception as e:
            logger.warning(f"Node {child_id} failed: {e}")
            emit(ErrorStep(node_id=child_id, message=describe_error(e)))
            return []

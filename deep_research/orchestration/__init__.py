"""
Recursive research orchestration.

Layers, leaf first:
- tree_node: hierarchical node ids and breadth decay
- limiter: global, mutable-capacity admission gate
- query_generator / result_processor: one structured LLM call each
- deep_research: the recursive driver emitting ResearchStep events
"""

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
    research_step_adapter,
)
from .tree_node import (
    ROOT_NODE_ID,
    ancestor_node_ids,
    child_node_id,
    is_child_node,
    is_parent_node,
    is_root_node,
    node_depth,
    node_index,
    parent_node_id,
    search_breadth,
)
from .limiter import ConcurrencyLimiter
from .deduplication import deduplicate_learnings
from .query_generator import QueryGenerator
from .result_processor import ResultProcessor
from .feedback import FeedbackGenerator
from .deep_research import DeepResearcher, ProgressCallback

__all__ = [
    # Data models
    "Learning",
    "ProcessedResult",
    "ResearchNode",
    "ResearchResult",
    "SearchQuery",
    # Progress events
    "CompleteStep",
    "ErrorStep",
    "GeneratedQueryStep",
    "GeneratingQueryReasoningStep",
    "GeneratingQueryStep",
    "NodeCompleteStep",
    "ProcessingSearchResultReasoningStep",
    "ProcessingSearchResultStep",
    "ResearchStep",
    "SearchCompleteStep",
    "SearchingStep",
    "research_step_adapter",
    # Tree ids
    "ROOT_NODE_ID",
    "ancestor_node_ids",
    "child_node_id",
    "is_child_node",
    "is_parent_node",
    "is_root_node",
    "node_depth",
    "node_index",
    "parent_node_id",
    "search_breadth",
    # Components
    "ConcurrencyLimiter",
    "deduplicate_learnings",
    "QueryGenerator",
    "ResultProcessor",
    "FeedbackGenerator",
    "DeepResearcher",
    "ProgressCallback",
]

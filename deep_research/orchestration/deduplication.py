"""Deduplication of learnings across branches of the research tree."""

from __future__ import annotations

import logging
from typing import Iterable

from .models import Learning

logger = logging.getLogger(__name__)


def deduplicate_learnings(*groups: Iterable[Learning]) -> list[Learning]:
    """
    Merge groups of learnings, keeping the first learning seen per URL.

    Relative order of first appearance is preserved. Learnings without a
    URL cannot be attributed and are dropped.

    Args:
        *groups: Learning lists in priority order

    Returns:
        Learnings with unique URLs
    """
    seen: set[str] = set()
    unique: list[Learning] = []
    total = 0

    for group in groups:
        for learning in group:
            total += 1
            if not learning.url or learning.url in seen:
                continue
            seen.add(learning.url)
            unique.append(learning)

    if total != len(unique):
        logger.debug(f"Deduplicated {total} learnings to {len(unique)}")
    return unique

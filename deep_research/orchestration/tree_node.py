"""
Hierarchical node identifiers for the research tree.

The root is "0"; the i-th child of node "p" is "p-i". Depth is the number
of dash-separated segments, so the root has depth 1.
"""

from __future__ import annotations

import math

ROOT_NODE_ID = "0"
SEPARATOR = "-"


def child_node_id(parent_id: str, index: int) -> str:
    """Id of the `index`-th child of `parent_id`."""
    return f"{parent_id}{SEPARATOR}{index}"


def is_root_node(node_id: str) -> bool:
    return node_id == ROOT_NODE_ID


def is_child_node(parent_id: str, node_id: str) -> bool:
    """True if `node_id` lies strictly below `parent_id` in the tree."""
    return node_id.startswith(parent_id + SEPARATOR)


def is_parent_node(node_id: str, parent_id: str) -> bool:
    """True if `parent_id` is an ancestor of `node_id`."""
    return is_child_node(parent_id, node_id)


def parent_node_id(node_id: str) -> str | None:
    """Id of the direct parent, or None for the root."""
    if SEPARATOR not in node_id:
        return None
    return node_id.rsplit(SEPARATOR, 1)[0]


def ancestor_node_ids(node_id: str) -> list[str]:
    """All ancestors of a node, root first."""
    segments = node_id.split(SEPARATOR)
    return [SEPARATOR.join(segments[:i]) for i in range(1, len(segments))]


def node_index(node_id: str) -> int:
    """Position of the node among its siblings (0 for the root)."""
    return int(node_id.rsplit(SEPARATOR, 1)[-1])


def node_depth(node_id: str) -> int:
    return len(node_id.split(SEPARATOR))


def search_breadth(initial_breadth: int, node_id: str) -> int:
    """
    Number of sub-queries to generate below `node_id`.

    Breadth halves at each level: ceil(initial / 2 ** (depth - 1)).
    """
    return math.ceil(initial_breadth / 2 ** (node_depth(node_id) - 1))

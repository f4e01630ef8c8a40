"""
Tree Node Id Tests

Tests for hierarchical node ids and breadth decay.
"""

from deep_research.orchestration.tree_node import (
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


def test_child_ids_extend_parent():
    """Every child id relates back to its parent."""
    for parent in ["0", "0-1", "0-2-0", "0-10-3"]:
        for i in range(12):
            child = child_node_id(parent, i)
            assert child == f"{parent}-{i}"
            assert is_child_node(parent, child)
            assert is_parent_node(child, parent)
            assert node_depth(child) == node_depth(parent) + 1
            assert parent_node_id(child) == parent
            assert node_index(child) == i


def test_root_node():
    assert ROOT_NODE_ID == "0"
    assert is_root_node("0")
    assert not is_root_node("0-0")
    assert parent_node_id("0") is None
    assert node_depth("0") == 1
    assert node_index("0") == 0


def test_is_child_node_requires_separator():
    """'0-10' shares a prefix with '0-1' but is not below it."""
    assert not is_child_node("0-1", "0-10")
    assert not is_child_node("0-1", "0-1")
    assert is_child_node("0", "0-1-2")
    assert is_parent_node("0-1-2", "0")
    assert not is_parent_node("0", "0-1")


def test_ancestors():
    assert ancestor_node_ids("0") == []
    assert ancestor_node_ids("0-2") == ["0"]
    assert ancestor_node_ids("0-2-1-0") == ["0", "0-2", "0-2-1"]


def test_search_breadth_halves_per_level():
    assert search_breadth(4, "0") == 4
    assert search_breadth(4, "0-0") == 2
    assert search_breadth(4, "0-0-0") == 1
    assert search_breadth(5, "0-0-0") == 2  # ceil(5 / 4)
    assert search_breadth(3, "0-1") == 2
    assert search_breadth(1, "0-1-1-1") == 1
    for breadth in range(1, 10):
        assert search_breadth(breadth, "0") == breadth

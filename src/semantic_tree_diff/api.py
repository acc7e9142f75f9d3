"""Public API functions for semantic-tree-diff.

This module provides the user-facing functions: diff, match and
check_tree_size.  Each call creates a fresh ``TreeDiffer`` (or
``UniversalMatcher``) so that no state is shared between calls.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from semantic_tree_diff.algorithm.universal import UniversalMatcher
from semantic_tree_diff.differ import TreeDiffer, check_tree_size

if TYPE_CHECKING:
    from semantic_tree_diff.algorithm.config import DetectorConfig, MatcherConfig
    from semantic_tree_diff.algorithm.matching import Matching
    from semantic_tree_diff.result import DiffResult
    from semantic_tree_diff.tree.nodes import TreeNode

__all__ = ["check_tree_size", "diff", "match"]


def diff(
    tree1: TreeNode,
    tree2: TreeNode,
    config: MatcherConfig | Mapping[str, Any] | None = None,
    detector_config: DetectorConfig | None = None,
    max_nodes: int | None = None,
) -> DiffResult:
    """Diff two trees and return a ``DiffResult``.

    Args:
        tree1: Root of the first (old) tree.
        tree2: Root of the second (new) tree.
        config: Matching options, as a ``MatcherConfig`` or a plain mapping such
            as ``{"similarity_threshold": 0.9, "attribute_order": "strict"}``.
        detector_config: Semantic recognition thresholds.
        max_nodes: Optional combined node limit; exceeding it raises
            ``SizeLimitExceededError`` before any matching work.

    Returns:
        A ``DiffResult`` with operations, matching, statistics and timing.
    """
    differ = TreeDiffer(config, detector_config=detector_config, max_nodes=max_nodes)
    return differ.diff(tree1, tree2)


def match(
    tree1: TreeNode,
    tree2: TreeNode,
    config: MatcherConfig | Mapping[str, Any] | None = None,
) -> Matching:
    """Return the node matching between two trees without detecting operations."""
    return UniversalMatcher(config).match(tree1, tree2)

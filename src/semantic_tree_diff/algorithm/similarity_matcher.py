"""SimilarityMatcher: phase 2, threshold-based fuzzy pairing.

Architecture:
- Only nodes left unmatched by earlier phases take part.  tree2 nodes are
  grouped by label and by shape class (``element``, ``empty`` or
  ``text:<type>``); a tree1 node is scored against the union of its two groups.
- Every candidate scoring at least ``threshold`` is recorded in flat numpy
  arrays together with its tie-breakers: ``semantic_distance_to``, the combined
  subtree size, the combined ``NodeWeight`` and the document-order indices.
- One ``np.lexsort`` orders the candidates (score descending, then the
  tie-breakers ascending) and a single greedy pass offers them to
  ``Matching.add`` in that order.

Scores do not depend on the matching and a pair rejected once stays rejected
as the matching grows, so the single ordered pass accepts exactly the pairs
that repeatedly picking the best remaining candidate would.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import numpy as np

from semantic_tree_diff.algorithm.matching import Matching
from semantic_tree_diff.tree.attributes import AttributeOrder
from semantic_tree_diff.tree.weight import NodeWeight

if TYPE_CHECKING:
    from semantic_tree_diff.tree.nodes import TreeNode

__all__ = ["SimilarityMatcher", "shape_class"]

_log = logging.getLogger(__name__)

_log_debug = _log.debug


def shape_class(node: TreeNode) -> str:
    """Coarse value shape used to find candidates across differing labels.

    Returns ``"element"`` for nodes with children or attributes, ``"empty"``
    for bare leaves and ``"text:<type name>"`` for value-bearing leaves.
    """
    if node.is_element:
        return "element"
    if node.value is None:
        return "empty"
    return f"text:{type(node.value).__name__}"


class SimilarityMatcher:
    """Pairs unmatched nodes whose ``similarity_to`` score clears a threshold.

    Example::

        matching = HashMatcher(tree1, tree2).match()
        SimilarityMatcher(tree1, tree2, matching, threshold=0.9).match()
    """

    def __init__(
        self,
        tree1: TreeNode,
        tree2: TreeNode,
        matching: Matching | None = None,
        threshold: float = 0.95,
        attribute_order: AttributeOrder = AttributeOrder.IGNORE,
    ) -> None:
        """Initialise the matcher.

        Args:
            tree1: Root of the first (old) tree.
            tree2: Root of the second (new) tree.
            matching: Matching to extend.  A fresh one is created when None.
            threshold: Minimum similarity, inclusive, for a pair to be accepted.
            attribute_order: Forwarded to ``TreeNode.similarity_to``.
        """
        self._tree1 = tree1
        self._tree2 = tree2
        self._matching = matching if matching is not None else Matching()
        self._threshold = threshold
        self._attribute_order = AttributeOrder(attribute_order)

    @property
    def matching(self) -> Matching:
        return self._matching

    def match(self) -> Matching:
        """Run the phase and return the (extended) matching."""
        nodes1 = self._matching.unmatched1(self._tree1.iter_subtree())
        nodes2 = self._matching.unmatched2(self._tree2.iter_subtree())
        if not nodes1 or not nodes2:
            return self._matching

        rows, cols, scores, distances, sizes, weights = self._score_candidates(nodes1, nodes2)
        if scores.size == 0:
            _log_debug("Similarity matching found no candidate above %.3f", self._threshold)
            return self._matching

        order = np.lexsort((cols, rows, weights, sizes, distances, -scores))
        added = 0
        for k in order:
            node1 = nodes1[rows[k]]
            node2 = nodes2[cols[k]]
            if self._matching.is_matched1(node1) or self._matching.is_matched2(node2):
                continue
            if self._matching.add(node1, node2):
                added += 1

        _log_debug(
            "Similarity matching paired %d nodes from %d candidates", added, scores.size
        )
        return self._matching

    # ------------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------------

    def _score_candidates(
        self, nodes1: list[TreeNode], nodes2: list[TreeNode]
    ) -> tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
        by_label: dict[str, list[int]] = {}
        by_shape: dict[str, list[int]] = {}
        for j, node2 in enumerate(nodes2):
            by_label.setdefault(node2.label, []).append(j)
            by_shape.setdefault(shape_class(node2), []).append(j)

        sizes1 = _subtree_sizes(self._tree1)
        sizes2 = _subtree_sizes(self._tree2)

        rows: list[int] = []
        cols: list[int] = []
        scores: list[float] = []
        distances: list[float] = []
        sizes: list[int] = []
        weights: list[float] = []

        for i, node1 in enumerate(nodes1):
            candidates = set(by_label.get(node1.label, ()))
            candidates.update(by_shape.get(shape_class(node1), ()))
            for j in sorted(candidates):
                node2 = nodes2[j]
                score = node1.similarity_to(node2, self._attribute_order)
                if score < self._threshold:
                    continue
                rows.append(i)
                cols.append(j)
                scores.append(score)
                distances.append(node1.semantic_distance_to(node2))
                sizes.append(sizes1[node1] + sizes2[node2])
                weights.append(float(NodeWeight.for_node(node1)) + float(NodeWeight.for_node(node2)))

        return (
            np.asarray(rows, dtype=np.intp),
            np.asarray(cols, dtype=np.intp),
            np.asarray(scores, dtype=np.float64),
            np.asarray(distances, dtype=np.float64),
            np.asarray(sizes, dtype=np.int64),
            np.asarray(weights, dtype=np.float64),
        )


def _subtree_sizes(root: TreeNode) -> dict[TreeNode, int]:
    """Subtree node counts for every node under ``root`` in one pass."""
    sizes: dict[TreeNode, int] = {}
    for node in reversed(list(root.iter_subtree())):
        sizes[node] = 1 + sum(sizes[child] for child in node.children)
    return sizes

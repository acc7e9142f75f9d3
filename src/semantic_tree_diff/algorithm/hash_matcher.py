"""HashMatcher: phase 1, exact signature matching of unchanged subtrees.

Architecture:
- Every tree2 node is indexed under ``(signature, content digest)``.  The
  digest folds label, value, attributes (under the configured attribute order)
  and the children's digests, so equal keys mean "same path, same subtree"
  up to hash collisions.
- tree1 is walked depth-first in pre-order.  For each unmatched node the
  still-unmatched tree2 nodes under the same key are tried in document order;
  the first one whose subtree is verified equal is paired, together with the
  whole subtree in lockstep.
- After a subtree is paired, the pairing climbs to the parents while they are
  unmatched, share a signature and agree shallowly (label, value, attributes).

An invariant rejection from ``Matching.add`` is not an error: the candidate is
skipped and the next one tried.  All work is linear in the tree sizes apart
from the verification of candidates, which only runs on digest hits.
"""

from __future__ import annotations

import logging
from collections.abc import Hashable
from typing import TYPE_CHECKING, Any

from semantic_tree_diff.algorithm.matching import Matching
from semantic_tree_diff.tree.attributes import AttributeComparator, AttributeOrder
from semantic_tree_diff.tree.signature import NodeSignature
from semantic_tree_diff.tree.text import is_nan, values_equal

if TYPE_CHECKING:
    from semantic_tree_diff.tree.nodes import TreeNode

__all__ = ["HashMatcher"]

_log = logging.getLogger(__name__)

_log_debug = _log.debug


class HashMatcher:
    """Pairs structurally unmoved, content-identical subtrees.

    Example::

        matcher = HashMatcher(tree1, tree2)
        matching = matcher.match()
        matching.is_valid()   # True
    """

    def __init__(
        self,
        tree1: TreeNode,
        tree2: TreeNode,
        matching: Matching | None = None,
        attribute_order: AttributeOrder = AttributeOrder.IGNORE,
    ) -> None:
        """Initialise the matcher.

        Args:
            tree1: Root of the first (old) tree.
            tree2: Root of the second (new) tree.
            matching: Matching to extend.  A fresh one is created when None.
            attribute_order: Whether attribute order counts for equality.
        """
        self._tree1 = tree1
        self._tree2 = tree2
        self._matching = matching if matching is not None else Matching()
        self._attributes = AttributeComparator(attribute_order)
        self._digests: dict[TreeNode, int] = {}

    @property
    def matching(self) -> Matching:
        return self._matching

    def match(self) -> Matching:
        """Run the phase and return the (extended) matching."""
        index = self._build_index(self._tree2)
        before = len(self._matching)

        for node1 in self._tree1.iter_subtree():
            if self._matching.is_matched1(node1):
                continue
            key = (NodeSignature.for_node(node1), self._digest(node1))
            for node2 in index.get(key, ()):
                if self._matching.is_matched2(node2):
                    continue
                if not self._subtrees_equal(node1, node2):
                    continue
                if self._match_subtree(node1, node2):
                    self._propagate_to_ancestors(node1, node2)
                    break

        _log_debug("Hash matching paired %d nodes", len(self._matching) - before)
        return self._matching

    # ------------------------------------------------------------------
    # Indexing
    # ------------------------------------------------------------------

    def _build_index(
        self, root: TreeNode
    ) -> dict[tuple[NodeSignature, int], list[TreeNode]]:
        index: dict[tuple[NodeSignature, int], list[TreeNode]] = {}
        for node in root.iter_subtree():
            key = (NodeSignature.for_node(node), self._digest(node))
            index.setdefault(key, []).append(node)
        return index

    def _digest(self, node: TreeNode) -> int:
        """Content digest of a subtree, memoized per matcher (post-order, iterative)."""
        cached = self._digests.get(node)
        if cached is not None:
            return cached

        stack: list[tuple[TreeNode, bool]] = [(node, False)]
        while stack:
            current, expanded = stack.pop()
            if current in self._digests:
                continue
            if not expanded:
                stack.append((current, True))
                stack.extend((child, False) for child in current.children)
                continue
            self._digests[current] = hash(
                (
                    current.label,
                    _hashable(current.value),
                    self._attributes.comparison_key(current.attributes),
                    tuple(self._digests[child] for child in current.children),
                )
            )
        return self._digests[node]

    # ------------------------------------------------------------------
    # Equality
    # ------------------------------------------------------------------

    def _nodes_equal(self, node1: TreeNode, node2: TreeNode) -> bool:
        if node1.label != node2.label:
            return False
        if not values_equal(node1.value, node2.value):
            return False
        return self._attributes.equal(node1.attributes, node2.attributes)

    def _subtrees_equal(self, node1: TreeNode, node2: TreeNode) -> bool:
        stack = [(node1, node2)]
        while stack:
            a, b = stack.pop()
            if not self._nodes_equal(a, b) or len(a.children) != len(b.children):
                return False
            stack.extend(zip(a.children, b.children, strict=True))
        return True

    # ------------------------------------------------------------------
    # Pairing
    # ------------------------------------------------------------------

    def _match_subtree(self, node1: TreeNode, node2: TreeNode) -> bool:
        """Pair two equal subtrees in lockstep; False if the roots are rejected."""
        if not self._matching.add(node1, node2):
            return False

        stack = list(zip(node1.children, node2.children, strict=True))
        while stack:
            child1, child2 = stack.pop()
            if self._matching.is_matched1(child1) or self._matching.is_matched2(child2):
                continue
            if self._matching.add(child1, child2):
                stack.extend(zip(child1.children, child2.children, strict=True))
        return True

    def _propagate_to_ancestors(self, node1: TreeNode, node2: TreeNode) -> None:
        parent1 = node1.parent
        parent2 = node2.parent
        while parent1 is not None and parent2 is not None:
            if self._matching.is_matched1(parent1) or self._matching.is_matched2(parent2):
                return
            if NodeSignature.for_node(parent1) != NodeSignature.for_node(parent2):
                return
            if not self._nodes_equal(parent1, parent2):
                return
            if not self._matching.add(parent1, parent2):
                return
            parent1 = parent1.parent
            parent2 = parent2.parent


def _hashable(value: Any) -> Hashable:
    """Digest component of a value, tagged with its type so ``True`` and ``1`` differ."""
    kind = type(value).__name__
    if is_nan(value):
        return (kind, "nan")
    try:
        hash(value)
    except TypeError:
        return (kind, repr(value))
    return (kind, value)

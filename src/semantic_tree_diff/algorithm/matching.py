"""Matching: the validated one-to-one correspondence between two trees.

Every matcher phase routes its additions through ``Matching.add``, which is the
single place where the two invariants are enforced:

1. One-to-one: a node appears in at most one pair.
2. Prefix closure: when both nodes of a pair have matched parents, those
   parents are paired with each other.  ``add`` checks this for the new pair
   itself and for already-matched children of either node, whose parent pairing
   the new pair would otherwise contradict.

A rejected addition is ordinary control flow: ``add`` returns False and the
matching is left untouched.  ``is_valid`` re-derives both invariants from
scratch for assertions and tests.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from semantic_tree_diff.tree.nodes import TreeNode

__all__ = ["Matching"]


class Matching:
    """Set of (tree1 node, tree2 node) pairs with O(1) lookup in both directions.

    Pairs are kept in insertion order, which makes every consumer of the
    matching deterministic.

    Example::

        matching = Matching()
        matching.add(root1, root2)       # True
        matching.add(root1, other)       # False: root1 is already matched
        matching.partner1(root1) is root2
    """

    def __init__(self) -> None:
        # Identity-keyed maps (TreeNode hashes by identity).  _forward also
        # records insertion order for pairs().
        self._forward: dict[TreeNode, TreeNode] = {}
        self._backward: dict[TreeNode, TreeNode] = {}

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def add(self, node1: TreeNode, node2: TreeNode) -> bool:
        """Add a pair if it keeps both invariants.

        Returns:
            True if the pair was added, False if it was rejected.
        """
        if not self._can_add(node1, node2):
            return False
        self._forward[node1] = node2
        self._backward[node2] = node1
        return True

    def remove(self, node1: TreeNode, node2: TreeNode) -> bool:
        """Remove the pair (node1, node2); False when it is not in the matching."""
        if self._forward.get(node1) is not node2:
            return False
        del self._forward[node1]
        del self._backward[node2]
        return True

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def is_matched1(self, node: TreeNode) -> bool:
        return node in self._forward

    def is_matched2(self, node: TreeNode) -> bool:
        return node in self._backward

    def partner1(self, node: TreeNode) -> TreeNode | None:
        """Tree2 partner of a tree1 node, or None."""
        return self._forward.get(node)

    def partner2(self, node: TreeNode) -> TreeNode | None:
        """Tree1 partner of a tree2 node, or None."""
        return self._backward.get(node)

    def unmatched1(self, nodes: Iterable[TreeNode]) -> list[TreeNode]:
        """Filter tree1 ``nodes`` down to the still-unpaired ones, order preserved."""
        return [node for node in nodes if node not in self._forward]

    def unmatched2(self, nodes: Iterable[TreeNode]) -> list[TreeNode]:
        """Filter tree2 ``nodes`` down to the still-unpaired ones, order preserved."""
        return [node for node in nodes if node not in self._backward]

    @property
    def pairs(self) -> list[tuple[TreeNode, TreeNode]]:
        """Copy of all pairs in insertion order."""
        return list(self._forward.items())

    def __len__(self) -> int:
        return len(self._forward)

    def __iter__(self) -> Iterator[tuple[TreeNode, TreeNode]]:
        return iter(self.pairs)

    def __contains__(self, pair: object) -> bool:
        if not isinstance(pair, tuple) or len(pair) != 2:
            return False
        node1, node2 = pair
        return self._forward.get(node1) is node2

    def __repr__(self) -> str:
        shown = ", ".join(f"({a.label} <-> {b.label})" for a, b in self._forward.items())
        return f"Matching([{shown}])"

    # ------------------------------------------------------------------
    # Invariants
    # ------------------------------------------------------------------

    def is_valid(self) -> bool:
        return self.is_one_to_one() and self.has_prefix_closure()

    def is_one_to_one(self) -> bool:
        """Re-derive the one-to-one invariant from both maps."""
        if len(self._forward) != len(self._backward):
            return False
        return all(self._backward.get(node2) is node1 for node1, node2 in self._forward.items())

    def has_prefix_closure(self) -> bool:
        """Re-derive prefix closure: matched parents of a pair are paired together."""
        for node1, node2 in self._forward.items():
            parent1 = node1.parent
            parent2 = node2.parent
            if parent1 is None or parent2 is None:
                continue
            if parent1 in self._forward and parent2 in self._backward:
                if self._forward[parent1] is not parent2:
                    return False
        return True

    def _can_add(self, node1: TreeNode, node2: TreeNode) -> bool:
        if node1 in self._forward or node2 in self._backward:
            return False

        parent1 = node1.parent
        parent2 = node2.parent
        if (
            parent1 is not None
            and parent2 is not None
            and parent1 in self._forward
            and parent2 in self._backward
            and self._forward[parent1] is not parent2
        ):
            return False

        # Matched children of node1 whose partners sit under a different,
        # already-matched parent would break closure once node1 is paired.
        for child1 in node1.children:
            child2 = self._forward.get(child1)
            if child2 is None:
                continue
            holder = child2.parent
            if holder is not None and holder is not node2 and holder in self._backward:
                return False

        for child2 in node2.children:
            child1 = self._backward.get(child2)
            if child1 is None:
                continue
            holder = child1.parent
            if holder is not None and holder is not node1 and holder in self._forward:
                return False

        return True

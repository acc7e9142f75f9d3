"""StructuralPropagator: phase 3, context-driven extension of the matching.

Surrounding structure implies identity where content scores alone do not.
The propagator repeats two sweeps until neither adds a pair:

- top-down: under every matched pair, unmatched children whose label occurs
  exactly once among the unmatched children on *both* sides are paired, no
  matter how similar their content is.  The sole remaining child on each side
  is the simplest instance of this.
- bottom-up: the unmatched parents of a matched pair are paired when they
  share a label, differ in at most half of their attributes, and every matched
  child of the tree1 parent has its partner under the tree2 parent.

Before the first sweep the two roots are anchored to each other when both are
still unmatched and carry the same label, which gives top-down propagation a
starting point for documents whose roots changed too much to score above the
similarity threshold.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import TYPE_CHECKING

from semantic_tree_diff.algorithm.matching import Matching

if TYPE_CHECKING:
    from semantic_tree_diff.tree.nodes import TreeNode

__all__ = ["StructuralPropagator"]

_log = logging.getLogger(__name__)

_log_debug = _log.debug

# Maximum attribute_difference for two parents to be paired bottom-up.
_MAX_PARENT_ATTRIBUTE_DIFFERENCE = 0.5


class StructuralPropagator:
    """Extends a matching through parent/child context until a fixed point."""

    def __init__(
        self,
        tree1: TreeNode,
        tree2: TreeNode,
        matching: Matching | None = None,
    ) -> None:
        self._tree1 = tree1
        self._tree2 = tree2
        self._matching = matching if matching is not None else Matching()

    @property
    def matching(self) -> Matching:
        return self._matching

    def propagate(self) -> Matching:
        """Run the phase and return the (extended) matching."""
        before = len(self._matching)
        self._anchor_roots()

        rounds = 0
        while True:
            rounds += 1
            # Both sweeps run every round.
            progressed = self._top_down() | self._bottom_up()
            if not progressed:
                break

        _log_debug(
            "Propagation paired %d nodes in %d rounds", len(self._matching) - before, rounds
        )
        return self._matching

    # ------------------------------------------------------------------
    # Sweeps
    # ------------------------------------------------------------------

    def _anchor_roots(self) -> bool:
        if self._matching.is_matched1(self._tree1) or self._matching.is_matched2(self._tree2):
            return False
        if self._tree1.label != self._tree2.label:
            return False
        return self._matching.add(self._tree1, self._tree2)

    def _top_down(self) -> bool:
        progressed = False
        for node1, node2 in self._matching.pairs:
            children1 = self._matching.unmatched1(node1.children)
            children2 = self._matching.unmatched2(node2.children)
            if not children1 or not children2:
                continue

            unique1 = _unique_by_label(children1)
            unique2 = _unique_by_label(children2)
            for label, child1 in unique1.items():
                child2 = unique2.get(label)
                if child2 is not None and self._matching.add(child1, child2):
                    progressed = True
        return progressed

    def _bottom_up(self) -> bool:
        progressed = False
        for node1, node2 in self._matching.pairs:
            parent1 = node1.parent
            parent2 = node2.parent
            if parent1 is None or parent2 is None:
                continue
            if self._matching.is_matched1(parent1) or self._matching.is_matched2(parent2):
                continue
            if not self._parents_compatible(parent1, parent2):
                continue
            if self._matching.add(parent1, parent2):
                progressed = True
        return progressed

    def _parents_compatible(self, parent1: TreeNode, parent2: TreeNode) -> bool:
        if parent1.label != parent2.label:
            return False
        if parent1.attribute_difference(parent2) > _MAX_PARENT_ATTRIBUTE_DIFFERENCE:
            return False
        for child1 in parent1.children:
            child2 = self._matching.partner1(child1)
            if child2 is not None and child2.parent is not parent2:
                return False
        return True


def _unique_by_label(nodes: list[TreeNode]) -> dict[str, TreeNode]:
    """Map each label occurring exactly once in ``nodes`` to its node, order kept."""
    counts = Counter(node.label for node in nodes)
    return {node.label: node for node in nodes if counts[node.label] == 1}

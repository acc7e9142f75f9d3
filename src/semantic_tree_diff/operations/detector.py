"""OperationDetector: derives the edit operations implied by a Matching.

Detection runs in two passes.

Pass 1 (basic), in this order:

- for each matched pair, walked in tree1 pre-order: an ``update`` listing only
  the fields that changed, then a ``move`` when the node changed parent or its
  index among the *stable* siblings changed.  Stable siblings are the matched
  children of a parent whose partners sit under the paired parent, so an
  insertion or deletion next to a node is not reported as a move;
- a ``delete`` for every unmatched tree1 node (pre-order);
- an ``insert`` for every unmatched tree2 node (pre-order).

Pass 2 (semantic) collapses clusters of basic operations:

- merge:  two or more top-level deleted siblings whose joined text is similar
  to an inserted (or updated) node under the partner parent;
- split:  the inverse, one deleted (or updated) node against two or more
  inserted siblings;
- upgrade / downgrade: a matched pair whose depth changed replaces its
  ``move``; remaining top-level delete/insert pairs with the same label at
  different depths are paired by optimal assignment over text similarity.

Every basic operation a semantic one explains is removed, including the
deletes and inserts of nodes inside the involved subtrees.  The semantic
operation takes the place of the first operation it explains, so the output
order stays anchored to document order.

Text similarity is the Jaccard index of lowercase whitespace tokens over the
concatenated values of a subtree.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import TYPE_CHECKING, Any

import numpy as np

from semantic_tree_diff.algorithm.assignment import optimal_assignment
from semantic_tree_diff.algorithm.config import DetectorConfig
from semantic_tree_diff.cache import TokenCache
from semantic_tree_diff.operations.operation import FieldChange, Operation, OperationType
from semantic_tree_diff.tree.attributes import order_differs
from semantic_tree_diff.tree.text import same_value, text_of

if TYPE_CHECKING:
    from collections.abc import Iterable

    from semantic_tree_diff.algorithm.matching import Matching
    from semantic_tree_diff.tree.nodes import TreeNode

__all__ = ["OperationDetector"]

_log = logging.getLogger(__name__)

_log_debug = _log.debug
_log_warn = _log.warning


class OperationDetector:
    """Turns a ``Matching`` between two trees into a list of ``Operation``.

    Example::

        matching = UniversalMatcher().match(tree1, tree2)
        operations = OperationDetector(tree1, tree2, matching).detect()
        [op.type for op in operations]   # e.g. ["merge"]
    """

    def __init__(
        self,
        tree1: TreeNode,
        tree2: TreeNode,
        matching: Matching,
        config: DetectorConfig | None = None,
        token_cache: TokenCache | None = None,
    ) -> None:
        """Initialise the detector.

        Args:
            tree1: Root of the first (old) tree.
            tree2: Root of the second (new) tree.
            matching: Matching between the two trees.
            config: Semantic recognition thresholds.  Defaults to
                ``DetectorConfig()`` when None.
            token_cache: Token cache to share across detectors.  A private one
                is created when None.
        """
        self._tree1 = tree1
        self._tree2 = tree2
        self._matching = matching
        self._config = config if config is not None else DetectorConfig()
        self._tokens = token_cache if token_cache is not None else TokenCache()
        self._operations: list[Operation] = []
        self._texts: dict[TreeNode, str] = {}
        self._stable: dict[TreeNode, tuple[dict[TreeNode, int], dict[TreeNode, int]]] = {}

    @property
    def operations(self) -> list[Operation]:
        """Operations found by the most recent ``detect`` call."""
        return list(self._operations)

    def detect(self) -> list[Operation]:
        """Run both passes and return the operations in output order."""
        self._texts = {}
        self._stable = {}
        basic = self._basic_operations()
        self._operations = self._semantic_operations(basic)

        if _log.isEnabledFor(logging.DEBUG):
            counts = Counter(str(op.type) for op in self._operations)
            _log_debug(
                "Detected %d operations from %d basic ones: %s",
                len(self._operations),
                len(basic),
                dict(sorted(counts.items())),
            )
        return list(self._operations)

    # ------------------------------------------------------------------
    # Pass 1: basic operations
    # ------------------------------------------------------------------

    def _basic_operations(self) -> list[Operation]:
        operations: list[Operation] = []

        for node1 in self._tree1.iter_subtree():
            node2 = self._matching.partner1(node1)
            if node2 is None:
                continue
            update = self._update_for(node1, node2)
            if update is not None:
                operations.append(update)
            if self._moved(node1, node2):
                operations.append(Operation.move(node1, node2))

        operations.extend(
            Operation.delete(node) for node in self._matching.unmatched1(self._tree1.iter_subtree())
        )
        operations.extend(
            Operation.insert(node) for node in self._matching.unmatched2(self._tree2.iter_subtree())
        )
        return operations

    def _update_for(self, node1: TreeNode, node2: TreeNode) -> Operation | None:
        try:
            changes = _changed_fields(node1, node2)
        except (TypeError, ValueError) as err:
            _log_warn(
                "Cannot compare %s with %s (%s); reporting a content update",
                node1.path(),
                node2.path(),
                err,
            )
            changes = {"content": FieldChange(node1.value, node2.value)}
        if not changes:
            return None
        return Operation.update(node1, node2, changes)

    def _moved(self, node1: TreeNode, node2: TreeNode) -> bool:
        parent1 = node1.parent
        parent2 = node2.parent
        if parent1 is None and parent2 is None:
            return False
        if parent1 is None or parent2 is None:
            return True
        if self._matching.partner1(parent1) is not parent2:
            return True
        positions1, positions2 = self._stable_positions(parent1, parent2)
        return positions1[node1] != positions2[node2]

    def _stable_positions(
        self, parent1: TreeNode, parent2: TreeNode
    ) -> tuple[dict[TreeNode, int], dict[TreeNode, int]]:
        cached = self._stable.get(parent1)
        if cached is not None:
            return cached

        stable1 = [
            child
            for child in parent1.children
            if (partner := self._matching.partner1(child)) is not None
            and partner.parent is parent2
        ]
        stable2 = [
            child
            for child in parent2.children
            if (partner := self._matching.partner2(child)) is not None
            and partner.parent is parent1
        ]
        cached = (
            {child: index for index, child in enumerate(stable1)},
            {child: index for index, child in enumerate(stable2)},
        )
        self._stable[parent1] = cached
        return cached

    # ------------------------------------------------------------------
    # Pass 2: semantic operations
    # ------------------------------------------------------------------

    def _semantic_operations(self, operations: list[Operation]) -> list[Operation]:
        state = _PassState(operations)

        self._detect_merges(state)
        self._detect_splits(state)
        self._detect_matched_hierarchy(state)
        self._detect_unmatched_hierarchy(state)

        return state.result()

    def _detect_merges(self, state: _PassState) -> None:
        threshold = self._config.merge_threshold

        for parent1 in self._tree1.iter_subtree():
            parent2 = self._matching.partner1(parent1)
            if parent2 is None:
                continue
            sources = [
                child
                for child in parent1.children
                if child in state.deletes and child not in state.consumed1
            ]
            if len(sources) < 2:
                continue
            source_text = " ".join(self._text(child) for child in sources)

            best: tuple[TreeNode, TreeNode | None] | None = None
            best_score = -1.0
            for child2 in parent2.children:
                if child2 in state.consumed2:
                    continue
                original: TreeNode | None = None
                combined = source_text
                if child2 not in state.inserts:
                    original = self._matching.partner2(child2)
                    if original is None or original not in state.updates:
                        continue
                    if original in state.consumed1:
                        continue
                    combined = f"{source_text} {self._text(original)}"
                score = self._text_similarity(combined, self._text(child2))
                if score >= threshold and score > best_score:
                    best = (child2, original)
                    best_score = score

            if best is None:
                continue
            target, original = best
            explained = state.subtree_indices(sources, state.deletes)
            explained += state.subtree_indices([target], state.inserts)
            if original is not None:
                explained.append(state.updates[original])
                state.consumed1.add(original)
            state.record(Operation.merge(sources, target, original), explained)
            state.consume1(sources)
            state.consume2([target])
            if _log.isEnabledFor(logging.DEBUG):
                _log_debug(
                    "Merge of %d nodes into %s (%.3f)", len(sources), target.path(), best_score
                )

    def _detect_splits(self, state: _PassState) -> None:
        threshold = self._config.split_threshold

        for parent1 in self._tree1.iter_subtree():
            parent2 = self._matching.partner1(parent1)
            if parent2 is None:
                continue
            targets = [
                child
                for child in parent2.children
                if child in state.inserts and child not in state.consumed2
            ]
            if len(targets) < 2:
                continue
            target_text = " ".join(self._text(child) for child in targets)

            best: tuple[TreeNode, TreeNode | None] | None = None
            best_score = -1.0
            for child1 in parent1.children:
                if child1 in state.consumed1:
                    continue
                remainder: TreeNode | None = None
                combined = target_text
                if child1 not in state.deletes:
                    remainder = self._matching.partner1(child1)
                    if remainder is None or child1 not in state.updates:
                        continue
                    if remainder in state.consumed2:
                        continue
                    combined = f"{self._text(remainder)} {target_text}"
                score = self._text_similarity(self._text(child1), combined)
                if score >= threshold and score > best_score:
                    best = (child1, remainder)
                    best_score = score

            if best is None:
                continue
            source, remainder = best
            explained = state.subtree_indices([source], state.deletes)
            explained += state.subtree_indices(targets, state.inserts)
            if remainder is not None:
                explained.append(state.updates[source])
                state.consumed2.add(remainder)
            state.record(Operation.split(source, targets, remainder), explained)
            state.consume1([source])
            state.consume2(targets)
            if _log.isEnabledFor(logging.DEBUG):
                _log_debug(
                    "Split of %s into %d nodes (%.3f)", source.path(), len(targets), best_score
                )

    def _detect_matched_hierarchy(self, state: _PassState) -> None:
        for node1, index in list(state.moves.items()):
            if node1 in state.consumed1:
                continue
            node2 = self._matching.partner1(node1)
            if node2 is None or node2 in state.consumed2:
                continue
            depth1 = node1.depth
            depth2 = node2.depth
            if depth1 == depth2:
                continue
            score = self._hierarchy_score(node1, node2)
            if score is None:
                continue
            operation = (
                Operation.upgrade(node1, node2)
                if depth2 < depth1
                else Operation.downgrade(node1, node2)
            )
            state.record(operation, [index])
            state.consumed1.add(node1)
            state.consumed2.add(node2)

    def _detect_unmatched_hierarchy(self, state: _PassState) -> None:
        deleted = [
            node
            for node in state.deletes
            if node not in state.consumed1 and self._top_level1(node)
        ]
        inserted = [
            node
            for node in state.inserts
            if node not in state.consumed2 and self._top_level2(node)
        ]
        if not deleted or not inserted:
            return

        scores = np.full((len(deleted), len(inserted)), -np.inf)
        for row, node1 in enumerate(deleted):
            depth1 = node1.depth
            for col, node2 in enumerate(inserted):
                if node1.label != node2.label or node2.depth == depth1:
                    continue
                score = self._hierarchy_score(node1, node2)
                if score is not None:
                    scores[row, col] = score

        for row, col in optimal_assignment(scores):
            node1 = deleted[row]
            node2 = inserted[col]
            operation = (
                Operation.upgrade(node1, node2)
                if node2.depth < node1.depth
                else Operation.downgrade(node1, node2)
            )
            explained = state.subtree_indices([node1], state.deletes)
            explained += state.subtree_indices([node2], state.inserts)
            state.record(operation, explained)
            state.consume1([node1])
            state.consume2([node2])

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _top_level1(self, node: TreeNode) -> bool:
        parent = node.parent
        return parent is None or self._matching.is_matched1(parent)

    def _top_level2(self, node: TreeNode) -> bool:
        parent = node.parent
        return parent is None or self._matching.is_matched2(parent)

    def _hierarchy_score(self, node1: TreeNode, node2: TreeNode) -> float | None:
        """Similarity of two same-label nodes, or None below the threshold.

        Text similarity is used when either subtree carries text, shallow
        ``similarity_to`` otherwise.
        """
        if node1.label != node2.label:
            return None
        text1 = self._text(node1)
        text2 = self._text(node2)
        if text1.strip() or text2.strip():
            score = self._tokens.similarity(text1, text2)
        else:
            score = node1.similarity_to(node2)
        if score < self._config.hierarchy_threshold:
            return None
        return score

    def _text_similarity(self, text_a: str, text_b: str) -> float:
        if not text_a.strip() or not text_b.strip():
            return 0.0
        return self._tokens.similarity(text_a, text_b)

    def _text(self, node: TreeNode) -> str:
        """Concatenated values of a subtree in document order."""
        cached = self._texts.get(node)
        if cached is None:
            cached = " ".join(
                text_of(current.value)
                for current in node.iter_subtree()
                if current.value is not None
            )
            self._texts[node] = cached
        return cached


class _PassState:
    """Bookkeeping of the semantic pass over one basic operation list."""

    def __init__(self, operations: list[Operation]) -> None:
        self.operations = operations
        self.deletes: dict[TreeNode, int] = {}
        self.inserts: dict[TreeNode, int] = {}
        self.updates: dict[TreeNode, int] = {}
        self.moves: dict[TreeNode, int] = {}
        for index, operation in enumerate(operations):
            if operation.type == OperationType.DELETE:
                self.deletes[operation.node1] = index  # type: ignore[index]
            elif operation.type == OperationType.INSERT:
                self.inserts[operation.node2] = index  # type: ignore[index]
            elif operation.type == OperationType.UPDATE:
                self.updates[operation.node1] = index  # type: ignore[index]
            elif operation.type == OperationType.MOVE:
                self.moves[operation.node1] = index  # type: ignore[index]

        self.consumed1: set[TreeNode] = set()
        self.consumed2: set[TreeNode] = set()
        self._explained: set[int] = set()
        self._anchored: dict[int, list[Operation]] = {}

    def record(self, operation: Operation, explained: list[int]) -> None:
        """Register a semantic operation replacing the ``explained`` indices."""
        anchor = min(explained)
        self._explained.update(explained)
        self._anchored.setdefault(anchor, []).append(operation)

    def subtree_indices(
        self, roots: Iterable[TreeNode], index: dict[TreeNode, int]
    ) -> list[int]:
        return [index[node] for root in roots for node in root.iter_subtree() if node in index]

    def consume1(self, roots: Iterable[TreeNode]) -> None:
        for root in roots:
            self.consumed1.update(root.iter_subtree())

    def consume2(self, roots: Iterable[TreeNode]) -> None:
        for root in roots:
            self.consumed2.update(root.iter_subtree())

    def result(self) -> list[Operation]:
        result: list[Operation] = []
        for index, operation in enumerate(self.operations):
            result.extend(self._anchored.get(index, ()))
            if index not in self._explained:
                result.append(operation)
        return result


def _changed_fields(node1: TreeNode, node2: TreeNode) -> dict[str, FieldChange]:
    """Fields that differ between two matched nodes.

    Raises:
        TypeError, ValueError: when a value comparison has no boolean answer.
    """
    changes: dict[str, FieldChange] = {}
    if node1.label != node2.label:
        changes["label"] = FieldChange(node1.label, node2.label)
    if not same_value(node1.value, node2.value):
        changes["value"] = FieldChange(node1.value, node2.value)

    attrs1: dict[str, Any] = node1.attributes
    attrs2: dict[str, Any] = node2.attributes
    if attrs1 != attrs2:
        changes["attributes"] = FieldChange(dict(attrs1), dict(attrs2))
    elif order_differs(attrs1, attrs2):
        changes["attribute_order"] = FieldChange(list(attrs1), list(attrs2))
    return changes

"""Tests for OperationDetector.

Verifies:
- Pass 1: updates carry only changed fields, moves use stable sibling order,
  deletes and inserts cover every unmatched node, in a fixed order
- Unclassifiable comparisons degrade to a logged ``content`` update
- Pass 2: merge, split, upgrade and downgrade replace the basic operations
  they explain, at the position of the first one
"""

from __future__ import annotations

import logging

import numpy as np
import pytest

from semantic_tree_diff.algorithm.config import DetectorConfig
from semantic_tree_diff.algorithm.matching import Matching
from semantic_tree_diff.algorithm.universal import UniversalMatcher
from semantic_tree_diff.cache import TokenCache
from semantic_tree_diff.operations.detector import OperationDetector
from semantic_tree_diff.operations.operation import FieldChange, OperationType
from semantic_tree_diff.tree.nodes import TreeNode


def _pair_all(tree1: TreeNode, tree2: TreeNode) -> Matching:
    """Pair two trees of identical shape node by node."""
    matching = Matching()
    for node1, node2 in zip(tree1.iter_subtree(), tree2.iter_subtree(), strict=True):
        assert matching.add(node1, node2)
    return matching


def _detect(tree1: TreeNode, tree2: TreeNode, **kwargs: object) -> list:
    matching = UniversalMatcher().match(tree1, tree2)
    return OperationDetector(tree1, tree2, matching, **kwargs).detect()  # type: ignore[arg-type]


class _CountingSource:
    """Adapter node stand-in that counts reads of its ``path``."""

    def __init__(self, path: str) -> None:
        self._path = path
        self.reads = 0

    @property
    def path(self) -> str:
        self.reads += 1
        return self._path


class TestUpdates:
    """Changed fields of matched pairs."""

    def test_value_change(self) -> None:
        tree1 = TreeNode("root", children=[TreeNode("child", "A")])
        tree2 = TreeNode("root", children=[TreeNode("child", "B")])
        operations = OperationDetector(tree1, tree2, _pair_all(tree1, tree2)).detect()
        assert len(operations) == 1
        assert operations[0].type is OperationType.UPDATE
        assert operations[0].changes == {"value": FieldChange("A", "B")}

    def test_attribute_change(self) -> None:
        tree1 = TreeNode("img", attributes={"src": "a.png"})
        tree2 = TreeNode("img", attributes={"src": "b.png"})
        (operation,) = OperationDetector(tree1, tree2, _pair_all(tree1, tree2)).detect()
        assert operation.changes == {
            "attributes": FieldChange({"src": "a.png"}, {"src": "b.png"})
        }

    def test_attribute_order_change(self) -> None:
        tree1 = TreeNode("p", attributes={"a": "1", "b": "2"})
        tree2 = TreeNode("p", attributes={"b": "2", "a": "1"})
        (operation,) = OperationDetector(tree1, tree2, _pair_all(tree1, tree2)).detect()
        assert operation.changes == {"attribute_order": FieldChange(["a", "b"], ["b", "a"])}

    def test_label_change(self) -> None:
        tree1 = TreeNode("b", "bold")
        tree2 = TreeNode("strong", "bold")
        (operation,) = OperationDetector(tree1, tree2, _pair_all(tree1, tree2)).detect()
        assert operation.changes == {"label": FieldChange("b", "strong")}

    @pytest.mark.parametrize(("old", "new"), [(True, 1), (0, False), (1.0, True)])
    def test_boolean_number_swap_is_a_value_update(self, old: object, new: object) -> None:
        tree1 = TreeNode("object", children=[TreeNode("enabled", old)])
        tree2 = TreeNode("object", children=[TreeNode("enabled", new)])
        operations = _detect(tree1, tree2)
        assert [op.type for op in operations] == [OperationType.UPDATE]
        change = operations[0].changes["value"]
        assert change.old is old
        assert change.new is new

    def test_nan_value_against_clone_emits_nothing(self) -> None:
        tree1 = TreeNode("object", children=[TreeNode("ratio", float("nan"))])
        assert _detect(tree1, tree1.deep_clone()) == []

    def test_identical_pair_emits_nothing(self) -> None:
        tree1 = TreeNode("p", "same", attributes={"a": "1"})
        tree2 = TreeNode("p", "same", attributes={"a": "1"})
        assert OperationDetector(tree1, tree2, _pair_all(tree1, tree2)).detect() == []

    def test_uncomparable_values_degrade_to_content_update(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        old = np.array([1, 2])
        new = np.array([1, 3])
        tree1 = TreeNode("vector", old)
        tree2 = TreeNode("vector", new)
        with caplog.at_level(logging.WARNING, logger="semantic_tree_diff.operations.detector"):
            (operation,) = OperationDetector(tree1, tree2, _pair_all(tree1, tree2)).detect()
        assert operation.type is OperationType.UPDATE
        assert list(operation.changes) == ["content"]
        assert operation.changes["content"].old is old
        assert "content update" in caplog.text


class TestMoves:
    """Parent and sibling-order changes."""

    def test_parent_change_is_a_move(self) -> None:
        tree1 = TreeNode("root", children=[TreeNode("a", children=[TreeNode("x", "1")])])
        tree2 = TreeNode("root", children=[TreeNode("b", children=[TreeNode("x", "1")])])
        matching = Matching()
        assert matching.add(tree1, tree2)
        assert matching.add(tree1.children[0].children[0], tree2.children[0].children[0])
        operations = OperationDetector(tree1, tree2, matching).detect()
        assert [op.type for op in operations] == [
            OperationType.MOVE,
            OperationType.DELETE,
            OperationType.INSERT,
        ]
        assert operations[0].details["new_parent"] is tree2.children[0]

    def test_swap_gives_two_moves(self) -> None:
        tree1 = TreeNode("root", children=[TreeNode("child1", "A"), TreeNode("child2", "B")])
        tree2 = TreeNode("root", children=[TreeNode("child2", "B"), TreeNode("child1", "A")])
        operations = _detect(tree1, tree2)
        assert [op.type for op in operations] == [OperationType.MOVE, OperationType.MOVE]
        assert [op.node1.label for op in operations] == ["child1", "child2"]

    def test_insertion_before_siblings_is_not_a_move(self) -> None:
        tree1 = TreeNode("root", children=[TreeNode("a", "1"), TreeNode("b", "2")])
        tree2 = TreeNode("root", children=[TreeNode("z", "0"), TreeNode("a", "1"), TreeNode("b", "2")])
        operations = _detect(tree1, tree2)
        assert [op.type for op in operations] == [OperationType.INSERT]
        assert operations[0].node2 is tree2.children[0]


class TestBasicOrder:
    """Updates and moves first, then deletes, then inserts."""

    def test_order_of_basic_operations(self) -> None:
        tree1 = TreeNode("root", children=[TreeNode("gone", "x"), TreeNode("title", "Old")])
        tree2 = TreeNode("root", children=[TreeNode("title", "New"), TreeNode("fresh", "y")])
        matching = Matching()
        matching.add(tree1, tree2)
        matching.add(tree1.children[1], tree2.children[0])
        operations = OperationDetector(tree1, tree2, matching).detect()
        assert [op.type for op in operations] == [
            OperationType.UPDATE,
            OperationType.DELETE,
            OperationType.INSERT,
        ]

    def test_every_unmatched_node_is_reported(self) -> None:
        tree1 = TreeNode("root", children=[TreeNode("div", children=[TreeNode("p", "x"), TreeNode("p", "y")])])
        tree2 = TreeNode("root")
        matching = Matching()
        matching.add(tree1, tree2)
        operations = OperationDetector(tree1, tree2, matching).detect()
        assert [op.type for op in operations] == [OperationType.DELETE] * 3
        assert [op.node1 for op in operations] == list(tree1.children[0].iter_subtree())

    def test_operations_property_returns_copy(self) -> None:
        tree1 = TreeNode("root", children=[TreeNode("p", "x")])
        tree2 = TreeNode("root")
        matching = Matching()
        matching.add(tree1, tree2)
        detector = OperationDetector(tree1, tree2, matching)
        assert detector.operations == []
        detected = detector.detect()
        assert detector.operations == detected
        detector.operations.clear()
        assert len(detector.operations) == 1


class TestMerge:
    """Several deleted siblings combined into one node."""

    def test_three_paragraphs_merge_into_one(self) -> None:
        paras = [TreeNode("para", "First"), TreeNode("para", "Second"), TreeNode("para", "Third")]
        tree1 = TreeNode("root", children=paras)
        merged = TreeNode("para", "First Second Third")
        tree2 = TreeNode("root", children=[merged])
        operations = _detect(tree1, tree2)
        assert len(operations) == 1
        (merge,) = operations
        assert merge.type is OperationType.MERGE
        assert merge.sources == tuple(paras)
        assert merge.targets == (merged,)
        assert merge.node2 is merged

    def test_merge_into_updated_node(self) -> None:
        intro1 = TreeNode("intro", "alpha beta")
        tree1 = TreeNode("root", children=[intro1, TreeNode("p", "gamma"), TreeNode("p", "delta")])
        intro2 = TreeNode("intro", "alpha beta gamma delta")
        tree2 = TreeNode("root", children=[intro2])
        matching = Matching()
        matching.add(tree1, tree2)
        matching.add(intro1, intro2)
        operations = OperationDetector(tree1, tree2, matching).detect()
        assert [op.type for op in operations] == [OperationType.MERGE]
        assert operations[0].node1 is intro1
        assert operations[0].node2 is intro2
        assert operations[0].sources == tuple(tree1.children[1:])

    def test_merge_removes_operations_inside_subtrees(self) -> None:
        tree1 = TreeNode(
            "root",
            children=[
                TreeNode("sec", children=[TreeNode("t", "a b")]),
                TreeNode("sec", children=[TreeNode("t", "c d")]),
            ],
        )
        tree2 = TreeNode("root", children=[TreeNode("sec", children=[TreeNode("t", "a b c d")])])
        matching = Matching()
        matching.add(tree1, tree2)
        operations = OperationDetector(tree1, tree2, matching).detect()
        assert [op.type for op in operations] == [OperationType.MERGE]

    def test_merge_takes_place_of_first_explained_operation(self) -> None:
        tree1 = TreeNode("root", children=[TreeNode("title", "Old"), TreeNode("p", "First"), TreeNode("p", "Second")])
        tree2 = TreeNode("root", children=[TreeNode("title", "New"), TreeNode("p", "First Second")])
        matching = Matching()
        matching.add(tree1, tree2)
        matching.add(tree1.children[0], tree2.children[0])
        operations = OperationDetector(tree1, tree2, matching).detect()
        assert [op.type for op in operations] == [OperationType.UPDATE, OperationType.MERGE]

    def test_dissimilar_text_is_not_merged(self) -> None:
        tree1 = TreeNode("root", children=[TreeNode("p", "apples"), TreeNode("p", "pears")])
        tree2 = TreeNode("root", children=[TreeNode("p", "something else entirely")])
        matching = Matching()
        matching.add(tree1, tree2)
        operations = OperationDetector(tree1, tree2, matching).detect()
        assert [op.type for op in operations] == [
            OperationType.DELETE,
            OperationType.DELETE,
            OperationType.INSERT,
        ]

    def test_threshold_is_configurable(self) -> None:
        tree1 = TreeNode("root", children=[TreeNode("p", "a b"), TreeNode("p", "c d")])
        tree2 = TreeNode("root", children=[TreeNode("p", "a b c")])
        matching = Matching()
        matching.add(tree1, tree2)
        # Token overlap is 3/4.
        strict = OperationDetector(tree1, tree2, matching).detect()
        assert OperationType.MERGE not in [op.type for op in strict]
        relaxed = OperationDetector(
            tree1, tree2, matching, config=DetectorConfig(merge_threshold=0.7)
        ).detect()
        assert [op.type for op in relaxed] == [OperationType.MERGE]

    def test_target_path_is_only_built_for_debug_logging(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        source = _CountingSource("/root/para")
        tree1 = TreeNode("root", children=[TreeNode("p", "a b"), TreeNode("p", "c d")])
        tree2 = TreeNode("root", children=[TreeNode("p", "a b c d", source_node=source)])
        matching = Matching()
        matching.add(tree1, tree2)
        logger = "semantic_tree_diff.operations.detector"

        with caplog.at_level(logging.INFO, logger=logger):
            quiet = OperationDetector(tree1, tree2, matching).detect()
        assert [op.type for op in quiet] == [OperationType.MERGE]
        assert source.reads == 0

        with caplog.at_level(logging.DEBUG, logger=logger):
            OperationDetector(tree1, tree2, matching).detect()
        assert source.reads == 1
        assert "Merge of 2 nodes into /root/para" in caplog.text


class TestSplit:
    """One node divided into several inserted siblings."""

    def test_paragraph_split_in_two(self) -> None:
        source = TreeNode("p", "one two three four")
        tree1 = TreeNode("root", children=[source])
        targets = [TreeNode("p", "one two"), TreeNode("p", "three four")]
        tree2 = TreeNode("root", children=targets)
        operations = _detect(tree1, tree2)
        assert [op.type for op in operations] == [OperationType.SPLIT]
        assert operations[0].sources == (source,)
        assert operations[0].targets == tuple(targets)

    def test_split_with_updated_remainder(self) -> None:
        source = TreeNode("p", "one two three four")
        remainder = TreeNode("p", "one two")
        tree1 = TreeNode("root", children=[source])
        tree2 = TreeNode("root", children=[remainder, TreeNode("p", "three"), TreeNode("p", "four")])
        matching = Matching()
        matching.add(tree1, tree2)
        matching.add(source, remainder)
        operations = OperationDetector(tree1, tree2, matching).detect()
        assert [op.type for op in operations] == [OperationType.SPLIT]
        assert operations[0].node2 is remainder
        assert operations[0].targets == tuple(tree2.children[1:])

    def test_dissimilar_inserts_are_not_a_split(self) -> None:
        tree1 = TreeNode("root", children=[TreeNode("p", "one two three four")])
        tree2 = TreeNode("root", children=[TreeNode("p", "five"), TreeNode("p", "six")])
        matching = Matching()
        matching.add(tree1, tree2)
        operations = OperationDetector(tree1, tree2, matching).detect()
        assert [op.type for op in operations] == [
            OperationType.DELETE,
            OperationType.INSERT,
            OperationType.INSERT,
        ]

    def test_source_path_is_only_built_for_debug_logging(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        source = _CountingSource("/root/para")
        tree1 = TreeNode("root", children=[TreeNode("p", "one two three four", source_node=source)])
        tree2 = TreeNode("root", children=[TreeNode("p", "one two"), TreeNode("p", "three four")])
        matching = Matching()
        matching.add(tree1, tree2)
        logger = "semantic_tree_diff.operations.detector"

        with caplog.at_level(logging.INFO, logger=logger):
            quiet = OperationDetector(tree1, tree2, matching).detect()
        assert [op.type for op in quiet] == [OperationType.SPLIT]
        assert source.reads == 0

        with caplog.at_level(logging.DEBUG, logger=logger):
            OperationDetector(tree1, tree2, matching).detect()
        assert source.reads == 1
        assert "Split of /root/para into 2 nodes" in caplog.text


class TestHierarchy:
    """Upgrade and downgrade."""

    def test_matched_node_promoted_is_an_upgrade(self) -> None:
        item1 = TreeNode("item", "x y z")
        tree1 = TreeNode("doc", children=[TreeNode("wrapper", children=[item1])])
        item2 = TreeNode("item", "x y z")
        tree2 = TreeNode("doc", children=[item2])
        operations = _detect(tree1, tree2)
        assert [op.type for op in operations] == [OperationType.UPGRADE, OperationType.DELETE]
        upgrade = operations[0]
        assert upgrade.node1 is item1
        assert upgrade.node2 is item2
        assert upgrade.details["from_depth"] == 2
        assert upgrade.details["to_depth"] == 1

    def test_deleted_and_inserted_node_deeper_is_a_downgrade(self) -> None:
        note1 = TreeNode("note", "remember the milk", attributes={"id": "1"})
        tree1 = TreeNode("doc", children=[note1, TreeNode("body", children=[TreeNode("p", "text")])])
        note2 = TreeNode("note", "remember the milk", attributes={"id": "2"})
        tree2 = TreeNode("doc", children=[TreeNode("body", children=[TreeNode("p", "text"), note2])])
        operations = _detect(tree1, tree2)
        assert [op.type for op in operations] == [OperationType.DOWNGRADE]
        assert operations[0].node1 is note1
        assert operations[0].node2 is note2
        assert operations[0].details == {"from_depth": 1, "to_depth": 2, "levels": 1}

    def test_different_text_stays_delete_and_insert(self) -> None:
        tree1 = TreeNode("doc", children=[TreeNode("note", "remember the milk"), TreeNode("body")])
        tree2 = TreeNode("doc", children=[TreeNode("body", children=[TreeNode("note", "call the bank")])])
        matching = Matching()
        matching.add(tree1, tree2)
        matching.add(tree1.children[1], tree2.children[0])
        operations = OperationDetector(tree1, tree2, matching).detect()
        assert [op.type for op in operations] == [OperationType.DELETE, OperationType.INSERT]

    def test_same_depth_parent_change_stays_a_move(self) -> None:
        tree1 = TreeNode("root", children=[TreeNode("a", children=[TreeNode("x", "1")]), TreeNode("b")])
        tree2 = TreeNode("root", children=[TreeNode("a"), TreeNode("b", children=[TreeNode("x", "1")])])
        operations = _detect(tree1, tree2)
        assert OperationType.MOVE in [op.type for op in operations]
        assert OperationType.UPGRADE not in [op.type for op in operations]


class TestTokenCache:
    """The detector memoizes tokenization in the given cache."""

    def test_shared_cache_is_filled(self) -> None:
        cache = TokenCache(max_size=16)
        paras = [TreeNode("para", "First"), TreeNode("para", "Second")]
        tree1 = TreeNode("root", children=paras)
        tree2 = TreeNode("root", children=[TreeNode("para", "First Second")])
        matching = Matching()
        matching.add(tree1, tree2)
        OperationDetector(tree1, tree2, matching, token_cache=cache).detect()
        assert cache.curr_size > 0

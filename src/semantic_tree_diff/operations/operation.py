"""Operation: neutral record of one detected edit between two trees.

Operations never say whether a change matters; classifying them as
significant or cosmetic is left to the consumer.  Which node fields are set
depends on the type:

=========  ===============  ===============  ==================================
type       node1 (tree1)    node2 (tree2)    extra
=========  ===============  ===============  ==================================
insert     None             inserted node    details: parent, position
delete     deleted node     None             details: parent, position
update     old node         new node         changes: field -> FieldChange
move       old node         new node         details: old/new parent, position
merge      updated target   result node      sources: merged tree1 nodes
split      source node      updated source   targets: resulting tree2 nodes
upgrade    old node         new node         details: from_depth, to_depth
downgrade  old node         new node         details: from_depth, to_depth
=========  ===============  ===============  ==================================

For merge ``node1`` is only set when the result node was matched (its update
got absorbed); for split ``node2`` likewise.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import StrEnum, auto
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from semantic_tree_diff.tree.nodes import TreeNode

__all__ = ["FieldChange", "Operation", "OperationType"]


class OperationType(StrEnum):
    """Kind of edit an ``Operation`` describes."""

    INSERT = auto()
    DELETE = auto()
    UPDATE = auto()
    MOVE = auto()
    MERGE = auto()
    SPLIT = auto()
    UPGRADE = auto()
    DOWNGRADE = auto()


@dataclass(frozen=True, slots=True)
class FieldChange:
    """Old and new value of one changed field of an updated node."""

    old: Any
    new: Any


@dataclass(frozen=True, slots=True)
class Operation:
    """One detected edit.  Build instances through the factory classmethods.

    Attributes:
        type:    The ``OperationType``.
        node1:   Involved tree1 node, if any.
        node2:   Involved tree2 node, if any.
        changes: Changed fields of an update (``value``, ``attributes``,
                 ``attribute_order``, ``label`` or the ``content`` fallback).
        sources: Tree1 nodes combined by a merge, or the split source.
        targets: Tree2 nodes produced by a split, or the merge result.
        details: Positional metadata (parents, positions, depths).
    """

    type: OperationType
    node1: TreeNode | None = None
    node2: TreeNode | None = None
    changes: dict[str, FieldChange] = field(default_factory=dict)
    sources: tuple[TreeNode, ...] = ()
    targets: tuple[TreeNode, ...] = ()
    details: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        try:
            kind = OperationType(self.type)
        except ValueError:
            msg = f"unknown operation type: {self.type!r}"
            raise ValueError(msg) from None
        object.__setattr__(self, "type", kind)
        object.__setattr__(self, "sources", tuple(self.sources))
        object.__setattr__(self, "targets", tuple(self.targets))

        if kind == OperationType.UPDATE and not self.changes:
            msg = "an update operation needs at least one changed field"
            raise ValueError(msg)

    # ------------------------------------------------------------------
    # Factories
    # ------------------------------------------------------------------

    @classmethod
    def insert(cls, node2: TreeNode) -> Operation:
        return cls(OperationType.INSERT, node2=node2, details=_placement(node2))

    @classmethod
    def delete(cls, node1: TreeNode) -> Operation:
        return cls(OperationType.DELETE, node1=node1, details=_placement(node1))

    @classmethod
    def update(
        cls, node1: TreeNode, node2: TreeNode, changes: dict[str, FieldChange]
    ) -> Operation:
        return cls(OperationType.UPDATE, node1=node1, node2=node2, changes=dict(changes))

    @classmethod
    def move(cls, node1: TreeNode, node2: TreeNode) -> Operation:
        return cls(
            OperationType.MOVE,
            node1=node1,
            node2=node2,
            details={
                "old_parent": node1.parent,
                "new_parent": node2.parent,
                "old_position": node1.position,
                "new_position": node2.position,
            },
        )

    @classmethod
    def merge(
        cls,
        sources: Iterable[TreeNode],
        target: TreeNode,
        original: TreeNode | None = None,
    ) -> Operation:
        """Several tree1 siblings combined into ``target``.

        ``original`` is the tree1 partner of ``target`` when the target was a
        matched node whose content absorbed the sources.
        """
        sources = tuple(sources)
        return cls(
            OperationType.MERGE,
            node1=original,
            node2=target,
            sources=sources,
            targets=(target,),
            details={"merged_from": [node.label for node in sources]},
        )

    @classmethod
    def split(
        cls,
        source: TreeNode,
        targets: Iterable[TreeNode],
        remainder: TreeNode | None = None,
    ) -> Operation:
        """``source`` divided into several tree2 siblings.

        ``remainder`` is the tree2 partner of ``source`` when the source stayed
        matched and kept part of its content.
        """
        targets = tuple(targets)
        return cls(
            OperationType.SPLIT,
            node1=source,
            node2=remainder,
            sources=(source,),
            targets=targets,
            details={"split_into": [node.label for node in targets]},
        )

    @classmethod
    def upgrade(cls, node1: TreeNode, node2: TreeNode) -> Operation:
        """``node1`` promoted to a shallower depth."""
        return cls(OperationType.UPGRADE, node1=node1, node2=node2, details=_levels(node1, node2))

    @classmethod
    def downgrade(cls, node1: TreeNode, node2: TreeNode) -> Operation:
        """``node1`` demoted to a deeper depth."""
        return cls(
            OperationType.DOWNGRADE, node1=node1, node2=node2, details=_levels(node1, node2)
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def node(self) -> TreeNode | None:
        """The node the operation is primarily about."""
        if self.type in (OperationType.INSERT, OperationType.MERGE):
            return self.node2
        return self.node1 if self.node1 is not None else self.node2

    def is_type(self, *types: OperationType | str) -> bool:
        return self.type in {OperationType(t) for t in types}

    def to_dict(self) -> dict[str, Any]:
        """Plain view with nodes rendered as paths."""
        result: dict[str, Any] = {"type": str(self.type)}
        if self.node1 is not None:
            result["path1"] = self.node1.path()
        if self.node2 is not None:
            result["path2"] = self.node2.path()
        if self.changes:
            result["changes"] = {
                name: {"old": change.old, "new": change.new}
                for name, change in self.changes.items()
            }
        if self.sources:
            result["sources"] = [node.path() for node in self.sources]
        if self.targets:
            result["targets"] = [node.path() for node in self.targets]
        return result

    def __repr__(self) -> str:
        subject = self.node
        label = subject.label if subject is not None else None
        extra = f" changes={sorted(self.changes)}" if self.changes else ""
        return f"Operation({self.type} {label!r}{extra})"


def _placement(node: TreeNode) -> dict[str, Any]:
    return {"parent": node.parent, "position": node.position}


def _levels(node1: TreeNode, node2: TreeNode) -> dict[str, Any]:
    from_depth = node1.depth
    to_depth = node2.depth
    return {"from_depth": from_depth, "to_depth": to_depth, "levels": abs(from_depth - to_depth)}

"""TreeNode: the neutral, format-agnostic node every document is normalized into.

Adapters (XML, HTML, JSON, YAML, ...) build one TreeNode tree per document and
the matchers and operation detector work exclusively on this representation.

Ownership model:
- ``children`` is the only owning link.  A node belongs to at most one parent
  and trees never share nodes or contain cycles.
- ``parent`` is a non-owning back-reference held through ``weakref``.  A
  subtree detached from a tree that is no longer referenced reports
  ``parent is None``.
- ``signature`` and ``weight`` are memoized by ``NodeSignature.for_node`` and
  ``NodeWeight.for_node`` in private slots.  Only this class's mutators
  (``add_child``, ``remove_child``, ``replace_child``) clear them.

Nodes compare and hash by identity so they can be used as dict keys by the
matching layer.
"""

from __future__ import annotations

import weakref
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from semantic_tree_diff.tree.attributes import AttributeComparator, AttributeOrder
from semantic_tree_diff.tree.text import text_of, token_overlap, values_equal

if TYPE_CHECKING:
    from semantic_tree_diff.tree.signature import NodeSignature
    from semantic_tree_diff.tree.weight import NodeWeight

__all__ = ["TreeNode"]

# Blend weights for similarity_to().  Dimensions missing on both sides are
# dropped and the remaining weights renormalized.
_LABEL_WEIGHT = 0.4
_VALUE_WEIGHT = 0.3
_ATTRIBUTE_WEIGHT = 0.15
_CHILDREN_WEIGHT = 0.15

# Blend weights for semantic_distance_to().
_DEPTH_DISTANCE_WEIGHT = 0.3
_CONTENT_DISTANCE_WEIGHT = 0.5
_ATTRIBUTE_DISTANCE_WEIGHT = 0.2


@dataclass(slots=True, eq=False, repr=False, weakref_slot=True)
class TreeNode:
    """A node in the neutral tree representation.

    Attributes:
        label:       Role or name: element name, "text", "object", "array", ...
        value:       Optional scalar payload (text content, number, bool).
        attributes:  Ordered name -> value mapping (e.g. XML attributes).
        children:    Ordered child nodes, exclusively owned by this node.
        xid:         Optional externally supplied identity, opaque to the core.
        source_node: Opaque reference to the adapter's original node.
        metadata:    Free-form adapter data; never read by the core.

    Example::

        root = TreeNode("root", children=[TreeNode("p", "Hello")])
        root.children[0].parent is root   # True
        root.size()                       # 2
    """

    label: str
    value: Any = None
    attributes: dict[str, str] = field(default_factory=dict)
    children: list[TreeNode] = field(default_factory=list)
    xid: str | None = None
    source_node: Any = None
    metadata: dict[str, Any] = field(default_factory=dict)
    _parent_ref: weakref.ref[TreeNode] | None = field(default=None, init=False)
    _signature: NodeSignature | None = field(default=None, init=False)
    _weight: NodeWeight | None = field(default=None, init=False)

    def __post_init__(self) -> None:
        self.attributes = dict(self.attributes)
        initial = list(self.children)
        self.children = []
        for child in initial:
            child._detach()
            child._parent_ref = weakref.ref(self)
            self.children.append(child)

    def __repr__(self) -> str:
        parts = [f"label={self.label!r}"]
        if self.value is not None:
            parts.append(f"value={self.value!r}")
        if self.xid is not None:
            parts.append(f"xid={self.xid!r}")
        if self.children:
            parts.append(f"children={len(self.children)}")
        if self.attributes:
            parts.append(f"attributes={len(self.attributes)}")
        return f"TreeNode({' '.join(parts)})"

    # ------------------------------------------------------------------
    # Classification
    # ------------------------------------------------------------------

    @property
    def is_leaf(self) -> bool:
        return not self.children

    @property
    def is_text(self) -> bool:
        """A leaf carrying a value."""
        return not self.children and self.value is not None

    @property
    def is_element(self) -> bool:
        """A node with children or with at least one attribute."""
        return bool(self.children) or bool(self.attributes)

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    @property
    def parent(self) -> TreeNode | None:
        if self._parent_ref is None:
            return None
        return self._parent_ref()

    @property
    def root(self) -> TreeNode:
        node = self
        parent = node.parent
        while parent is not None:
            node = parent
            parent = node.parent
        return node

    @property
    def ancestors(self) -> list[TreeNode]:
        """Ancestors ordered from the parent up to the root."""
        result: list[TreeNode] = []
        node = self.parent
        while node is not None:
            result.append(node)
            node = node.parent
        return result

    @property
    def descendants(self) -> list[TreeNode]:
        """All descendants in depth-first pre-order (self excluded)."""
        result = list(self.iter_subtree())
        return result[1:]

    def iter_subtree(self) -> Iterator[TreeNode]:
        """Yield this node and every descendant in depth-first pre-order."""
        stack: list[TreeNode] = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    @property
    def siblings(self) -> list[TreeNode]:
        parent = self.parent
        if parent is None:
            return []
        return [child for child in parent.children if child is not self]

    @property
    def left_siblings(self) -> list[TreeNode]:
        index = self.position
        if index is None:
            return []
        return self.parent.children[:index]  # type: ignore[union-attr]

    @property
    def right_siblings(self) -> list[TreeNode]:
        index = self.position
        if index is None:
            return []
        return self.parent.children[index + 1 :]  # type: ignore[union-attr]

    @property
    def position(self) -> int | None:
        """0-based index within ``parent.children``; None at the root."""
        parent = self.parent
        if parent is None:
            return None
        return parent._index_of(self)

    @property
    def depth(self) -> int:
        depth = 0
        node = self.parent
        while node is not None:
            depth += 1
            node = node.parent
        return depth

    @property
    def height(self) -> int:
        """Longest distance from this node down to a leaf."""
        heights: dict[TreeNode, int] = {}
        for node in self._post_order():
            heights[node] = 1 + max((heights[child] for child in node.children), default=-1)
        return heights[self]

    def size(self) -> int:
        """Number of nodes in the subtree rooted here (self included)."""
        return sum(1 for _ in self.iter_subtree())

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def add_child(self, child: TreeNode, position: int | None = None) -> TreeNode:
        """Attach ``child`` (detaching it from any previous parent).

        Args:
            child:    Node to attach.
            position: Index to insert at; appended when None.

        Returns:
            The attached child.
        """
        if child is self or any(node is child for node in self.ancestors):
            msg = "cannot attach a node beneath itself"
            raise ValueError(msg)

        child._detach()
        child._parent_ref = weakref.ref(self)
        if position is None:
            self.children.append(child)
        else:
            self.children.insert(position, child)

        self._invalidate()
        child._invalidate_signatures()
        return child

    def remove_child(self, child: TreeNode) -> TreeNode | None:
        """Detach ``child``; returns it, or None when it is not a child of this node."""
        index = self._index_of(child)
        if index is None:
            return None

        del self.children[index]
        child._parent_ref = None
        self._invalidate()
        child._invalidate_signatures()
        return child

    def replace_child(self, old_child: TreeNode, new_child: TreeNode) -> TreeNode | None:
        """Put ``new_child`` at ``old_child``'s position.

        Returns:
            The replaced child, or None when ``old_child`` is not a child of this
            node (in which case nothing changes).
        """
        index = self._index_of(old_child)
        if index is None:
            return None

        new_child._detach()
        # Detaching may have shifted old_child when both shared this parent.
        index = self._index_of(old_child)
        self.children[index] = new_child  # type: ignore[index]
        old_child._parent_ref = None
        new_child._parent_ref = weakref.ref(self)

        self._invalidate()
        old_child._invalidate_signatures()
        new_child._invalidate_signatures()
        return old_child

    # ------------------------------------------------------------------
    # Comparison
    # ------------------------------------------------------------------

    def matches(self, other: TreeNode) -> bool:
        """Shallow structural equality.

        Compares label, value, attributes and the child count and labels.  It
        does not descend into the children; this is a cheap pre-filter, not
        deep equality.
        """
        if not isinstance(other, TreeNode):
            return False
        if self.label != other.label:
            return False
        if not values_equal(self.value, other.value):
            return False
        if self.attributes != other.attributes:
            return False
        if len(self.children) != len(other.children):
            return False
        return [c.label for c in self.children] == [c.label for c in other.children]

    def similarity_to(
        self,
        other: TreeNode,
        attribute_order: AttributeOrder = AttributeOrder.IGNORE,
    ) -> float:
        """Weighted agreement of label, value, attributes and child labels in [0, 1].

        - label:      1.0 when equal, else 0.0.
        - value:      1.0 when equal; token overlap for two differing strings;
                      0.0 otherwise.  Skipped when both values are None.
        - attributes: ``AttributeComparator.agreement`` under ``attribute_order``.
                      Skipped when both nodes have no attributes.
        - children:   Jaccard index of the child label sets.  Skipped when both
                      nodes are leaves.

        Nodes with identical shallow content score exactly 1.0.
        """
        if not isinstance(other, TreeNode):
            return 0.0

        components: list[tuple[float, float]] = [
            (_LABEL_WEIGHT, 1.0 if self.label == other.label else 0.0)
        ]

        if self.value is not None or other.value is not None:
            components.append((_VALUE_WEIGHT, _value_agreement(self.value, other.value)))

        if self.attributes or other.attributes:
            comparator = AttributeComparator(attribute_order)
            components.append(
                (_ATTRIBUTE_WEIGHT, comparator.agreement(self.attributes, other.attributes))
            )

        if self.children or other.children:
            labels_a = {child.label for child in self.children}
            labels_b = {child.label for child in other.children}
            components.append(
                (_CHILDREN_WEIGHT, len(labels_a & labels_b) / len(labels_a | labels_b))
            )

        total_weight = sum(weight for weight, _ in components)
        return sum(weight * score for weight, score in components) / total_weight

    def attribute_difference(self, other: TreeNode) -> float:
        """Fraction of attribute names (union of both sides) whose values differ."""
        names = self.attributes.keys() | other.attributes.keys()
        if not names:
            return 0.0
        differing = sum(
            1 for name in names if self.attributes.get(name) != other.attributes.get(name)
        )
        return differing / len(names)

    def semantic_distance_to(self, other: TreeNode) -> float:
        """Tie-breaking distance: depth gap, content dissimilarity and attribute drift.

        ``0.3 * |depth - other.depth| + 0.5 * (1 - similarity) + 0.2 * attr_diff``.
        0.0 means same depth and identical shallow content.
        """
        if not isinstance(other, TreeNode):
            return float("inf")
        depth_gap = float(abs(self.depth - other.depth))
        content_gap = 1.0 - self.similarity_to(other)
        return (
            _DEPTH_DISTANCE_WEIGHT * depth_gap
            + _CONTENT_DISTANCE_WEIGHT * content_gap
            + _ATTRIBUTE_DISTANCE_WEIGHT * self.attribute_difference(other)
        )

    # ------------------------------------------------------------------
    # Copies and views
    # ------------------------------------------------------------------

    def deep_clone(self) -> TreeNode:
        """Independent structural copy of this subtree, detached from any parent.

        ``xid`` and ``source_node`` references are preserved; attributes and
        metadata are copied.
        """
        clones: dict[TreeNode, TreeNode] = {}
        for node in self._post_order():
            clones[node] = TreeNode(
                label=node.label,
                value=node.value,
                attributes=dict(node.attributes),
                children=[clones[child] for child in node.children],
                xid=node.xid,
                source_node=node.source_node,
                metadata=dict(node.metadata),
            )
        return clones[self]

    def path(self) -> str:
        """XPath-like locator such as ``/doc/section/p[1]``.

        A string ``path`` attribute on ``source_node`` wins when present.
        Otherwise the path is built from labels, with a 0-based index suffix
        only where several siblings share the label.
        """
        source_path = getattr(self.source_node, "path", None)
        if isinstance(source_path, str):
            return source_path

        segments: list[str] = []
        node: TreeNode | None = self
        while node is not None:
            parent = node.parent
            segment = node.label
            if parent is not None:
                same_label = [c for c in parent.children if c.label == node.label]
                if len(same_label) > 1:
                    index = next(i for i, c in enumerate(same_label) if c is node)
                    segment = f"{node.label}[{index}]"
            segments.append(segment)
            node = parent
        return "/" + "/".join(reversed(segments))

    def to_dict(self) -> dict[str, Any]:
        """Plain nested-dict view of this subtree."""
        views: dict[TreeNode, dict[str, Any]] = {}
        for node in self._post_order():
            views[node] = {
                "label": node.label,
                "value": node.value,
                "attributes": dict(node.attributes),
                "xid": node.xid,
                "children": [views[child] for child in node.children],
            }
        return views[self]

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _post_order(self) -> list[TreeNode]:
        """Subtree nodes with every child before its parent."""
        return list(reversed(list(self.iter_subtree())))

    def _index_of(self, child: TreeNode) -> int | None:
        for index, candidate in enumerate(self.children):
            if candidate is child:
                return index
        return None

    def _detach(self) -> None:
        parent = self.parent
        if parent is None:
            return
        index = parent._index_of(self)
        if index is not None:
            del parent.children[index]
            parent._invalidate()
        self._parent_ref = None

    def _invalidate(self) -> None:
        """Clear memoized values on this node and the weights of its ancestors."""
        self._signature = None
        node: TreeNode | None = self
        while node is not None:
            node._weight = None
            node = node.parent

    def _invalidate_signatures(self) -> None:
        for node in self.iter_subtree():
            node._signature = None


def _value_agreement(value_a: Any, value_b: Any) -> float:
    if values_equal(value_a, value_b):
        return 1.0
    if value_a is None or value_b is None:
        return 0.0
    return token_overlap(text_of(value_a), text_of(value_b))

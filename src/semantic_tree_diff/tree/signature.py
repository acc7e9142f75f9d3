"""NodeSignature: root-to-node label path used for exact hash matching.

The signature of a node is ``"/" + "/".join(components)`` over the path from
the root down to the node, where each component is the node's label, or the
constant ``#text`` marker for a leaf that carries a value::

    root -> section -> p -> (leaf "Hello")
    signatures: "/root", "/root/section", "/root/section/p", "/root/section/p/#text"

Equal signatures mean "same shape at the same structural path".  Signatures are
hashable, so a ``dict[NodeSignature, list[TreeNode]]`` gives O(1) candidate
lookup in the hash matching phase.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from semantic_tree_diff.tree.nodes import TreeNode

__all__ = ["TEXT_MARKER", "NodeSignature"]

TEXT_MARKER = "#text"


@dataclass(frozen=True, slots=True)
class NodeSignature:
    """Immutable path signature of a node.

    Attributes:
        value: The signature string, e.g. ``"/root/p/#text"``.
    """

    value: str

    @classmethod
    def compute(cls, node: TreeNode) -> NodeSignature:
        """Compute the signature from scratch, ignoring any cached value."""
        components = [_component(ancestor) for ancestor in reversed(node.ancestors)]
        components.append(_component(node))
        return cls("/" + "/".join(components))

    @classmethod
    def for_node(cls, node: TreeNode) -> NodeSignature:
        """Return the memoized signature of ``node``, computing it on first use."""
        cached = node._signature
        if cached is None:
            cached = cls.compute(node)
            node._signature = cached
        return cached

    @property
    def components(self) -> tuple[str, ...]:
        return tuple(self.value.split("/")[1:])

    def __str__(self) -> str:
        return self.value


def _component(node: TreeNode) -> str:
    return TEXT_MARKER if node.is_text else node.label

"""NodeWeight: additive / logarithmic subtree mass.

Formula::

    text leaf:      1 + ln(len(text) + 1)     (1.0 for empty text)
    other leaf:     1.0
    branch:         1 + sum(weight(child) for child in children)

Long text grows weight sub-linearly so a single large paragraph does not
dominate a document.  Weights bias and order matching decisions; they are
never a correctness signal.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING

from semantic_tree_diff.tree.text import text_of

if TYPE_CHECKING:
    from semantic_tree_diff.tree.nodes import TreeNode

__all__ = ["NodeWeight"]


@dataclass(frozen=True, slots=True, order=True)
class NodeWeight:
    """Immutable, totally ordered weight of a subtree.

    Attributes:
        value: Weight as a float (>= 1.0).
    """

    value: float

    @classmethod
    def compute(cls, node: TreeNode) -> NodeWeight:
        """Compute the weight of ``node`` ignoring its cached value.

        Children's weights are taken from their own memoized values.
        """
        if node.is_text:
            text = text_of(node.value)
            if not text:
                return cls(1.0)
            return cls(1.0 + math.log(len(text) + 1))
        if not node.children:
            return cls(1.0)
        return cls(1.0 + sum(cls.for_node(child).value for child in node.children))

    @classmethod
    def for_node(cls, node: TreeNode) -> NodeWeight:
        """Return the memoized weight of ``node``, computing it on first use.

        Missing weights in the subtree are filled bottom-up without recursion.
        """
        cached = node._weight
        if cached is not None:
            return cached
        for current in reversed(list(node.iter_subtree())):
            if current._weight is None:
                current._weight = cls.compute(current)
        return node._weight  # type: ignore[return-value]

    def __float__(self) -> float:
        return self.value

    def __str__(self) -> str:
        return str(self.value)

"""Tree subpackage: the neutral node model and its derived fingerprints.

Re-exports the public API for the tree module:
- TreeNode: neutral node with parent back-reference and memoized fingerprints
- NodeSignature: root-to-node label path used for exact hash matching
- NodeWeight: additive / logarithmic subtree mass
- AttributeComparator / AttributeOrder: order-aware attribute comparison
"""

from semantic_tree_diff.tree.attributes import AttributeComparator, AttributeOrder
from semantic_tree_diff.tree.nodes import TreeNode
from semantic_tree_diff.tree.signature import TEXT_MARKER, NodeSignature
from semantic_tree_diff.tree.weight import NodeWeight

__all__ = [
    "TEXT_MARKER",
    "AttributeComparator",
    "AttributeOrder",
    "NodeSignature",
    "NodeWeight",
    "TreeNode",
]

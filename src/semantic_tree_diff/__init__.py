"""Semantic tree diff - matching and edit-operation detection for document trees."""

from __future__ import annotations

from semantic_tree_diff.algorithm.config import AttributeOrder, DetectorConfig, MatcherConfig
from semantic_tree_diff.algorithm.matching import Matching
from semantic_tree_diff.algorithm.universal import MatchStatistics, UniversalMatcher
from semantic_tree_diff.api import check_tree_size, diff, match
from semantic_tree_diff.differ import TreeDiffer
from semantic_tree_diff.errors import SizeLimitExceededError, TreeDiffError
from semantic_tree_diff.operations import FieldChange, Operation, OperationDetector, OperationType
from semantic_tree_diff.result import DiffResult
from semantic_tree_diff.tree import NodeSignature, NodeWeight, TreeNode

__version__: str = "0.1.0"
__all__: list[str] = [
    "AttributeOrder",
    "DetectorConfig",
    "DiffResult",
    "FieldChange",
    "MatchStatistics",
    "MatcherConfig",
    "Matching",
    "NodeSignature",
    "NodeWeight",
    "Operation",
    "OperationDetector",
    "OperationType",
    "SizeLimitExceededError",
    "TreeDiffError",
    "TreeDiffer",
    "TreeNode",
    "UniversalMatcher",
    "check_tree_size",
    "diff",
    "match",
]

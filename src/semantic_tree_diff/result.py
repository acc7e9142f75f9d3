"""DiffResult dataclass for tree diff output.

This module provides the result type returned by ``diff()`` calls.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from semantic_tree_diff.algorithm.matching import Matching
    from semantic_tree_diff.algorithm.universal import MatchStatistics
    from semantic_tree_diff.operations.operation import Operation, OperationType

__all__ = ["DiffResult"]


@dataclass(frozen=True, slots=True)
class DiffResult:
    """Result of a ``diff()`` call.

    Attributes:
        operations: Detected operations in output order.
        matching: The node correspondence the operations were derived from.
        statistics: Per-phase match counts of the matching run.
        computation_time_ms: Wall-clock duration of match + detect in milliseconds.
    """

    operations: list[Operation]
    matching: Matching
    statistics: MatchStatistics
    computation_time_ms: float

    @property
    def is_identical(self) -> bool:
        """True when no operation was detected."""
        return not self.operations

    def operations_of(self, *types: OperationType | str) -> list[Operation]:
        """Operations of the given types, in output order."""
        return [op for op in self.operations if op.is_type(*types)]

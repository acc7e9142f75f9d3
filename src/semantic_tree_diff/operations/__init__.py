"""Operations subpackage: edit records and their detection from a matching."""

from semantic_tree_diff.operations.detector import OperationDetector
from semantic_tree_diff.operations.operation import FieldChange, Operation, OperationType

__all__ = ["FieldChange", "Operation", "OperationDetector", "OperationType"]

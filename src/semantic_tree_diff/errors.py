"""Exception hierarchy for semantic-tree-diff.

Normal matching outcomes are never exceptions: a rejected pairing is a
``False`` return from ``Matching.add``.  Exceptions are reserved for caller
errors such as invalid configuration (``ValueError``) and the caller-side
size guard below.
"""

from __future__ import annotations

__all__ = ["SizeLimitExceededError", "TreeDiffError"]


class TreeDiffError(Exception):
    """
    Base class for semantic-tree-diff exceptions.
    """


class SizeLimitExceededError(TreeDiffError):
    """
    Raised when the combined node count of two trees exceeds the configured
    limit.  Carries the observed ``count`` and the ``limit``.
    """

    def __init__(self, count: int, limit: int) -> None:
        self.count = count
        self.limit = limit
        super().__init__(f"combined tree size {count} exceeds the limit of {limit} nodes")

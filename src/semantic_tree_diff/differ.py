"""TreeDiffer: orchestrator that wires UniversalMatcher + OperationDetector.

Architecture:
- ``diff()`` starts a wall-clock timer, applies the optional size guard, runs a
  fresh ``UniversalMatcher`` and a fresh ``OperationDetector`` over the two
  trees and packs everything into a ``DiffResult``.
- Nothing is shared between calls apart from the ``TokenCache``, which only
  memoizes tokenization and never changes results.
- ``check_tree_size`` is the caller-side guard: it counts the nodes of both
  trees and raises ``SizeLimitExceededError`` before any matching work starts.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from semantic_tree_diff.algorithm.config import DetectorConfig, MatcherConfig
from semantic_tree_diff.algorithm.universal import UniversalMatcher
from semantic_tree_diff.cache import TokenCache
from semantic_tree_diff.errors import SizeLimitExceededError
from semantic_tree_diff.operations.detector import OperationDetector
from semantic_tree_diff.result import DiffResult

if TYPE_CHECKING:
    from semantic_tree_diff.tree.nodes import TreeNode

__all__ = ["TreeDiffer", "check_tree_size"]

_log = logging.getLogger(__name__)

_log_debug = _log.debug


def check_tree_size(tree1: TreeNode, tree2: TreeNode, limit: int) -> int:
    """Fail fast when two trees are too large to diff together.

    Args:
        tree1: Root of the first tree.
        tree2: Root of the second tree.
        limit: Maximum combined node count.

    Returns:
        The combined node count when it is within ``limit``.

    Raises:
        SizeLimitExceededError: if the combined node count exceeds ``limit``.
    """
    count = tree1.size() + tree2.size()
    if count > limit:
        raise SizeLimitExceededError(count, limit)
    return count


class TreeDiffer:
    """Runs the match + detect pipeline over pairs of trees.

    Example::

        differ = TreeDiffer(MatcherConfig(similarity_threshold=0.9), max_nodes=10_000)
        result = differ.diff(tree1, tree2)
        for op in result.operations:
            print(op.type, op.node.path())
    """

    def __init__(
        self,
        matcher_config: MatcherConfig | Mapping[str, Any] | None = None,
        detector_config: DetectorConfig | None = None,
        max_nodes: int | None = None,
        max_cache_size: int = 1024,
    ) -> None:
        """Initialise the differ.

        Args:
            matcher_config: Matching options, as a ``MatcherConfig`` or a plain
                mapping.  Defaults to ``MatcherConfig()`` when None.
            detector_config: Semantic recognition thresholds.  Defaults to
                ``DetectorConfig()`` when None.
            max_nodes: Combined node limit checked before every diff.  No
                limit when None.
            max_cache_size: Size of the per-instance token LRU cache.
        """
        if matcher_config is None:
            matcher_config = MatcherConfig()
        elif not isinstance(matcher_config, MatcherConfig):
            matcher_config = MatcherConfig.from_mapping(matcher_config)
        if max_nodes is not None and max_nodes < 1:
            msg = f"max_nodes must be positive, got {max_nodes}"
            raise ValueError(msg)

        self._matcher_config: MatcherConfig = matcher_config
        self._detector_config = detector_config if detector_config is not None else DetectorConfig()
        self._max_nodes = max_nodes
        self._tokens = TokenCache(max_size=max_cache_size)

    @property
    def matcher_config(self) -> MatcherConfig:
        return self._matcher_config

    @property
    def detector_config(self) -> DetectorConfig:
        return self._detector_config

    @property
    def max_nodes(self) -> int | None:
        return self._max_nodes

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def diff(self, tree1: TreeNode, tree2: TreeNode) -> DiffResult:
        """Match ``tree1`` against ``tree2`` and detect the operations between them.

        Raises:
            SizeLimitExceededError: if ``max_nodes`` is set and exceeded.
        """
        t0 = time.perf_counter()

        if self._max_nodes is not None:
            check_tree_size(tree1, tree2, self._max_nodes)

        matcher = UniversalMatcher(self._matcher_config)
        matching = matcher.match(tree1, tree2)
        detector = OperationDetector(
            tree1, tree2, matching, config=self._detector_config, token_cache=self._tokens
        )
        operations = detector.detect()

        elapsed_ms = (time.perf_counter() - t0) * 1000.0
        _log_debug("Diff finished in %.2f ms with %d operations", elapsed_ms, len(operations))

        return DiffResult(
            operations=operations,
            matching=matching,
            statistics=matcher.statistics,
            computation_time_ms=elapsed_ms,
        )

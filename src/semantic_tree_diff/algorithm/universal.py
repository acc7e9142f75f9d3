"""UniversalMatcher: runs the enabled matching phases and reports statistics.

Phases run in a fixed order over one shared ``Matching``:

1. ``HashMatcher``           (``hash_matching``)
2. ``SimilarityMatcher``     (``similarity_matching``)
3. ``StructuralPropagator``  (``propagation``)

Each phase only sees the nodes the earlier phases left unmatched.  The pair
count added by each phase is recorded in ``MatchStatistics``.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from semantic_tree_diff.algorithm.config import MatcherConfig
from semantic_tree_diff.algorithm.hash_matcher import HashMatcher
from semantic_tree_diff.algorithm.matching import Matching
from semantic_tree_diff.algorithm.propagator import StructuralPropagator
from semantic_tree_diff.algorithm.similarity_matcher import SimilarityMatcher

if TYPE_CHECKING:
    from semantic_tree_diff.tree.nodes import TreeNode

__all__ = ["MatchStatistics", "UniversalMatcher"]

_log = logging.getLogger(__name__)

_log_debug = _log.debug

PHASE_HASH = "hash"
PHASE_SIMILARITY = "similarity"
PHASE_PROPAGATION = "propagation"


@dataclass(frozen=True, slots=True)
class MatchStatistics:
    """Counts describing one ``UniversalMatcher.match`` run.

    Attributes:
        tree1_nodes: Number of nodes in tree1.
        tree2_nodes: Number of nodes in tree2.
        hash_matches: Pairs added by the hash phase.
        similarity_matches: Pairs added by the similarity phase.
        propagation_matches: Pairs added by the propagation phase.
        phases_executed: Names of the phases that ran, in order.
    """

    tree1_nodes: int = 0
    tree2_nodes: int = 0
    hash_matches: int = 0
    similarity_matches: int = 0
    propagation_matches: int = 0
    phases_executed: tuple[str, ...] = ()

    @property
    def total_matches(self) -> int:
        return self.hash_matches + self.similarity_matches + self.propagation_matches

    @property
    def match_ratio_tree1(self) -> float:
        """Matched fraction of tree1 nodes; 0.0 before any match."""
        if self.tree1_nodes == 0:
            return 0.0
        return self.total_matches / self.tree1_nodes

    @property
    def match_ratio_tree2(self) -> float:
        """Matched fraction of tree2 nodes; 0.0 before any match."""
        if self.tree2_nodes == 0:
            return 0.0
        return self.total_matches / self.tree2_nodes

    def to_dict(self) -> dict[str, Any]:
        return {
            "tree1_nodes": self.tree1_nodes,
            "tree2_nodes": self.tree2_nodes,
            "hash_matches": self.hash_matches,
            "similarity_matches": self.similarity_matches,
            "propagation_matches": self.propagation_matches,
            "total_matches": self.total_matches,
            "match_ratio_tree1": self.match_ratio_tree1,
            "match_ratio_tree2": self.match_ratio_tree2,
            "phases_executed": list(self.phases_executed),
        }


class UniversalMatcher:
    """Orchestrates the three matching phases.

    Example::

        matcher = UniversalMatcher(MatcherConfig(similarity_threshold=0.9))
        matching = matcher.match(tree1, tree2)
        matcher.statistics.match_ratio_tree1   # e.g. 1.0
    """

    def __init__(self, config: MatcherConfig | Mapping[str, Any] | None = None) -> None:
        """Initialise the matcher.

        Args:
            config: A ``MatcherConfig``, a plain option mapping accepted by
                ``MatcherConfig.from_mapping``, or None for the defaults.
        """
        if config is None:
            config = MatcherConfig()
        elif not isinstance(config, MatcherConfig):
            config = MatcherConfig.from_mapping(config)
        self._config: MatcherConfig = config
        self._statistics = MatchStatistics()

    @property
    def config(self) -> MatcherConfig:
        return self._config

    @property
    def statistics(self) -> MatchStatistics:
        """Statistics of the most recent ``match`` call."""
        return self._statistics

    def match(self, tree1: TreeNode, tree2: TreeNode) -> Matching:
        """Match ``tree1`` against ``tree2`` with every enabled phase."""
        config = self._config
        matching = Matching()
        counts = {PHASE_HASH: 0, PHASE_SIMILARITY: 0, PHASE_PROPAGATION: 0}
        phases: list[str] = []

        if config.hash_matching:
            before = len(matching)
            HashMatcher(tree1, tree2, matching, attribute_order=config.attribute_order).match()
            counts[PHASE_HASH] = len(matching) - before
            phases.append(PHASE_HASH)

        if config.similarity_matching:
            before = len(matching)
            SimilarityMatcher(
                tree1,
                tree2,
                matching,
                threshold=config.similarity_threshold,
                attribute_order=config.attribute_order,
            ).match()
            counts[PHASE_SIMILARITY] = len(matching) - before
            phases.append(PHASE_SIMILARITY)

        if config.propagation:
            before = len(matching)
            StructuralPropagator(tree1, tree2, matching).propagate()
            counts[PHASE_PROPAGATION] = len(matching) - before
            phases.append(PHASE_PROPAGATION)

        self._statistics = MatchStatistics(
            tree1_nodes=tree1.size(),
            tree2_nodes=tree2.size(),
            hash_matches=counts[PHASE_HASH],
            similarity_matches=counts[PHASE_SIMILARITY],
            propagation_matches=counts[PHASE_PROPAGATION],
            phases_executed=tuple(phases),
        )
        _log_debug(
            "Matched %d/%d tree1 nodes against %d tree2 nodes (phases: %s)",
            self._statistics.total_matches,
            self._statistics.tree1_nodes,
            self._statistics.tree2_nodes,
            ", ".join(phases) or "none",
        )
        return matching

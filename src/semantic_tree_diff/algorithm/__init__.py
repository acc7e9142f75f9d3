"""Matching algorithm: phases, orchestration and configuration."""

from semantic_tree_diff.algorithm.assignment import optimal_assignment
from semantic_tree_diff.algorithm.config import AttributeOrder, DetectorConfig, MatcherConfig
from semantic_tree_diff.algorithm.hash_matcher import HashMatcher
from semantic_tree_diff.algorithm.matching import Matching
from semantic_tree_diff.algorithm.propagator import StructuralPropagator
from semantic_tree_diff.algorithm.similarity_matcher import SimilarityMatcher
from semantic_tree_diff.algorithm.universal import MatchStatistics, UniversalMatcher

__all__ = [
    "AttributeOrder",
    "DetectorConfig",
    "HashMatcher",
    "MatchStatistics",
    "MatcherConfig",
    "Matching",
    "SimilarityMatcher",
    "StructuralPropagator",
    "UniversalMatcher",
    "optimal_assignment",
]

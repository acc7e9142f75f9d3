"""MatcherConfig and DetectorConfig: validated, immutable algorithm settings.

Both are frozen dataclasses validated in ``__post_init__``; invalid values
raise ``ValueError`` at construction time so a bad setting never reaches the
matchers.  ``MatcherConfig.from_mapping`` accepts the plain mapping form used
by callers that load options from elsewhere::

    MatcherConfig.from_mapping({"similarity_threshold": 0.9, "attribute_order": "strict"})
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, fields
from typing import Any

from semantic_tree_diff.tree.attributes import AttributeOrder

__all__ = ["AttributeOrder", "DetectorConfig", "MatcherConfig"]


@dataclass(frozen=True, slots=True)
class MatcherConfig:
    """Immutable configuration for ``UniversalMatcher``.

    Attributes:
        similarity_threshold: Minimum ``similarity_to`` score, in (0, 1], for a
            phase-2 pair to be accepted.
        hash_matching: Run phase 1 (exact signature + subtree matching).
        similarity_matching: Run phase 2 (threshold-based fuzzy matching).
        propagation: Run phase 3 (structural propagation).
        attribute_order: Whether attribute order counts when comparing nodes.
    """

    similarity_threshold: float = 0.95
    hash_matching: bool = True
    similarity_matching: bool = True
    propagation: bool = True
    attribute_order: AttributeOrder = AttributeOrder.IGNORE

    def __post_init__(self) -> None:
        if not 0.0 < self.similarity_threshold <= 1.0:
            msg = f"similarity_threshold must be in (0, 1], got {self.similarity_threshold}"
            raise ValueError(msg)
        if not isinstance(self.attribute_order, AttributeOrder):
            msg = f"attribute_order must be an AttributeOrder, got {self.attribute_order!r}"
            raise ValueError(msg)

    @classmethod
    def from_mapping(cls, options: Mapping[str, Any]) -> MatcherConfig:
        """Build a config from a plain mapping.

        Unknown keys raise ``ValueError``; ``attribute_order`` may be given as
        its string value ("strict" / "ignore").
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(options) - known)
        if unknown:
            msg = f"unknown matcher option(s): {', '.join(unknown)}"
            raise ValueError(msg)

        values = dict(options)
        if "attribute_order" in values:
            values["attribute_order"] = AttributeOrder(values["attribute_order"])
        return cls(**values)


@dataclass(frozen=True, slots=True)
class DetectorConfig:
    """Immutable thresholds for semantic operation recognition.

    Attributes:
        merge_threshold: Minimum token overlap between the joined source text
            and the target text for a MERGE.
        split_threshold: Minimum token overlap between the source text and
            the joined target text for a SPLIT.
        hierarchy_threshold: Minimum token overlap for an UPGRADE/DOWNGRADE
            pairing of two same-label nodes at different depths.
    """

    merge_threshold: float = 0.8
    split_threshold: float = 0.8
    hierarchy_threshold: float = 0.9

    def __post_init__(self) -> None:
        for name in ("merge_threshold", "split_threshold", "hierarchy_threshold"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                msg = f"{name} must be in [0, 1], got {value}"
                raise ValueError(msg)

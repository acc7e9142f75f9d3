"""Tests for MatcherConfig and DetectorConfig.

Verifies:
- Defaults
- Range validation in __post_init__ raises ValueError
- Immutability (frozen dataclasses)
- MatcherConfig.from_mapping: string enum values, unknown keys
"""

from __future__ import annotations

import dataclasses

import pytest

from semantic_tree_diff.algorithm.config import AttributeOrder, DetectorConfig, MatcherConfig


class TestMatcherConfigDefaults:
    def test_defaults(self) -> None:
        config = MatcherConfig()
        assert config.similarity_threshold == 0.95
        assert config.hash_matching is True
        assert config.similarity_matching is True
        assert config.propagation is True
        assert config.attribute_order is AttributeOrder.IGNORE

    def test_is_frozen(self) -> None:
        config = MatcherConfig()
        with pytest.raises(dataclasses.FrozenInstanceError):
            config.similarity_threshold = 0.5  # type: ignore[misc]


class TestMatcherConfigValidation:
    @pytest.mark.parametrize("threshold", [0.0, -0.1, 1.01, 2.0])
    def test_threshold_out_of_range(self, threshold: float) -> None:
        with pytest.raises(ValueError, match="similarity_threshold"):
            MatcherConfig(similarity_threshold=threshold)

    @pytest.mark.parametrize("threshold", [0.01, 0.5, 1.0])
    def test_threshold_in_range(self, threshold: float) -> None:
        assert MatcherConfig(similarity_threshold=threshold).similarity_threshold == threshold

    def test_attribute_order_must_be_enum(self) -> None:
        with pytest.raises(ValueError, match="attribute_order"):
            MatcherConfig(attribute_order="strict")  # type: ignore[arg-type]


class TestFromMapping:
    def test_empty_mapping_gives_defaults(self) -> None:
        assert MatcherConfig.from_mapping({}) == MatcherConfig()

    def test_string_attribute_order_is_coerced(self) -> None:
        config = MatcherConfig.from_mapping({"attribute_order": "strict", "propagation": False})
        assert config.attribute_order is AttributeOrder.STRICT
        assert config.propagation is False

    def test_unknown_keys_are_rejected(self) -> None:
        with pytest.raises(ValueError, match="bogus, other"):
            MatcherConfig.from_mapping({"other": 1, "bogus": 2})

    def test_invalid_attribute_order_string(self) -> None:
        with pytest.raises(ValueError):
            MatcherConfig.from_mapping({"attribute_order": "sometimes"})

    def test_values_are_still_validated(self) -> None:
        with pytest.raises(ValueError, match="similarity_threshold"):
            MatcherConfig.from_mapping({"similarity_threshold": 0})


class TestDetectorConfig:
    def test_defaults(self) -> None:
        config = DetectorConfig()
        assert config.merge_threshold == 0.8
        assert config.split_threshold == 0.8
        assert config.hierarchy_threshold == 0.9

    @pytest.mark.parametrize("name", ["merge_threshold", "split_threshold", "hierarchy_threshold"])
    def test_out_of_range(self, name: str) -> None:
        with pytest.raises(ValueError, match=name):
            DetectorConfig(**{name: 1.5})

    def test_bounds_are_inclusive(self) -> None:
        config = DetectorConfig(merge_threshold=0.0, split_threshold=1.0)
        assert config.merge_threshold == 0.0
        assert config.split_threshold == 1.0

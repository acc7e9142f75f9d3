"""AttributeComparator: attribute equality and agreement with configurable order sensitivity.

Adapters hand the core attributes as an ordered ``dict[str, str]``.  Whether the
order of those attributes is meaningful is a caller decision expressed through
``AttributeOrder``:

- STRICT: ``{"a": "1", "b": "2"}`` and ``{"b": "2", "a": "1"}`` differ.
- IGNORE: the two mappings above are equal.

Example::

    comparator = AttributeComparator(AttributeOrder.IGNORE)
    comparator.equal({"class": "TOC", "id": "_"}, {"id": "_", "class": "TOC"})  # True
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import StrEnum, auto

__all__ = ["AttributeComparator", "AttributeOrder", "order_differs"]

# Agreement multiplier applied in STRICT mode when shared keys are reordered.
_REORDER_PENALTY = 0.5


class AttributeOrder(StrEnum):
    """Whether attribute order takes part in comparisons.

    - STRICT -> "strict": order is significant.
    - IGNORE -> "ignore": attributes compare as unordered mappings.
    """

    STRICT = auto()
    IGNORE = auto()


class AttributeComparator:
    """Compares attribute mappings under an ``AttributeOrder`` mode."""

    def __init__(self, attribute_order: AttributeOrder = AttributeOrder.IGNORE) -> None:
        self._attribute_order = AttributeOrder(attribute_order)

    @property
    def attribute_order(self) -> AttributeOrder:
        return self._attribute_order

    def equal(self, attrs_a: Mapping[str, str], attrs_b: Mapping[str, str]) -> bool:
        """Return True if the two mappings are equal under the configured mode."""
        if self._attribute_order == AttributeOrder.STRICT:
            return list(attrs_a.items()) == list(attrs_b.items())
        return dict(attrs_a) == dict(attrs_b)

    def comparison_key(self, attrs: Mapping[str, str]) -> tuple[tuple[str, str], ...]:
        """Hashable key such that equal keys imply ``equal()`` attributes."""
        if self._attribute_order == AttributeOrder.STRICT:
            return tuple(attrs.items())
        return tuple(sorted(attrs.items()))

    def agreement(self, attrs_a: Mapping[str, str], attrs_b: Mapping[str, str]) -> float:
        """Score how much two attribute mappings agree, in [0.0, 1.0].

        The base score is the Jaccard index over ``(name, value)`` items.  In
        STRICT mode the score is halved when the shared names appear in a
        different relative order.
        """
        if not attrs_a and not attrs_b:
            return 1.0

        items_a = set(attrs_a.items())
        items_b = set(attrs_b.items())
        score = len(items_a & items_b) / len(items_a | items_b)

        if self._attribute_order == AttributeOrder.STRICT and order_differs(
            attrs_a, attrs_b
        ):
            score *= _REORDER_PENALTY
        return score


def order_differs(attrs_a: Mapping[str, str], attrs_b: Mapping[str, str]) -> bool:
    """True when the names shared by both mappings appear in a different order."""
    shared = attrs_a.keys() & attrs_b.keys()
    order_a = [name for name in attrs_a if name in shared]
    order_b = [name for name in attrs_b if name in shared]
    return order_a != order_b

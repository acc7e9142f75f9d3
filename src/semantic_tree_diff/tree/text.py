"""Token-overlap helpers shared by node scoring and operation detection.

Text is compared as a set of lowercase whitespace-separated tokens.  The
overlap score is the Jaccard index of the two token sets::

    overlap(a, b) = |tokens(a) & tokens(b)| / |tokens(a) | tokens(b)|

Two texts without any tokens score 0.0: there is no evidence that they are
related, and callers decide separately how to treat a pair of empty texts.
"""

from __future__ import annotations

import math
from typing import Any

__all__ = [
    "is_nan",
    "jaccard",
    "same_value",
    "text_of",
    "token_overlap",
    "tokenize",
    "values_equal",
]


def tokenize(text: str) -> frozenset[str]:
    """Split ``text`` into its set of lowercase whitespace-separated tokens."""
    return frozenset(text.lower().split())


def jaccard(tokens_a: frozenset[str], tokens_b: frozenset[str]) -> float:
    """Jaccard index of two token sets; 0.0 when either set is empty."""
    if not tokens_a or not tokens_b:
        return 0.0
    return len(tokens_a & tokens_b) / len(tokens_a | tokens_b)


def token_overlap(text_a: str, text_b: str) -> float:
    """Normalized token overlap of two strings in [0.0, 1.0]."""
    return jaccard(tokenize(text_a), tokenize(text_b))


def text_of(value: Any) -> str:
    """Render a node value as text; ``None`` becomes the empty string."""
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def same_value(value_a: Any, value_b: Any) -> bool:
    """Strict payload equality.

    Booleans only equal booleans (``True`` is not ``1``) and NaN equals NaN,
    so a value compares equal to its own copy.

    Raises:
        TypeError, ValueError: when ``==`` has no unambiguous truth value.
    """
    if isinstance(value_a, bool) or isinstance(value_b, bool):
        if type(value_a) is not type(value_b):
            return False
    if is_nan(value_a) and is_nan(value_b):
        return True
    return bool(value_a == value_b)


def values_equal(value_a: Any, value_b: Any) -> bool:
    """Payload equality that tolerates values whose ``==`` is not a plain bool.

    Same rules as ``same_value``, but falls back to identity when the
    comparison raises or returns something without an unambiguous truth value
    (e.g. an array).
    """
    try:
        return same_value(value_a, value_b)
    except (TypeError, ValueError):
        return value_a is value_b


def is_nan(value: Any) -> bool:
    return isinstance(value, float) and math.isnan(value)

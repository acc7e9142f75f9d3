"""TokenCache: LRU-backed memo of token sets used for text similarity.

Operation detection compares the same subtree texts many times while looking
for merge, split and hierarchy patterns.  ``TokenCache`` tokenizes each
distinct text once and keeps the result in an ``LRUCache``.  Eviction is
silent when ``max_size`` is exceeded.

Each ``TokenCache`` instance owns its ``LRUCache``; there is no class-level
shared state.

Example::

    cache = TokenCache(max_size=256)
    cache.similarity("First Second", "first second third")   # 0.666...
    cache.curr_size                                           # 2
"""

from __future__ import annotations

from cachetools import LRUCache

from semantic_tree_diff.tree.text import jaccard, tokenize

__all__ = ["TokenCache"]


class TokenCache:
    """LRU cache of ``text -> frozenset`` of lowercase tokens.

    Args:
        max_size: Maximum number of distinct texts to keep.  Defaults to 1024.
    """

    def __init__(self, max_size: int = 1024) -> None:
        self._cache: LRUCache[str, frozenset[str]] = LRUCache(maxsize=max_size)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def max_size(self) -> int:
        """The maximum number of entries this cache can hold."""
        return int(self._cache.maxsize)

    @property
    def curr_size(self) -> int:
        """The current number of entries stored in the cache."""
        return int(self._cache.currsize)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def tokens(self, text: str) -> frozenset[str]:
        """Token set of ``text``, tokenized at most once while cached."""
        cached = self._cache.get(text)
        if cached is None:
            cached = tokenize(text)
            self._cache[text] = cached
        return cached

    def similarity(self, text_a: str, text_b: str) -> float:
        """Jaccard index of the token sets of two texts, in [0.0, 1.0]."""
        return jaccard(self.tokens(text_a), self.tokens(text_b))

    def clear(self) -> None:
        self._cache.clear()

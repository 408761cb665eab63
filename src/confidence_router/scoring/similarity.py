"""Answer similarity measures used for tie and conflict detection."""

from __future__ import annotations

from collections.abc import Callable

SimilarityFn = Callable[[str, str], float]


def word_overlap_similarity(a: str, b: str) -> float:
    """Jaccard similarity over the lowercased word sets of two answers."""
    words_a = set(a.lower().split())
    words_b = set(b.lower().split())
    union = words_a | words_b
    if not union:
        return 1.0
    return len(words_a & words_b) / len(union)

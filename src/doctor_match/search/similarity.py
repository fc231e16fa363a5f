"""Set-overlap similarity metrics over gram sets.

All metrics return a value in [0, 1] and share the same edge cases: two
empty sets are identical (1.0) and an empty set never resembles a non-empty
one (0.0).
"""

from __future__ import annotations

from collections.abc import Set
import math

from doctor_match.search.ngrams import DEFAULT_NGRAM_SIZE, gram_set


def _empty_case(set1: Set[str], set2: Set[str]) -> float | None:
    if not set1 and not set2:
        return 1.0
    if not set1 or not set2:
        return 0.0
    return None


def jaccard_similarity(set1: Set[str], set2: Set[str]) -> float:
    """|A ∩ B| / |A ∪ B|."""
    edge = _empty_case(set1, set2)
    if edge is not None:
        return edge
    intersection = len(set1 & set2)
    return intersection / len(set1 | set2)


def dice_similarity(set1: Set[str], set2: Set[str]) -> float:
    """2|A ∩ B| / (|A| + |B|)."""
    edge = _empty_case(set1, set2)
    if edge is not None:
        return edge
    intersection = len(set1 & set2)
    return (2 * intersection) / (len(set1) + len(set2))


def overlap_cosine_similarity(set1: Set[str], set2: Set[str]) -> float:
    """|A ∩ B| / sqrt(|A| * |B|), the cosine of two binary vectors."""
    edge = _empty_case(set1, set2)
    if edge is not None:
        return edge
    intersection = len(set1 & set2)
    return intersection / math.sqrt(len(set1) * len(set2))


def text_dice_similarity(text1: str | None, text2: str | None, n: int = DEFAULT_NGRAM_SIZE) -> float:
    """Dice similarity of the n-gram sets of two free-text strings."""
    return dice_similarity(gram_set(text1, n), gram_set(text2, n))

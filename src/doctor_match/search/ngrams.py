"""Character n-gram generation for typo-tolerant matching.

Text is lower-cased and stripped of punctuation, then cut into overlapping
fixed-width shingles. No stemming or tokenization happens here; spaces are
kept so grams can span word boundaries ("e d" in "jane doe").

Smart Defaults:
- Trigrams when no size is given
- Search indexes bigrams, trigrams and 4-grams together
"""

from __future__ import annotations

import re


DEFAULT_NGRAM_SIZE = 3
DEFAULT_GRAM_SIZES: tuple[int, ...] = (2, 3, 4)

_NON_WORD_RE = re.compile(r"[^\w\s]")


def normalize_text(text: str | None) -> str:
    """Lower-case ``text`` and drop every character that is not a word character or whitespace.

    Examples:
        >>> normalize_text("Dr. Jane-Doe, MBBS")
        'dr janedoe mbbs'
    """
    if not text:
        return ""
    return _NON_WORD_RE.sub("", text.lower())


def generate_ngrams(text: str | None, n: int = DEFAULT_NGRAM_SIZE) -> list[str]:
    """Slide a window of width ``n`` over the normalized text.

    Duplicates are kept and order is preserved, so the result always has
    ``max(0, len(normalize_text(text)) - n + 1)`` entries.

    Examples:
        >>> generate_ngrams("Acne", 3)
        ['acn', 'cne']
        >>> generate_ngrams("ab", 3)
        []
    """
    if n < 1:
        raise ValueError(f"n-gram size must be positive, got {n}")

    normalized = normalize_text(text)
    if len(normalized) < n:
        return []
    return [normalized[i : i + n] for i in range(len(normalized) - n + 1)]


def gram_set(text: str | None, n: int = DEFAULT_NGRAM_SIZE) -> frozenset[str]:
    """Distinct n-grams of ``text``."""
    return frozenset(generate_ngrams(text, n))


def generate_gram_lists(text: str | None, sizes: tuple[int, ...] = DEFAULT_GRAM_SIZES) -> dict[int, list[str]]:
    """Gram lists for several sizes at once, keyed by size."""
    return {n: generate_ngrams(text, n) for n in sizes}

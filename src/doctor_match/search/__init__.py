"""
N-gram search package.

This package provides the in-memory fuzzy search stack:
- ngrams: Text normalization and character n-gram generation
- similarity: Jaccard, Dice and overlap-cosine set metrics
- doctor_index: Snapshot-swapped inverted index over the doctor roster
- scoring: Multi-size relevance scoring, filters and match reasons
- stats: Diagnostic statistics over the index
"""

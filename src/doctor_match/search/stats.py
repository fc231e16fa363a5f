"""Diagnostic statistics over the doctor n-gram index.

The helpers read the current index snapshot only; they never trigger a
build, so an empty index reports zeros.
"""

from __future__ import annotations

from collections import Counter

from doctor_match.domain.search import GramFrequency, NgramStatistics
from doctor_match.search.doctor_index import DoctorIndex


TOP_GRAM_COUNT = 10


def compute_ngram_statistics(index: DoctorIndex, *, top: int = TOP_GRAM_COUNT) -> NgramStatistics:
    """Summarize how grams are spread across indexed doctors.

    ``ngram_distribution`` maps "number of doctors referencing a gram" to
    "number of grams with that reach". ``most_common_ngrams`` lists the
    ``top`` grams referenced by the most doctors; ties keep index order.
    """
    distribution: Counter[int] = Counter()
    frequencies: list[GramFrequency] = []

    for gram, doctor_ids in index.iter_postings():
        reach = len(doctor_ids)
        distribution[reach] += 1
        frequencies.append(GramFrequency(gram=gram, frequency=reach))

    # sorted() is stable, so equal frequencies keep insertion order
    most_common = sorted(frequencies, key=lambda item: item.frequency, reverse=True)[:top]

    return NgramStatistics(
        total_doctors=len(index),
        total_ngrams=len(frequencies),
        ngram_distribution=dict(sorted(distribution.items())),
        most_common_ngrams=most_common,
    )

"""Relevance scoring for free-text doctor search.

Each gram size is compared with its own metric so that short grams reward
fuzzy overlap and long grams reward exact runs of characters:

    n=2  Jaccard          weight 0.40
    n=3  Dice             weight 0.35
    n=4  overlap cosine   weight 0.25

On top of the gram similarity, a field bonus (weight 0.20) rewards direct
substring hits on the name, speciality and experience fields plus a small
availability bonus. Totals are clipped to [0, 1].
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence, Set
from dataclasses import dataclass
import re

from doctor_match.domain.model import Doctor
from doctor_match.domain.search import SearchFilters
from doctor_match.search.doctor_index import DoctorIndexEntry
from doctor_match.search.similarity import dice_similarity, jaccard_similarity, overlap_cosine_similarity


SimilarityMetric = Callable[[Set[str], Set[str]], float]

# gram size -> (metric, weight)
GRAM_METRICS: dict[int, tuple[SimilarityMetric, float]] = {
    2: (jaccard_similarity, 0.40),
    3: (dice_similarity, 0.35),
    4: (overlap_cosine_similarity, 0.25),
}

FIELD_BONUS_WEIGHT = 0.2
NAME_HIT_BONUS = 0.8
SPECIALITY_HIT_BONUS = 0.6
EXPERIENCE_HIT_BONUS = 0.4
AVAILABILITY_BONUS = 0.1

MANY_GRAM_MATCHES = 5

_EXPERIENCE_RE = re.compile(r"(\d+)\s*years?", re.IGNORECASE)


def parse_experience_years(experience: str | None) -> int | None:
    """Extract the year count from free text such as "12 Years"; None when absent.

    Examples:
        >>> parse_experience_years("4 Years")
        4
        >>> parse_experience_years("Senior consultant") is None
        True
    """
    if not experience:
        return None
    match = _EXPERIENCE_RE.search(experience)
    if not match:
        return None
    return int(match.group(1))


@dataclass(frozen=True)
class ScoredCandidate:
    """Intermediate search hit before filtering and ranking."""

    entry: DoctorIndexEntry
    score: float
    ngram_matches: int

    @property
    def doctor(self) -> Doctor:
        return self.entry.doctor


def field_bonus(doctor: Doctor, normalized_query: str) -> float:
    """Bonus for direct substring hits on the primary profile fields, clipped to 1."""
    score = 0.0
    name = doctor.name.lower()
    speciality = doctor.speciality.lower()

    if normalized_query:
        if normalized_query in name or (name and name in normalized_query):
            score += NAME_HIT_BONUS
        if normalized_query in speciality or (speciality and speciality in normalized_query):
            score += SPECIALITY_HIT_BONUS
        if normalized_query in doctor.experience.lower():
            score += EXPERIENCE_HIT_BONUS

    if doctor.available:
        score += AVAILABILITY_BONUS

    return min(score, 1.0)


def score_candidate(
    entry: DoctorIndexEntry,
    query_grams: Mapping[int, Sequence[str]],
    normalized_query: str,
) -> ScoredCandidate:
    """Weighted multi-size gram similarity plus the field bonus."""
    total = 0.0
    ngram_matches = 0

    for n, grams in query_grams.items():
        if not grams or n not in GRAM_METRICS:
            continue
        metric, weight = GRAM_METRICS[n]
        query_set = set(grams)
        doctor_set = entry.grams(n)
        total += metric(query_set, doctor_set) * weight
        ngram_matches += len(query_set)

    total += field_bonus(entry.doctor, normalized_query) * FIELD_BONUS_WEIGHT
    return ScoredCandidate(entry=entry, score=min(max(total, 0.0), 1.0), ngram_matches=ngram_matches)


def passes_filters(doctor: Doctor, filters: SearchFilters) -> bool:
    """Check a doctor against every active filter."""
    if filters.speciality and filters.speciality.lower() not in doctor.speciality.lower():
        return False

    if filters.min_fees is not None and doctor.fees < filters.min_fees:
        return False

    if filters.max_fees is not None and doctor.fees > filters.max_fees:
        return False

    if filters.min_experience:
        years = parse_experience_years(doctor.experience)
        if years is None or years < filters.min_experience:
            return False

    if filters.available is not None and doctor.available != filters.available:
        return False

    return True


def search_match_reasons(candidate: ScoredCandidate, query: str) -> list[str]:
    """Human-readable explanations for why a doctor was returned."""
    reasons: list[str] = []
    query_lower = query.lower()
    doctor = candidate.doctor

    if candidate.score > 0.8:
        reasons.append("Excellent match with your search")
    elif candidate.score > 0.6:
        reasons.append("Good match with your search")

    if query_lower and query_lower in doctor.name.lower():
        reasons.append("Name matches your search")

    if query_lower and query_lower in doctor.speciality.lower():
        reasons.append("Speciality matches your search")

    if doctor.available:
        reasons.append("Currently available for appointments")

    if candidate.ngram_matches > MANY_GRAM_MATCHES:
        reasons.append("Multiple relevant matches found")

    return reasons

"""Multi-factor scoring of doctors against a patient.

Seven independent factors are scored in [0, 1], combined with fixed
weights, boosted by the patient's urgency and clipped back to [0, 1]:

    speciality       0.30
    symptom          0.25
    preference       0.20
    experience       0.10
    availability     0.05
    location         0.03
    medical history  0.02

The weights sum to 0.95, so a doctor scoring 1.0 on every factor reaches
0.95 before the urgency multiplier.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from doctor_match.domain.model import Doctor, MedicalHistoryProfile, PreferenceProfile
from doctor_match.domain.search import ScoreBreakdown
from doctor_match.matching.symptoms import (
    are_specialities_related,
    canonical_symptoms,
    speciality_symptom_grams,
    symptom_strings,
)
from doctor_match.search.ngrams import gram_set
from doctor_match.search.scoring import parse_experience_years
from doctor_match.search.similarity import dice_similarity, text_dice_similarity


FACTOR_WEIGHTS: Mapping[str, float] = {
    "speciality_match": 0.30,
    "symptom_match": 0.25,
    "preference_match": 0.20,
    "experience_match": 0.10,
    "availability_match": 0.05,
    "location_match": 0.03,
    "medical_history_match": 0.02,
}

URGENCY_MULTIPLIERS: Mapping[str, float] = {
    "normal": 1.0,
    "urgent": 1.2,
    "emergency": 1.5,
}

NEUTRAL_SCORE = 0.5

DEFAULT_SYMPTOM_THRESHOLD = 0.6
DEFAULT_HISTORY_THRESHOLD = 0.5

# experience years floor -> score, checked top down
_EXPERIENCE_TIERS: Sequence[tuple[int, float]] = ((10, 1.0), (5, 0.8), (3, 0.6), (1, 0.4))


def _clip(score: float) -> float:
    return min(max(score, 0.0), 1.0)


def speciality_score(doctor: Doctor, profile: PreferenceProfile, inferred_speciality: str | None) -> float:
    """Preferred speciality, inferred speciality and fuzzy speciality resemblance."""
    score = 0.0
    speciality = doctor.speciality.lower()

    if any(preferred.lower() == speciality for preferred in profile.preferred_specialities):
        score += 0.8

    if inferred_speciality:
        if inferred_speciality == speciality:
            score += 0.9
        elif are_specialities_related(inferred_speciality, speciality):
            score += 0.7

    score += text_dice_similarity(speciality, inferred_speciality or "") * 0.3
    return _clip(score)


def symptom_score(
    doctor: Doctor,
    symptoms: Mapping[str, Any] | None,
    threshold: float = DEFAULT_SYMPTOM_THRESHOLD,
) -> float:
    """Average per-symptom credit against the doctor's canonical symptom list.

    An exact (case-insensitive) hit earns 1; otherwise the trigram Dice
    score against the joined list counts when it exceeds ``threshold``.
    """
    values = symptom_strings(symptoms)
    if not values:
        return NEUTRAL_SCORE

    canonical = {phrase.lower() for phrase in canonical_symptoms(doctor.speciality)}
    canonical_grams = speciality_symptom_grams(doctor.speciality)
    points = 0.0

    for symptom in values:
        symptom_lower = symptom.lower()
        if symptom_lower in canonical:
            points += 1.0
            continue
        similarity = dice_similarity(gram_set(symptom_lower), canonical_grams)
        if similarity > threshold:
            points += similarity

    return _clip(points / len(values))


def preference_score(doctor: Doctor, profile: PreferenceProfile) -> float:
    """Fees, gender, consultation availability and minimum experience."""
    score = 0.0

    if doctor.fees <= profile.max_fees:
        score += 0.3
    else:
        score += (profile.max_fees / doctor.fees) * 0.3

    if profile.preferred_gender and doctor.gender and doctor.gender.lower() == profile.preferred_gender.lower():
        score += 0.2

    if profile.appointment_type == "consultation" and doctor.available:
        score += 0.2

    if profile.preferred_experience > 0:
        years = parse_experience_years(doctor.experience)
        if years is not None and years >= profile.preferred_experience:
            score += 0.3

    return _clip(score)


def experience_score(doctor: Doctor) -> float:
    years = parse_experience_years(doctor.experience)
    if years is None:
        return NEUTRAL_SCORE
    for floor, score in _EXPERIENCE_TIERS:
        if years >= floor:
            return score
    return 0.2


def availability_score(doctor: Doctor, profile: PreferenceProfile) -> float:
    if profile.urgency in ("urgent", "emergency"):
        return 1.0 if doctor.available else 0.0
    return 0.8 if doctor.available else 0.2


def location_score(doctor: Doctor, profile: PreferenceProfile) -> float:
    """Trigram Dice between the practice address and the preferred location."""
    if not profile.preferred_location or doctor.address is None:
        return NEUTRAL_SCORE
    return _clip(text_dice_similarity(doctor.address.as_text(), profile.preferred_location))


def medical_history_score(
    doctor: Doctor,
    history: MedicalHistoryProfile,
    threshold: float = DEFAULT_HISTORY_THRESHOLD,
) -> float:
    """Average resemblance of every history entry to the doctor's speciality.

    Entries scoring at or below ``threshold`` still count toward the
    average, they just contribute nothing.
    """
    entries = history.all_entries()
    if not entries:
        return NEUTRAL_SCORE

    speciality_grams = gram_set(doctor.speciality)
    total = 0.0
    for entry in entries:
        similarity = dice_similarity(gram_set(entry), speciality_grams)
        if similarity > threshold:
            total += similarity

    return _clip(total / len(entries))


@dataclass(frozen=True)
class ScoredMatch:
    """A doctor with its factor breakdown and final weighted score."""

    doctor: Doctor
    total: float
    breakdown: ScoreBreakdown


def score_doctor(
    doctor: Doctor,
    *,
    symptoms: Mapping[str, Any] | None,
    profile: PreferenceProfile,
    history: MedicalHistoryProfile,
    inferred_speciality: str | None,
    symptom_threshold: float = DEFAULT_SYMPTOM_THRESHOLD,
    history_threshold: float = DEFAULT_HISTORY_THRESHOLD,
) -> ScoredMatch:
    """Score every factor, weight them and apply the urgency multiplier."""
    breakdown = ScoreBreakdown(
        speciality_match=speciality_score(doctor, profile, inferred_speciality),
        symptom_match=symptom_score(doctor, symptoms, symptom_threshold),
        preference_match=preference_score(doctor, profile),
        experience_match=experience_score(doctor),
        availability_match=availability_score(doctor, profile),
        location_match=location_score(doctor, profile),
        medical_history_match=medical_history_score(doctor, history, history_threshold),
    )

    factors = breakdown.model_dump()
    weighted = _clip(sum(factors[name] * weight for name, weight in FACTOR_WEIGHTS.items()))
    boosted = weighted * URGENCY_MULTIPLIERS.get(profile.urgency, 1.0)
    return ScoredMatch(doctor=doctor, total=_clip(boosted), breakdown=breakdown)


def match_reasons(breakdown: ScoreBreakdown) -> list[str]:
    """Human-readable reasons derived from the strongest factors."""
    reasons: list[str] = []

    if breakdown.speciality_match > 0.8:
        reasons.append("Perfect speciality match for your condition")
    elif breakdown.speciality_match > 0.6:
        reasons.append("Good speciality match for your symptoms")

    if breakdown.symptom_match > 0.7:
        reasons.append("Expert in treating your specific symptoms")

    if breakdown.preference_match > 0.8:
        reasons.append("Meets all your preferences")

    if breakdown.experience_match > 0.8:
        reasons.append("Highly experienced specialist")

    if breakdown.availability_match > 0.8:
        reasons.append("Currently available for appointments")

    return reasons


def recommended_reason(breakdown: ScoreBreakdown) -> str:
    """The single headline reason, picked from the first factor that stands out."""
    if breakdown.speciality_match > 0.9:
        return "Perfect match for your medical needs"
    if breakdown.symptom_match > 0.8:
        return "Specializes in your symptoms"
    if breakdown.experience_match > 0.8:
        return "Highly experienced in your condition"
    if breakdown.preference_match > 0.8:
        return "Meets your specific requirements"
    return "Good overall match for your needs"

"""Symptom to speciality mapping.

The table below is the fixed vocabulary the matcher scores symptoms
against. Keys are lower-cased speciality identifiers as stored on doctor
profiles; inference returns one of these keys.
"""

from __future__ import annotations

from collections.abc import Mapping
import logging
from typing import Any

from doctor_match.search.ngrams import gram_set
from doctor_match.search.similarity import dice_similarity


logger = logging.getLogger(__name__)

DEFAULT_INFERENCE_THRESHOLD = 0.3

SPECIALITY_SYMPTOMS: Mapping[str, tuple[str, ...]] = {
    "dermatologist": (
        "skin rash",
        "acne",
        "eczema",
        "psoriasis",
        "mole",
        "wart",
        "hair loss",
        "itching",
        "redness",
        "swelling",
        "dermatitis",
        "fungal infection",
    ),
    "cardiologist": (
        "chest pain",
        "heart palpitations",
        "shortness of breath",
        "high blood pressure",
        "irregular heartbeat",
        "dizziness",
        "fainting",
        "swelling in legs",
    ),
    "neurologist": (
        "headache",
        "migraine",
        "seizures",
        "numbness",
        "tingling",
        "memory loss",
        "confusion",
        "balance problems",
        "tremors",
        "paralysis",
    ),
    "gastroenterologist": (
        "stomach pain",
        "nausea",
        "vomiting",
        "diarrhea",
        "constipation",
        "heartburn",
        "acid reflux",
        "bloating",
        "loss of appetite",
        "weight loss",
    ),
    "gynecologist": (
        "menstrual pain",
        "irregular periods",
        "pregnancy",
        "fertility",
        "menopause",
        "vaginal discharge",
        "pelvic pain",
        "breast pain",
    ),
    "pediatrician": (
        "fever",
        "cough",
        "cold",
        "ear infection",
        "vaccination",
        "growth problems",
        "behavioral issues",
        "developmental delays",
    ),
    "general_physician": (
        "fever",
        "cough",
        "cold",
        "flu",
        "fatigue",
        "body aches",
        "general checkup",
        "vaccination",
        "preventive care",
    ),
}

# speciality -> specialities it refers to or overlaps with; not symmetric
RELATED_SPECIALITIES: Mapping[str, tuple[str, ...]] = {
    "general_physician": ("internal_medicine", "family_medicine"),
    "cardiologist": ("internal_medicine",),
    "neurologist": ("internal_medicine",),
    "gastroenterologist": ("internal_medicine",),
    "dermatologist": ("general_physician",),
    "pediatrician": ("general_physician",),
}

# Joined trigram sets of every canonical list, computed once at import
_SPECIALITY_GRAMS: Mapping[str, frozenset[str]] = {
    speciality: gram_set(" ".join(phrases)) for speciality, phrases in SPECIALITY_SYMPTOMS.items()
}


def symptom_strings(symptoms: Mapping[str, Any] | None) -> list[str]:
    """String-valued symptoms in insertion order; other values are ignored."""
    if not symptoms:
        return []
    return [value for value in symptoms.values() if isinstance(value, str)]


def canonical_symptoms(speciality: str) -> tuple[str, ...]:
    """Canonical symptom list for a doctor's speciality, empty when unknown."""
    return SPECIALITY_SYMPTOMS.get(speciality.lower(), ())


def speciality_symptom_grams(speciality: str) -> frozenset[str]:
    """Trigram set of the joined canonical list for ``speciality``."""
    return _SPECIALITY_GRAMS.get(speciality.lower(), frozenset())


def get_speciality_from_symptoms(
    symptoms: Mapping[str, Any] | None,
    threshold: float = DEFAULT_INFERENCE_THRESHOLD,
) -> str | None:
    """Infer the speciality whose canonical symptoms best resemble the patient's.

    All string symptom values are joined into one text and compared with
    each speciality's joined list using trigram Dice similarity. The best
    speciality is returned only when its score is strictly above
    ``threshold``; the first speciality in table order wins ties.

    Examples:
        >>> get_speciality_from_symptoms(
        ...     {"primary": "chest pain", "secondary": "heart palpitations", "other": "shortness of breath"}
        ... )
        'cardiologist'
        >>> get_speciality_from_symptoms({}) is None
        True
    """
    values = symptom_strings(symptoms)
    if not values:
        return None

    symptom_grams = gram_set(" ".join(values))
    best_match: str | None = None
    best_score = 0.0

    for speciality, speciality_grams in _SPECIALITY_GRAMS.items():
        score = dice_similarity(symptom_grams, speciality_grams)
        if score > best_score:
            best_score = score
            best_match = speciality

    if best_score > threshold:
        return best_match

    logger.debug("No speciality inferred from symptoms (best score %.3f)", best_score)
    return None


def are_specialities_related(speciality1: str, speciality2: str) -> bool:
    """True when the specialities are equal or the first lists the second as related."""
    return speciality1 == speciality2 or speciality2 in RELATED_SPECIALITIES.get(speciality1, ())

"""Domain models for search and matching results.

Following Cosmic Python principles:
- Value Objects are immutable (frozen=True)
- No infrastructure dependencies

These models carry the ranked output of the engine together with the
metadata explaining why each result matched.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from doctor_match.domain.model import Doctor, PreferenceProfile, Urgency


class SearchFilters(BaseModel):
    """Optional constraints applied after scoring a free-text search.

    A filter left as None is inactive. ``min_experience`` of 0 is also
    inactive, so doctors with unparsable experience are only dropped when a
    positive minimum is requested.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    speciality: str | None = None
    min_fees: float | None = Field(default=None, alias="minFees")
    max_fees: float | None = Field(default=None, ge=0, alias="maxFees")
    min_experience: int | None = Field(default=None, alias="minExperience")
    available: bool | None = None


class DoctorSearchResult(BaseModel):
    """Value object for a single ranked free-text search hit."""

    model_config = ConfigDict(frozen=True)

    doctor: Doctor
    similarity_score: float
    match_reasons: list[str] = Field(default_factory=list)
    ngram_matches: int = 0


class SimilarDoctor(BaseModel):
    """A doctor whose profile text closely resembles a reference doctor."""

    model_config = ConfigDict(frozen=True)

    doctor: Doctor
    similarity_score: float


class GramFrequency(BaseModel):
    """How many doctors reference a single gram."""

    model_config = ConfigDict(frozen=True)

    gram: str
    frequency: int


class NgramStatistics(BaseModel):
    """Shape of the inverted index, for diagnostics."""

    model_config = ConfigDict(frozen=True)

    total_doctors: int
    total_ngrams: int
    ngram_distribution: dict[int, int] = Field(default_factory=dict)
    most_common_ngrams: list[GramFrequency] = Field(default_factory=list)


class MatchCriteria(BaseModel):
    """Per-request overrides layered on top of a patient's stored preferences."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    preferred_specialities: list[str] | None = Field(default=None, alias="specialities")
    max_fees: float | None = Field(default=None, ge=0, alias="maxFees")
    preferred_location: str | None = Field(default=None, alias="location")
    preferred_gender: str | None = Field(default=None, alias="gender")
    preferred_experience: int | None = Field(default=None, ge=0, alias="minExperience")
    urgency: Urgency | None = None
    appointment_type: str | None = Field(default=None, alias="appointmentType")

    def apply_to(self, profile: PreferenceProfile) -> PreferenceProfile:
        """Return ``profile`` with every criterion that was set replacing the stored value."""
        overrides: dict[str, Any] = self.model_dump(exclude_none=True)
        if not overrides:
            return profile
        return PreferenceProfile.model_validate({**profile.model_dump(), **overrides})


class ScoreBreakdown(BaseModel):
    """Per-factor scores of a patient match, each within [0, 1]."""

    model_config = ConfigDict(frozen=True)

    speciality_match: float = 0.0
    symptom_match: float = 0.0
    preference_match: float = 0.0
    experience_match: float = 0.0
    availability_match: float = 0.0
    location_match: float = 0.0
    medical_history_match: float = 0.0


class MatchResult(BaseModel):
    """A doctor ranked for a specific patient."""

    model_config = ConfigDict(frozen=True)

    doctor: Doctor
    matching_score: float
    score_breakdown: ScoreBreakdown
    match_reasons: list[str] = Field(default_factory=list)
    recommended_reason: str


class SimilarPatient(BaseModel):
    """A past patient of a doctor, scored by symptom variety and visit frequency."""

    model_config = ConfigDict(frozen=True)

    patient_id: str
    patient: dict[str, Any] = Field(default_factory=dict)
    similarity_score: float
    common_symptoms: list[str] = Field(default_factory=list)
    appointment_count: int

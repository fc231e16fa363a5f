"""Domain layer - pure business objects with no infrastructure dependencies.

Following Cosmic Python Chapter 2 (Repository Pattern), this layer contains:
- Directory records validated at the adapter boundary (Doctor, Patient, ...)
- Value objects describing ranked results and why they matched
"""

from doctor_match.domain.model import (
    Address,
    AppointmentRecord,
    Doctor,
    DoctorMatchError,
    MedicalHistoryProfile,
    Patient,
    PatientNotFoundError,
    PreferenceProfile,
)
from doctor_match.domain.search import (
    DoctorSearchResult,
    GramFrequency,
    MatchCriteria,
    MatchResult,
    NgramStatistics,
    ScoreBreakdown,
    SearchFilters,
    SimilarDoctor,
    SimilarPatient,
)


__all__ = [
    "Address",
    "AppointmentRecord",
    "Doctor",
    "DoctorMatchError",
    "DoctorSearchResult",
    "GramFrequency",
    "MatchCriteria",
    "MatchResult",
    "MedicalHistoryProfile",
    "NgramStatistics",
    "Patient",
    "PatientNotFoundError",
    "PreferenceProfile",
    "ScoreBreakdown",
    "SearchFilters",
    "SimilarDoctor",
    "SimilarPatient",
]

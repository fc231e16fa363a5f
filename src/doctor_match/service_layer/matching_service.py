"""Patient matching orchestration layer.

Loads the patient and the available roster from the directories, scores
every doctor with the seven match factors and caches the ranked result.
Also derives similar past patients from a doctor's appointment ledger.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
import logging
from typing import Any

from doctor_match.adapters.directory import (
    AbstractAppointmentLedger,
    AbstractDoctorDirectory,
    AbstractPatientDirectory,
)
from doctor_match.config import Settings
from doctor_match.domain.model import PatientNotFoundError
from doctor_match.domain.search import MatchCriteria, MatchResult, SimilarPatient
from doctor_match.matching.scoring import match_reasons, recommended_reason, score_doctor
from doctor_match.matching.symptoms import get_speciality_from_symptoms
from doctor_match.observability.metrics import track_operation
from doctor_match.observability.tracing import create_span
from doctor_match.service_layer.index_service import DoctorIndexService
from doctor_match.services.ttl_cache import TTLCache, make_cache_key


logger = logging.getLogger(__name__)

# Normalization ceilings for similar-patient scoring
SYMPTOM_VARIETY_CAP = 10
VISIT_FREQUENCY_CAP = 5
SYMPTOM_VARIETY_WEIGHT = 0.7
VISIT_FREQUENCY_WEIGHT = 0.3


@dataclass
class _PatientVisits:
    snapshot: dict[str, Any]
    appointment_count: int = 0
    symptoms: dict[str, None] = field(default_factory=dict)


def patient_similarity(symptom_count: int, appointment_count: int) -> float:
    """Blend of symptom variety and visit frequency, each capped at 1.

    Examples:
        >>> patient_similarity(10, 5)
        1.0
        >>> round(patient_similarity(5, 5), 2)
        0.65
    """
    symptom_score = min(symptom_count / SYMPTOM_VARIETY_CAP, 1.0)
    frequency_score = min(appointment_count / VISIT_FREQUENCY_CAP, 1.0)
    return symptom_score * SYMPTOM_VARIETY_WEIGHT + frequency_score * VISIT_FREQUENCY_WEIGHT


class PatientMatchingService:
    """Ranks doctors for a patient and finds similar past patients."""

    def __init__(
        self,
        index_service: DoctorIndexService,
        doctor_directory: AbstractDoctorDirectory,
        patient_directory: AbstractPatientDirectory,
        appointment_ledger: AbstractAppointmentLedger,
        cache: TTLCache[list[MatchResult]],
        settings: Settings,
    ):
        self.index_service = index_service
        self.doctor_directory = doctor_directory
        self.patient_directory = patient_directory
        self.appointment_ledger = appointment_ledger
        self.cache = cache
        self.settings = settings

    def infer_speciality(self, symptoms: Mapping[str, Any] | None) -> str | None:
        return get_speciality_from_symptoms(symptoms, self.settings.speciality_inference_threshold)

    async def match_patient_with_doctors(
        self,
        patient_id: str,
        symptoms: Mapping[str, Any] | None = None,
        criteria: MatchCriteria | None = None,
        limit: int | None = None,
    ) -> list[MatchResult]:
        """Rank available doctors for ``patient_id``.

        Args:
            patient_id: Patient to match
            symptoms: Label -> symptom text; non-string values are ignored
            criteria: Per-request overrides of the patient's stored preferences
            limit: Maximum number of results, defaults to the configured limit

        Returns:
            Matches ordered by descending score; roster order breaks ties

        Raises:
            PatientNotFoundError: The patient directory does not know ``patient_id``
        """
        symptoms = dict(symptoms or {})
        criteria = criteria or MatchCriteria()
        limit = self.settings.default_match_limit if limit is None else limit

        with (
            create_span(
                "doctor_match.match_patient_with_doctors",
                attributes={"patient.id": patient_id, "symptom.count": len(symptoms), "limit": limit},
            ),
            track_operation("match_patient_with_doctors"),
        ):
            # Insertion order of symptoms is significant to speciality inference
            cache_key = make_cache_key("match", patient_id, list(symptoms.items()), criteria, limit)
            cached = self.cache.get(cache_key)
            if cached is not None:
                logger.debug("Match cache hit for patient %s", patient_id)
                return cached

            try:
                patient = await self.patient_directory.fetch_by_id(patient_id)
                if patient is None:
                    raise PatientNotFoundError(patient_id)

                doctors = await self.doctor_directory.fetch_available()
                await self.index_service.sync(doctors, force=self.settings.match_always_rebuild_index)

                profile = criteria.apply_to(patient.preference_profile())
                history = patient.medical_history_profile()
                inferred = self.infer_speciality(symptoms)

                scored = [
                    score_doctor(
                        doctor,
                        symptoms=symptoms,
                        profile=profile,
                        history=history,
                        inferred_speciality=inferred,
                        symptom_threshold=self.settings.symptom_similarity_threshold,
                        history_threshold=self.settings.medical_history_threshold,
                    )
                    for doctor in doctors
                ]
                scored.sort(key=lambda match: match.total, reverse=True)

                results = [
                    MatchResult(
                        doctor=match.doctor,
                        matching_score=match.total,
                        score_breakdown=match.breakdown,
                        match_reasons=match_reasons(match.breakdown),
                        recommended_reason=recommended_reason(match.breakdown),
                    )
                    for match in scored[:limit]
                ]
            except PatientNotFoundError:
                logger.warning("Match requested for unknown patient %s", patient_id)
                raise
            except Exception:
                logger.error("Error in match_patient_with_doctors", exc_info=True)
                raise

            logger.debug(
                "Matched patient %s against %d doctors (inferred speciality: %s)",
                patient_id,
                len(doctors),
                inferred or "none",
            )
            self.cache.set(cache_key, results)
            return results

    async def get_similar_patients(self, doctor_id: str, limit: int | None = None) -> list[SimilarPatient]:
        """Past patients of ``doctor_id`` with varied symptoms or frequent visits.

        Cancelled appointments are ignored. A patient is reported when the
        blended variety/frequency score exceeds the configured threshold.
        """
        limit = self.settings.default_similar_limit if limit is None else limit
        threshold = self.settings.similar_patient_threshold

        with (
            create_span("doctor_match.get_similar_patients", attributes={"doctor.id": doctor_id, "limit": limit}),
            track_operation("get_similar_patients"),
        ):
            try:
                appointments = await self.appointment_ledger.fetch_by_doctor(doctor_id, exclude_cancelled=True)
            except Exception:
                logger.error("Error in get_similar_patients", exc_info=True)
                raise

            visits: dict[str, _PatientVisits] = {}
            for appointment in appointments:
                group = visits.setdefault(appointment.patient_id, _PatientVisits(snapshot=appointment.patient_snapshot))
                group.appointment_count += 1
                for symptom in appointment.symptom_strings():
                    group.symptoms.setdefault(symptom, None)

            similar: list[SimilarPatient] = []
            for patient_id, group in visits.items():
                score = patient_similarity(len(group.symptoms), group.appointment_count)
                if score > threshold:
                    similar.append(
                        SimilarPatient(
                            patient_id=patient_id,
                            patient=group.snapshot,
                            similarity_score=score,
                            common_symptoms=list(group.symptoms),
                            appointment_count=group.appointment_count,
                        )
                    )

            similar.sort(key=lambda item: item.similarity_score, reverse=True)
            return similar[:limit]

"""Engine facade owning the shared index and result caches.

One ``MatchingEngine`` is built at startup and handed to whatever serves
requests. It owns the doctor index and both caches and passes them by
handle to the search and matching services, so two engines never share
state.
"""

from collections.abc import Callable, Mapping, Sequence
import logging
import time
from typing import Any

from doctor_match.adapters.directory import (
    AbstractAppointmentLedger,
    AbstractDoctorDirectory,
    AbstractPatientDirectory,
)
from doctor_match.config import Settings
from doctor_match.domain.model import Doctor
from doctor_match.domain.search import (
    DoctorSearchResult,
    MatchCriteria,
    MatchResult,
    NgramStatistics,
    SearchFilters,
    SimilarDoctor,
    SimilarPatient,
)
from doctor_match.search.doctor_index import DoctorIndex
from doctor_match.service_layer.index_service import DoctorIndexService
from doctor_match.service_layer.matching_service import PatientMatchingService
from doctor_match.service_layer.search_service import DoctorSearchService
from doctor_match.services.ttl_cache import TTLCache


logger = logging.getLogger(__name__)


class MatchingEngine:
    """Doctor search and patient matching over one shared n-gram index."""

    def __init__(
        self,
        settings: Settings,
        doctor_directory: AbstractDoctorDirectory,
        patient_directory: AbstractPatientDirectory,
        appointment_ledger: AbstractAppointmentLedger,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the engine and its services.

        Args:
            settings: Settings instance with all configuration
            doctor_directory: Source of doctor profiles
            patient_directory: Source of patient records
            appointment_ledger: Source of past appointments
            clock: Monotonic time source for cache expiry
        """
        self.settings = settings
        self.index = DoctorIndex(mode=settings.index_mode)
        self.search_cache: TTLCache[list[DoctorSearchResult]] = TTLCache(
            "search", settings.search_cache_ttl_seconds, clock=clock
        )
        self.match_cache: TTLCache[list[MatchResult]] = TTLCache(
            "match", settings.match_cache_ttl_seconds, clock=clock
        )

        self.index_service = DoctorIndexService(self.index, doctor_directory)
        self.search_service = DoctorSearchService(self.index_service, self.search_cache, settings)
        self.matching_service = PatientMatchingService(
            self.index_service,
            doctor_directory,
            patient_directory,
            appointment_ledger,
            self.match_cache,
            settings,
        )

    async def search_doctors(
        self,
        query: str,
        filters: SearchFilters | None = None,
        limit: int | None = None,
    ) -> list[DoctorSearchResult]:
        return await self.search_service.search_doctors(query, filters, limit)

    async def get_search_suggestions(self, partial_query: str, limit: int | None = None) -> list[str]:
        return await self.search_service.get_search_suggestions(partial_query, limit)

    async def find_similar_doctors(self, doctor_id: str, limit: int | None = None) -> list[SimilarDoctor]:
        return await self.search_service.find_similar_doctors(doctor_id, limit)

    async def match_patient_with_doctors(
        self,
        patient_id: str,
        symptoms: Mapping[str, Any] | None = None,
        criteria: MatchCriteria | None = None,
        limit: int | None = None,
    ) -> list[MatchResult]:
        return await self.matching_service.match_patient_with_doctors(patient_id, symptoms, criteria, limit)

    async def get_similar_patients(self, doctor_id: str, limit: int | None = None) -> list[SimilarPatient]:
        return await self.matching_service.get_similar_patients(doctor_id, limit)

    def get_speciality_from_symptoms(self, symptoms: Mapping[str, Any] | None) -> str | None:
        return self.matching_service.infer_speciality(symptoms)

    def get_ngram_statistics(self) -> NgramStatistics:
        return self.search_service.get_ngram_statistics()

    def clear_cache(self) -> None:
        """Empty both result caches; the index is left alone."""
        self.search_cache.clear()
        self.match_cache.clear()
        logger.info("Search and match caches cleared")

    async def rebuild_index(self, doctors: Sequence[Doctor]) -> None:
        """Clear both caches and rebuild the index from ``doctors``."""
        self.clear_cache()
        await self.index_service.rebuild(doctors)

    async def warm_index(self) -> int:
        """Build the index from the doctor directory if it is empty; returns its size."""
        index = await self.index_service.ensure_built()
        return len(index)

    def invalidate_index(self) -> None:
        """Drop the index; the next operation rebuilds it from the doctor directory."""
        self.index_service.invalidate()


def create_engine(
    doctor_directory: AbstractDoctorDirectory,
    patient_directory: AbstractPatientDirectory,
    appointment_ledger: AbstractAppointmentLedger,
    settings: Settings | None = None,
    **kwargs: Any,
) -> MatchingEngine:
    """Build an engine, loading ``Settings`` from the environment when not given."""
    return MatchingEngine(
        settings or Settings(),
        doctor_directory,
        patient_directory,
        appointment_ledger,
        **kwargs,
    )

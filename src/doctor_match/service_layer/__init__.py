"""Service layer - Business logic orchestration.

Following Cosmic Python Chapter 4:
- Service layer orchestrates use cases
- Works with domain model and the directory adapters
- The engine facade owns the shared index and caches
"""

from .engine import MatchingEngine, create_engine
from .index_service import DoctorIndexService
from .matching_service import PatientMatchingService
from .search_service import DoctorSearchService


__all__ = [
    "DoctorIndexService",
    "DoctorSearchService",
    "MatchingEngine",
    "PatientMatchingService",
    "create_engine",
]

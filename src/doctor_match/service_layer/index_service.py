"""Lifecycle of the shared doctor index.

Both the search and the matching services read the same ``DoctorIndex``.
This service is the only writer: it fetches rosters from the doctor
directory, serializes rebuilds behind an ``asyncio.Lock`` and publishes each
rebuild as one snapshot swap.
"""

import asyncio
from collections.abc import Sequence
import logging

from doctor_match.adapters.directory import AbstractDoctorDirectory
from doctor_match.domain.model import Doctor
from doctor_match.observability.metrics import INDEX_REBUILDS, INDEXED_DOCTORS
from doctor_match.search.doctor_index import DoctorIndex, roster_fingerprint


logger = logging.getLogger(__name__)


class DoctorIndexService:
    """Builds, refreshes and invalidates the shared doctor index."""

    def __init__(self, index: DoctorIndex, doctor_directory: AbstractDoctorDirectory):
        """Initialize index service.

        Args:
            index: Index instance shared with every reader
            doctor_directory: Source of the available-doctor roster
        """
        self.index = index
        self.doctor_directory = doctor_directory
        self._lock = asyncio.Lock()

    async def ensure_built(self) -> DoctorIndex:
        """Build the index from the directory if it is empty, then return it."""
        if not self.index.is_empty():
            return self.index

        async with self._lock:
            # Another task may have finished a build while we waited
            if self.index.is_empty():
                doctors = await self.doctor_directory.fetch_available()
                self._publish(doctors, reason="lazy")
        return self.index

    async def sync(self, doctors: Sequence[Doctor], *, force: bool) -> bool:
        """Bring the index in line with ``doctors``.

        Args:
            doctors: Freshly fetched roster
            force: Rebuild even when the roster is unchanged

        Returns:
            True if a rebuild happened
        """
        async with self._lock:
            if not force and self.index.fingerprint == roster_fingerprint(doctors):
                logger.debug("Doctor roster unchanged, reusing index")
                return False
            self._publish(doctors, reason="match" if force else "roster_changed")
            return True

    async def rebuild(self, doctors: Sequence[Doctor]) -> None:
        """Replace the index with one built from ``doctors``."""
        async with self._lock:
            self._publish(doctors, reason="explicit")

    def invalidate(self) -> None:
        """Drop the index so the next reader rebuilds it from the directory."""
        self.index.clear()
        INDEXED_DOCTORS.labels(index_mode=self.index.mode).set(0)
        logger.info("Doctor index invalidated")

    def _publish(self, doctors: Sequence[Doctor], *, reason: str) -> None:
        self.index.build(doctors)
        INDEX_REBUILDS.labels(reason=reason).inc()
        INDEXED_DOCTORS.labels(index_mode=self.index.mode).set(len(self.index))
        logger.info(
            "Doctor index rebuilt (%s): %d doctors, %d grams",
            reason,
            len(self.index),
            self.index.total_grams(),
        )

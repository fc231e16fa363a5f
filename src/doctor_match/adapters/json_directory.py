"""JSON-file backed directory implementations.

Each file holds either a JSON array of records or an object wrapping the
array under a collection key (``{"doctors": [...]}``), matching what a
directory export produces. Files are read once, on first use, and served
from memory afterwards.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any

import anyio
import orjson

from doctor_match.adapters.directory import (
    AbstractAppointmentLedger,
    AbstractDoctorDirectory,
    AbstractPatientDirectory,
    FakeAppointmentLedger,
    FakeDoctorDirectory,
    FakePatientDirectory,
)
from doctor_match.domain.model import AppointmentRecord, Doctor, DoctorMatchError, Patient


logger = logging.getLogger(__name__)


class DirectoryFileError(DoctorMatchError):
    """Raised when a directory export cannot be read or has the wrong shape."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"Cannot load {path}: {reason}")
        self.path = path


async def read_records(path: Path, collection: str) -> list[dict[str, Any]]:
    """Read a list of raw records from ``path``.

    Args:
        path: JSON file to read
        collection: Key to unwrap when the file holds an object

    Returns:
        The raw record mappings in file order
    """
    try:
        async with await anyio.open_file(path, "rb") as fp:
            payload = orjson.loads(await fp.read())
    except (OSError, orjson.JSONDecodeError) as err:
        logger.error("Failed to load directory file %s: %s", path, err)
        raise DirectoryFileError(path, str(err)) from err

    if isinstance(payload, dict):
        payload = payload.get(collection)
    if not isinstance(payload, list):
        raise DirectoryFileError(path, f"expected a list of {collection}")
    return payload


class _LazyFileSource:
    """Loads one file into an in-memory fake the first time it is needed."""

    def __init__(self, path: Path | str, collection: str):
        self.path = Path(path)
        self._collection = collection
        self._lock = asyncio.Lock()
        self._loaded: Any = None

    async def load(self, factory: Any) -> Any:
        if self._loaded is not None:
            return self._loaded
        async with self._lock:
            if self._loaded is None:
                records = await read_records(self.path, self._collection)
                self._loaded = factory(records)
                logger.info("Loaded %d %s from %s", len(records), self._collection, self.path)
        return self._loaded


class JsonDoctorDirectory(AbstractDoctorDirectory):
    """Doctor directory read from a JSON export."""

    def __init__(self, path: Path | str):
        self._source = _LazyFileSource(path, "doctors")

    async def _directory(self) -> FakeDoctorDirectory:
        return await self._source.load(FakeDoctorDirectory)

    async def fetch_available(self) -> list[Doctor]:
        return await (await self._directory()).fetch_available()

    async def fetch_by_id(self, doctor_id: str) -> Doctor | None:
        return await (await self._directory()).fetch_by_id(doctor_id)


class JsonPatientDirectory(AbstractPatientDirectory):
    """Patient directory read from a JSON export."""

    def __init__(self, path: Path | str):
        self._source = _LazyFileSource(path, "patients")

    async def fetch_by_id(self, patient_id: str) -> Patient | None:
        directory: FakePatientDirectory = await self._source.load(FakePatientDirectory)
        return await directory.fetch_by_id(patient_id)


class JsonAppointmentLedger(AbstractAppointmentLedger):
    """Appointment ledger read from a JSON export."""

    def __init__(self, path: Path | str):
        self._source = _LazyFileSource(path, "appointments")

    async def fetch_by_doctor(self, doctor_id: str, exclude_cancelled: bool = True) -> list[AppointmentRecord]:
        ledger: FakeAppointmentLedger = await self._source.load(FakeAppointmentLedger)
        return await ledger.fetch_by_doctor(doctor_id, exclude_cancelled)

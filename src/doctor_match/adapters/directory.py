"""Directory abstractions consumed by the engine.

Defines the collaborator layer following Repository Pattern: the engine
never talks to a database, it asks these interfaces for validated domain
records. Raw payloads are validated into domain models at this boundary,
so an invalid record raises ``pydantic.ValidationError`` here and nowhere
deeper.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
import logging
from typing import Any

from doctor_match.domain.model import AppointmentRecord, Doctor, Patient


logger = logging.getLogger(__name__)

RawRecord = Mapping[str, Any]


class AbstractDoctorDirectory(ABC):
    """Source of doctor profiles."""

    @abstractmethod
    async def fetch_available(self) -> list[Doctor]:
        """Return every doctor currently accepting appointments, in directory order."""
        raise NotImplementedError

    @abstractmethod
    async def fetch_by_id(self, doctor_id: str) -> Doctor | None:
        raise NotImplementedError


class AbstractPatientDirectory(ABC):
    """Source of patient records."""

    @abstractmethod
    async def fetch_by_id(self, patient_id: str) -> Patient | None:
        raise NotImplementedError


class AbstractAppointmentLedger(ABC):
    """Source of past appointments."""

    @abstractmethod
    async def fetch_by_doctor(self, doctor_id: str, exclude_cancelled: bool = True) -> list[AppointmentRecord]:
        """Appointments booked with ``doctor_id``, in ledger order.

        Args:
            doctor_id: Doctor whose appointments to load
            exclude_cancelled: Drop cancelled appointments when True

        Returns:
            List of appointment records
        """
        raise NotImplementedError


def validate_doctors(records: Iterable[Doctor | RawRecord]) -> list[Doctor]:
    return [record if isinstance(record, Doctor) else Doctor.model_validate(record) for record in records]


def validate_patients(records: Iterable[Patient | RawRecord]) -> list[Patient]:
    return [record if isinstance(record, Patient) else Patient.model_validate(record) for record in records]


def validate_appointments(records: Iterable[AppointmentRecord | RawRecord]) -> list[AppointmentRecord]:
    return [
        record if isinstance(record, AppointmentRecord) else AppointmentRecord.model_validate(record)
        for record in records
    ]


class FakeDoctorDirectory(AbstractDoctorDirectory):
    """In-memory doctor directory for testing and file-backed runs."""

    def __init__(self, doctors: Iterable[Doctor | RawRecord] = ()):
        self._doctors: dict[str, Doctor] = {}
        self.fetch_count = 0
        for doctor in validate_doctors(doctors):
            self._doctors[doctor.id] = doctor

    async def add(self, doctor: Doctor) -> None:
        self._doctors[doctor.id] = doctor

    async def fetch_available(self) -> list[Doctor]:
        self.fetch_count += 1
        return [doctor for doctor in self._doctors.values() if doctor.available]

    async def fetch_by_id(self, doctor_id: str) -> Doctor | None:
        return self._doctors.get(doctor_id)


class FakePatientDirectory(AbstractPatientDirectory):
    """In-memory patient directory for testing."""

    def __init__(self, patients: Iterable[Patient | RawRecord] = ()):
        self._patients: dict[str, Patient] = {patient.id: patient for patient in validate_patients(patients)}

    async def add(self, patient: Patient) -> None:
        self._patients[patient.id] = patient

    async def fetch_by_id(self, patient_id: str) -> Patient | None:
        return self._patients.get(patient_id)


class FakeAppointmentLedger(AbstractAppointmentLedger):
    """In-memory appointment ledger for testing."""

    def __init__(self, appointments: Iterable[AppointmentRecord | RawRecord] = ()):
        self._appointments: list[AppointmentRecord] = validate_appointments(appointments)

    async def add(self, appointment: AppointmentRecord) -> None:
        self._appointments.append(appointment)

    async def fetch_by_doctor(self, doctor_id: str, exclude_cancelled: bool = True) -> list[AppointmentRecord]:
        return [
            appointment
            for appointment in self._appointments
            if appointment.doctor_id == doctor_id and not (exclude_cancelled and appointment.cancelled)
        ]

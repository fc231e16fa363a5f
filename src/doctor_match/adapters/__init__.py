"""Adapters layer - directory implementations.

Following Cosmic Python Chapter 2: Repository Pattern
Abstracts the doctor, patient and appointment sources behind async interfaces.
"""

from .directory import (
    AbstractAppointmentLedger,
    AbstractDoctorDirectory,
    AbstractPatientDirectory,
    FakeAppointmentLedger,
    FakeDoctorDirectory,
    FakePatientDirectory,
)
from .json_directory import (
    DirectoryFileError,
    JsonAppointmentLedger,
    JsonDoctorDirectory,
    JsonPatientDirectory,
)


__all__ = [
    "AbstractAppointmentLedger",
    "AbstractDoctorDirectory",
    "AbstractPatientDirectory",
    "DirectoryFileError",
    "FakeAppointmentLedger",
    "FakeDoctorDirectory",
    "FakePatientDirectory",
    "JsonAppointmentLedger",
    "JsonDoctorDirectory",
    "JsonPatientDirectory",
]

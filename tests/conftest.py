"""Shared test fixtures and configuration."""

import os

import orjson
import pytest


# Complete test environment that overrides every configurable value
TEST_ENV = {
    # Cache settings
    "SEARCH_CACHE_TTL_SECONDS": "900",
    "MATCH_CACHE_TTL_SECONDS": "600",
    # Index settings
    "INDEX_MODE": "isolated",
    "MATCH_ALWAYS_REBUILD_INDEX": "true",
    # Thresholds
    "SIMILAR_DOCTOR_THRESHOLD": "0.6",
    "SPECIALITY_INFERENCE_THRESHOLD": "0.3",
    "SYMPTOM_SIMILARITY_THRESHOLD": "0.6",
    "MEDICAL_HISTORY_THRESHOLD": "0.5",
    "SIMILAR_PATIENT_THRESHOLD": "0.5",
    # Default limits
    "DEFAULT_SEARCH_LIMIT": "20",
    "DEFAULT_SUGGESTION_LIMIT": "5",
    "DEFAULT_SIMILAR_LIMIT": "5",
    "DEFAULT_MATCH_LIMIT": "10",
    # Logging
    "LOG_LEVEL": "info",
    "LOG_JSON": "false",
    # Tracing export stays off in tests
    "OTLP_ENABLED": "false",
    "OTLP_ENDPOINT": "http://localhost:4317",
}


# Set environment variables immediately when conftest.py is loaded
for key, value in TEST_ENV.items():
    os.environ[key] = value

# Now we can safely import config-dependent modules
from doctor_match.adapters.directory import FakeAppointmentLedger, FakeDoctorDirectory, FakePatientDirectory
from doctor_match.config import Settings
from doctor_match.domain.model import Doctor
from doctor_match.service_layer.engine import MatchingEngine


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Reset environment variables to test defaults before each test."""
    for key, value in TEST_ENV.items():
        monkeypatch.setenv(key, value)


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


DOCTOR_RECORDS = [
    {
        "_id": "d1",
        "name": "Dr. Jane Doe",
        "speciality": "cardiologist",
        "degree": "MBBS",
        "experience": "12 Years",
        "about": "Heart specialist focusing on chest pain and arrhythmia",
        "fees": 100,
        "available": True,
        "address": {"line1": "221 Baker Street", "line2": "London"},
        "gender": "female",
    },
    {
        "_id": "d2",
        "name": "Dr. John Smith",
        "speciality": "dermatologist",
        "degree": "MBBS",
        "experience": "4 Years",
        "about": "Skin care, acne and eczema treatment",
        "fees": 60,
        "available": True,
        "address": {"line1": "12 Park Lane", "line2": "Manchester"},
        "gender": "male",
    },
    {
        "_id": "d3",
        "name": "Dr. Emily Stone",
        "speciality": "neurologist",
        "degree": "MD",
        "experience": "7 Years",
        "about": "Headache and migraine clinic",
        "fees": 150,
        "available": True,
        "address": {"line1": "5 High Street", "line2": "London"},
        "gender": "female",
    },
    {
        "_id": "d4",
        "name": "Dr. Mark Lee",
        "speciality": "cardiologist",
        "degree": "MD",
        "experience": "2 Years",
        "about": "Heart rhythm and blood pressure care",
        "fees": 250,
        "available": False,
        "address": {"line1": "9 Queen Road", "line2": "Leeds"},
        "gender": "male",
    },
    {
        "_id": "d5",
        "name": "Dr. Sara Khan",
        "speciality": "general_physician",
        "degree": "MBBS",
        "experience": "Senior consultant",
        "about": "Fever, cough and general checkup",
        "fees": 40,
        "available": True,
        "address": None,
    },
]

PATIENT_RECORDS = [
    {
        "_id": "p1",
        "name": "Alex Patient",
        "preferences": {
            "maxFees": 120,
            "location": "London",
            "gender": "female",
            "minExperience": 5,
            "urgency": "normal",
        },
        "medicalHistory": {"chronicConditions": ["hypertension"], "allergies": None},
    },
    {"_id": "p2", "name": "Sam Patient"},
    {"_id": "p3", "name": "Robin Patient", "preferences": {"urgency": "emergency"}},
]

APPOINTMENT_RECORDS = [
    *[
        {
            "patientId": "p1",
            "docId": "d1",
            "userData": {"name": "Alex Patient"},
            "symptoms": {"primary": symptom, "secondary": "Dizziness"},
            "slotDate": "2024-01-0" + str(day),
        }
        for day, symptom in enumerate(("Chest pain", "Fainting", "Fatigue", "Nausea", "Swelling"), start=1)
    ],
    {
        "patientId": "p2",
        "docId": "d1",
        "userData": {"name": "Sam Patient"},
        "symptoms": {"primary": "cough"},
    },
    {
        "patientId": "p3",
        "docId": "d1",
        "userData": {"name": "Robin Patient"},
        "symptoms": {str(i): f"symptom {i}" for i in range(10)},
        "cancelled": True,
    },
    {
        "patientId": "p4",
        "docId": "d1",
        "userData": {"name": "Casey Patient"},
        "symptoms": {**{str(i): f"Symptom {i}" for i in range(10)}, "severity": 7},
    },
    {
        "patientId": "p1",
        "docId": "d2",
        "userData": {"name": "Alex Patient"},
        "symptoms": {"primary": "acne"},
    },
]


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def doctors():
    return [Doctor.model_validate(record) for record in DOCTOR_RECORDS]


@pytest.fixture
def available_doctors(doctors):
    return [doctor for doctor in doctors if doctor.available]


@pytest.fixture
def doctor_directory():
    return FakeDoctorDirectory(DOCTOR_RECORDS)


@pytest.fixture
def patient_directory():
    return FakePatientDirectory(PATIENT_RECORDS)


@pytest.fixture
def appointment_ledger():
    return FakeAppointmentLedger(APPOINTMENT_RECORDS)


@pytest.fixture
def engine(settings, doctor_directory, patient_directory, appointment_ledger, clock):
    return MatchingEngine(settings, doctor_directory, patient_directory, appointment_ledger, clock=clock)


@pytest.fixture
def directory_files(tmp_path):
    """Write the sample directories as JSON exports and return their paths."""
    paths = {
        "doctors": tmp_path / "doctors.json",
        "patients": tmp_path / "patients.json",
        "appointments": tmp_path / "appointments.json",
    }
    paths["doctors"].write_bytes(orjson.dumps({"doctors": DOCTOR_RECORDS}))
    paths["patients"].write_bytes(orjson.dumps(PATIENT_RECORDS))
    paths["appointments"].write_bytes(orjson.dumps({"appointments": APPOINTMENT_RECORDS}))
    return paths

"""Domain model - directory records the engine ranks.

Following Cosmic Python principles:
- Domain model has NO dependencies on infrastructure
- Records arrive from external directories as loosely shaped mappings and are
  validated here once, at the adapter boundary
- Optional fields carry documented neutral defaults instead of being probed
  with getattr() throughout the scoring code

Directory payloads use camelCase keys (``maxFees``, ``medicalHistory``) and
Mongo style ``_id`` identifiers; both spellings are accepted.
"""

from datetime import datetime
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


Urgency = Literal["normal", "urgent", "emergency"]


def _drop_nulls(data: Any) -> Any:
    """Remove explicit nulls so field defaults apply to them as well."""
    if isinstance(data, dict):
        return {key: value for key, value in data.items() if value is not None}
    return data


class DirectoryRecord(BaseModel):
    """Base class for records read from the directory collaborators."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
        extra="ignore",
    )


class Address(DirectoryRecord):
    """Value object for a doctor's practice address."""

    line1: str = ""
    line2: str = ""

    @model_validator(mode="before")
    @classmethod
    def _defaults_for_nulls(cls, data: Any) -> Any:
        return _drop_nulls(data)

    def as_text(self) -> str:
        return f"{self.line1} {self.line2}"


class Doctor(DirectoryRecord):
    """A doctor profile as published by the directory."""

    id: str = Field(min_length=1, validation_alias=AliasChoices("id", "_id", "docId"))
    name: str
    speciality: str
    degree: str = ""
    experience: str = ""
    about: str = ""
    fees: float = Field(default=0.0, ge=0)
    available: bool = True
    address: Address | None = None
    gender: str | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        if isinstance(value, int):
            return str(value)
        return value

    @model_validator(mode="before")
    @classmethod
    def _defaults_for_nulls(cls, data: Any) -> Any:
        return _drop_nulls(data)


class PreferenceProfile(DirectoryRecord):
    """Patient preferences with neutral defaults for anything not supplied."""

    preferred_specialities: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("preferredSpecialities", "preferred_specialities", "specialities"),
    )
    max_fees: float = Field(default=200.0, ge=0)
    preferred_location: str = Field(
        default="", validation_alias=AliasChoices("preferredLocation", "preferred_location", "location")
    )
    preferred_gender: str = Field(
        default="", validation_alias=AliasChoices("preferredGender", "preferred_gender", "gender")
    )
    preferred_experience: int = Field(
        default=0,
        ge=0,
        validation_alias=AliasChoices("preferredExperience", "preferred_experience", "minExperience"),
    )
    urgency: Urgency = "normal"
    appointment_type: str = "consultation"

    @model_validator(mode="before")
    @classmethod
    def _defaults_for_nulls(cls, data: Any) -> Any:
        return _drop_nulls(data)


class MedicalHistoryProfile(DirectoryRecord):
    """Free-text medical history lists; each list is empty when absent."""

    chronic_conditions: list[str] = Field(default_factory=list)
    allergies: list[str] = Field(default_factory=list)
    medications: list[str] = Field(default_factory=list)
    surgeries: list[str] = Field(default_factory=list)
    family_history: list[str] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _defaults_for_nulls(cls, data: Any) -> Any:
        return _drop_nulls(data)

    def all_entries(self) -> list[str]:
        """Every history entry, in field order."""
        return [
            *self.chronic_conditions,
            *self.allergies,
            *self.medications,
            *self.surgeries,
            *self.family_history,
        ]


class Patient(DirectoryRecord):
    """A patient record; preferences and history are optional."""

    id: str = Field(min_length=1, validation_alias=AliasChoices("id", "_id", "userId"))
    name: str = ""
    preferences: PreferenceProfile | None = None
    medical_history: MedicalHistoryProfile | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        if isinstance(value, int):
            return str(value)
        return value

    def preference_profile(self) -> PreferenceProfile:
        return self.preferences or PreferenceProfile()

    def medical_history_profile(self) -> MedicalHistoryProfile:
        return self.medical_history or MedicalHistoryProfile()


class AppointmentRecord(DirectoryRecord):
    """A ledger entry linking a patient to a doctor."""

    patient_id: str = Field(min_length=1, validation_alias=AliasChoices("patientId", "patient_id", "userId"))
    doctor_id: str = Field(default="", validation_alias=AliasChoices("doctorId", "doctor_id", "docId"))
    patient_snapshot: dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("patientSnapshot", "patient_snapshot", "userData"),
    )
    symptoms: dict[str, Any] | None = None
    date: datetime | str | None = Field(
        default=None, validation_alias=AliasChoices("date", "slotDate", "appointmentDate")
    )
    cancelled: bool = False

    @model_validator(mode="before")
    @classmethod
    def _defaults_for_nulls(cls, data: Any) -> Any:
        return _drop_nulls(data)

    @field_validator("patient_id", "doctor_id", mode="before")
    @classmethod
    def _coerce_ids(cls, value: Any) -> Any:
        if isinstance(value, int):
            return str(value)
        return value

    def symptom_strings(self) -> list[str]:
        """Lower-cased string symptom values; other value types are ignored."""
        if not self.symptoms:
            return []
        return [value.lower() for value in self.symptoms.values() if isinstance(value, str)]


class DoctorMatchError(Exception):
    """Base error raised by the matching engine."""


class PatientNotFoundError(DoctorMatchError):
    """Raised when a match is requested for a patient the directory does not know."""

    def __init__(self, patient_id: str) -> None:
        super().__init__(f"Patient not found: {patient_id}")
        self.patient_id = patient_id

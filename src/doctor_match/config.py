"""Centralized configuration for the doctor match engine using Pydantic Settings."""

from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Strictly typed configuration loaded from environment variables.

    Every threshold and TTL the engine uses lives here so deployments can
    tune ranking without code changes.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        validate_default=True,
        extra="ignore",  # Ignore extra env vars not defined in model
    )

    # Cache settings
    search_cache_ttl_seconds: float = Field(default=15 * 60, gt=0, description="TTL for cached search results")
    match_cache_ttl_seconds: float = Field(default=10 * 60, gt=0, description="TTL for cached patient matches")

    # Index settings
    index_mode: Literal["isolated", "merged"] = Field(
        default="isolated",
        description="isolated keeps one inverted index per gram size; merged is the legacy single index",
    )
    match_always_rebuild_index: bool = Field(
        default=True,
        description="Rebuild the doctor index on every patient match instead of reusing an unchanged roster",
    )

    # Thresholds
    similar_doctor_threshold: float = Field(
        default=0.6, ge=0.0, le=1.0, description="Minimum trigram Dice score for similar doctors"
    )
    speciality_inference_threshold: float = Field(
        default=0.3, ge=0.0, le=1.0, description="Minimum score before a speciality is inferred from symptoms"
    )
    symptom_similarity_threshold: float = Field(
        default=0.6, ge=0.0, le=1.0, description="Minimum fuzzy score for partial symptom credit"
    )
    medical_history_threshold: float = Field(
        default=0.5, ge=0.0, le=1.0, description="Minimum fuzzy score for a condition to count toward a speciality"
    )
    similar_patient_threshold: float = Field(
        default=0.5, ge=0.0, le=1.0, description="Minimum score for a past patient to be reported as similar"
    )

    # Default result limits
    default_search_limit: int = Field(default=20, ge=1, description="Default number of search results")
    default_suggestion_limit: int = Field(default=5, ge=1, description="Default number of suggestions")
    default_similar_limit: int = Field(default=5, ge=1, description="Default number of similar doctors/patients")
    default_match_limit: int = Field(default=10, ge=1, description="Default number of matched doctors")

    # Logging
    log_level: str = Field(default="info", description="Logging level")
    log_json: bool = Field(default=True, description="Emit structured JSON logs")

    # Tracing export
    service_name: str = Field(default="doctor-match-engine", description="OpenTelemetry service name")
    otlp_enabled: bool = Field(default=False, description="Enable OTLP trace export")
    otlp_protocol: Literal["http", "grpc"] = Field(default="grpc", description="OTLP transport protocol")
    otlp_endpoint: str = Field(default="http://localhost:4317", description="OTLP collector endpoint")
    otlp_timeout_seconds: int = Field(default=10, ge=1, le=60, description="OTLP exporter timeout in seconds")

    @model_validator(mode="after")
    def _check_otlp_endpoint(self) -> "Settings":
        # Blank endpoint is fine while export is off
        if self.otlp_enabled and not self.otlp_endpoint.strip():
            raise ValueError("OTLP_ENDPOINT must be set when OTLP_ENABLED is true")
        return self

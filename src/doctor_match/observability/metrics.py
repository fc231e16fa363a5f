"""Prometheus metrics for golden signals observability with OTLP export."""

from __future__ import annotations

from contextlib import contextmanager
import time
from typing import TYPE_CHECKING, Any

from opentelemetry import metrics as otel_metrics
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import (
    OTLPMetricExporter as GrpcOTLPMetricExporter,
)
from opentelemetry.exporter.otlp.proto.http.metric_exporter import (
    OTLPMetricExporter as HttpOTLPMetricExporter,
)
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from prometheus_client import Counter, Gauge, Histogram, generate_latest


if TYPE_CHECKING:
    from collections.abc import Generator

    from doctor_match.config import Settings


_meter_holder: dict[str, Any] = {"meter": None, "provider": None, "reader": None}


def init_metrics(
    service_name: str = "doctor-match-engine",
    resource_attributes: dict[str, str] | None = None,
    metric_readers: list[PeriodicExportingMetricReader] | None = None,
) -> MeterProvider:
    """Initialize OpenTelemetry metrics."""
    provider = _meter_holder.get("provider")
    if isinstance(provider, MeterProvider):
        return provider

    attributes = {"service.name": service_name}
    if resource_attributes:
        attributes.update(resource_attributes)
    resource = Resource.create(attributes)
    provider = MeterProvider(resource=resource, metric_readers=metric_readers or [])
    otel_metrics.set_meter_provider(provider)
    _meter_holder["provider"] = provider
    _meter_holder["meter"] = otel_metrics.get_meter(__name__)
    return provider


def configure_metrics_exporter(settings: Settings | None) -> None:
    """Attach an OTLP metric reader when export is enabled in ``settings``."""
    if not settings or not settings.otlp_enabled:
        return
    if _meter_holder.get("reader") is not None:
        return

    endpoint = settings.otlp_endpoint
    if settings.otlp_protocol == "http" and endpoint.endswith("/v1/traces"):
        endpoint = endpoint.removesuffix("/v1/traces") + "/v1/metrics"

    if settings.otlp_protocol == "grpc":
        exporter = GrpcOTLPMetricExporter(endpoint=endpoint, timeout=settings.otlp_timeout_seconds)
    else:
        exporter = HttpOTLPMetricExporter(endpoint=endpoint, timeout=settings.otlp_timeout_seconds)

    reader = PeriodicExportingMetricReader(exporter)
    _meter_holder["reader"] = reader

    active_provider = _meter_holder.get("provider")
    if not isinstance(active_provider, MeterProvider):
        init_metrics(service_name=settings.service_name, metric_readers=[reader])
        return

    # Readers cannot be added to a live provider; replace it
    resource = getattr(active_provider, "resource", None) or getattr(active_provider, "_resource", None)
    if resource is None:
        resource = Resource.create({"service.name": settings.service_name})
    replacement = MeterProvider(resource=resource, metric_readers=[reader])
    otel_metrics.set_meter_provider(replacement)
    _meter_holder["provider"] = replacement
    _meter_holder["meter"] = otel_metrics.get_meter(__name__)


def _get_meter():
    meter = _meter_holder.get("meter")
    if meter is None:
        init_metrics()
        meter = _meter_holder.get("meter")
    return meter


def _label_key(labels: dict[str, str]) -> tuple[tuple[str, str], ...]:
    return tuple(sorted(labels.items()))


class _BoundMetric:
    def __init__(self, wrapper: MetricBridge, labels: dict[str, str]) -> None:
        self._wrapper = wrapper
        self._labels = labels

    def inc(self, amount: float = 1.0) -> None:
        self._wrapper.inc(self._labels, amount)

    def observe(self, value: float) -> None:
        self._wrapper.observe(self._labels, value)

    def set(self, value: float) -> None:
        self._wrapper.set(self._labels, value)


class MetricBridge:
    """Bridge Prometheus metrics to optional OTel instruments."""

    def __init__(
        self,
        prom_metric: Counter | Histogram | Gauge,
        *,
        otel_name: str,
        otel_description: str,
        otel_kind: str,
    ) -> None:
        self._prom_metric = prom_metric
        self._otel_name = otel_name
        self._otel_description = otel_description
        self._otel_kind = otel_kind
        self._otel_instrument = None
        self._last_values: dict[tuple[tuple[str, str], ...], float] = {}

    def labels(self, **labels: str) -> _BoundMetric:
        return _BoundMetric(self, labels)

    def _ensure_otel_instrument(self):
        if self._otel_instrument is not None:
            return self._otel_instrument
        meter = _get_meter()
        if self._otel_kind == "counter":
            self._otel_instrument = meter.create_counter(self._otel_name, description=self._otel_description)
        elif self._otel_kind == "histogram":
            self._otel_instrument = meter.create_histogram(self._otel_name, description=self._otel_description)
        elif self._otel_kind == "gauge":
            self._otel_instrument = meter.create_up_down_counter(self._otel_name, description=self._otel_description)
        else:
            raise ValueError(f"Unknown metric kind: {self._otel_kind}")
        return self._otel_instrument

    def inc(self, labels: dict[str, str], amount: float) -> None:
        self._prom_metric.labels(**labels).inc(amount)
        otel = self._ensure_otel_instrument()
        otel.add(amount, labels)

    def observe(self, labels: dict[str, str], value: float) -> None:
        self._prom_metric.labels(**labels).observe(value)
        otel = self._ensure_otel_instrument()
        otel.record(value, labels)

    def set(self, labels: dict[str, str], value: float) -> None:
        self._prom_metric.labels(**labels).set(value)
        otel = self._ensure_otel_instrument()
        key = _label_key(labels)
        delta = value - self._last_values.get(key, 0.0)
        if delta:
            otel.add(delta, labels)
        self._last_values[key] = value


# Golden signal metrics (Prometheus + OTLP)
_OPERATION_LATENCY_PROM = Histogram(
    "doctor_match_operation_latency_seconds",
    "Engine operation latency in seconds",
    ["operation"],
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0),
)

_OPERATION_COUNT_PROM = Counter(
    "doctor_match_operations_total",
    "Total engine operations",
    ["operation", "status"],
)

_CACHE_EVENTS_PROM = Counter(
    "doctor_match_cache_events_total",
    "Result cache lookups by outcome",
    ["cache", "result"],
)

_INDEXED_DOCTORS_PROM = Gauge(
    "doctor_match_indexed_doctors",
    "Doctors in the n-gram index",
    ["index_mode"],
)

_INDEX_REBUILDS_PROM = Counter(
    "doctor_match_index_rebuilds_total",
    "Doctor index rebuilds by trigger",
    ["reason"],
)

_OTLP_EXPORT_ERRORS_PROM = Counter(
    "otlp_export_errors_total",
    "Total OTLP export configuration errors",
    ["protocol"],
)

_OTLP_EXPORT_STATUS_PROM = Gauge(
    "otlp_exporter_enabled",
    "OTLP exporter enabled status (1=enabled, 0=disabled)",
    ["protocol"],
)

OPERATION_LATENCY = MetricBridge(
    _OPERATION_LATENCY_PROM,
    otel_name="doctor_match_operation_latency_seconds",
    otel_description="Engine operation latency in seconds",
    otel_kind="histogram",
)

OPERATION_COUNT = MetricBridge(
    _OPERATION_COUNT_PROM,
    otel_name="doctor_match_operations_total",
    otel_description="Total engine operations",
    otel_kind="counter",
)

CACHE_EVENTS = MetricBridge(
    _CACHE_EVENTS_PROM,
    otel_name="doctor_match_cache_events_total",
    otel_description="Result cache lookups by outcome",
    otel_kind="counter",
)

INDEXED_DOCTORS = MetricBridge(
    _INDEXED_DOCTORS_PROM,
    otel_name="doctor_match_indexed_doctors",
    otel_description="Doctors in the n-gram index",
    otel_kind="gauge",
)

INDEX_REBUILDS = MetricBridge(
    _INDEX_REBUILDS_PROM,
    otel_name="doctor_match_index_rebuilds_total",
    otel_description="Doctor index rebuilds by trigger",
    otel_kind="counter",
)

OTLP_EXPORT_ERRORS = MetricBridge(
    _OTLP_EXPORT_ERRORS_PROM,
    otel_name="otlp_export_errors_total",
    otel_description="Total OTLP export configuration errors",
    otel_kind="counter",
)

OTLP_EXPORT_STATUS = MetricBridge(
    _OTLP_EXPORT_STATUS_PROM,
    otel_name="otlp_exporter_enabled",
    otel_description="OTLP exporter enabled status (1=enabled, 0=disabled)",
    otel_kind="gauge",
)


@contextmanager
def track_latency(histogram: MetricBridge, **labels: str) -> Generator[None, None, None]:
    """Context manager to track operation latency."""
    start = time.perf_counter()
    try:
        yield
    finally:
        histogram.labels(**labels).observe(time.perf_counter() - start)


@contextmanager
def track_operation(operation: str) -> Generator[None, None, None]:
    """Record latency and an ok/error outcome for one engine operation."""
    status = "ok"
    try:
        with track_latency(OPERATION_LATENCY, operation=operation):
            yield
    except Exception:
        status = "error"
        raise
    finally:
        OPERATION_COUNT.labels(operation=operation, status=status).inc()


def get_metrics() -> bytes:
    """Generate Prometheus metrics output."""
    return generate_latest()

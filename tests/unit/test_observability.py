"""Unit tests for observability module."""

import json
import logging
from unittest.mock import Mock

from prometheus_client import REGISTRY
import pytest

from doctor_match.config import Settings
from doctor_match.domain.model import Doctor
from doctor_match.observability import (
    JsonFormatter,
    configure_logging,
    configure_trace_exporter,
    create_span,
    get_metrics,
    get_trace_context,
    init_tracing,
    metrics as metrics_module,
    set_trace_context,
    tracing as tracing_module,
    track_latency,
    track_operation,
)
from doctor_match.observability.context import update_span_id


def _record(msg: str = "test message", level: int = logging.INFO) -> logging.LogRecord:
    return logging.LogRecord(
        name="doctor_match.service_layer.search_service",
        level=level,
        pathname="test.py",
        lineno=1,
        msg=msg,
        args=(),
        exc_info=None,
    )


@pytest.fixture
def restore_root_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


class TestJsonFormatter:
    """Tests for structured JSON logging."""

    def test_format_includes_trace_context(self):
        set_trace_context("ab" * 16, "cd" * 8, operation="search")

        data = json.loads(JsonFormatter().format(_record()))

        assert data["message"] == "test message"
        assert data["level"] == "INFO"
        assert data["trace_id"] == "ab" * 16
        assert data["span_id"] == "cd" * 8
        assert data["operation"] == "search"
        assert data["component"] == "search_service"

    def test_format_includes_extra_fields(self):
        record = _record()
        record.doctor_id = "d1"

        data = json.loads(JsonFormatter().format(record))

        assert data["doctor_id"] == "d1"

    def test_patient_identity_is_redacted(self):
        record = _record()
        record.patient_name = "Alex Patient"
        record.email = "alex@example.com"
        record.patient_id = "p1"

        data = json.loads(JsonFormatter().format(record))

        assert data["patient_name"] == "[REDACTED]"
        assert data["email"] == "[REDACTED]"
        assert data["patient_id"] == "p1"

    def test_long_message_truncated(self):
        data = json.loads(JsonFormatter().format(_record("x" * 5000)))

        assert data["message"].endswith("...")
        assert len(data["message"]) == JsonFormatter.MAX_MESSAGE_LEN + 3

    def test_models_serialized_as_json(self):
        record = _record()
        record.doctor = Doctor(id="d1", name="Dr. Jane Doe", speciality="cardiologist")

        data = json.loads(JsonFormatter().format(record))

        assert data["doctor"]["id"] == "d1"

    def test_json_default_handles_set_and_bytes(self):
        formatter = JsonFormatter()
        assert formatter._json_default({3, 1, 2}) == [1, 2, 3]
        assert formatter._json_default(b"ok") == "ok"


class TestConfigureLogging:
    def test_replaces_root_handlers(self, restore_root_logging):
        configure_logging("debug", json_output=True)
        configure_logging("warning", json_output=False, logger_levels={"doctor_match.search": "error"})

        root = restore_root_logging
        assert len(root.handlers) == 1
        assert not isinstance(root.handlers[0].formatter, JsonFormatter)
        assert root.level == logging.WARNING
        assert logging.getLogger("doctor_match.search").level == logging.ERROR

    def test_json_output_uses_json_formatter(self, restore_root_logging):
        configure_logging("info", json_output=True)

        assert isinstance(restore_root_logging.handlers[0].formatter, JsonFormatter)


class TestTraceContext:
    """Tests for trace context propagation."""

    def test_get_trace_context_generates_ids(self):
        ctx = get_trace_context()
        assert len(ctx["trace_id"]) == 32
        assert len(ctx["span_id"]) == 16

    def test_update_span_id_preserves_trace_id(self):
        set_trace_context("aa" * 16, "bb" * 8, operation="match")
        update_span_id("cc" * 8)

        ctx = get_trace_context()
        assert ctx["trace_id"] == "aa" * 16
        assert ctx["span_id"] == "cc" * 8
        assert ctx["operation"] == "match"


class TestTracing:
    def test_create_span_context_manager(self):
        init_tracing("test-service")
        with create_span("doctor_match.test", attributes={"limit": 5, "skipped": None}) as span:
            assert span is not None

    def test_create_span_reraises(self):
        with pytest.raises(ValueError, match="bad"), create_span("doctor_match.failing"):
            raise ValueError("bad")

    def test_configure_trace_exporter_disabled_is_noop(self, monkeypatch):
        exporter = Mock()
        monkeypatch.setattr(tracing_module, "GrpcOTLPSpanExporter", exporter)

        configure_trace_exporter(Settings(otlp_enabled=False))
        configure_trace_exporter(None)

        exporter.assert_not_called()

    def test_configure_trace_exporter_adds_span_processor(self, monkeypatch):
        provider = init_tracing("test-service")
        monkeypatch.setattr(tracing_module, "HttpOTLPSpanExporter", Mock(return_value=object()))
        monkeypatch.setattr(tracing_module, "BatchSpanProcessor", Mock(return_value="processor"))
        add_processor = Mock()
        provider.add_span_processor = add_processor  # type: ignore[method-assign]

        settings = Settings(otlp_enabled=True, otlp_protocol="http", otlp_endpoint="http://collector/v1/traces")
        configure_trace_exporter(settings, provider=provider)

        add_processor.assert_called_once_with("processor")

    def test_configure_trace_exporter_handles_exporter_failure(self, monkeypatch):
        monkeypatch.setattr(tracing_module, "GrpcOTLPSpanExporter", Mock(side_effect=RuntimeError("boom")))
        before = REGISTRY.get_sample_value("otlp_export_errors_total", {"protocol": "grpc"}) or 0.0

        configure_trace_exporter(Settings(otlp_enabled=True, otlp_protocol="grpc"), provider=init_tracing())

        assert REGISTRY.get_sample_value("otlp_exporter_enabled", {"protocol": "grpc"}) == 0
        assert REGISTRY.get_sample_value("otlp_export_errors_total", {"protocol": "grpc"}) == before + 1


class TestMetrics:
    @staticmethod
    def _count(operation: str, status: str) -> float:
        value = REGISTRY.get_sample_value(
            "doctor_match_operations_total", {"operation": operation, "status": status}
        )
        return value or 0.0

    def test_track_operation_counts_success(self):
        before = self._count("unit_ok", "ok")

        with track_operation("unit_ok"):
            pass

        assert self._count("unit_ok", "ok") == before + 1

    def test_track_operation_counts_failure_and_reraises(self):
        before = self._count("unit_fail", "error")

        with pytest.raises(RuntimeError), track_operation("unit_fail"):
            raise RuntimeError("boom")

        assert self._count("unit_fail", "error") == before + 1

    def test_track_latency_observes_histogram(self):
        labels = {"operation": "unit_latency"}
        before = REGISTRY.get_sample_value("doctor_match_operation_latency_seconds_count", labels) or 0.0

        with track_latency(metrics_module.OPERATION_LATENCY, operation="unit_latency"):
            pass

        assert REGISTRY.get_sample_value("doctor_match_operation_latency_seconds_count", labels) == before + 1

    def test_metric_bridge_unknown_kind_raises(self):
        bridge = metrics_module.MetricBridge(
            Mock(),
            otel_name="unit_unknown",
            otel_description="unknown",
            otel_kind="summary",
        )

        with pytest.raises(ValueError, match="Unknown metric kind"):
            bridge.labels(kind="x").inc()

    def test_exposition(self):
        assert b"doctor_match_operations_total" in get_metrics()

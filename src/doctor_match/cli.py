"""Operator CLI for running the matching engine against JSON directory exports.

Every engine operation is available as a subcommand; results are printed
to stdout as JSON and logs go to stderr.
"""

# ruff: noqa: T201  # CLI intentionally prints operator output

from __future__ import annotations

import argparse
import asyncio
from collections.abc import Sequence
import logging
from pathlib import Path
import sys
import textwrap
from typing import Any

import orjson
from pydantic import BaseModel, ValidationError

from doctor_match.adapters.directory import (
    AbstractAppointmentLedger,
    AbstractPatientDirectory,
    FakeAppointmentLedger,
    FakePatientDirectory,
)
from doctor_match.adapters.json_directory import JsonAppointmentLedger, JsonDoctorDirectory, JsonPatientDirectory
from doctor_match.config import Settings
from doctor_match.domain.model import DoctorMatchError
from doctor_match.domain.search import MatchCriteria, SearchFilters
from doctor_match.observability.context import generate_span_id, generate_trace_id, set_trace_context
from doctor_match.observability.logging import configure_logging
from doctor_match.observability.metrics import configure_metrics_exporter, get_metrics
from doctor_match.observability.tracing import configure_trace_exporter, init_tracing
from doctor_match.service_layer.engine import MatchingEngine


logger = logging.getLogger(__name__)


def build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="doctor-match",
        description="Fuzzy doctor search and patient matching over JSON directory exports",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent(
            """
            Examples:
              doctor-match --doctors doctors.json search "cardiolgist" --max-fees 150
              doctor-match --doctors doctors.json suggest card
              doctor-match --doctors doctors.json --patients patients.json match p1 --symptom "chest pain"
              doctor-match --doctors doctors.json --appointments appointments.json similar-patients d1
              doctor-match --doctors doctors.json stats
            """
        ).strip(),
    )
    parser.add_argument("--doctors", type=Path, required=True, help="JSON export of doctor profiles")
    parser.add_argument("--patients", type=Path, help="JSON export of patient records (required by match)")
    parser.add_argument("--appointments", type=Path, help="JSON export of appointments (required by similar-patients)")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL (debug, info, warning, error)")
    parser.add_argument(
        "--json-logs",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Emit structured JSON logs (default: LOG_JSON)",
    )
    parser.add_argument("--print-metrics", action="store_true", help="Write Prometheus metrics to stderr on exit")

    commands = parser.add_subparsers(dest="command", required=True)

    search = commands.add_parser("search", help="Fuzzy free-text doctor search")
    search.add_argument("query")
    search.add_argument("--speciality", help="Keep doctors whose speciality contains this text")
    search.add_argument("--min-fees", type=float)
    search.add_argument("--max-fees", type=float)
    search.add_argument("--min-experience", type=int, help="Minimum years of experience")
    search.add_argument(
        "--available",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Keep only available (or with --no-available, unavailable) doctors",
    )
    search.add_argument("--limit", type=int)

    suggest = commands.add_parser("suggest", help="Autocomplete suggestions for a partial query")
    suggest.add_argument("partial_query")
    suggest.add_argument("--limit", type=int)

    similar_doctors = commands.add_parser("similar-doctors", help="Doctors with profiles similar to a doctor")
    similar_doctors.add_argument("doctor_id")
    similar_doctors.add_argument("--limit", type=int)

    match = commands.add_parser("match", help="Rank doctors for a patient")
    match.add_argument("patient_id")
    match.add_argument("--symptom", dest="symptoms", action="append", default=[], metavar="TEXT")
    match.add_argument("--prefer", dest="specialities", action="append", default=None, metavar="SPECIALITY")
    match.add_argument("--max-fees", type=float)
    match.add_argument("--location")
    match.add_argument("--gender")
    match.add_argument("--min-experience", type=int)
    match.add_argument("--urgency", choices=("normal", "urgent", "emergency"))
    match.add_argument("--limit", type=int)

    similar_patients = commands.add_parser("similar-patients", help="Past patients of a doctor")
    similar_patients.add_argument("doctor_id")
    similar_patients.add_argument("--limit", type=int)

    commands.add_parser("stats", help="Index statistics after building it from --doctors")
    return parser


def build_engine(args: argparse.Namespace, settings: Settings) -> MatchingEngine:
    patients: AbstractPatientDirectory = (
        JsonPatientDirectory(args.patients) if args.patients else FakePatientDirectory()
    )
    appointments: AbstractAppointmentLedger = (
        JsonAppointmentLedger(args.appointments) if args.appointments else FakeAppointmentLedger()
    )
    return MatchingEngine(settings, JsonDoctorDirectory(args.doctors), patients, appointments)


def _symptom_mapping(symptoms: Sequence[str]) -> dict[str, str]:
    return {f"symptom_{position}": text for position, text in enumerate(symptoms, start=1)}


async def run_command(engine: MatchingEngine, args: argparse.Namespace) -> Any:
    """Dispatch one parsed subcommand to the engine and return its result."""
    if args.command == "search":
        filters = SearchFilters(
            speciality=args.speciality,
            min_fees=args.min_fees,
            max_fees=args.max_fees,
            min_experience=args.min_experience,
            available=args.available,
        )
        return await engine.search_doctors(args.query, filters, args.limit)

    if args.command == "suggest":
        return await engine.get_search_suggestions(args.partial_query, args.limit)

    if args.command == "similar-doctors":
        return await engine.find_similar_doctors(args.doctor_id, args.limit)

    if args.command == "match":
        criteria = MatchCriteria(
            preferred_specialities=args.specialities,
            max_fees=args.max_fees,
            preferred_location=args.location,
            preferred_gender=args.gender,
            preferred_experience=args.min_experience,
            urgency=args.urgency,
        )
        return await engine.match_patient_with_doctors(
            args.patient_id, _symptom_mapping(args.symptoms), criteria, args.limit
        )

    if args.command == "similar-patients":
        return await engine.get_similar_patients(args.doctor_id, args.limit)

    if args.command == "stats":
        await engine.warm_index()
        return engine.get_ngram_statistics()

    raise ValueError(f"Unknown command: {args.command}")


def _json_default(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    raise TypeError(f"Type is not JSON serializable: {type(value).__name__}")


def render(result: Any) -> str:
    options = orjson.OPT_INDENT_2 | orjson.OPT_NON_STR_KEYS
    return orjson.dumps(result, default=_json_default, option=options).decode("utf-8")


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_argument_parser()
    args = parser.parse_args(argv)

    try:
        settings = Settings()
    except ValidationError as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return 1

    configure_logging(
        level=args.log_level or settings.log_level,
        json_output=settings.log_json if args.json_logs is None else args.json_logs,
    )
    if settings.otlp_enabled:
        configure_trace_exporter(settings, init_tracing(settings.service_name))
        configure_metrics_exporter(settings)

    set_trace_context(generate_trace_id(), generate_span_id(), operation=args.command)
    engine = build_engine(args, settings)

    try:
        result = asyncio.run(run_command(engine, args))
    except (DoctorMatchError, ValidationError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    finally:
        if args.print_metrics:
            sys.stderr.write(get_metrics().decode("utf-8"))

    print(render(result))
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())

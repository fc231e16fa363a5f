"""Unit tests for the doctor-match command line."""

import json
import logging

import pytest

from doctor_match.cli import build_argument_parser, main, render
from doctor_match.domain.search import GramFrequency


@pytest.fixture(autouse=True)
def restore_root_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def _run(capsys, *argv):
    code = main(["--log-level", "warning", *argv])
    captured = capsys.readouterr()
    return code, captured.out, captured.err


class TestArgumentParser:
    def test_match_options(self):
        args = build_argument_parser().parse_args(
            ["--doctors", "d.json", "match", "p1", "--symptom", "cough", "--symptom", "fever", "--urgency", "urgent"]
        )

        assert args.command == "match"
        assert args.symptoms == ["cough", "fever"]
        assert args.specialities is None
        assert args.urgency == "urgent"

    def test_doctors_file_is_required(self):
        with pytest.raises(SystemExit):
            build_argument_parser().parse_args(["search", "cardiologist"])

    def test_unknown_urgency_rejected(self):
        with pytest.raises(SystemExit):
            build_argument_parser().parse_args(["--doctors", "d.json", "match", "p1", "--urgency", "later"])


class TestCommands:
    def test_search(self, capsys, directory_files):
        doctors = str(directory_files["doctors"])
        code, out, _ = _run(capsys, "--doctors", doctors, "search", "cardiologist", "--limit", "2")

        results = json.loads(out)
        assert code == 0
        assert len(results) == 2
        assert results[0]["doctor"]["id"] == "d1"

    def test_search_with_filters(self, capsys, directory_files):
        code, out, _ = _run(capsys, "--doctors", str(directory_files["doctors"]), "search", "mbbs", "--max-fees", "80")

        assert code == 0
        assert {result["doctor"]["id"] for result in json.loads(out)} == {"d2", "d5"}

    def test_suggest(self, capsys, directory_files):
        code, out, _ = _run(capsys, "--doctors", str(directory_files["doctors"]), "suggest", "card")

        assert code == 0
        assert json.loads(out) == ["Cardiologist"]

    def test_match(self, capsys, directory_files):
        code, out, _ = _run(
            capsys,
            "--doctors",
            str(directory_files["doctors"]),
            "--patients",
            str(directory_files["patients"]),
            "match",
            "p1",
            "--symptom",
            "chest pain",
        )

        results = json.loads(out)
        assert code == 0
        assert results[0]["doctor"]["id"] == "d1"
        assert set(results[0]["score_breakdown"]) == {
            "speciality_match",
            "symptom_match",
            "preference_match",
            "experience_match",
            "availability_match",
            "location_match",
            "medical_history_match",
        }

    def test_match_unknown_patient(self, capsys, directory_files):
        code, out, err = _run(
            capsys,
            "--doctors",
            str(directory_files["doctors"]),
            "--patients",
            str(directory_files["patients"]),
            "match",
            "nobody",
        )

        assert code == 1
        assert out == ""
        assert "Error: Patient not found: nobody" in err

    def test_similar_patients(self, capsys, directory_files):
        code, out, _ = _run(
            capsys,
            "--doctors",
            str(directory_files["doctors"]),
            "--appointments",
            str(directory_files["appointments"]),
            "similar-patients",
            "d1",
        )

        assert code == 0
        assert [item["patient_id"] for item in json.loads(out)] == ["p4", "p1"]

    def test_similar_patients_without_ledger(self, capsys, directory_files):
        code, out, _ = _run(capsys, "--doctors", str(directory_files["doctors"]), "similar-patients", "d1")

        assert code == 0
        assert json.loads(out) == []

    def test_stats_builds_index(self, capsys, directory_files):
        code, out, _ = _run(capsys, "--doctors", str(directory_files["doctors"]), "stats")

        stats = json.loads(out)
        assert code == 0
        assert stats["total_doctors"] == 4
        assert len(stats["most_common_ngrams"]) == 10

    def test_missing_doctors_file(self, capsys, tmp_path):
        code, _, err = _run(capsys, "--doctors", str(tmp_path / "absent.json"), "search", "cardiologist")

        assert code == 1
        assert "Error: Cannot load" in err

    def test_invalid_configuration(self, capsys, directory_files, monkeypatch):
        monkeypatch.setenv("SEARCH_CACHE_TTL_SECONDS", "-5")

        code, _, err = _run(capsys, "--doctors", str(directory_files["doctors"]), "stats")

        assert code == 1
        assert "Invalid configuration" in err

    def test_print_metrics(self, capsys, directory_files):
        code, _, err = _run(capsys, "--print-metrics", "--doctors", str(directory_files["doctors"]), "stats")

        assert code == 0
        assert "doctor_match_operations_total" in err


def test_render_serializes_models_and_int_keys():
    rendered = json.loads(render({"items": [GramFrequency(gram="ca", frequency=3)], "distribution": {1: 2}}))

    assert rendered == {"items": [{"gram": "ca", "frequency": 3}], "distribution": {"1": 2}}

"""Export writers and the diagnostics sink."""
from __future__ import annotations

import csv
import json
import logging
import re

from backend.app.taskgen.diagnostics import DiagnosticsSink
from backend.app.taskgen.exports import CSV_COLUMNS, write_raw_response, write_task_exports

TASKS = [
    {
        "task": "Stretch, then breathe",
        "pillar_code": "BODY",
        "trait_code": "BODY_MOBILITY",
        "stat_code": "BODY_MOBILITY",
        "difficulty_code": "Easy",
        "friction_score": 22,
        "friction_tier": "E-F",
    },
    {
        "task": "Journal for 5 minutes",
        "pillar_code": "SOUL",
        "trait_code": "SOUL_CONNECTION",
        "stat_code": "SOUL_CONNECTION",
        "difficulty_code": "Medium",
        "friction_score": 47,
        "friction_tier": "M-F",
    },
]


class TestExports:
    def test_writes_three_files(self, tmp_path):
        result = {"status": "ok", "user_id": "u-1", "tasks": TASKS}
        written = write_task_exports(tmp_path / "out", "u-1", "flow", result, "g-1")

        assert [p.name for p in written] == ["u-1.flow.json", "u-1.flow.jsonl", "u-1.flow.csv"]
        assert json.loads(written[0].read_text(encoding="utf-8")) == result

        lines = written[1].read_text(encoding="utf-8").splitlines()
        assert [json.loads(line) for line in lines] == TASKS

        with open(written[2], encoding="utf-8", newline="") as f:
            rows = list(csv.DictReader(f))
        assert list(rows[0]) == list(CSV_COLUMNS)
        assert rows[0]["task"] == "Stretch, then breathe"
        assert rows[1]["tasks_group_id"] == "g-1"

    def test_error_result_writes_empty_task_files(self, tmp_path):
        written = write_task_exports(tmp_path, "u-1", "low", {"status": "error", "tasks": None}, "N/A")
        assert written[1].read_text(encoding="utf-8") == ""
        assert written[2].read_text(encoding="utf-8").strip() == ",".join(CSV_COLUMNS)

    def test_raw_response(self, tmp_path):
        path = write_raw_response(tmp_path, "u-1", "chill", "garbage")
        assert path.name == "u-1.chill.raw_response.txt"
        assert path.read_text(encoding="utf-8") == "garbage"


class TestDiagnosticsSink:
    def test_metadata_is_rendered_and_attached(self, caplog):
        sink = DiagnosticsSink(())
        with caplog.at_level(logging.DEBUG, logger="taskgen"):
            sink.warning("Something odd", {"user_id": "u-1", "count": 2})
            sink.debug("plain")

        first, second = caplog.records
        assert first.levelno == logging.WARNING
        assert first.getMessage() == '[taskgen] Something odd {"user_id":"u-1","count":2}'
        assert first.taskgen == {"user_id": "u-1", "count": 2}
        assert second.getMessage() == "[taskgen] plain"

    def test_error_log_appends_timestamped_lines(self, tmp_path):
        sink = DiagnosticsSink((tmp_path / "exports",))
        first = sink.append_error_log("first failure")
        second = sink.append_error_log("second failure")

        assert first == second == str(tmp_path / "exports" / "errors.log")
        lines = (tmp_path / "exports" / "errors.log").read_text(encoding="utf-8").splitlines()
        assert len(lines) == 2
        assert re.match(r"^\[\d{4}-\d{2}-\d{2}T[^\]]+\] first failure$", lines[0])

    def test_unwritable_candidate_is_skipped(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory", encoding="utf-8")
        sink = DiagnosticsSink((blocker / "exports", tmp_path / "fallback"))

        assert sink.ensure_exports_dir() == tmp_path / "fallback"
        assert sink.append_error_log("x") == str(tmp_path / "fallback" / "errors.log")

    def test_error_log_failure_is_swallowed(self, tmp_path, caplog):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory", encoding="utf-8")
        sink = DiagnosticsSink((blocker / "exports",))

        with caplog.at_level(logging.WARNING, logger="taskgen"):
            assert sink.append_error_log("x") is None
        assert any("Unable to append to error log" in r.getMessage() for r in caplog.records)

    def test_no_candidates(self):
        assert DiagnosticsSink(()).append_error_log("x") is None

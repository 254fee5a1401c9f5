"""Smoke tests for the innerbloom CLI wrapper.

Run with: python -m pytest tests/test_cli.py -v
"""
from __future__ import annotations

import json
import os
import subprocess
import sys
from pathlib import Path

import pytest

from innerbloom.cli import main

PROJECT_ROOT = Path(__file__).resolve().parents[1]


def _run_cli(*args: str, env: dict[str, str] | None = None, timeout: int = 60) -> subprocess.CompletedProcess:
    full_env = {k: v for k, v in os.environ.items() if k != "OPENAI_API_KEY"}
    full_env.update(env or {})
    return subprocess.run(
        [sys.executable, "-m", "innerbloom", *args],
        capture_output=True,
        text=True,
        timeout=timeout,
        cwd=PROJECT_ROOT,
        env=full_env,
    )


@pytest.fixture
def isolated_env(tmp_path, monkeypatch):
    """Point exports and the database at tmp_path; no credentials."""
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("DB_SNAPSHOT_PATH", raising=False)
    monkeypatch.setenv("TASKGEN_EXPORTS_DIR", str(tmp_path / "exports"))
    monkeypatch.setenv("TASKGEN_DB_PATH", str(tmp_path / "cli.db"))
    monkeypatch.setenv("TASKGEN_PROMPTS_PATH", str(PROJECT_ROOT / "prompts"))
    return tmp_path


def _main(*argv: str) -> int:
    with pytest.raises(SystemExit) as excinfo:
        main(list(argv))
    return excinfo.value.code


class TestCLIHelp:
    """Verify that all subcommands register and print help without errors."""

    def test_main_help(self):
        result = _run_cli("--help")
        assert result.returncode == 0
        for command in ("generate", "interactive", "snapshot", "init-db", "config"):
            assert command in result.stdout

    def test_generate_help(self):
        result = _run_cli("generate", "--help")
        assert result.returncode == 0
        assert "--dry-run" in result.stdout
        assert "--source" in result.stdout

    def test_interactive_help(self):
        result = _run_cli("interactive", "--help")
        assert result.returncode == 0
        assert "--prompt-file" in result.stdout
        assert "--store" in result.stdout


class TestGenerate:
    def test_mock_dry_run_subprocess(self, tmp_path):
        result = _run_cli(
            "generate",
            "--user",
            "cli-user",
            "--mode",
            "flow",
            "--source",
            "mock",
            "--dry-run",
            env={"TASKGEN_EXPORTS_DIR": str(tmp_path / "exports")},
        )
        assert result.returncode == 0, result.stdout + result.stderr
        assert "OK    cli-user mode=flow source=mock tasks=15" in result.stdout

    def test_json_output_and_exports(self, isolated_env, capsys):
        rc = _main("generate", "--user", "cli-user", "--mode", "low", "--source", "mock", "--dry-run", "--json", "--export")
        out = capsys.readouterr().out
        assert rc == 0
        data = json.loads(out[: out.index("      wrote")])
        assert data["status"] == "ok"
        assert data["mode"] == "low"
        exports = isolated_env / "exports"
        assert (exports / "cli-user.low.json").exists()
        assert (exports / "cli-user.low.csv").exists()

    def test_missing_api_key_fails(self, isolated_env, capsys):
        rc = _main("generate", "--user", "cli-user", "--mode", "flow", "--source", "mock")
        out = capsys.readouterr().out
        assert rc == 1
        assert "OPENAI_API_KEY is not configured" in out
        assert (isolated_env / "exports" / "errors.log").exists()

    def test_all_users_from_mock_snapshot(self, isolated_env, capsys):
        rc = _main("generate", "--all", "--source", "mock", "--dry-run")
        assert rc == 0
        assert "mode=flow source=mock" in capsys.readouterr().out

    def test_user_or_all_is_required(self, isolated_env):
        assert _main("generate", "--mode", "flow") == 2


class TestDatabaseCommands:
    def test_init_db_then_snapshot(self, isolated_env, capsys):
        assert _main("init-db") == 0
        assert "Applied" in capsys.readouterr().out
        assert _main("init-db") == 0
        assert "Database up to date" in capsys.readouterr().out

        out_file = isolated_env / "snap" / "db-snapshot.json"
        assert _main("snapshot", "--out", str(out_file)) == 0
        data = json.loads(out_file.read_text(encoding="utf-8"))
        assert data["samples"]["users"] == []

    def test_snapshot_without_database(self, isolated_env, capsys):
        assert _main("snapshot", "--db", str(isolated_env / "missing.db")) == 1
        assert "Database not found" in capsys.readouterr().out


class TestInteractiveAndConfig:
    def test_interactive_dry_run(self, isolated_env, capsys):
        assert _main("interactive", "--user", "cli-user", "--source", "mock", "--dry-run") == 0
        data = json.loads(capsys.readouterr().out)
        assert data["status"] == "ok"
        assert data["mode"] == "flow"
        assert "raw_output" not in data

    def test_interactive_missing_prompt_file(self, isolated_env, capsys):
        rc = _main("interactive", "--user", "cli-user", "--prompt-file", str(isolated_env / "nope.txt"))
        assert rc == 1
        assert "Prompt file not found" in capsys.readouterr().out

    def test_config_redacts_key(self, isolated_env, monkeypatch, capsys):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-abcdefghijklmnop")
        assert _main("config") == 0
        out = capsys.readouterr().out
        assert "sk-...mnop" in out
        assert "sk-abcdefghijklmnop" not in out

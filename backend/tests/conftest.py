"""Pytest setup: force temp files into workspace, drop model credentials, shared fixtures."""
from __future__ import annotations

import os
import tempfile
from pathlib import Path

import pytest

from backend.app.db.connection import open_db
from backend.app.db.migrate import apply_schema
from shared.runtime_settings import TaskgenSettings

PROJECT_ROOT = Path(__file__).resolve().parents[2]
PROMPTS_DIR = PROJECT_ROOT / "prompts"


def pytest_sessionstart(session) -> None:
    """Redirect temp files to a writable workspace path and keep tests offline."""
    tmp_root = Path(__file__).resolve().parent / ".tmp"
    tmp_root.mkdir(parents=True, exist_ok=True)
    for key in ("TMPDIR", "TEMP", "TMP"):
        os.environ[key] = str(tmp_root)
    tempfile.tempdir = str(tmp_root)
    for key in ("OPENAI_API_KEY", "DB_SNAPSHOT_PATH", "TASKGEN_PROMPTS_PATH"):
        os.environ.pop(key, None)


@pytest.fixture
def make_settings(tmp_path):
    """Build settings rooted in ``tmp_path`` so no repository file is picked up by accident."""

    def _make(**overrides) -> TaskgenSettings:
        values = dict(
            api_key="",
            prompts_path=PROMPTS_DIR,
            app_roots=(tmp_path,),
            exports_dirs=(tmp_path / "exports",),
            db_path=str(tmp_path / "taskgen.db"),
        )
        values.update(overrides)
        return TaskgenSettings(**values)

    return _make


@pytest.fixture
def settings(make_settings) -> TaskgenSettings:
    return make_settings()


SEED_USER_ID = "db-user-1"


@pytest.fixture
def seeded_db(tmp_path) -> str:
    """Migrated SQLite file with a three-pillar catalog and one user."""
    db_path = str(tmp_path / "seeded.db")
    apply_schema(db_path)
    with open_db(db_path) as conn:
        conn.executemany(
            "INSERT INTO cat_game_mode (game_mode_id, code, name, weekly_target) VALUES (?, ?, ?, ?)",
            [(1, "FLOW", "Flow", 3), (2, "CHILL", "Chill", 2), (3, "EVOLVE", "Evolve", 4), (4, "LOW", "Low", 1)],
        )
        conn.executemany(
            "INSERT INTO cat_pillar (pillar_id, code, name) VALUES (?, ?, ?)",
            [(1, "BODY", "Body"), (2, "MIND", "Mind"), (3, "SOUL", "Soul")],
        )
        conn.executemany(
            "INSERT INTO cat_trait (trait_id, pillar_id, code, name) VALUES (?, ?, ?, ?)",
            [(11, 1, "BODY_MOBILITY", "Mobility"), (12, 2, "MIND_FOCUS", "Focus"), (13, 3, "SOUL_CONNECTION", "Connection")],
        )
        conn.executemany(
            "INSERT INTO cat_difficulty (difficulty_id, code, name, xp_base) VALUES (?, ?, ?, ?)",
            [(1, "Easy", "Easy", 10), (2, "Medium", "Medium", 20), (3, "Hard", "Hard", 30)],
        )
        conn.execute(
            "INSERT INTO users (user_id, full_name, tasks_group_id, game_mode_id, scheduler_enabled) "
            "VALUES (?, ?, ?, ?, ?)",
            (SEED_USER_ID, "Db User", "db-group-1", 2, 1),
        )
        conn.execute(
            "INSERT INTO onboarding_session (onboarding_session_id, user_id, client_id, game_mode_id, meta) "
            "VALUES (?, ?, ?, ?, ?)",
            ("onb-1", SEED_USER_ID, "web", 2, '{"lang": "es"}'),
        )
        conn.commit()
    return db_path

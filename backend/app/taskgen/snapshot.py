"""Snapshot resolution: pick one reference-data snapshot for a generation call.

Sources:
    mock   – deterministic in-memory snapshot synthesized for the user id
    static – fixture bundle ``{snapshot, payload}`` replayed without a model call
    live   – snapshot dump on disk (env path, then app-relative defaults), then the
             bundled sample dump, then mock
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from backend.app.core.error_handling import ConfigurationError
from backend.app.models.snapshot import Snapshot, SnapshotResolution
from backend.app.models.taskgen import TaskPayload
from backend.app.taskgen.candidates import first_success, read_json
from shared.runtime_settings import TaskgenSettings

logger = logging.getLogger(__name__)

SOURCES: tuple[str, ...] = ("live", "mock", "static")
_SOURCE_ALIASES = {"snapshot": "live"}


def normalize_source(source: str | None) -> str:
    """Map a requested source (or alias) onto one of ``SOURCES``; None means live."""
    value = (source or "live").strip().lower()
    value = _SOURCE_ALIASES.get(value, value)
    if value not in SOURCES:
        raise ConfigurationError(f"Unsupported snapshot source: {source}")
    return value


def build_mock_snapshot(user_id: str) -> Snapshot:
    """Small deterministic snapshot; the same user id always yields the same tables."""
    return Snapshot.model_validate(
        {
            "users": [
                {
                    "user_id": user_id,
                    "full_name": "Debug Taskgen User",
                    "email_primary": "debug@example.com",
                    "tasks_group_id": "debug-group",
                    "preferred_language": "en",
                    "preferred_timezone": "UTC",
                    "scheduler_enabled": True,
                    "channel_scheduler": "email",
                    "status_scheduler": "active",
                    "game_mode_id": 101,
                }
            ],
            "cat_game_mode": [
                {"game_mode_id": 101, "code": "FLOW", "name": "Flow", "weekly_target": 3},
                {"game_mode_id": 102, "code": "CHILL", "name": "Chill", "weekly_target": 2},
                {"game_mode_id": 103, "code": "EVOLVE", "name": "Evolve", "weekly_target": 4},
                {"game_mode_id": 104, "code": "LOW", "name": "Low", "weekly_target": 1},
            ],
            "cat_pillar": [
                {"pillar_id": 1, "code": "BODY", "name": "Body"},
                {"pillar_id": 2, "code": "MIND", "name": "Mind"},
                {"pillar_id": 3, "code": "SOUL", "name": "Soul"},
            ],
            "cat_trait": [
                {"trait_id": 1, "pillar_id": 1, "code": "BODY_MOBILITY", "name": "Mobility"},
                {"trait_id": 2, "pillar_id": 2, "code": "MIND_FOCUS", "name": "Focus"},
                {"trait_id": 3, "pillar_id": 3, "code": "SOUL_CONNECTION", "name": "Connection"},
            ],
            "cat_difficulty": [
                {"difficulty_id": 1, "code": "Easy", "name": "Easy", "xp_base": 10},
                {"difficulty_id": 2, "code": "Medium", "name": "Medium", "xp_base": 20},
                {"difficulty_id": 3, "code": "Hard", "name": "Hard", "xp_base": 30},
            ],
            "onboarding_session": [
                {
                    "onboarding_session_id": f"debug-{user_id}",
                    "user_id": user_id,
                    "client_id": "debug-client",
                    "game_mode_id": 101,
                    "meta": {"mocked": True},
                }
            ],
        }
    )


def _snapshot_tables(data: Any) -> dict[str, Any]:
    """Accept either ``{samples: {...}}`` or the bare table mapping."""
    if isinstance(data, dict) and isinstance(data.get("samples"), dict):
        return data["samples"]
    if isinstance(data, dict):
        return data
    raise ConfigurationError("Snapshot data must be a JSON object.")


def load_live_snapshot(path: Path) -> Snapshot:
    """Load a live dump; a file without a ``samples`` key is fatal."""
    data = read_json(path)
    if not isinstance(data, dict) or not data.get("samples"):
        raise ConfigurationError("Snapshot file missing `samples` key.")
    return Snapshot.model_validate(data["samples"])


def load_sample_snapshot(path: Path) -> Snapshot | None:
    data = read_json(path)
    if not isinstance(data, dict) or not isinstance(data.get("samples"), dict):
        return None
    return Snapshot.model_validate(data["samples"])


def load_fixture_bundle(path: Path) -> tuple[Snapshot, TaskPayload | None]:
    data = read_json(path)
    if not isinstance(data, dict) or "snapshot" not in data:
        raise ConfigurationError(f"Fixture bundle missing `snapshot` key: {path}")
    snapshot = Snapshot.model_validate(_snapshot_tables(data["snapshot"]))
    payload = data.get("payload")
    return snapshot, TaskPayload.model_validate(payload) if payload is not None else None


def resolve_snapshot(settings: TaskgenSettings, source: str | None, user_id: str) -> SnapshotResolution:
    """Resolve a snapshot for ``user_id``. Missing files advance; other errors propagate."""
    requested = normalize_source(source)

    if requested == "mock":
        return SnapshotResolution(snapshot=build_mock_snapshot(user_id), source="mock")

    if requested == "static":
        hit = first_success(settings.fixture_candidates(), load_fixture_bundle)
        if hit is not None:
            snapshot, payload = hit.value
            logger.info("Loaded static fixture snapshot: %s", hit.path)
            return SnapshotResolution(snapshot=snapshot, source="static", path=hit.path, fixture_payload=payload)
        logger.warning("Static fixture not found, falling back to mock")
        return SnapshotResolution(snapshot=build_mock_snapshot(user_id), source="mock")

    hit = first_success(settings.snapshot_candidates(), load_live_snapshot)
    if hit is not None:
        logger.info("Loaded snapshot: %s", hit.path)
        return SnapshotResolution(snapshot=hit.value, source="live", path=hit.path)

    sample = first_success(settings.sample_snapshot_candidates(), load_sample_snapshot)
    if sample is not None and sample.value is not None:
        logger.warning("Using snapshot sample as fallback: %s", sample.path)
        return SnapshotResolution(snapshot=sample.value, source="live", path=sample.path)

    logger.warning("Snapshot not found, using mock snapshot")
    return SnapshotResolution(snapshot=build_mock_snapshot(user_id), source="mock")

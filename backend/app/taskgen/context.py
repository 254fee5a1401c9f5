"""Per-call generation context: snapshot, user rows and catalog resolved together."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from backend.app.core.error_handling import ConfigurationError
from backend.app.models.snapshot import (
    GameModeRow,
    OnboardingSessionRow,
    Snapshot,
    SnapshotResolution,
    UserRow,
)
from backend.app.models.taskgen import TaskPayload
from backend.app.taskgen.catalog import Catalog, build_catalog
from backend.app.taskgen.snapshot import build_mock_snapshot, resolve_snapshot
from shared.runtime_settings import TaskgenSettings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenerationContext:
    snapshot: Snapshot
    source: str
    user: UserRow
    onboarding: OnboardingSessionRow | None
    catalog: Catalog
    snapshot_path: Path | None = None
    fixture_payload: TaskPayload | None = None

    @property
    def user_game_mode(self) -> GameModeRow | None:
        return self.snapshot.find_game_mode(self.user.game_mode_id)

    def game_mode_for(self, mode: str | None) -> GameModeRow | None:
        """Catalog row whose code matches ``mode``, else the user's current game mode."""
        return self.snapshot.find_game_mode_by_code(mode) or self.user_game_mode


def context_from_resolution(resolution: SnapshotResolution, user_id: str) -> GenerationContext:
    """Bind a resolution to a user, demoting to the mock snapshot when the user is absent."""
    snapshot = resolution.snapshot
    source = resolution.source
    path = resolution.path
    fixture_payload = resolution.fixture_payload

    user = snapshot.find_user(user_id)
    if user is None and source != "mock":
        logger.warning("User %s not found in %s snapshot, switching to mock snapshot", user_id, source)
        snapshot = build_mock_snapshot(user_id)
        source = "mock"
        path = None
        fixture_payload = None
        user = snapshot.find_user(user_id)
    elif user is None:
        user = build_mock_snapshot(user_id).users[0]

    if user is None:
        raise ConfigurationError("Unable to resolve user for task generation")

    return GenerationContext(
        snapshot=snapshot,
        source=source,
        user=user,
        onboarding=snapshot.find_onboarding(user.user_id),
        catalog=build_catalog(snapshot),
        snapshot_path=path,
        fixture_payload=fixture_payload,
    )


def resolve_context(settings: TaskgenSettings, user_id: str, source: str | None) -> GenerationContext:
    return context_from_resolution(resolve_snapshot(settings, source, user_id), user_id)

"""Reference-data snapshot: the tables one generation call reads from.

Rows come from JSON dumps of the product database, so every model tolerates
extra columns and most fields are optional.
"""
from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from backend.app.models.taskgen import TaskPayload

SnapshotSource = Literal["live", "mock", "static"]


class _Row(BaseModel):
    model_config = ConfigDict(extra="allow")


class UserRow(_Row):
    user_id: str
    full_name: str | None = None
    email_primary: str | None = None
    tasks_group_id: str | None = None
    game_mode_id: int | None = None
    timezone: str | None = None
    preferred_language: str | None = None
    preferred_timezone: str | None = None
    scheduler_enabled: bool | None = None
    channel_scheduler: str | None = None
    status_scheduler: str | None = None
    user_profile: str | None = None


class GameModeRow(_Row):
    game_mode_id: int
    code: str
    name: str | None = None
    weekly_target: int | None = None


class PillarRow(_Row):
    pillar_id: int
    code: str
    name: str | None = None


class TraitRow(_Row):
    trait_id: int
    pillar_id: int
    code: str
    name: str | None = None


class DifficultyRow(_Row):
    difficulty_id: int
    code: str
    name: str | None = None
    xp_base: int | None = None


class OnboardingSessionRow(_Row):
    onboarding_session_id: str | None = None
    user_id: str | None = None
    client_id: str | None = None
    game_mode_id: int | None = None
    meta: Any = None


class Snapshot(BaseModel):
    """The six reference tables; immutable once loaded."""

    model_config = ConfigDict(frozen=True)

    users: list[UserRow] = Field(default_factory=list)
    cat_game_mode: list[GameModeRow] = Field(default_factory=list)
    cat_pillar: list[PillarRow] = Field(default_factory=list)
    cat_trait: list[TraitRow] = Field(default_factory=list)
    cat_difficulty: list[DifficultyRow] = Field(default_factory=list)
    onboarding_session: list[OnboardingSessionRow] = Field(default_factory=list)

    def find_user(self, user_id: str) -> UserRow | None:
        return next((u for u in self.users if u.user_id == user_id), None)

    def find_onboarding(self, user_id: str) -> OnboardingSessionRow | None:
        return next((o for o in self.onboarding_session if o.user_id == user_id), None)

    def find_game_mode(self, game_mode_id: int | None) -> GameModeRow | None:
        if game_mode_id is None:
            return None
        return next((g for g in self.cat_game_mode if g.game_mode_id == game_mode_id), None)

    def find_game_mode_by_code(self, code: str | None) -> GameModeRow | None:
        if not code:
            return None
        wanted = code.strip().lower()
        return next((g for g in self.cat_game_mode if g.code.lower() == wanted), None)


class SnapshotResolution(BaseModel):
    """Outcome of snapshot resolution. ``source`` is the resolved, not requested, source."""

    snapshot: Snapshot
    source: SnapshotSource
    path: Path | None = None
    fixture_payload: TaskPayload | None = None

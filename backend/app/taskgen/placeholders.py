"""Placeholder map: the substitution table rendered into prompt templates."""
from __future__ import annotations

import json
from typing import Any

from backend.app.constants import NO_VALUE, UNKNOWN_GAME_MODE
from backend.app.models.snapshot import GameModeRow, OnboardingSessionRow, UserRow
from backend.app.taskgen.catalog import Catalog


def _meta_string(meta: Any, *keys: str) -> str | None:
    if not isinstance(meta, dict):
        return None
    for key in keys:
        value = meta.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def build_user_mini_profile(
    user: UserRow,
    onboarding: OnboardingSessionRow | None,
    game_mode: GameModeRow | None,
) -> str:
    """One-line ``Label: value | ...`` summary of the user; absent fields are skipped."""
    meta = onboarding.meta if onboarding else None
    language = user.preferred_language or _meta_string(meta, "lang", "language")
    timezone = user.preferred_timezone or _meta_string(meta, "tz", "timezone")

    parts: list[str] = []
    if user.full_name:
        parts.append(f"Name: {user.full_name}")
    parts.append(f"User ID: {user.user_id}")
    if user.tasks_group_id:
        parts.append(f"Tasks Group: {user.tasks_group_id}")
    if user.email_primary:
        parts.append(f"Primary email: {user.email_primary}")
    if language:
        parts.append(f"Preferred language: {language}")
    if timezone:
        parts.append(f"Preferred timezone: {timezone}")
    if user.timezone:
        parts.append(f"Timezone: {user.timezone}")
    if user.scheduler_enabled is not None:
        parts.append(f"Scheduler enabled: {'yes' if user.scheduler_enabled else 'no'}")
    if user.channel_scheduler:
        parts.append(f"Scheduler channel: {user.channel_scheduler}")
    if user.status_scheduler:
        parts.append(f"Scheduler status: {user.status_scheduler}")
    if user.user_profile:
        parts.append(f"Profile tag: {user.user_profile}")
    if isinstance(meta, dict):
        parts.append(f"Onboarding meta: {json.dumps(meta, separators=(',', ':'), ensure_ascii=False)}")
    if onboarding and onboarding.client_id:
        parts.append(f"Onboarding client: {onboarding.client_id}")
    if game_mode and game_mode.code:
        parts.append(f"Current mode: {game_mode.code}")
    return " | ".join(parts)


def build_placeholders(
    user: UserRow,
    onboarding: OnboardingSessionRow | None,
    game_mode: GameModeRow | None,
    catalog: Catalog,
) -> dict[str, str]:
    if game_mode is None:
        game_mode_text = UNKNOWN_GAME_MODE
    elif game_mode.name:
        game_mode_text = f"{game_mode.code} - {game_mode.name}"
    else:
        game_mode_text = game_mode.code

    weekly = game_mode.weekly_target if game_mode else None
    return {
        "USER_MINI_PROFILE": build_user_mini_profile(user, onboarding, game_mode),
        "GAME_MODE": game_mode_text,
        "WEEKLY_TARGET": str(weekly) if weekly is not None else NO_VALUE,
        "CATALOG_PILLARS": catalog.pillars_text,
        "CATALOG_TRAITS": catalog.traits_text,
        "CATALOG_STATS": catalog.stats_text,
        "CATALOG_DIFFICULTY": catalog.difficulty_text,
        "USER_ID": user.user_id,
        "TASKS_GROUP_ID": user.tasks_group_id or NO_VALUE,
    }

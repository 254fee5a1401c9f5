"""Payloads that stand in for a model call: dry-run synthesis and fixture replay."""
from __future__ import annotations

from typing import Any

from backend.app.constants import (
    DEBUG_TASKS_GROUP_ID,
    DRY_RUN_FALLBACK_DIFFICULTIES,
    DRY_RUN_FALLBACK_TRAITS,
    DRY_RUN_MIN_TASKS,
    FRICTION_BY_DIFFICULTY,
    FRICTION_DEFAULT,
    NO_VALUE,
)
from backend.app.models.taskgen import TaskPayload
from backend.app.taskgen.catalog import Catalog


def _fallback_pillar(catalog: Catalog) -> str:
    """Pillar for traits whose parent row is missing; always a catalog code when one exists."""
    if "BODY" in catalog.pillars_by_code or not catalog.pillars_by_code:
        return "BODY"
    return next(iter(catalog.pillars_by_code))


def build_dry_run_payload(catalog: Catalog, placeholders: dict[str, str]) -> dict[str, Any]:
    """Deterministic payload cycling every trait × difficulty combination.

    Produces ``max(15, traits * difficulties)`` tasks; trait ``i % n`` is paired
    with difficulty ``i % m`` so the output depends only on the catalog.
    """
    trait_codes = list(catalog.traits_by_code) or list(DRY_RUN_FALLBACK_TRAITS)
    difficulty_codes = list(catalog.difficulties_by_code) or list(DRY_RUN_FALLBACK_DIFFICULTIES)
    total = max(DRY_RUN_MIN_TASKS, len(trait_codes) * len(difficulty_codes))
    fallback_pillar = _fallback_pillar(catalog)

    tasks: list[dict[str, Any]] = []
    for i in range(total):
        trait_code = trait_codes[i % len(trait_codes)]
        difficulty_code = difficulty_codes[i % len(difficulty_codes)]
        trait = catalog.traits_by_code.get(trait_code)
        parent = catalog.pillars_by_id.get(trait.pillar_id) if trait else None
        pillar_code = parent.code if parent else fallback_pillar
        score, tier = FRICTION_BY_DIFFICULTY.get(difficulty_code, FRICTION_DEFAULT)
        tasks.append(
            {
                "task": f"[dry_run] {trait_code.replace('_', ' ')} #{i + 1}",
                "pillar_code": pillar_code,
                "trait_code": trait_code,
                "stat_code": trait_code,
                "difficulty_code": difficulty_code,
                "friction_score": score,
                "friction_tier": tier,
            }
        )

    group = placeholders.get("TASKS_GROUP_ID", NO_VALUE)
    return {
        "user_id": placeholders["USER_ID"],
        "tasks_group_id": DEBUG_TASKS_GROUP_ID if group == NO_VALUE else group,
        "tasks": tasks,
    }


def merge_fixture_payload(payload: TaskPayload, placeholders: dict[str, str]) -> dict[str, Any]:
    """Rebind a recorded payload to the current user and tasks group."""
    user_id = placeholders["USER_ID"]
    merged = payload.model_dump(mode="json", exclude_none=True)
    merged["user_id"] = user_id
    group = placeholders.get("TASKS_GROUP_ID", NO_VALUE)
    merged["tasks_group_id"] = DEBUG_TASKS_GROUP_ID if group == NO_VALUE else group
    for task in merged.get("tasks", []):
        if isinstance(task.get("task"), str):
            task["task"] = task["task"].replace("{{USER_ID}}", user_id, 1)
    return merged

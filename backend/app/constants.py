"""Centralized tuning constants shared across the app."""
from __future__ import annotations

# Generation modes (one template file per mode: prompts/<mode>.json)
MODES: tuple[str, ...] = ("low", "chill", "flow", "evolve")

# Sampling temperature by mode
MODE_TEMPERATURE: dict[str, float] = {
    "low": 0.5,
    "chill": 0.5,
    "flow": 0.65,
    "evolve": 0.65,
}

# Reasoning models reject sampling parameters
REASONING_MODEL_PREFIXES: tuple[str, ...] = ("o1", "o3", "o4", "gpt-5")
REASONING_MODEL_KEYWORDS: tuple[str, ...] = ("reasoning",)
REASONING_SAMPLING_KEYS: tuple[str, ...] = (
    "temperature",
    "top_p",
    "presence_penalty",
    "frequency_penalty",
    "logprobs",
    "logit_bias",
)

# Result shaping
SCHEMA_VERSION = "v1"
PROMPT_PREVIEW_MAX_CHARS = 1200
RAW_PREVIEW_MAX_CHARS = 1000

# Placeholder sentinels
NO_VALUE = "N/A"
UNKNOWN_GAME_MODE = "UNKNOWN"
DEBUG_TASKS_GROUP_ID = "debug-group"

# Dry-run generator
DRY_RUN_MIN_TASKS = 15
DRY_RUN_FALLBACK_TRAITS: tuple[str, ...] = ("BODY_MOBILITY", "MIND_FOCUS", "SOUL_CONNECTION")
DRY_RUN_FALLBACK_DIFFICULTIES: tuple[str, ...] = ("Easy", "Medium", "Hard")

# Friction metadata by difficulty code: (score, tier)
FRICTION_BY_DIFFICULTY: dict[str, tuple[int, str]] = {
    "Easy": (22, "E-F"),
    "Medium": (47, "M-F"),
    "Hard": (75, "D-F"),
}
FRICTION_DEFAULT: tuple[int, str] = (40, "M-F")

# Snapshot export
SNAPSHOT_TABLES: tuple[str, ...] = (
    "users",
    "cat_game_mode",
    "cat_pillar",
    "cat_trait",
    "cat_difficulty",
    "onboarding_session",
)
SNAPSHOT_ROW_LIMIT = 50

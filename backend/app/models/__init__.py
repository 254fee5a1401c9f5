"""Application models (snapshot tables, templates, payloads, results)."""
from .taskgen import (
    GenerationMeta,
    GenerationResult,
    InteractiveResult,
    LlmCallInfo,
    PromptMessage,
    PromptTemplate,
    ResponseFormat,
    TaskItem,
    TaskPayload,
    Timings,
    ValidationResult,
)
from .snapshot import (
    DifficultyRow,
    GameModeRow,
    OnboardingSessionRow,
    PillarRow,
    Snapshot,
    SnapshotResolution,
    TraitRow,
    UserRow,
)

__all__ = [
    "GenerationMeta",
    "GenerationResult",
    "InteractiveResult",
    "LlmCallInfo",
    "PromptMessage",
    "PromptTemplate",
    "ResponseFormat",
    "TaskItem",
    "TaskPayload",
    "Timings",
    "ValidationResult",
    "DifficultyRow",
    "GameModeRow",
    "OnboardingSessionRow",
    "PillarRow",
    "Snapshot",
    "SnapshotResolution",
    "TraitRow",
    "UserRow",
]

"""Pydantic models for templates, task payloads and pipeline results."""
from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from backend.app.constants import SCHEMA_VERSION


# --- Prompt templates ---


class PromptMessage(BaseModel):
    role: Literal["system", "user"]
    content: str


class JsonSchemaFormat(BaseModel):
    """``response_format.json_schema`` block of a template file."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    name: str = "TaskPayload"
    schema_: dict[str, Any] | None = Field(default=None, alias="schema")
    description: str | None = None
    strict: bool | None = None


class ResponseFormat(BaseModel):
    type: Literal["json_schema", "text", "json_object"]
    json_schema: JsonSchemaFormat | None = None


class PromptTemplate(BaseModel):
    """Ordered messages plus the response-format descriptor; immutable after load."""

    model_config = ConfigDict(frozen=True)

    messages: list[PromptMessage] = Field(default_factory=list)
    response_format: ResponseFormat | None = None
    version: str = ""  # mode:<content hash>; empty for overrides


# --- Task payloads ---


class TaskItem(BaseModel):
    model_config = ConfigDict(extra="allow")

    task: str
    pillar_code: str
    trait_code: str
    stat_code: str
    difficulty_code: str
    friction_score: int | float | None = None
    friction_tier: str | None = None


class TaskPayload(BaseModel):
    model_config = ConfigDict(extra="allow")

    user_id: str = ""
    tasks_group_id: str = ""
    tasks: list[TaskItem] = Field(default_factory=list)


class ValidationResult(BaseModel):
    valid: bool
    errors: list[str] = Field(default_factory=list)

    @classmethod
    def ok(cls) -> "ValidationResult":
        return cls(valid=True, errors=[])

    @classmethod
    def failed(cls, *errors: str) -> "ValidationResult":
        return cls(valid=False, errors=list(errors))


# --- Results ---


class Timings(BaseModel):
    total: int = 0
    llm: int = 0


class GenerationMeta(BaseModel):
    schema_version: str = SCHEMA_VERSION
    validation: ValidationResult | None = None
    timings_ms: Timings = Field(default_factory=Timings)
    prompt_version: str | None = None


class GenerationResult(BaseModel):
    """Terminal value of ``generate``; errors are reported here, never raised."""

    status: Literal["ok", "error"]
    user_id: str
    mode: str
    source: str
    seed: int | None = None
    placeholders: dict[str, str] | None = None
    prompt_preview: str | None = None
    tasks: list[dict[str, Any]] | None = None
    meta: GenerationMeta = Field(default_factory=GenerationMeta)
    errors: list[str] | None = None
    error_log: str | None = None


class LlmCallInfo(BaseModel):
    model: str
    timings_ms: dict[str, int] = Field(default_factory=lambda: {"request": 0})
    raw_preview: str | None = None


class InteractiveMeta(BaseModel):
    schema_version: str = SCHEMA_VERSION
    seed: int | None = None


class InteractiveResult(BaseModel):
    """Terminal value of the interactive runner."""

    status: Literal["ok", "error"]
    user_id: str
    mode: str | None = None
    placeholders: dict[str, str] | None = None
    prompt_used: str | None = None
    llm: LlmCallInfo | None = None
    tasks: list[dict[str, Any]] | None = None
    validation: ValidationResult | None = None
    persisted: bool = False
    meta: InteractiveMeta = Field(default_factory=InteractiveMeta)
    prompt_source: str | None = None
    error: str | None = None
    raw_output: str | None = Field(default=None, exclude=True)

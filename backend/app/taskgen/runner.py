"""Orchestrator: ``generate`` composes the pipeline into one call returning a GenerationResult.

Flow:
    snapshot → user (mock demotion) → catalog → template → placeholders → messages
    → dry-run payload | static fixture payload | live model call → validation

No exception escapes ``generate``; failures become ``status="error"`` results
and are appended to the diagnostics error log.
"""
from __future__ import annotations

import json
import logging
import time
import traceback
from dataclasses import dataclass, field
from typing import Any

from backend.app.core.error_handling import error_summary, log_error_with_context
from backend.app.models.taskgen import (
    GenerationMeta,
    GenerationResult,
    PromptTemplate,
    Timings,
    ValidationResult,
)
from backend.app.taskgen.context import resolve_context
from backend.app.taskgen.diagnostics import DiagnosticsSink
from backend.app.taskgen.dry_run import build_dry_run_payload, merge_fixture_payload
from backend.app.taskgen.llm_invoker import ModelInvoker, ResponsesClient
from backend.app.taskgen.placeholders import build_placeholders
from backend.app.taskgen.snapshot import normalize_source
from backend.app.taskgen.templates import (
    build_messages,
    build_prompt_preview,
    load_template,
    parse_override,
    validation_schema,
)
from backend.app.taskgen.validator import validate_payload
from shared.runtime_settings import TaskgenSettings

logger = logging.getLogger(__name__)


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


@dataclass
class _RunState:
    """What is known so far about one run; used to shape the result at any exit point."""

    user_id: str
    mode: str
    source: str
    seed: int | None
    started: float = field(default_factory=time.monotonic)
    placeholders: dict[str, str] | None = None
    prompt_preview: str | None = None
    prompt_version: str | None = None
    llm_ms: int = 0


class TaskgenRunner:
    """Runs generations against one settings value; the model invoker is injectable."""

    def __init__(
        self,
        settings: TaskgenSettings,
        invoker: ModelInvoker | None = None,
        diagnostics: DiagnosticsSink | None = None,
    ):
        self.settings = settings
        self.diagnostics = diagnostics or DiagnosticsSink(settings.exports_dirs)
        self._invoker = invoker

    @property
    def invoker(self) -> ModelInvoker:
        if self._invoker is None:
            self._invoker = ResponsesClient(self.settings, diagnostics=self.diagnostics)
        return self._invoker

    def close(self) -> None:
        if isinstance(self._invoker, ResponsesClient):
            self._invoker.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    # ------------------------------------------------------------------
    # Result shaping
    # ------------------------------------------------------------------

    def _result(
        self,
        state: _RunState,
        validation: ValidationResult | None,
        tasks: list[dict[str, Any]] | None = None,
    ) -> GenerationResult:
        ok = validation is not None and validation.valid
        error_log = None
        if not ok and validation is not None:
            error_log = self.diagnostics.append_error_log("; ".join(validation.errors))
        return GenerationResult(
            status="ok" if ok else "error",
            user_id=state.placeholders["USER_ID"] if state.placeholders else state.user_id,
            mode=state.mode,
            source=state.source,
            seed=state.seed,
            placeholders=state.placeholders,
            prompt_preview=state.prompt_preview,
            tasks=tasks,
            meta=GenerationMeta(
                validation=validation,
                timings_ms=Timings(total=_elapsed_ms(state.started), llm=state.llm_ms),
                prompt_version=state.prompt_version,
            ),
            errors=None if ok or validation is None else validation.errors,
            error_log=error_log,
        )

    def _failure(self, state: _RunState, exc: Exception, stage: str) -> GenerationResult:
        state.llm_ms = state.llm_ms or getattr(exc, "duration_ms", 0)
        log_error_with_context(exc, stage, user_id=state.user_id, mode=state.mode)
        summary = error_summary(exc)
        error_log = self.diagnostics.append_error_log(f"{summary}\n{traceback.format_exc().rstrip()}")
        return GenerationResult(
            status="error",
            user_id=state.placeholders["USER_ID"] if state.placeholders else state.user_id,
            mode=state.mode,
            source=state.source,
            seed=state.seed,
            placeholders=state.placeholders,
            prompt_preview=state.prompt_preview,
            meta=GenerationMeta(
                timings_ms=Timings(total=_elapsed_ms(state.started), llm=state.llm_ms),
                prompt_version=state.prompt_version,
            ),
            errors=[str(exc) or summary],
            error_log=error_log,
        )

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    def generate(
        self,
        user_id: str,
        mode: str,
        source: str | None = "live",
        dry_run: bool = False,
        seed: int | None = None,
        prompt_override: str | None = None,
    ) -> GenerationResult:
        state = _RunState(user_id=user_id, mode=mode, source=source or "live", seed=seed)
        stage = "snapshot"
        try:
            state.source = normalize_source(source)
            context = resolve_context(self.settings, user_id, state.source)
            state.source = context.source

            stage = "template"
            template: PromptTemplate
            if prompt_override is not None:
                template, _ = parse_override(prompt_override)
            else:
                template = load_template(self.settings, mode)
            state.prompt_version = template.version or None

            stage = "placeholders"
            placeholders = build_placeholders(
                context.user, context.onboarding, context.game_mode_for(mode), context.catalog
            )
            state.placeholders = placeholders
            messages = build_messages(template, placeholders)
            state.prompt_preview = build_prompt_preview(messages)
            schema = validation_schema(template.response_format)

            fixture = (
                merge_fixture_payload(context.fixture_payload, placeholders)
                if context.fixture_payload is not None
                else None
            )

            stage = "validate"
            if dry_run:
                payload = fixture if fixture is not None else build_dry_run_payload(context.catalog, placeholders)
                validation = validate_payload(payload, schema, context.catalog, placeholders)
                return self._result(state, validation, payload.get("tasks"))

            if state.source == "static" and fixture is not None:
                validation = validate_payload(fixture, schema, context.catalog, placeholders)
                return self._result(state, validation, fixture.get("tasks"))

            stage = "invoke"
            response = self.invoker.invoke(messages, mode, template.response_format)
            state.llm_ms = response.duration_ms

            stage = "validate"
            try:
                payload = json.loads(response.text)
            except json.JSONDecodeError as exc:
                self.diagnostics.warning(
                    "Model response is not valid JSON",
                    {"user_id": user_id, "mode": mode, "raw_preview": response.text[:200]},
                )
                return self._result(state, ValidationResult.failed(f"Failed to parse model response: {exc}"))

            validation = validate_payload(payload, schema, context.catalog, placeholders)
            tasks = payload.get("tasks") if isinstance(payload, dict) else None
            return self._result(state, validation, tasks if isinstance(tasks, list) else None)
        except Exception as exc:
            return self._failure(state, exc, stage)


def generate(
    user_id: str,
    mode: str,
    source: str | None = "live",
    dry_run: bool = False,
    seed: int | None = None,
    *,
    settings: TaskgenSettings,
    invoker: ModelInvoker | None = None,
) -> GenerationResult:
    """One-shot convenience wrapper around ``TaskgenRunner.generate``."""
    with TaskgenRunner(settings, invoker=invoker) as runner:
        return runner.generate(user_id, mode, source=source, dry_run=dry_run, seed=seed)

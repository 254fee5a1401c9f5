"""Interactive (debug) task generation with replaceable stages and optional persistence.

Every stage is a plain callable on ``InteractiveStages``; ``create_interactive_runner``
wires the production implementations and accepts per-stage overrides, so tests
can swap the model call, storage writer, or any other stage.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, replace
from typing import Any, Callable

from backend.app.constants import MODES, RAW_PREVIEW_MAX_CHARS
from backend.app.core.error_handling import ConfigurationError, error_summary, log_error_with_context
from backend.app.models.snapshot import UserRow
from backend.app.models.taskgen import (
    InteractiveMeta,
    InteractiveResult,
    LlmCallInfo,
    PromptMessage,
    PromptTemplate,
    ResponseFormat,
    ValidationResult,
)
from backend.app.taskgen.catalog import Catalog
from backend.app.taskgen.context import GenerationContext, resolve_context
from backend.app.taskgen.db_snapshot import resolve_db_context
from backend.app.taskgen.diagnostics import DiagnosticsSink
from backend.app.taskgen.llm_invoker import LlmResponse, ModelInvoker, ResponsesClient
from backend.app.taskgen.placeholders import build_placeholders
from backend.app.taskgen.storage import SqliteTaskStore
from backend.app.taskgen.templates import (
    build_messages,
    build_prompt_preview,
    locate_template,
    parse_override,
    validation_schema,
)
from backend.app.taskgen.validator import validate_payload
from shared.runtime_settings import TaskgenSettings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InteractiveRequest:
    user_id: str
    mode: str | None = None
    prompt_override: str | None = None
    dry_run: bool = False
    store: bool = False
    seed: int | None = None


@dataclass(frozen=True)
class InteractiveStages:
    resolve_context: Callable[[str], GenerationContext]
    resolve_mode: Callable[[str | None, GenerationContext], str]
    load_template: Callable[[str], tuple[PromptTemplate, str]]
    parse_override: Callable[[str], tuple[PromptTemplate, str]]
    build_placeholders: Callable[[GenerationContext, str], dict[str, str]]
    build_messages: Callable[[PromptTemplate, dict[str, str]], list[PromptMessage]]
    build_preview: Callable[[list[PromptMessage]], str]
    invoke_model: Callable[[list[PromptMessage], str, ResponseFormat | None], LlmResponse]
    validate: Callable[[Any, dict[str, Any] | None, Catalog, dict[str, str]], ValidationResult]
    store_tasks: Callable[[UserRow, Catalog, list[dict[str, Any]]], int]


def resolve_mode_from_context(requested: str | None, context: GenerationContext) -> str:
    """Explicit mode wins; otherwise the user's current game mode code, lowercased."""
    if requested:
        mode = requested.strip().lower()
        if mode not in MODES:
            raise ConfigurationError(f"Unsupported mode: {requested}")
        return mode
    game_mode = context.user_game_mode
    if game_mode is None:
        raise ConfigurationError(
            "Unable to infer user game mode. Provide a mode explicitly or assign one to the user."
        )
    mode = game_mode.code.strip().lower()
    if mode not in MODES:
        raise ConfigurationError(f"Unsupported game mode code: {game_mode.code}")
    return mode


def placeholders_from_context(context: GenerationContext, mode: str) -> dict[str, str]:
    return build_placeholders(context.user, context.onboarding, context.game_mode_for(mode), context.catalog)


def default_stages(
    settings: TaskgenSettings,
    invoke_model: Callable[[list[PromptMessage], str, ResponseFormat | None], LlmResponse],
    source: str | None = "live",
    from_db: bool = False,
) -> InteractiveStages:
    def _context(user_id: str) -> GenerationContext:
        if from_db:
            return resolve_db_context(settings.db_path, user_id)
        return resolve_context(settings, user_id, source)

    def _template(mode: str) -> tuple[PromptTemplate, str]:
        template, path = locate_template(settings, mode)
        return template, str(path)

    return InteractiveStages(
        resolve_context=_context,
        resolve_mode=resolve_mode_from_context,
        load_template=_template,
        parse_override=parse_override,
        build_placeholders=placeholders_from_context,
        build_messages=build_messages,
        build_preview=build_prompt_preview,
        invoke_model=invoke_model,
        validate=validate_payload,
        store_tasks=SqliteTaskStore(settings.db_path).store_tasks,
    )


class InteractiveRunner:
    def __init__(
        self,
        stages: InteractiveStages,
        model_name: str,
        diagnostics: DiagnosticsSink | None = None,
        client: ResponsesClient | None = None,
    ):
        self.stages = stages
        self.model_name = model_name
        self.diagnostics = diagnostics or DiagnosticsSink(())
        self._client = client

    def close(self) -> None:
        """Release the HTTP client this runner created, if any."""
        if self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def run(self, request: InteractiveRequest) -> InteractiveResult:
        s = self.stages
        meta = InteractiveMeta(seed=request.seed)
        mode = request.mode
        try:
            context = s.resolve_context(request.user_id)
            mode = s.resolve_mode(request.mode, context)
            placeholders = s.build_placeholders(context, mode)

            if request.prompt_override:
                template, prompt_source = s.parse_override(request.prompt_override)
            else:
                template, prompt_source = s.load_template(mode)

            messages = s.build_messages(template, placeholders)
            preview = s.build_preview(messages)
            schema = validation_schema(template.response_format)
            base = dict(
                user_id=placeholders["USER_ID"],
                mode=mode,
                placeholders=placeholders,
                prompt_used=preview,
                meta=meta,
                prompt_source=prompt_source,
            )

            if request.dry_run:
                self.diagnostics.info("Dry run triggered", {"user_id": request.user_id, "mode": mode})
                return InteractiveResult(
                    status="ok",
                    llm=LlmCallInfo(model=self.model_name),
                    validation=ValidationResult.ok(),
                    **base,
                )

            response = s.invoke_model(messages, mode, template.response_format)
            llm = LlmCallInfo(
                model=response.model,
                timings_ms={"request": response.duration_ms},
                raw_preview=response.text[:RAW_PREVIEW_MAX_CHARS],
            )

            try:
                payload = json.loads(response.text)
            except json.JSONDecodeError as exc:
                message = f"Failed to parse model response: {exc}"
                self.diagnostics.error("Failed to parse model response", {"message": str(exc)})
                return InteractiveResult(
                    status="error",
                    llm=llm,
                    validation=ValidationResult.failed(message),
                    error=message,
                    raw_output=response.text,
                    **base,
                )

            tasks = payload.get("tasks") if isinstance(payload, dict) else None
            tasks = tasks if isinstance(tasks, list) else None
            validation = s.validate(payload, schema, context.catalog, placeholders)
            if not validation.valid:
                self.diagnostics.info(
                    "Validation failed", {"user_id": request.user_id, "errors": validation.errors}
                )
                return InteractiveResult(
                    status="error", llm=llm, tasks=tasks, validation=validation, raw_output=response.text, **base
                )

            persisted = False
            if request.store:
                s.store_tasks(context.user, context.catalog, tasks or [])
                persisted = True

            return InteractiveResult(
                status="ok", llm=llm, tasks=tasks, validation=validation, persisted=persisted, **base
            )
        except Exception as exc:
            log_error_with_context(exc, "interactive", user_id=request.user_id, mode=mode)
            message = str(exc) or error_summary(exc)
            self.diagnostics.error("Interactive taskgen failure", {"message": message, "user_id": request.user_id})
            return InteractiveResult(
                status="error",
                user_id=request.user_id,
                mode=mode,
                placeholders={},
                prompt_used="",
                llm=LlmCallInfo(model=self.model_name),
                validation=ValidationResult.failed(message),
                persisted=False,
                meta=meta,
                error=message,
            )


def create_interactive_runner(
    settings: TaskgenSettings,
    *,
    source: str | None = "live",
    from_db: bool = False,
    invoker: ModelInvoker | None = None,
    **overrides: Callable[..., Any],
) -> InteractiveRunner:
    """Production runner with any stage replaced by keyword, e.g. ``invoke_model=fake``.

    A ResponsesClient is only opened when neither ``invoker`` nor ``invoke_model``
    is given; the runner then owns it and closes it in ``close()``.
    """
    diagnostics = DiagnosticsSink(settings.exports_dirs)
    invoke_model = overrides.pop("invoke_model", None)
    client: ResponsesClient | None = None
    if invoke_model is None:
        if invoker is None:
            client = ResponsesClient(settings, diagnostics=diagnostics)
            invoker = client
        invoke_model = invoker.invoke
    stages = replace(default_stages(settings, invoke_model, source=source, from_db=from_db), **overrides)
    return InteractiveRunner(stages, model_name=settings.model, diagnostics=diagnostics, client=client)

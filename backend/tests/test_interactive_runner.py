"""Interactive runner: stage overrides, dry run, parse/validation failures and persistence."""
from __future__ import annotations

import json
from dataclasses import replace
from unittest.mock import MagicMock

import pytest

from backend.app.core.error_handling import ConfigurationError, PersistenceError
from backend.app.db.connection import open_db
from backend.app.taskgen.context import resolve_context
from backend.app.taskgen.db_snapshot import resolve_db_context
from backend.app.taskgen.dry_run import build_dry_run_payload
from backend.app.taskgen.interactive import (
    InteractiveRequest,
    create_interactive_runner,
    placeholders_from_context,
    resolve_mode_from_context,
)
from backend.app.taskgen.llm_invoker import LlmResponse

SEED_USER_ID = "db-user-1"


def _response(text: str) -> LlmResponse:
    return LlmResponse(text=text, model="fake-model", duration_ms=55)


def _valid_text(settings, user_id: str, mode: str = "flow", from_db_path: str | None = None) -> str:
    if from_db_path:
        context = resolve_db_context(from_db_path, user_id)
    else:
        context = resolve_context(settings, user_id, "mock")
    payload = build_dry_run_payload(context.catalog, placeholders_from_context(context, mode))
    for i, task in enumerate(payload["tasks"]):
        task["task"] = f"Drink water, round {i}"
    return json.dumps(payload)


class TestResolveMode:
    def test_explicit_mode_wins(self, settings):
        context = resolve_context(settings, "u-1", "mock")
        assert resolve_mode_from_context(" EVOLVE ", context) == "evolve"

    def test_mode_inferred_from_user(self, settings):
        context = resolve_context(settings, "u-1", "mock")
        assert resolve_mode_from_context(None, context) == "flow"

    def test_unknown_explicit_mode(self, settings):
        context = resolve_context(settings, "u-1", "mock")
        with pytest.raises(ConfigurationError, match="Unsupported mode"):
            resolve_mode_from_context("turbo", context)

    def test_user_without_game_mode(self, settings):
        context = resolve_context(settings, "u-1", "mock")
        user = context.user.model_copy(update={"game_mode_id": None})
        with pytest.raises(ConfigurationError, match="Unable to infer user game mode"):
            resolve_mode_from_context(None, replace(context, user=user))


class TestInteractiveRunner:
    def test_dry_run_skips_the_model(self, settings):
        invoke = MagicMock()
        runner = create_interactive_runner(settings, source="mock", invoke_model=invoke)
        result = runner.run(InteractiveRequest(user_id="u-1", dry_run=True, seed=3))

        assert result.status == "ok"
        assert result.mode == "flow"
        assert result.tasks is None
        assert result.validation.valid
        assert result.llm.timings_ms == {"request": 0}
        assert result.meta.seed == 3
        assert result.prompt_source.endswith("flow.json")
        assert result.prompt_used.startswith("SYSTEM: ")
        invoke.assert_not_called()

    def test_valid_output(self, settings):
        invoke = MagicMock(return_value=_response(_valid_text(settings, "u-1")))
        store = MagicMock()
        runner = create_interactive_runner(settings, source="mock", invoke_model=invoke, store_tasks=store)
        result = runner.run(InteractiveRequest(user_id="u-1", mode="flow"))

        assert result.status == "ok", result.validation
        assert len(result.tasks) == 15
        assert result.llm.model == "fake-model"
        assert result.llm.timings_ms == {"request": 55}
        assert result.persisted is False
        store.assert_not_called()

    def test_unparseable_output_keeps_raw_text(self, settings):
        raw = "not json " * 200
        runner = create_interactive_runner(settings, source="mock", invoke_model=MagicMock(return_value=_response(raw)))
        result = runner.run(InteractiveRequest(user_id="u-1"))

        assert result.status == "error"
        assert result.error.startswith("Failed to parse model response:")
        assert result.validation.errors == [result.error]
        assert result.raw_output == raw
        assert len(result.llm.raw_preview) == 1000
        assert "raw_output" not in result.model_dump()

    def test_invalid_output_is_not_stored(self, settings):
        payload = json.loads(_valid_text(settings, "u-1"))
        payload["tasks"][0]["pillar_code"] = "NOPE"
        store = MagicMock()
        runner = create_interactive_runner(
            settings,
            source="mock",
            invoke_model=MagicMock(return_value=_response(json.dumps(payload))),
            store_tasks=store,
        )
        result = runner.run(InteractiveRequest(user_id="u-1", store=True))

        assert result.status == "error"
        assert result.validation.errors == ["Invalid pillar_code: NOPE"]
        assert result.persisted is False
        store.assert_not_called()

    def test_prompt_override(self, settings):
        invoke = MagicMock(return_value=_response(_valid_text(settings, "u-1")))
        runner = create_interactive_runner(settings, source="mock", invoke_model=invoke)
        result = runner.run(InteractiveRequest(user_id="u-1", prompt_override="Tasks for {{USER_ID}} please"))

        assert result.prompt_source == "override:text"
        assert result.prompt_used == "USER: Tasks for u-1 please"
        messages, mode, response_format = invoke.call_args.args
        assert mode == "flow"
        assert response_format is None

    def test_stage_failure_becomes_error_result(self, settings):
        runner = create_interactive_runner(
            settings, source="mock", resolve_context=MagicMock(side_effect=ConfigurationError("User not found: x"))
        )
        result = runner.run(InteractiveRequest(user_id="x", mode="low"))

        assert result.status == "error"
        assert result.error == "User not found: x"
        assert result.mode == "low"
        assert result.placeholders == {}
        assert result.persisted is False

    def test_store_from_db(self, seeded_db, make_settings):
        db_settings = make_settings(db_path=seeded_db)
        text = _valid_text(db_settings, SEED_USER_ID, mode="chill", from_db_path=seeded_db)
        runner = create_interactive_runner(
            db_settings, from_db=True, invoke_model=MagicMock(return_value=_response(text))
        )
        result = runner.run(InteractiveRequest(user_id=SEED_USER_ID, store=True))

        assert result.status == "ok", result.validation
        assert result.mode == "chill"
        assert result.persisted is True
        with open_db(seeded_db) as conn:
            count = conn.execute("SELECT COUNT(*) FROM tasks WHERE user_id = ?", (SEED_USER_ID,)).fetchone()[0]
        assert count == len(result.tasks)

    def test_persistence_failure_is_reported(self, settings):
        invoke = MagicMock(return_value=_response(_valid_text(settings, "u-1")))
        store = MagicMock(side_effect=PersistenceError("Failed to persist tasks: disk I/O error"))
        runner = create_interactive_runner(settings, source="mock", invoke_model=invoke, store_tasks=store)
        result = runner.run(InteractiveRequest(user_id="u-1", store=True))

        assert result.status == "error"
        assert result.persisted is False
        assert result.error == "Failed to persist tasks: disk I/O error"
        store.assert_called_once()


class TestRunnerLifecycle:
    def test_default_runner_closes_its_http_client(self, settings):
        with create_interactive_runner(settings, source="mock") as runner:
            http = runner._client.client
            result = runner.run(InteractiveRequest(user_id="u-1", dry_run=True))
            assert not http.is_closed

        assert result.status == "ok"
        assert http.is_closed
        runner.close()

    def test_injected_model_opens_no_client(self, settings):
        runner = create_interactive_runner(settings, source="mock", invoke_model=MagicMock())
        assert runner._client is None
        runner.close()

"""Payload validator: structural schema check, then referential business rules.

Schema violations are reported exhaustively; business rules stop at the first
violation. Callers rely on both behaviors.
"""
from __future__ import annotations

from typing import Any

from jsonschema import Draft202012Validator, ValidationError

from backend.app.constants import NO_VALUE
from backend.app.models.taskgen import ValidationResult
from backend.app.taskgen.catalog import Catalog


def _pointer(path) -> str:
    return "".join(f"/{part}" for part in path)


# Messages for keywords whose default text repeats the whole offending array or object.
_CONTAINER_MESSAGES = {
    "maxItems": "must NOT have more than {0} items",
    "minItems": "must NOT have fewer than {0} items",
    "uniqueItems": "must NOT have duplicate items",
    "maxProperties": "must NOT have more than {0} properties",
    "minProperties": "must NOT have fewer than {0} properties",
    "type": "must be of type {0!r}",
    "enum": "must be equal to one of the allowed values",
    "const": "must be equal to constant",
}


def _message(error: ValidationError) -> str:
    template = _CONTAINER_MESSAGES.get(error.validator)
    if template and isinstance(error.instance, (list, dict)):
        return template.format(error.validator_value)
    return error.message


def schema_errors(payload: Any, schema: dict[str, Any]) -> list[str]:
    """All structural errors as ``<instance path> <message>`` strings, in document order."""
    validator = Draft202012Validator(schema)
    errors = sorted(validator.iter_errors(payload), key=lambda e: e.path)
    return [f"{_pointer(e.absolute_path)} {_message(e)}".strip() for e in errors]


def _task_error(task: Any, seen: set[str], catalog: Catalog) -> str | None:
    if not isinstance(task, dict):
        return f"Invalid task entry: {task!r}"
    title = str(task.get("task", ""))
    key = title.strip().lower()
    if key in seen:
        return f"Duplicate task detected: {title}"
    seen.add(key)

    pillar_code = task.get("pillar_code")
    trait_code = task.get("trait_code")
    if pillar_code not in catalog.pillars_by_code:
        return f"Invalid pillar_code: {pillar_code}"
    trait = catalog.traits_by_code.get(trait_code)
    if trait is None:
        return f"Invalid trait_code: {trait_code}"
    parent = catalog.pillars_by_id.get(trait.pillar_id)
    if parent is not None and parent.code != pillar_code:
        return f"Trait {trait_code} does not belong to pillar {pillar_code}"
    if task.get("stat_code") not in catalog.stats_by_code:
        return f"Invalid stat_code: {task.get('stat_code')}"
    if task.get("difficulty_code") not in catalog.difficulties_by_code:
        return f"Invalid difficulty_code: {task.get('difficulty_code')}"
    return None


def validate_payload(
    payload: Any,
    schema: dict[str, Any] | None,
    catalog: Catalog,
    placeholders: dict[str, str],
) -> ValidationResult:
    if schema:
        errors = schema_errors(payload, schema)
        if errors:
            return ValidationResult.failed(*errors)

    if not isinstance(payload, dict):
        return ValidationResult.failed("Payload must be a JSON object")

    expected_user = placeholders.get("USER_ID")
    if payload.get("user_id") != expected_user:
        return ValidationResult.failed(
            f"user_id mismatch. Expected {expected_user}, got {payload.get('user_id')}"
        )

    expected_group = placeholders.get("TASKS_GROUP_ID")
    if expected_group != NO_VALUE and payload.get("tasks_group_id") != expected_group:
        return ValidationResult.failed(
            f"tasks_group_id mismatch. Expected {expected_group}, got {payload.get('tasks_group_id')}"
        )

    tasks = payload.get("tasks")
    if not isinstance(tasks, list) or not tasks:
        return ValidationResult.failed("Expected at least one task in payload")

    seen: set[str] = set()
    for task in tasks:
        error = _task_error(task, seen, catalog)
        if error:
            return ValidationResult.failed(error)
    return ValidationResult.ok()

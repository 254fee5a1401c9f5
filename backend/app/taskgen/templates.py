"""Prompt template engine: load, repair, parse, and render per-mode templates."""
from __future__ import annotations

import hashlib
import json
import logging
import re
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from backend.app.constants import MODES, PROMPT_PREVIEW_MAX_CHARS
from backend.app.core.error_handling import ConfigurationError, MissingPlaceholderError
from backend.app.models.taskgen import PromptMessage, PromptTemplate, ResponseFormat
from backend.app.taskgen.candidates import first_success, read_text
from shared.runtime_settings import TaskgenSettings

logger = logging.getLogger(__name__)

# Template files carry the system prompt as a raw block between `$1` and `$2,`
_SYSTEM_BLOCK_RE = re.compile(r"\$1(.*?)\$2,", re.DOTALL)
_PLACEHOLDER_RE = re.compile(r"\{\{(.*?)\}\}")


def sanitize_template(raw: str) -> str:
    """Turn the first ``$1 ... $2,`` block into a ``"system": "<escaped>",`` member.

    Only the first block is rewritten; text without markers is returned unchanged.
    """

    def _replace(match: re.Match[str]) -> str:
        return f'"system": {json.dumps(match.group(1).strip(), ensure_ascii=False)},'

    return _SYSTEM_BLOCK_RE.sub(_replace, raw, count=1)


def parse_template(raw: str, version: str = "") -> PromptTemplate:
    """Parse authored template text into an ordered message list.

    Raises json.JSONDecodeError when the repaired text is still not JSON and
    ConfigurationError when it parses but has the wrong shape.
    """
    data = json.loads(sanitize_template(raw))
    if not isinstance(data, dict) or not isinstance(data.get("messages"), list):
        raise ConfigurationError("Prompt template must be an object with a `messages` list")

    messages: list[PromptMessage] = []
    for entry in data["messages"]:
        if not isinstance(entry, dict):
            continue
        if isinstance(entry.get("system"), str):
            messages.append(PromptMessage(role="system", content=entry["system"]))
        if isinstance(entry.get("content"), str):
            messages.append(PromptMessage(role="user", content=entry["content"]))

    response_format = None
    if data.get("response_format") is not None:
        try:
            response_format = ResponseFormat.model_validate(data["response_format"])
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid response_format in prompt template: {exc}") from exc

    return PromptTemplate(messages=messages, response_format=response_format, version=version)


def template_version(mode: str, raw: str) -> str:
    digest = hashlib.sha256(raw.encode("utf-8")).hexdigest()
    return f"{mode}:{digest[:12]}"


def locate_template(settings: TaskgenSettings, mode: str) -> tuple[PromptTemplate, Path]:
    """Load ``<mode>.json`` from the first template directory that has it; also returns its path."""
    if mode not in MODES:
        raise ConfigurationError(f"Unsupported mode: {mode}")
    files = [d / f"{mode}.json" for d in settings.template_dir_candidates()]
    hit = first_success(files, read_text)
    if hit is None:
        raise ConfigurationError(
            f"Prompt for mode {mode} not found. Checked: {', '.join(str(f) for f in files)}"
        )
    logger.debug("Loaded prompt template for %s from %s", mode, hit.path)
    return parse_template(hit.value, version=template_version(mode, hit.value)), hit.path


def load_template(settings: TaskgenSettings, mode: str) -> PromptTemplate:
    return locate_template(settings, mode)[0]


def parse_override(raw: str | None) -> tuple[PromptTemplate, str]:
    """Parse an ad-hoc prompt override.

    Structured template text yields ``override:json``; anything that does not
    parse becomes a single user message and yields ``override:text``.
    """
    text = (raw or "").strip()
    if not text:
        raise ConfigurationError("Prompt override cannot be empty")
    try:
        return parse_template(text), "override:json"
    except (json.JSONDecodeError, ConfigurationError):
        return PromptTemplate(messages=[PromptMessage(role="user", content=text)]), "override:text"


def apply_placeholders(text: str, placeholders: dict[str, str]) -> str:
    """Substitute ``{{KEY}}`` tokens; an unknown key is fatal."""

    def _replace(match: re.Match[str]) -> str:
        key = match.group(1).strip()
        if key not in placeholders:
            raise MissingPlaceholderError(key)
        return placeholders[key]

    return _PLACEHOLDER_RE.sub(_replace, text)


def build_messages(template: PromptTemplate, placeholders: dict[str, str]) -> list[PromptMessage]:
    return [
        PromptMessage(role=m.role, content=apply_placeholders(m.content, placeholders))
        for m in template.messages
    ]


def build_prompt_preview(messages: list[PromptMessage]) -> str:
    joined = "\n\n".join(f"{m.role.upper()}: {m.content}" for m in messages)
    if len(joined) <= PROMPT_PREVIEW_MAX_CHARS:
        return joined
    return joined[: PROMPT_PREVIEW_MAX_CHARS - 3] + "..."


def response_format_config(response_format: ResponseFormat | None) -> dict[str, Any] | None:
    """Request-side ``text.format`` for the Responses API, or None when there is nothing to send."""
    if response_format is None:
        return None
    if response_format.type == "json_schema":
        js = response_format.json_schema
        if js is None or not isinstance(js.schema_, dict):
            return None
        config: dict[str, Any] = {"type": "json_schema", "name": js.name or "TaskPayload", "schema": js.schema_}
        if js.description is not None:
            config["description"] = js.description
        if js.strict is not None:
            config["strict"] = js.strict
        return config
    return {"type": response_format.type}


def validation_schema(response_format: ResponseFormat | None) -> dict[str, Any] | None:
    """The JSON schema payloads are checked against; only json_schema formats carry one."""
    if response_format is None or response_format.type != "json_schema" or response_format.json_schema is None:
        return None
    return response_format.json_schema.schema_

"""Error taxonomy and structured error logging for the task-generation pipeline."""
from __future__ import annotations

import logging
from typing import Any

logger = logging.getLogger(__name__)


class TaskgenError(Exception):
    """Base class for pipeline errors."""


class ConfigurationError(TaskgenError):
    """Missing credential, template, mode or malformed configuration input. Fatal."""


class MissingPlaceholderError(ConfigurationError):
    """A template references a ``{{KEY}}`` the placeholder map does not define."""

    def __init__(self, key: str) -> None:
        super().__init__(f"Missing placeholder value for {key}")
        self.key = key


class UpstreamError(TaskgenError):
    """The external model call failed."""

    def __init__(self, message: str, *, status_code: int | None = None, duration_ms: int = 0) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.duration_ms = duration_ms


class UpstreamTimeoutError(UpstreamError):
    """The external model call exceeded its deadline and was cancelled."""


class PersistenceError(TaskgenError):
    """A transactional task insert failed and was rolled back."""


def error_summary(error: BaseException) -> str:
    """``ClassName: message`` form used in result objects."""
    message = str(error)
    name = type(error).__name__
    return f"{name}: {message}" if message else name


def log_error_with_context(
    error: Exception,
    stage: str,
    user_id: str | None = None,
    mode: str | None = None,
    extra_context: dict[str, Any] | None = None,
) -> None:
    """
    Log an error with full context: stage, user, mode, and stack trace.

    Args:
        error: The exception that occurred
        stage: Pipeline stage (e.g., 'snapshot', 'template', 'invoke', 'persist')
        user_id: User the generation was running for
        mode: Generation mode
        extra_context: Additional context dict to include in log
    """
    context_parts = []
    if user_id:
        context_parts.append(f"user_id={user_id}")
    if mode:
        context_parts.append(f"mode={mode}")
    context_str = ", ".join(context_parts) if context_parts else "no context"

    extra: dict[str, Any] = {}
    if extra_context:
        extra.update(extra_context)
    if user_id:
        extra["user_id"] = user_id
    if mode:
        extra["mode"] = mode
    extra["stage"] = stage

    logger.error(
        f"[{stage}] Error: {type(error).__name__}: {str(error)} ({context_str})",
        exc_info=True,
        extra={"taskgen": extra},
    )

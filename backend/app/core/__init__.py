"""Core plumbing shared by the pipeline: error taxonomy and structured error logging."""
from .error_handling import (
    ConfigurationError,
    MissingPlaceholderError,
    PersistenceError,
    TaskgenError,
    UpstreamError,
    UpstreamTimeoutError,
    error_summary,
    log_error_with_context,
)

__all__ = [
    "ConfigurationError",
    "MissingPlaceholderError",
    "PersistenceError",
    "TaskgenError",
    "UpstreamError",
    "UpstreamTimeoutError",
    "error_summary",
    "log_error_with_context",
]

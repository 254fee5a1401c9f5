"""Shared configuration constants used by the pipeline and the CLI."""
from __future__ import annotations

import os
from pathlib import Path


def _env_flag(name: str, default: bool = False) -> bool:
    """Read boolean env flag."""
    val = os.environ.get(name, "").strip().lower()
    if not val:
        return default
    return val in ("1", "true", "yes", "on")


# Project root: resolve relative to this file's location
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
PROJECT_ROOT = _PROJECT_ROOT

# Model defaults. Override: OPENAI_MODEL, OPENAI_BASE_URL, TASKGEN_OPENAI_TIMEOUT (ms)
DEFAULT_MODEL = "gpt-4.1-mini"
DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_TIMEOUT_MS = 45_000

# Data directories - use absolute paths to avoid CWD dependency
DEFAULT_DB_PATH = str(_PROJECT_ROOT / "data" / "innerbloom.db")

# Verbose structured diagnostics on the console (CLI only)
TASKGEN_DEBUG = _env_flag("TASKGEN_DEBUG", default=False)

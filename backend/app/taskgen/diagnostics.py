"""Diagnostics sink: leveled logging with structured metadata and a best-effort error log.

Nothing here raises. A diagnostics failure is logged and otherwise ignored so it
can never turn a reported pipeline error into a crash.
"""
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Sequence

ERROR_LOG_NAME = "errors.log"

_logger = logging.getLogger("taskgen")


class DiagnosticsSink:
    """Structured logging for pipeline stages plus an append-only ``errors.log``."""

    def __init__(self, exports_dirs: Sequence[Path], logger: logging.Logger | None = None) -> None:
        self.exports_dirs = tuple(exports_dirs)
        self.logger = logger or _logger

    # ------------------------------------------------------------------
    # Leveled logging
    # ------------------------------------------------------------------

    def _emit(self, level: int, message: str, metadata: dict[str, Any] | None) -> None:
        if metadata:
            rendered = json.dumps(metadata, default=str, separators=(",", ":"))
            self.logger.log(level, "[taskgen] %s %s", message, rendered, extra={"taskgen": metadata})
        else:
            self.logger.log(level, "[taskgen] %s", message)

    def debug(self, message: str, metadata: dict[str, Any] | None = None) -> None:
        self._emit(logging.DEBUG, message, metadata)

    def info(self, message: str, metadata: dict[str, Any] | None = None) -> None:
        self._emit(logging.INFO, message, metadata)

    def warning(self, message: str, metadata: dict[str, Any] | None = None) -> None:
        self._emit(logging.WARNING, message, metadata)

    def error(self, message: str, metadata: dict[str, Any] | None = None) -> None:
        self._emit(logging.ERROR, message, metadata)

    # ------------------------------------------------------------------
    # Exports directory and error log
    # ------------------------------------------------------------------

    def ensure_exports_dir(self) -> Path | None:
        """First exports candidate that exists or can be created; else the last candidate."""
        for candidate in self.exports_dirs:
            try:
                candidate.mkdir(parents=True, exist_ok=True)
                return candidate
            except OSError as exc:
                self.warning(
                    "Unable to create exports directory candidate",
                    {"path": str(candidate), "error": str(exc)},
                )
        return self.exports_dirs[-1] if self.exports_dirs else None

    def append_error_log(self, message: str) -> str | None:
        """Append ``[<ISO timestamp>] message`` to errors.log; returns the path or None."""
        directory = self.ensure_exports_dir()
        if directory is None:
            return None
        path = directory / ERROR_LOG_NAME
        stamp = datetime.now(timezone.utc).isoformat()
        try:
            with open(path, "a", encoding="utf-8") as f:
                f.write(f"[{stamp}] {message}\n")
        except OSError as exc:
            self.warning("Unable to append to error log", {"path": str(path), "error": str(exc)})
            return None
        return str(path)

"""Runtime env parsing for the task-generation pipeline.

Settings are read once (CLI start-up or test setup) into an immutable
``TaskgenSettings`` value and passed down; pipeline stages never consult
``os.environ`` themselves.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Mapping

from shared.config import (
    DEFAULT_BASE_URL,
    DEFAULT_DB_PATH,
    DEFAULT_MODEL,
    DEFAULT_TIMEOUT_MS,
    PROJECT_ROOT,
)


def parse_timeout_ms(raw: str | None, fallback: int = DEFAULT_TIMEOUT_MS) -> int:
    """Parse a millisecond timeout; blank, non-numeric, or non-positive values use the fallback."""
    if not raw or not raw.strip():
        return fallback
    try:
        value = int(raw.strip())
    except ValueError:
        return fallback
    return value if value >= 1 else fallback


def dedupe_paths(paths: Iterable[Path]) -> tuple[Path, ...]:
    """Resolve and dedupe paths, keeping first-seen order."""
    seen: set[Path] = set()
    ordered: list[Path] = []
    for p in paths:
        resolved = p.expanduser().resolve()
        if resolved in seen:
            continue
        seen.add(resolved)
        ordered.append(resolved)
    return tuple(ordered)


@dataclass(frozen=True)
class TaskgenSettings:
    """Everything the pipeline needs from the environment, resolved once."""

    model: str = DEFAULT_MODEL
    api_key: str = ""
    base_url: str = DEFAULT_BASE_URL
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    snapshot_path: Path | None = None
    prompts_path: Path | None = None
    db_path: str = DEFAULT_DB_PATH
    app_roots: tuple[Path, ...] = (PROJECT_ROOT,)
    exports_dirs: tuple[Path, ...] = (PROJECT_ROOT / "exports",)

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000.0

    # ------------------------------------------------------------------
    # Candidate paths (first existing wins; order is the contract)
    # ------------------------------------------------------------------

    def template_dir_candidates(self) -> tuple[Path, ...]:
        dirs: list[Path] = []
        if self.prompts_path is not None:
            dirs.append(self.prompts_path)
        for root in self.app_roots:
            dirs.append(root / "prompts")
            dirs.append(root / "dist" / "taskgen" / "prompts")
        return dedupe_paths(dirs)

    def snapshot_candidates(self) -> tuple[Path, ...]:
        files: list[Path] = []
        if self.snapshot_path is not None:
            files.append(self.snapshot_path)
        files.extend(root / "db-snapshot.json" for root in self.app_roots)
        return dedupe_paths(files)

    def sample_snapshot_candidates(self) -> tuple[Path, ...]:
        files: list[Path] = []
        for root in self.app_roots:
            files.append(root / "db-snapshot.sample.json")
            files.append(root / "dist" / "taskgen" / "db-snapshot.sample.json")
        return dedupe_paths(files)

    def fixture_candidates(self) -> tuple[Path, ...]:
        files: list[Path] = []
        for root in self.app_roots:
            files.append(root / "fixtures" / "taskgen.static.json")
            files.append(root / "dist" / "taskgen" / "taskgen.static.json")
        return dedupe_paths(files)

    def redacted(self) -> dict[str, Any]:
        """Display form of the settings with the credential masked."""
        key = self.api_key
        masked = "<unset>" if not key else f"{key[:3]}...{key[-4:]}" if len(key) > 8 else "***"
        return {
            "model": self.model,
            "api_key": masked,
            "base_url": self.base_url,
            "timeout_ms": self.timeout_ms,
            "snapshot_path": str(self.snapshot_path) if self.snapshot_path else None,
            "prompts_path": str(self.prompts_path) if self.prompts_path else None,
            "db_path": self.db_path,
            "app_roots": [str(p) for p in self.app_roots],
            "exports_dirs": [str(p) for p in self.exports_dirs],
        }


def _optional_path(raw: str | None) -> Path | None:
    if raw is None or not raw.strip():
        return None
    return Path(raw.strip())


def load_taskgen_settings(
    environ: Mapping[str, str] | None = None,
    cwd: Path | None = None,
) -> TaskgenSettings:
    env = os.environ if environ is None else environ
    base = Path.cwd() if cwd is None else cwd

    roots: list[Path] = []
    app_root = _optional_path(env.get("TASKGEN_APP_ROOT"))
    if app_root is not None:
        roots.append(app_root)
    roots.extend([base, base / "apps" / "api", PROJECT_ROOT])

    exports: list[Path] = []
    exports_dir = _optional_path(env.get("TASKGEN_EXPORTS_DIR"))
    if exports_dir is not None:
        exports.append(exports_dir)
    exports.extend([base / "exports", PROJECT_ROOT / "exports"])

    return TaskgenSettings(
        model=env.get("OPENAI_MODEL", "").strip() or DEFAULT_MODEL,
        api_key=env.get("OPENAI_API_KEY", "").strip(),
        base_url=(env.get("OPENAI_BASE_URL", "").strip() or DEFAULT_BASE_URL).rstrip("/"),
        timeout_ms=parse_timeout_ms(env.get("TASKGEN_OPENAI_TIMEOUT")),
        snapshot_path=_optional_path(env.get("DB_SNAPSHOT_PATH")),
        prompts_path=_optional_path(env.get("TASKGEN_PROMPTS_PATH")),
        db_path=env.get("TASKGEN_DB_PATH", "").strip() or DEFAULT_DB_PATH,
        app_roots=dedupe_paths(roots),
        exports_dirs=dedupe_paths(exports),
    )

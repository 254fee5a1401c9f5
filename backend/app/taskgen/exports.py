"""Export writers for generation results: JSON, JSONL and CSV per user and mode."""
from __future__ import annotations

import csv
import json
import logging
from pathlib import Path
from typing import Any, Iterable

logger = logging.getLogger(__name__)

CSV_COLUMNS: tuple[str, ...] = (
    "user_id",
    "tasks_group_id",
    "task",
    "pillar_code",
    "trait_code",
    "stat_code",
    "difficulty_code",
    "friction_score",
    "friction_tier",
)


def export_base(directory: Path, user_id: str, mode: str) -> Path:
    return directory / f"{user_id}.{mode}"


def write_json(path: Path, data: Any) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
    return path


def write_jsonl(path: Path, rows: Iterable[dict[str, Any]]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        for row in rows:
            f.write(json.dumps(row, ensure_ascii=False) + "\n")
    return path


def write_csv(path: Path, user_id: str, tasks_group_id: str, tasks: Iterable[dict[str, Any]]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=CSV_COLUMNS, extrasaction="ignore")
        writer.writeheader()
        for task in tasks:
            writer.writerow({"user_id": user_id, "tasks_group_id": tasks_group_id, **task})
    return path


def write_task_exports(
    directory: Path,
    user_id: str,
    mode: str,
    result: dict[str, Any],
    tasks_group_id: str,
) -> list[Path]:
    """Write ``<user>.<mode>.json`` (whole result) plus ``.jsonl`` and ``.csv`` of its tasks."""
    base = export_base(directory, user_id, mode)
    tasks = result.get("tasks") or []
    written = [
        write_json(base.with_name(base.name + ".json"), result),
        write_jsonl(base.with_name(base.name + ".jsonl"), tasks),
        write_csv(base.with_name(base.name + ".csv"), user_id, tasks_group_id, tasks),
    ]
    logger.info("Exported %d tasks for %s (%s) to %s", len(tasks), user_id, mode, directory)
    return written


def write_raw_response(directory: Path, user_id: str, mode: str, raw: str) -> Path:
    base = export_base(directory, user_id, mode)
    path = base.with_name(base.name + ".raw_response.txt")
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(raw, encoding="utf-8")
    return path

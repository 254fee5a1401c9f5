"""Ordered candidate-path resolution.

Every file lookup in the pipeline (snapshots, templates, fixtures) goes through
``first_success``: candidates are tried strictly in order, a missing file
advances to the next one, and any other failure propagates.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Generic, Iterable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Hit(Generic[T]):
    value: T
    path: Path


def first_success(candidates: Iterable[Path], load: Callable[[Path], T]) -> Hit[T] | None:
    """Return the first candidate ``load`` succeeds on, or None when every file is missing."""
    for candidate in candidates:
        try:
            value = load(candidate)
        except FileNotFoundError:
            logger.debug("Candidate not found: %s", candidate)
            continue
        return Hit(value=value, path=candidate)
    return None


def read_json(path: Path) -> Any:
    """Read and parse a JSON file; FileNotFoundError propagates to ``first_success``."""
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def read_text(path: Path) -> str:
    return path.read_text(encoding="utf-8")

"""Transactional storage of validated tasks."""
from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from backend.app.core.error_handling import PersistenceError
from backend.app.db.connection import open_db, transaction
from backend.app.models.snapshot import UserRow
from backend.app.models.taskgen import TaskItem
from backend.app.taskgen.catalog import Catalog

logger = logging.getLogger(__name__)

_INSERT_TASK = """
INSERT INTO tasks (
  task_id, user_id, tasks_group_id, task, pillar_id, trait_id, difficulty_id, xp_base, active, created_at
) VALUES (?, ?, ?, ?, ?, ?, ?, ?, 1, ?)
"""


class SqliteTaskStore:
    """Writes one ``tasks`` row per task inside a single transaction.

    Any failure rolls back every row of the batch and raises PersistenceError.
    """

    def __init__(self, db_path: str):
        self.db_path = db_path

    def _row(self, user: UserRow, catalog: Catalog, raw: dict[str, Any], now: str) -> tuple:
        task = TaskItem.model_validate(raw)
        pillar = catalog.pillars_by_code.get(task.pillar_code)
        trait = catalog.traits_by_code.get(task.trait_code)
        difficulty = catalog.difficulties_by_code.get(task.difficulty_code)
        if pillar is None or trait is None or difficulty is None:
            raise PersistenceError(f"Unable to resolve catalog IDs for task {task.task}")
        return (
            str(uuid4()),
            user.user_id,
            user.tasks_group_id,
            task.task,
            pillar.pillar_id,
            trait.trait_id,
            difficulty.difficulty_id,
            difficulty.xp_base or 0,
            now,
        )

    def store_tasks(self, user: UserRow, catalog: Catalog, tasks: list[dict[str, Any]]) -> int:
        if not user.tasks_group_id:
            raise PersistenceError("User is missing tasks_group_id; cannot persist tasks")

        now = datetime.now(timezone.utc).isoformat()
        with open_db(self.db_path) as conn:
            try:
                with transaction(conn):
                    for raw in tasks:
                        conn.execute(_INSERT_TASK, self._row(user, catalog, raw, now))
            except (sqlite3.Error, ValueError) as exc:
                raise PersistenceError(f"Failed to persist tasks: {exc}") from exc
        logger.info("Persisted %d tasks for user %s", len(tasks), user.user_id)
        return len(tasks)

"""Snapshot export from the task database, and the DB-backed generation context."""
from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime, timezone
from typing import Any

from backend.app.constants import SNAPSHOT_ROW_LIMIT, SNAPSHOT_TABLES
from backend.app.core.error_handling import ConfigurationError
from backend.app.db.connection import open_db
from backend.app.models.snapshot import Snapshot
from backend.app.taskgen.catalog import build_catalog
from backend.app.taskgen.context import GenerationContext

logger = logging.getLogger(__name__)

_USER_SCOPED = {"users", "onboarding_session"}


def _decode_row(row: sqlite3.Row) -> dict[str, Any]:
    data = dict(row)
    meta = data.get("meta")
    if isinstance(meta, str):
        try:
            data["meta"] = json.loads(meta)
        except json.JSONDecodeError:
            pass  # keep free-text meta as-is
    return data


def fetch_table(
    conn: sqlite3.Connection,
    table: str,
    limit: int | None = None,
    user_id: str | None = None,
) -> list[dict[str, Any]]:
    if table not in SNAPSHOT_TABLES:
        raise ValueError(f"Not a snapshot table: {table}")
    sql = f"SELECT * FROM {table}"
    params: list[Any] = []
    if user_id is not None and table in _USER_SCOPED:
        sql += " WHERE user_id = ?"
        params.append(user_id)
    if limit is not None:
        sql += " LIMIT ?"
        params.append(limit)
    try:
        rows = conn.execute(sql, params).fetchall()
    except sqlite3.OperationalError as exc:
        logger.warning("Skipping table %s: %s", table, exc)
        return []
    return [_decode_row(r) for r in rows]


def build_db_snapshot(conn: sqlite3.Connection, limit: int | None = SNAPSHOT_ROW_LIMIT) -> dict[str, Any]:
    """``{generated_at, samples}`` dump of the reference tables, capped at ``limit`` rows each."""
    samples = {table: fetch_table(conn, table, limit=limit) for table in SNAPSHOT_TABLES}
    return {
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "samples": samples,
    }


def resolve_db_context(db_path: str, user_id: str) -> GenerationContext:
    """Context read straight from the database; an unknown user is an error, not a mock."""
    with open_db(db_path) as conn:
        tables = {table: fetch_table(conn, table, user_id=user_id) for table in SNAPSHOT_TABLES}
    snapshot = Snapshot.model_validate(tables)
    user = snapshot.find_user(user_id)
    if user is None:
        raise ConfigurationError(f"User not found: {user_id}")
    return GenerationContext(
        snapshot=snapshot,
        source="live",
        user=user,
        onboarding=snapshot.find_onboarding(user_id),
        catalog=build_catalog(snapshot),
    )

"""Schema migrations for the task database.

Numbered ``migrations/NNNN_<name>.sql`` files run in filename order. Each applied
name is recorded in ``schema_migrations``, so rerunning is a no-op.

Usage:
    python -m backend.app.db.migrate --db ./data/innerbloom.db
"""
import argparse
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path

from backend.app.db.connection import open_db
from shared.config import DEFAULT_DB_PATH

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).resolve().parent / "migrations"

_TRACKING_TABLE = """
CREATE TABLE IF NOT EXISTS schema_migrations (
  name TEXT PRIMARY KEY,
  applied_at TEXT NOT NULL
);
"""


def _migration_files() -> list[Path]:
    if not MIGRATIONS_DIR.is_dir():
        return []
    return sorted(MIGRATIONS_DIR.glob("*.sql"))


def applied_migrations(conn: sqlite3.Connection) -> set[str]:
    return {row["name"] for row in conn.execute("SELECT name FROM schema_migrations")}


def apply_schema(db_path: str) -> list[str]:
    """Run every pending migration against ``db_path``; returns the names applied now."""
    newly_applied: list[str] = []
    with open_db(db_path) as conn:
        conn.executescript(_TRACKING_TABLE)
        done = applied_migrations(conn)
        for fp in _migration_files():
            if fp.stem in done:
                continue
            # executescript commits any pending transaction first
            conn.executescript(fp.read_text(encoding="utf-8"))
            conn.execute(
                "INSERT INTO schema_migrations (name, applied_at) VALUES (?, ?)",
                (fp.stem, datetime.now(timezone.utc).isoformat()),
            )
            conn.commit()
            newly_applied.append(fp.stem)
            logger.info("Applied migration %s to %s", fp.stem, db_path)
    return newly_applied


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Apply task database migrations.")
    parser.add_argument("--db", type=str, default=DEFAULT_DB_PATH, help="SQLite database file")
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    applied = apply_schema(args.db)
    print(f"{len(applied)} migration(s) applied to {args.db}")


if __name__ == "__main__":
    main()

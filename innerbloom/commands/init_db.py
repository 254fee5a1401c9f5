"""``innerbloom init-db`` — apply SQLite migrations to the task database."""
from __future__ import annotations

from backend.app.db.migrate import apply_schema


def register(subparsers) -> None:
    p = subparsers.add_parser("init-db", help="Create or upgrade the SQLite task database")
    p.add_argument("--db", type=str, default=None, help="SQLite path (default: TASKGEN_DB_PATH)")
    p.set_defaults(func=run)


def run(args) -> int:
    db_path = args.db or args.settings.db_path
    applied = apply_schema(db_path)
    if applied:
        print(f"Applied {len(applied)} migration(s) to {db_path}: {', '.join(applied)}")
    else:
        print(f"Database up to date: {db_path}")
    return 0

"""``innerbloom snapshot`` — dump the reference tables of the task database to a snapshot file."""
from __future__ import annotations

import json
from pathlib import Path

from backend.app.constants import SNAPSHOT_ROW_LIMIT
from backend.app.db.connection import open_db
from backend.app.taskgen.db_snapshot import build_db_snapshot


def register(subparsers) -> None:
    p = subparsers.add_parser("snapshot", help="Write db-snapshot.json from the SQLite task database")
    p.add_argument("--db", type=str, default=None, help="SQLite path (default: TASKGEN_DB_PATH)")
    p.add_argument("--out", type=str, default="db-snapshot.json", help="Output file")
    p.add_argument("--limit", type=int, default=SNAPSHOT_ROW_LIMIT, help="Max rows per table")
    p.set_defaults(func=run)


def run(args) -> int:
    db_path = Path(args.db or args.settings.db_path)
    if not db_path.exists():
        print(f"  ERROR: Database not found at {db_path}")
        print("         Run: python -m innerbloom init-db")
        return 1

    with open_db(str(db_path)) as conn:
        snapshot = build_db_snapshot(conn, limit=args.limit)

    out = Path(args.out)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(json.dumps(snapshot, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
    counts = ", ".join(f"{table}={len(rows)}" for table, rows in snapshot["samples"].items())
    print(f"Snapshot written to {out} ({counts})")
    return 0

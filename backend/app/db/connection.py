"""SQLite access for the task database: configured connections and a transaction scope."""
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

BUSY_TIMEOUT_MS = 5000


def get_connection(db_path: str) -> sqlite3.Connection:
    """Open ``db_path`` with Row access, foreign keys on and a busy timeout.

    Parent directories are created so a fresh checkout can run ``init-db``
    against the default path.
    """
    path = Path(db_path)
    path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(str(path))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    conn.execute(f"PRAGMA busy_timeout = {BUSY_TIMEOUT_MS}")
    return conn


@contextmanager
def open_db(db_path: str) -> Iterator[sqlite3.Connection]:
    """Yield a connection that is closed on exit (no implicit commit)."""
    conn = get_connection(db_path)
    try:
        yield conn
    finally:
        conn.close()


@contextmanager
def transaction(conn: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    """Commit when the block exits cleanly; roll back and re-raise otherwise."""
    try:
        yield conn
    except BaseException:
        conn.rollback()
        raise
    conn.commit()

# src/work_interruption/tasks/task_store.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
from collections.abc import Iterator
from pathlib import Path

from .task_models import COL_CATEGORY, COL_DURATION, COL_ID, COL_STARTED, TABLE_NAME

logger = logging.getLogger(__name__)


class TaskDatabase:
    """
    SQLite handle for the tasks table.

    The schema is intentionally simple and migration-safe:
    - create table if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Thread-safety:
    - every operation opens its own SQLite connection
    - connections may be closed from another thread (the export producer closes
      the cursor it was handed), hence check_same_thread=False
    - SQLite serializes writers; WAL lets readers run next to a writer
    """

    def __init__(self, db_path: str | Path = "tasks.sqlite3", *, timeout: float = 30.0) -> None:
        self._db_path = Path(db_path)
        self._timeout = float(timeout)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        logger.info("TaskDatabase ready db=%s total=%s", self._db_path, self.count_tasks())

    @property
    def path(self) -> Path:
        return self._db_path

    def close(self) -> None:
        """Compatibility hook for shutdown (no persistent connections to close)."""
        return

    # ---- connections ----

    def connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=self._timeout, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        # Some filesystems refuse WAL; rollback journal still works.
        with contextlib.suppress(sqlite3.DatabaseError):
            conn.execute("PRAGMA journal_mode=WAL")

    @contextlib.contextmanager
    def write_session(self) -> Iterator[sqlite3.Connection]:
        """
        One write transaction on a fresh connection.

        Commits on success, rolls back on any exception, always closes.
        BEGIN IMMEDIATE takes the write lock up front so the statement never
        fails half-way on a lock upgrade.
        """
        conn = self.connect()
        try:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                conn.rollback()
                raise
            conn.commit()
        finally:
            conn.close()

    # ---- schema ----

    def _ensure_schema(self) -> None:
        conn = self.connect()
        try:
            cur = conn.cursor()

            cur.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {TABLE_NAME} (
                    {COL_ID} INTEGER PRIMARY KEY AUTOINCREMENT,
                    {COL_CATEGORY} TEXT NOT NULL,
                    {COL_STARTED} INTEGER,
                    {COL_DURATION} INTEGER
                )
                """
            )

            cur.execute(f"PRAGMA table_info({TABLE_NAME})")
            cols = {row["name"] for row in cur.fetchall()}

            def add_col(name: str, decl: str) -> None:
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE {TABLE_NAME} ADD COLUMN {name} {decl}")
                logger.info("TaskDatabase migration: added column %s", name)

            add_col(COL_STARTED, "INTEGER")
            add_col(COL_DURATION, "INTEGER")

            cur.execute(f"CREATE INDEX IF NOT EXISTS idx_tasks_started ON {TABLE_NAME}({COL_STARTED})")

            conn.commit()
        finally:
            conn.close()

    # ---- diagnostics ----

    def count_tasks(self) -> int:
        conn = self.connect()
        try:
            (n,) = conn.execute(f"SELECT COUNT(*) FROM {TABLE_NAME}").fetchone()
            return int(n)
        finally:
            conn.close()

"""
SQLite storage adapter.

One Database owns one sqlite3 connection for the life of the process. The
connection runs in autocommit mode; multi-statement work goes through
transaction(), which opens BEGIN IMMEDIATE at the outermost level (taking the
write lock up front, so read-validate-write sequences cannot interleave with
another writer) and SAVEPOINTs below it.
"""

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Optional

from taskmgr.lib.errors import (
    AlreadyExistsError,
    InternalError,
    InvalidArgumentError,
    NotFoundError,
    TaskManagerError,
)

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 2

SCHEMA = """
CREATE TABLE IF NOT EXISTS project_metadata (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS roadmaps (
    id TEXT PRIMARY KEY,
    vision TEXT NOT NULL,
    success_criteria TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS tracks (
    id TEXT PRIMARY KEY,
    roadmap_id TEXT NOT NULL,
    title TEXT NOT NULL,
    description TEXT NOT NULL DEFAULT '',
    status TEXT NOT NULL,
    rank INTEGER NOT NULL DEFAULT 500,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    FOREIGN KEY (roadmap_id) REFERENCES roadmaps(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS track_dependencies (
    track_id TEXT NOT NULL,
    depends_on_id TEXT NOT NULL,
    PRIMARY KEY (track_id, depends_on_id),
    FOREIGN KEY (track_id) REFERENCES tracks(id) ON DELETE CASCADE,
    FOREIGN KEY (depends_on_id) REFERENCES tracks(id) ON DELETE CASCADE,
    CHECK (track_id <> depends_on_id)
);

CREATE TABLE IF NOT EXISTS tasks (
    id TEXT PRIMARY KEY,
    track_id TEXT NOT NULL,
    title TEXT NOT NULL,
    description TEXT NOT NULL DEFAULT '',
    status TEXT NOT NULL,
    rank INTEGER NOT NULL DEFAULT 500,
    branch TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    FOREIGN KEY (track_id) REFERENCES tracks(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS iterations (
    number INTEGER PRIMARY KEY,
    name TEXT NOT NULL,
    goal TEXT NOT NULL DEFAULT '',
    deliverable TEXT NOT NULL DEFAULT '',
    status TEXT NOT NULL,
    rank INTEGER NOT NULL DEFAULT 500,
    started_at TEXT,
    completed_at TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS iteration_tasks (
    iteration_number INTEGER NOT NULL,
    task_id TEXT NOT NULL,
    PRIMARY KEY (iteration_number, task_id),
    FOREIGN KEY (iteration_number) REFERENCES iterations(number) ON DELETE CASCADE,
    FOREIGN KEY (task_id) REFERENCES tasks(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS acceptance_criteria (
    id TEXT PRIMARY KEY,
    task_id TEXT NOT NULL,
    description TEXT NOT NULL,
    verification_type TEXT NOT NULL,
    status TEXT NOT NULL,
    notes TEXT NOT NULL DEFAULT '',
    testing_instructions TEXT NOT NULL DEFAULT '',
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    FOREIGN KEY (task_id) REFERENCES tasks(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS adrs (
    id TEXT PRIMARY KEY,
    track_id TEXT NOT NULL,
    title TEXT NOT NULL,
    status TEXT NOT NULL,
    context TEXT NOT NULL,
    decision TEXT NOT NULL,
    consequences TEXT NOT NULL,
    alternatives TEXT NOT NULL DEFAULT '',
    superseded_by TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    FOREIGN KEY (track_id) REFERENCES tracks(id) ON DELETE CASCADE,
    FOREIGN KEY (superseded_by) REFERENCES adrs(id) ON DELETE SET NULL
);

CREATE TABLE IF NOT EXISTS documents (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL CHECK (length(title) > 0 AND length(title) <= 200),
    type TEXT NOT NULL CHECK (type IN ('adr', 'plan', 'retrospective', 'other')),
    status TEXT NOT NULL CHECK (status IN ('draft', 'published', 'archived')),
    content TEXT NOT NULL,
    track_id TEXT NULL REFERENCES tracks(id) ON DELETE CASCADE,
    iteration_number INTEGER NULL REFERENCES iterations(number) ON DELETE CASCADE,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    CHECK (NOT (track_id IS NOT NULL AND iteration_number IS NOT NULL))
);

CREATE INDEX IF NOT EXISTS idx_tracks_roadmap_id ON tracks(roadmap_id);
CREATE INDEX IF NOT EXISTS idx_tracks_status ON tracks(status);
CREATE INDEX IF NOT EXISTS idx_track_deps_depends_on ON track_dependencies(depends_on_id);
CREATE INDEX IF NOT EXISTS idx_tasks_track_id ON tasks(track_id);
CREATE INDEX IF NOT EXISTS idx_tasks_status ON tasks(status);
CREATE INDEX IF NOT EXISTS idx_iterations_status ON iterations(status);
CREATE INDEX IF NOT EXISTS idx_iteration_tasks_task ON iteration_tasks(task_id);
CREATE INDEX IF NOT EXISTS idx_ac_task_id ON acceptance_criteria(task_id);
CREATE INDEX IF NOT EXISTS idx_adrs_track_id ON adrs(track_id);
CREATE INDEX IF NOT EXISTS idx_documents_track_id ON documents(track_id);
CREATE INDEX IF NOT EXISTS idx_documents_iteration_number ON documents(iteration_number);
"""


def _migrate_to_v1(conn: sqlite3.Connection) -> None:
    """Base schema."""
    conn.executescript(SCHEMA)


def _migrate_to_v2(conn: sqlite3.Connection) -> None:
    """Durable per-project, per-entity-type ID counters and the single-current guard."""
    conn.executescript("""
        CREATE TABLE IF NOT EXISTS entity_sequences (
            project TEXT NOT NULL,
            entity_type TEXT NOT NULL,
            seq INTEGER NOT NULL DEFAULT 0,
            PRIMARY KEY (project, entity_type)
        );
        CREATE UNIQUE INDEX IF NOT EXISTS idx_iterations_single_current
            ON iterations(status) WHERE status = 'current';
    """)


MIGRATIONS = {
    1: _migrate_to_v1,
    2: _migrate_to_v2,
}


def translate_error(e: sqlite3.Error, context: str) -> TaskManagerError:
    """Map a sqlite3 error onto the domain error taxonomy."""
    msg = str(e)
    if isinstance(e, sqlite3.IntegrityError):
        if "UNIQUE" in msg or "PRIMARY KEY" in msg:
            return AlreadyExistsError(f"{context}: {msg}")
        if "FOREIGN KEY" in msg:
            return NotFoundError(f"{context}: referenced entity missing ({msg})")
        if "CHECK" in msg or "NOT NULL" in msg:
            return InvalidArgumentError(f"{context}: {msg}")
    return InternalError(f"{context}: {msg}")


class Database:
    """Shared SQLite connection with schema management and transactions."""

    def __init__(self, path: str | Path):
        self.path = str(path)
        self._depth = 0
        self._closed = False

        if self.path != ":memory:":
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)

        try:
            self._conn = sqlite3.connect(self.path, isolation_level=None)
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA foreign_keys=ON")
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.execute("PRAGMA busy_timeout=5000")
            self._migrate()
        except sqlite3.Error as e:
            raise InternalError(f"failed to open database at {self.path}: {e}") from e

        logger.debug(f"[DB] opened {self.path} (schema v{self.schema_version})")

    @property
    def schema_version(self) -> int:
        return self._conn.execute("PRAGMA user_version").fetchone()[0]

    def _migrate(self) -> None:
        current = self.schema_version
        for version in sorted(MIGRATIONS):
            if version > current:
                logger.info(f"[DB] migrating {self.path} to schema v{version}")
                MIGRATIONS[version](self._conn)
                self._conn.execute(f"PRAGMA user_version = {version}")

    def _require_open(self) -> sqlite3.Connection:
        if self._closed:
            raise InternalError(f"database {self.path} is closed")
        return self._conn

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Run a block atomically. Nested calls become savepoints.

        Any exception rolls back everything done inside the block.
        """
        conn = self._require_open()
        savepoint = f"sp_{self._depth}"
        try:
            conn.execute("BEGIN IMMEDIATE" if self._depth == 0 else f"SAVEPOINT {savepoint}")
        except sqlite3.Error as e:
            raise translate_error(e, "begin transaction") from e

        self._depth += 1
        try:
            yield conn
        except BaseException:
            self._depth -= 1
            if self._depth == 0:
                conn.execute("ROLLBACK")
            else:
                conn.execute(f"ROLLBACK TO {savepoint}")
                conn.execute(f"RELEASE {savepoint}")
            raise
        else:
            self._depth -= 1
            try:
                conn.execute("COMMIT" if self._depth == 0 else f"RELEASE {savepoint}")
            except sqlite3.Error as e:
                raise translate_error(e, "commit") from e

    @property
    def in_transaction(self) -> bool:
        return self._depth > 0

    def execute(self, sql: str, params: tuple | list = ()) -> sqlite3.Cursor:
        """Execute one statement; sqlite3 errors are translated."""
        conn = self._require_open()
        try:
            return conn.execute(sql, params)
        except sqlite3.Error as e:
            raise translate_error(e, sql.split("(")[0].strip()) from e

    def query(self, sql: str, params: tuple | list = ()) -> list[sqlite3.Row]:
        return self.execute(sql, params).fetchall()

    def query_one(self, sql: str, params: tuple | list = ()) -> Optional[sqlite3.Row]:
        return self.execute(sql, params).fetchone()

    def scalar(self, sql: str, params: tuple | list = ()) -> Any:
        row = self.query_one(sql, params)
        return row[0] if row is not None else None

    def backup(self, dest_path: str | Path) -> Path:
        """Copy the live database to dest_path using the online backup API."""
        conn = self._require_open()
        dest = Path(dest_path)
        dest.parent.mkdir(parents=True, exist_ok=True)
        target = sqlite3.connect(str(dest))
        try:
            conn.backup(target)
        except sqlite3.Error as e:
            raise InternalError(f"backup to {dest} failed: {e}") from e
        finally:
            target.close()
        logger.info(f"[DB] backed up {self.path} -> {dest}")
        return dest

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Close the connection. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        self._conn.close()
        logger.debug(f"[DB] closed {self.path}")

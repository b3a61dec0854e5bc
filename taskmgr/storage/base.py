"""Row-level helpers shared by the entity repositories."""

import logging

from taskmgr.lib.errors import NotFoundError
from taskmgr.lib.validate import validate_before_write

from .database import Database
from .integrity import IntegrityAuthority

logger = logging.getLogger(__name__)


class Repository:
    """One table, one key column, one schema."""

    table = ""
    key = "id"
    schema = ""
    label = ""

    def __init__(self, db: Database, integrity: IntegrityAuthority):
        self.db = db
        self.integrity = integrity

    def _check(self, record: dict) -> None:
        validate_before_write(record, self.schema, self.table)

    def _insert(self, record: dict) -> None:
        self._check(record)
        columns = ", ".join(record)
        placeholders = ", ".join("?" for _ in record)
        self.db.execute(
            f"INSERT INTO {self.table} ({columns}) VALUES ({placeholders})",
            tuple(record.values()),
        )

    def _update(self, record: dict) -> None:
        self._check(record)
        assignments = ", ".join(f"{col} = ?" for col in record if col != self.key)
        values = [v for col, v in record.items() if col != self.key]
        cursor = self.db.execute(
            f"UPDATE {self.table} SET {assignments} WHERE {self.key} = ?",
            (*values, record[self.key]),
        )
        if cursor.rowcount == 0:
            raise NotFoundError(f"{self.label} {record[self.key]} not found")

    def _row(self, key_value):
        row = self.db.query_one(f"SELECT * FROM {self.table} WHERE {self.key} = ?", (key_value,))
        if row is None:
            raise NotFoundError(f"{self.label} {key_value} not found")
        return row

    def delete(self, key_value) -> None:
        """Delete one row; dependent rows go with it via ON DELETE CASCADE."""
        cursor = self.db.execute(f"DELETE FROM {self.table} WHERE {self.key} = ?", (key_value,))
        if cursor.rowcount == 0:
            raise NotFoundError(f"{self.label} {key_value} not found")
        logger.info(f"[DB] deleted {self.label} {key_value}")

import logging
import sqlite3
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Set

from flux.database.connection import DatabaseManager
from flux.repositories.base import (
    PROFILES,
    TABLES,
    LedgerRepository,
    NotFoundError,
    RemoteFailure,
    Row,
)

logger = logging.getLogger(__name__)

class SQLiteLedgerRepository(LedgerRepository):
    """
    SQLite implementation of the LedgerRepository.

    Stores every user's rows in one local database file; each query is
    filtered by `user_id`. Ids are random UUID strings.
    """

    def __init__(self, db_manager: DatabaseManager, user_id: str):
        super().__init__(user_id)
        self.db = db_manager
        self._columns: Dict[str, Set[str]] = {}

    def fetch_all(self, table: str) -> List[Row]:
        self._check_table(table)
        try:
            conn = self.db.get_connection()
            cursor = conn.execute(
                f"SELECT * FROM {table} WHERE user_id = ? ORDER BY created_at",
                (self.user_id,),
            )
            return [dict(row) for row in cursor.fetchall()]
        except sqlite3.Error as e:
            logger.error("SQLite error: %s", e)
            raise RemoteFailure(f"Failed to read {table}: {e}") from e

    def insert(self, table: str, row: Row) -> Row:
        return self.insert_many(table, [row])[0]

    def insert_many(self, table: str, rows: List[Row]) -> List[Row]:
        """Insert all rows inside one SQL transaction"""
        self._check_table(table)
        stored = [self._new_record(row) for row in rows]
        for record in stored:
            self._check_columns(table, record)

        try:
            with self.db.transaction() as conn:
                for record in stored:
                    columns = ", ".join(record.keys())
                    placeholders = ", ".join("?" for _ in record)
                    conn.execute(
                        f"INSERT INTO {table} ({columns}) VALUES ({placeholders})",
                        tuple(record.values()),
                    )
        except sqlite3.Error as e:
            logger.error("SQLite error: %s", e)
            raise RemoteFailure(f"Failed to insert into {table}: {e}") from e

        logger.debug("Inserted %d row(s) into %s", len(stored), table)
        return stored

    def update(self, table: str, record_id: str, row: Row) -> Row:
        self._check_table(table)
        values = {k: v for k, v in row.items() if k not in ("id", "user_id", "created_at")}
        self._check_columns(table, values)

        assignments = ", ".join(f"{column} = ?" for column in values)
        try:
            with self.db.transaction() as conn:
                cursor = conn.execute(
                    f"UPDATE {table} SET {assignments} WHERE id = ? AND user_id = ?",
                    (*values.values(), record_id, self.user_id),
                )
                updated = cursor.rowcount
        except sqlite3.Error as e:
            logger.error("SQLite error: %s", e)
            raise RemoteFailure(f"Failed to update {table}: {e}") from e

        if updated == 0:
            raise NotFoundError(f"Record with ID {record_id} not found in {table}")

        return self._get(table, record_id)

    def delete(self, table: str, record_id: str) -> bool:
        return self.delete_where(table, "id", record_id) > 0

    def delete_where(self, table: str, column: str, value: Any) -> int:
        self._check_table(table)
        self._check_columns(table, {column: value})
        try:
            with self.db.transaction() as conn:
                cursor = conn.execute(
                    f"DELETE FROM {table} WHERE {column} = ? AND user_id = ?",
                    (value, self.user_id),
                )
                deleted = cursor.rowcount
        except sqlite3.Error as e:
            logger.error("SQLite error: %s", e)
            raise RemoteFailure(f"Failed to delete from {table}: {e}") from e

        logger.debug("Deleted %d row(s) from %s where %s = %s", deleted, table, column, value)
        return deleted

    def fetch_profile(self) -> Optional[Row]:
        try:
            conn = self.db.get_connection()
            row = conn.execute(
                f"SELECT * FROM {PROFILES} WHERE id = ?", (self.user_id,)
            ).fetchone()
        except sqlite3.Error as e:
            logger.error("SQLite error: %s", e)
            raise RemoteFailure(f"Failed to read profile: {e}") from e
        return dict(row) if row else None

    def save_profile(self, row: Row) -> Row:
        record = {**row, "id": self.user_id}
        self._check_columns(PROFILES, record)
        columns = ", ".join(record.keys())
        placeholders = ", ".join("?" for _ in record)
        try:
            with self.db.transaction() as conn:
                conn.execute(
                    f"INSERT OR REPLACE INTO {PROFILES} ({columns}) VALUES ({placeholders})",
                    tuple(record.values()),
                )
        except sqlite3.Error as e:
            logger.error("SQLite error: %s", e)
            raise RemoteFailure(f"Failed to save profile: {e}") from e
        return self.fetch_profile()

    def _get(self, table: str, record_id: str) -> Row:
        try:
            conn = self.db.get_connection()
            row = conn.execute(
                f"SELECT * FROM {table} WHERE id = ? AND user_id = ?",
                (record_id, self.user_id),
            ).fetchone()
        except sqlite3.Error as e:
            logger.error("SQLite error: %s", e)
            raise RemoteFailure(f"Failed to read back {table} row {record_id}: {e}") from e
        if row is None:
            raise NotFoundError(f"Record with ID {record_id} not found in {table}")
        return dict(row)

    def _new_record(self, row: Row) -> Row:
        """Add the columns the server is responsible for"""
        return {
            **{k: v for k, v in row.items() if k not in ("id", "user_id", "created_at")},
            "id": str(uuid.uuid4()),
            "user_id": self.user_id,
            "created_at": datetime.now(timezone.utc).isoformat(),
        }

    def _check_table(self, table: str) -> None:
        if table not in TABLES:
            raise ValueError(f"Unknown table '{table}'. Available tables: {', '.join(TABLES)}")

    def _check_columns(self, table: str, row: Row) -> None:
        """Reject column names that are not in the schema (they are interpolated into SQL)"""
        if table not in self._columns:
            try:
                conn = self.db.get_connection()
                info = conn.execute(f"PRAGMA table_info({table})").fetchall()
            except sqlite3.Error as e:
                logger.error("SQLite error: %s", e)
                raise RemoteFailure(f"Failed to read columns of {table}: {e}") from e
            self._columns[table] = {column["name"] for column in info}

        unknown = set(row) - self._columns[table]
        if unknown:
            raise ValueError(f"Unknown column(s) for {table}: {', '.join(sorted(unknown))}")

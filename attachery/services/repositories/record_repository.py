"""
Record Repository Module.

Reference persistence for AttachedRecord subclasses in SQLite, wiring the
attachment save and destroy hooks around the row writes.
"""

import logging
from datetime import datetime
from typing import Any, List, Optional, Type

from attachery.core.attachment import FIELDS
from attachery.core.interpolation import pluralize, underscore
from attachery.core.record import AttachedRecord
from attachery.services.repositories.base_repository import BaseRepository

logger = logging.getLogger(__name__)

COLUMN_TYPES = {
    "file_name": "TEXT",
    "content_type": "TEXT",
    "file_size": "INTEGER",
    "updated_at": "TEXT",
}


class RecordRepository(BaseRepository):
    """
    Repository storing one table per record class.

    The table is named after the class (``User`` -> ``users``) and holds an
    ``id`` column plus the four persisted fields of every attachment.
    Record classes must be constructible without arguments.
    """

    @classmethod
    def table_name(cls, record_cls: Type[AttachedRecord]) -> str:
        return cls._identifier(pluralize(underscore(record_cls.__name__)))

    @classmethod
    def columns(cls, record_cls: Type[AttachedRecord]) -> List[str]:
        return [
            cls._identifier(f"{name}_{field}")
            for name in record_cls.attachment_definitions
            for field in FIELDS
        ]

    def ensure_table(self, record_cls: Type[AttachedRecord]) -> None:
        """
        Creates the table for ``record_cls`` and adds any missing columns.
        """
        table = self.table_name(record_cls)
        with self.transaction() as conn:
            conn.execute(
                f"CREATE TABLE IF NOT EXISTS {table} (id INTEGER PRIMARY KEY AUTOINCREMENT)"
            )
            existing = {row[1] for row in conn.execute(f"PRAGMA table_info({table})")}
            for name in record_cls.attachment_definitions:
                for field in FIELDS:
                    column = self._identifier(f"{name}_{field}")
                    if column not in existing:
                        conn.execute(
                            f"ALTER TABLE {table} ADD COLUMN {column} {COLUMN_TYPES[field]}"
                        )

    def save(self, record: AttachedRecord) -> None:
        """
        Inserts or updates ``record``, then saves its attached files.

        The row is committed before any file is written, so a failing row
        write leaves storage untouched.

        Raises:
            sqlite3.Error: If the row cannot be written.
            StorageError: If an attached file cannot be written.
        """
        record_cls = type(record)
        table = self.table_name(record_cls)
        columns = self.columns(record_cls)
        values = [self._to_column(getattr(record, column, None)) for column in columns]

        with self.transaction() as conn:
            if record.id is None:
                placeholders = ", ".join("?" for _ in columns)
                if columns:
                    sql = f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders})"
                else:
                    sql = f"INSERT INTO {table} DEFAULT VALUES"
                cursor = conn.execute(sql, values)
                record.id = cursor.lastrowid
            elif columns:
                assignments = ", ".join(f"{column} = ?" for column in columns)
                cursor = conn.execute(
                    f"UPDATE {table} SET {assignments} WHERE id = ?", [*values, record.id]
                )
                if cursor.rowcount == 0:
                    conn.execute(
                        f"INSERT INTO {table} (id, {', '.join(columns)}) "
                        f"VALUES (?, {', '.join('?' for _ in columns)})",
                        [record.id, *values],
                    )

        logger.debug(f"Saved {table} row {record.id}")
        record.save_attached_files()

    def get(self, record_cls: Type[AttachedRecord], record_id: Any) -> Optional[AttachedRecord]:
        """
        Loads the record with ``record_id``.

        Returns:
            The record, or None if there is no such row.
        """
        table = self.table_name(record_cls)
        if not self._connection:
            return None

        cursor = self._connection.execute(f"SELECT * FROM {table} WHERE id = ?", (record_id,))
        row = cursor.fetchone()
        if row is None:
            return None
        return self._row_to_record(record_cls, row)

    def list(self, record_cls: Type[AttachedRecord]) -> List[AttachedRecord]:
        table = self.table_name(record_cls)
        if not self._connection:
            return []

        cursor = self._connection.execute(f"SELECT * FROM {table} ORDER BY id ASC")
        return [self._row_to_record(record_cls, row) for row in cursor.fetchall()]

    def delete(self, record: AttachedRecord) -> None:
        """
        Deletes the attached files of ``record``, then its row.
        """
        table = self.table_name(type(record))
        record.destroy_attached_files()
        with self.transaction() as conn:
            conn.execute(f"DELETE FROM {table} WHERE id = ?", (record.id,))
        logger.debug(f"Deleted {table} row {record.id}")

    def _row_to_record(self, record_cls: Type[AttachedRecord], row) -> AttachedRecord:
        record = record_cls()
        record.id = row["id"]
        keys = row.keys()
        for column in self.columns(record_cls):
            if column not in keys:
                continue
            value = row[column]
            if column.endswith("_updated_at") and value:
                value = datetime.fromisoformat(value)
            setattr(record, column, value)
        return record

    @staticmethod
    def _to_column(value: Any) -> Any:
        if isinstance(value, datetime):
            return value.isoformat()
        return value

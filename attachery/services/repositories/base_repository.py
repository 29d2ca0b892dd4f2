"""
Base Repository Module.

Provides the base class for repository implementations. Repositories handle
persistence of host records in SQLite.
"""

import logging
import re
import sqlite3
from contextlib import contextmanager
from typing import Iterator, Optional

logger = logging.getLogger(__name__)

IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class BaseRepository:
    """
    Base class for repository implementations.

    Provides connection management and transaction handling.

    Attributes:
        _connection: The SQLite database connection.
    """

    def __init__(self, connection: Optional[sqlite3.Connection] = None) -> None:
        """
        Initialize the repository.

        Args:
            connection: Optional SQLite connection. If None, must be set later.
        """
        self._connection = connection
        if connection is not None:
            connection.row_factory = sqlite3.Row

    @classmethod
    def open(cls, db_path: str) -> "BaseRepository":
        """Opens (or creates) the database file at ``db_path``."""
        return cls(sqlite3.connect(db_path))

    def close(self) -> None:
        if self._connection is not None:
            self._connection.close()
            self._connection = None

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """
        Context manager for safe transaction handling.

        Yields:
            The database connection within a transaction context.

        Raises:
            sqlite3.Error: If the transaction fails.
        """
        if not self._connection:
            raise RuntimeError("Database connection not initialized")

        try:
            yield self._connection
            self._connection.commit()
        except Exception as e:
            self._connection.rollback()
            logger.error(f"Transaction rolled back due to error: {e}")
            raise

    @staticmethod
    def _identifier(name: str) -> str:
        """Returns ``name`` if it is safe to use as a table or column name."""
        if not IDENTIFIER_PATTERN.match(name):
            raise ValueError(f"Invalid SQL identifier: {name!r}")
        return name

"""
Repository Module.

Provides the reference SQLite persistence for records carrying attachments.
"""

from attachery.services.repositories.base_repository import BaseRepository
from attachery.services.repositories.record_repository import RecordRepository

__all__ = ["BaseRepository", "RecordRepository"]

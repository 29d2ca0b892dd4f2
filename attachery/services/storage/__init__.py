"""Storage backends for attachment variants."""

from attachery.services.storage.base import Storage
from attachery.services.storage.filesystem import FilesystemStorage
from attachery.services.storage.s3 import S3Storage, S3StoreConfig

__all__ = ["Storage", "FilesystemStorage", "S3Storage", "S3StoreConfig"]

"""
Attachery.

File attachments for records: styles generated with ImageMagick, stored on
the local filesystem or S3, committed together with the owning record.
"""

from attachery.core.attachment import Attachment, AttachmentState
from attachery.core.config import AttacheryConfig
from attachery.core.errors import (
    AttacheryError,
    CommandFailedError,
    CommandNotFoundError,
    FormatError,
    InfiniteInterpolationError,
    NotIdentifiedError,
    ProcessingError,
    StorageError,
)
from attachery.core.geometry import Geometry
from attachery.core.record import AttachedRecord, AttachmentHandle, has_attached_file
from attachery.core.upload import UploadedFile
from attachery.services.context import AttachmentContext

__version__ = "0.1.0"

__all__ = [
    "Attachment",
    "AttachmentState",
    "AttacheryConfig",
    "AttachmentContext",
    "AttachedRecord",
    "AttachmentHandle",
    "has_attached_file",
    "Geometry",
    "UploadedFile",
    "AttacheryError",
    "CommandFailedError",
    "CommandNotFoundError",
    "FormatError",
    "InfiniteInterpolationError",
    "NotIdentifiedError",
    "ProcessingError",
    "StorageError",
]

"""
Upload Module.

Defines the contract every value assigned to an attachment must satisfy,
and an adapter turning paths, bytes and raw streams into that contract.
"""

import io
import mimetypes
import os
from pathlib import Path
from typing import BinaryIO, Optional, Protocol, Union, runtime_checkable

DEFAULT_CONTENT_TYPE = "application/octet-stream"


@runtime_checkable
class UploadSource(Protocol):
    """
    Protocol for anything that can be assigned to an attachment.

    An upload source exposes its original file name, content type, size in
    bytes and a readable byte stream.
    """

    original_filename: str
    content_type: Optional[str]

    @property
    def size(self) -> int:
        ...

    def read(self, size: int = -1) -> bytes:
        ...


def guess_content_type(filename: str) -> str:
    content_type, _ = mimetypes.guess_type(filename)
    return content_type or DEFAULT_CONTENT_TYPE


def is_blank(value) -> bool:
    """Returns True for the values that clear an attachment (None or blank text)."""
    return value is None or (isinstance(value, str) and not value.strip())


def is_upload_source(value) -> bool:
    """
    Checks whether ``value`` can be assigned to an attachment.

    Args:
        value: Candidate upload.

    Returns:
        bool: True if it has a non-blank original filename and a readable stream.
    """
    filename = getattr(value, "original_filename", None)
    return bool(filename and str(filename).strip()) and callable(
        getattr(value, "read", None)
    )


class UploadedFile:
    """
    Adapter exposing a byte stream through the upload source contract.
    """

    def __init__(
        self,
        stream: BinaryIO,
        original_filename: str,
        content_type: Optional[str] = None,
        size: Optional[int] = None,
    ) -> None:
        """
        Initialize the upload.

        Args:
            stream: Readable binary stream positioned at the start of the data.
            original_filename: Name of the file as uploaded.
            content_type: MIME type; guessed from the file name when omitted.
            size: Size in bytes; measured from the stream when omitted.
        """
        self.stream = stream
        self.original_filename = original_filename
        self.content_type = content_type or guess_content_type(original_filename)
        self._size = size

    @classmethod
    def from_path(
        cls,
        path: Union[str, Path],
        content_type: Optional[str] = None,
        original_filename: Optional[str] = None,
    ) -> "UploadedFile":
        path = Path(path)
        return cls(
            open(path, "rb"),
            original_filename=original_filename or path.name,
            content_type=content_type,
            size=path.stat().st_size,
        )

    @classmethod
    def from_bytes(
        cls, data: bytes, original_filename: str, content_type: Optional[str] = None
    ) -> "UploadedFile":
        return cls(
            io.BytesIO(data),
            original_filename=original_filename,
            content_type=content_type,
            size=len(data),
        )

    @property
    def size(self) -> int:
        if self._size is None:
            position = self.stream.tell()
            self.stream.seek(0, os.SEEK_END)
            self._size = self.stream.tell()
            self.stream.seek(position)
        return self._size

    def read(self, size: int = -1) -> bytes:
        return self.stream.read(size)

    def close(self) -> None:
        self.stream.close()

    def __enter__(self) -> "UploadedFile":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"<UploadedFile {self.original_filename} ({self.content_type})>"

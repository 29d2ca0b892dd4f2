"""
Staged File Module.

Temporary files that hold uploaded and transformed data until the owning
record is saved. A staged file is removed when it is closed, and at the
latest when the handle is garbage collected.
"""

import logging
import os
import shutil
import tempfile
import weakref
from pathlib import Path
from typing import BinaryIO, Optional

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


def _remove(path: str) -> None:
    try:
        os.unlink(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning(f"Could not remove staged file {path}: {e}")


class StagedFile:
    """
    Handle to a temporary file on local disk.

    Also satisfies the upload source contract (original_filename,
    content_type, size, read), so a staged file can be assigned to another
    attachment.
    """

    def __init__(
        self,
        path: str,
        original_filename: Optional[str] = None,
        content_type: Optional[str] = None,
    ) -> None:
        self.path = str(path)
        self.original_filename = original_filename or Path(self.path).name
        self.content_type = content_type
        self._stream: Optional[BinaryIO] = None
        self._finalizer = weakref.finalize(self, _remove, self.path)

    @classmethod
    def create(
        cls,
        suffix: str = "",
        prefix: str = "attachery-",
        original_filename: Optional[str] = None,
        content_type: Optional[str] = None,
    ) -> "StagedFile":
        """
        Creates an empty temporary file.

        Args:
            suffix: File name suffix, usually the extension including its dot.
            prefix: File name prefix.
            original_filename: Name reported through the upload contract.
            content_type: MIME type reported through the upload contract.

        Returns:
            StagedFile: Handle to the new file.
        """
        fd, path = tempfile.mkstemp(suffix=suffix, prefix=prefix)
        os.close(fd)
        return cls(path, original_filename=original_filename, content_type=content_type)

    @classmethod
    def from_upload(cls, upload) -> "StagedFile":
        """
        Copies the contents of an upload source into a new staged file.

        Args:
            upload: Any object satisfying the upload source contract.

        Returns:
            StagedFile: Handle holding a copy of the upload's bytes.
        """
        suffix = Path(upload.original_filename).suffix
        staged = cls.create(
            suffix=suffix,
            original_filename=upload.original_filename,
            content_type=upload.content_type,
        )
        if isinstance(upload, StagedFile):
            upload.copy_to(staged.path)
            return staged

        try:
            with open(staged.path, "wb") as out:
                while True:
                    chunk = upload.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    out.write(chunk)
        except Exception:
            staged.close()
            raise
        return staged

    @property
    def closed(self) -> bool:
        return not self._finalizer.alive

    @property
    def size(self) -> int:
        return os.path.getsize(self.path)

    def read(self, size: int = -1) -> bytes:
        """Reads from the staged file, keeping the position between calls."""
        if self._stream is None:
            self._stream = open(self.path, "rb")
        return self._stream.read(size)

    def read_bytes(self) -> bytes:
        return Path(self.path).read_bytes()

    def rewind(self) -> None:
        if self._stream is not None:
            self._stream.seek(0)

    def copy_to(self, destination: str) -> None:
        shutil.copyfile(self.path, destination)

    def close(self) -> None:
        """Closes any open stream and removes the file."""
        if self._stream is not None:
            self._stream.close()
            self._stream = None
        self._finalizer()

    def __enter__(self) -> "StagedFile":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self.closed else "open"
        return f"<StagedFile {self.original_filename} ({state})>"

"""
Filesystem Storage Module.

Stores attachment variants in a local directory hierarchy.
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

from attachery.core.definition import AttachmentSpec
from attachery.core.errors import StorageError
from attachery.core.interpolation import Interpolations
from attachery.services.storage.base import Storage

logger = logging.getLogger(__name__)

FILE_MODE = 0o644


class FilesystemStorage(Storage):
    """
    Storage backend writing to the local filesystem.

    The default path mirrors the public URL under ``<root>/public`` so that
    files can be served directly by a web server.
    """

    default_path_template = ":root/public:url"

    def __init__(
        self,
        interpolations: Interpolations,
        spec: AttachmentSpec,
        path_template: Optional[str] = None,
        root: Optional[str] = None,
    ) -> None:
        """
        Initialize the filesystem backend.

        Args:
            interpolations: Registry used to expand templates.
            spec: The attachment definition served by this backend.
            path_template: Overrides the default path template.
            root: Directory below which directories emptied by a delete are
                removed. Defaults to the "root" storage option; None disables
                pruning.
        """
        super().__init__(interpolations, spec, path_template)
        root = root or spec.storage_options.get("root")
        self.root = Path(root).resolve() if root else None

    def exists(self, path: str) -> bool:
        return Path(path).is_file()

    def write(self, data: bytes, path: str, content_type: Optional[str] = None) -> None:
        """
        Writes ``data`` to ``path``, creating parent directories as needed.

        The bytes go to a temporary file in the same directory which is then
        moved into place, so readers never see a partially written file.
        """
        target = Path(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=target.parent, prefix=".attachery-")
            try:
                with os.fdopen(fd, "wb") as out:
                    out.write(data)
                os.chmod(tmp_path, FILE_MODE)
                os.replace(tmp_path, target)
            except BaseException:
                Path(tmp_path).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StorageError(f"Could not write {path}: {e}") from e

        logger.info(f"Saved {path} ({len(data)} bytes)")

    def read(self, path: str) -> bytes:
        try:
            return Path(path).read_bytes()
        except OSError as e:
            raise StorageError(f"Could not read {path}: {e}") from e

    def delete(self, path: str) -> None:
        """
        Deletes ``path`` and prunes the directories it leaves empty.
        """
        target = Path(path)
        try:
            target.unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"Could not delete {path}: {e}") from e

        logger.info(f"Deleted {path}")
        self._prune_empty_parents(target.parent)

    def _prune_empty_parents(self, directory: Path) -> None:
        if self.root is None:
            return

        directory = directory.resolve()
        while self.root in directory.parents:
            try:
                directory.rmdir()
            except OSError:
                # Not empty, missing or not ours to remove
                return
            logger.debug(f"Removed empty directory {directory}")
            directory = directory.parent

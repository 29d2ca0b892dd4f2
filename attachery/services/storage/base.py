"""
Storage Base Module.

Defines the contract every storage backend implements: resolving the path
and URL of a style, and writing, reading and deleting stored bytes.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

from attachery.core.definition import AttachmentSpec
from attachery.core.interpolation import Interpolations

logger = logging.getLogger(__name__)


class Storage(ABC):
    """
    Abstract base class for storage backends.

    A backend is created once per attachment definition and shared by every
    Attachment of that definition. Paths and URLs are resolved through the
    interpolation registry against backend-specific templates.

    Attributes:
        interpolations: Registry used to expand templates.
        spec: The attachment definition served by this backend.
        path_template: Template for storage paths.
    """

    default_path_template = ":class/:attachment/:id/:style_:filename"

    def __init__(
        self,
        interpolations: Interpolations,
        spec: AttachmentSpec,
        path_template: Optional[str] = None,
    ) -> None:
        """
        Initialize the backend.

        Args:
            interpolations: Registry used to expand templates.
            spec: The attachment definition served by this backend.
            path_template: Overrides both the definition's and the backend's
                default path template.
        """
        self.interpolations = interpolations
        self.spec = spec
        self.path_template = (
            path_template or spec.path_template or self.default_path_template
        )

    def path(self, attachment, style: Optional[str] = None) -> str:
        """Returns the storage path of ``style`` for ``attachment``."""
        return self.interpolations.expand(self.path_template, attachment, style)

    def url(self, attachment, style: Optional[str] = None) -> str:
        """Returns the public URL of ``style`` for ``attachment``."""
        return self.interpolations.expand(self.spec.url_template, attachment, style)

    @abstractmethod
    def exists(self, path: str) -> bool:
        """Returns True if something is stored at ``path``."""

    @abstractmethod
    def write(self, data: bytes, path: str, content_type: Optional[str] = None) -> None:
        """
        Stores ``data`` at ``path``, replacing anything already there.

        Raises:
            StorageError: If the write fails.
        """

    @abstractmethod
    def read(self, path: str) -> bytes:
        """
        Returns the bytes stored at ``path``.

        Raises:
            StorageError: If nothing is stored there or the read fails.
        """

    @abstractmethod
    def delete(self, path: str) -> None:
        """
        Removes whatever is stored at ``path``. Deleting a missing path is
        not an error.

        Raises:
            StorageError: If the delete fails.
        """

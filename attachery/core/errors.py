"""
Errors Module.

Defines the exception hierarchy raised while processing, interpolating and
storing attachments.
"""


class AttacheryError(Exception):
    """Base class for all attachment errors."""


class FormatError(AttacheryError, ValueError):
    """Raised for malformed geometry strings or unusable dimensions."""


class ProcessingError(AttacheryError):
    """Raised when an external tool ran but failed to produce a variant."""


class NotIdentifiedError(ProcessingError):
    """Raised when a file cannot be read as an image."""


class CommandNotFoundError(AttacheryError):
    """Raised when an external command cannot be located."""


class CommandFailedError(AttacheryError):
    """
    Raised when an external command exits with an unexpected status.

    Attributes:
        command: The command that was run.
        exit_code: The exit status, or None if the command timed out.
        output: Captured error output, if any.
    """

    def __init__(self, command: str, exit_code=None, output: str = "") -> None:
        self.command = command
        self.exit_code = exit_code
        self.output = output
        super().__init__(f"Command '{command}' returned {exit_code}: {output}".strip())


class InfiniteInterpolationError(AttacheryError):
    """Raised when template expansion exceeds its depth bound."""


class StorageError(AttacheryError):
    """Raised when a storage backend fails to write, read or delete."""

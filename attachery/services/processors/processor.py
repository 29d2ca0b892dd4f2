"""
Processor Module.

Base class for the steps that turn an uploaded file into a style variant.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from attachery.core.staged_file import StagedFile
from attachery.services.command_runner import CommandRunner

logger = logging.getLogger(__name__)


class Processor(ABC):
    """
    Abstract base class for attachment processors.

    A processor receives the current file of a style (the upload, or the
    output of the previous processor) and produces a new staged file.
    """

    def __init__(
        self,
        file: StagedFile,
        options: Optional[Dict[str, Any]] = None,
        attachment=None,
        runner: Optional[CommandRunner] = None,
    ) -> None:
        """
        Initialize the processor.

        Args:
            file: The file to process.
            options: Style options (geometry, format, convert_options, whiny).
            attachment: The attachment being processed, if any.
            runner: Runner for external commands. Defaults to the runner of
                the attachment's context.
        """
        self.file = file
        self.options = dict(options or {})
        self.attachment = attachment

        if runner is None and attachment is not None:
            runner = attachment.context.runner
        self.runner = runner or CommandRunner()

    @abstractmethod
    def make(self) -> Optional[StagedFile]:
        """
        Performs the processing.

        Returns:
            Optional[StagedFile]: The produced file, or None when processing
            failed quietly.
        """

    @classmethod
    def make_from(
        cls, file: StagedFile, options: Optional[Dict[str, Any]] = None, attachment=None
    ) -> Optional[StagedFile]:
        return cls(file, options, attachment).make()

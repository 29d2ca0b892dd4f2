"""
Thumbnail Module.

Resizes (and optionally crops) images with ImageMagick's ``convert``.
"""

import logging
import shlex
from pathlib import Path
from typing import Any, Dict, List, Optional

from attachery.core.errors import (
    CommandFailedError,
    CommandNotFoundError,
    ProcessingError,
)
from attachery.core.geometry import CROP_MODIFIER, Geometry
from attachery.core.staged_file import StagedFile
from attachery.core.upload import guess_content_type
from attachery.services.command_runner import CommandRunner
from attachery.services.processors.processor import Processor

logger = logging.getLogger(__name__)

CONVERT_COMMAND = "convert"


def transformation_arguments(
    current: Geometry, target: Geometry, crop: bool, convert_options: str = ""
) -> List[str]:
    """
    Returns the convert arguments that turn an image of ``current`` size into
    ``target``.

    The resize step is always present, the crop step only when cropping,
    and extra convert options come last so they override the rest.
    """
    transformation = current.transformation_to(target, crop)
    arguments = ["-resize", transformation.scale]
    if transformation.crop:
        arguments += ["-crop", transformation.crop, "+repage"]
    if convert_options:
        arguments += shlex.split(convert_options)
    return arguments


class Thumbnail(Processor):
    """
    Processor producing a thumbnail of the target geometry.

    A geometry ending in "#" is resized to cover the target box and then
    cropped to it from the center. Any other geometry is resized to fit.
    """

    def __init__(
        self,
        file: StagedFile,
        options: Optional[Dict[str, Any]] = None,
        attachment=None,
        runner: Optional[CommandRunner] = None,
    ) -> None:
        """
        Initialize the thumbnail processor.

        Args:
            file: Source image.
            options: Must contain "geometry". May contain "format",
                "convert_options", "whiny" and "source_file_options".
            attachment: The attachment being processed, if any.
            runner: Runner for external commands.

        Raises:
            FormatError: If the geometry string is invalid.
            NotIdentifiedError: If the source is not a readable image.
        """
        super().__init__(file, options, attachment, runner)

        geometry = self.options["geometry"]
        self.crop = geometry.rstrip().endswith(CROP_MODIFIER)
        self.target_geometry = Geometry.parse(geometry)
        self.current_geometry = Geometry.from_file(file)
        self.convert_options = self.options.get("convert_options") or ""
        self.whiny = self.options.get("whiny", True)
        self.format = self.options.get("format")
        self.source_file_options = self.options.get("source_file_options", "[0]")

        source = Path(file.path)
        self.current_format = source.suffix
        self.basename = source.stem

    @property
    def label(self) -> str:
        if self.attachment is not None:
            return self.attachment.name
        return self.basename

    def transformation_command(self) -> List[str]:
        """Returns the convert arguments that transform the image."""
        return transformation_arguments(
            self.current_geometry, self.target_geometry, self.crop, self.convert_options
        )

    def make(self) -> Optional[StagedFile]:
        """
        Runs convert once and returns the resulting staged file.

        Returns:
            Optional[StagedFile]: The thumbnail, or None if convert failed and
            the processor is not whiny.

        Raises:
            ProcessingError: If convert failed and the processor is whiny.
            CommandNotFoundError: If convert is not installed.
        """
        suffix = f".{self.format}" if self.format else self.current_format
        dst = StagedFile.create(
            suffix=suffix,
            prefix=f"{self.basename}-",
            original_filename=f"{self.basename}{suffix}",
            content_type=guess_content_type(f"{self.basename}{suffix}"),
        )

        arguments = [
            f"{Path(self.file.path).resolve()}{self.source_file_options}",
            *self.transformation_command(),
            str(Path(dst.path).resolve()),
        ]

        try:
            self.runner.run(CONVERT_COMMAND, arguments)
        except CommandNotFoundError as e:
            dst.close()
            raise CommandNotFoundError(
                f"Could not run the `{CONVERT_COMMAND}` command. Please install ImageMagick."
            ) from e
        except CommandFailedError as e:
            dst.close()
            logger.error(f"Thumbnail processing failed for {self.label}: {e}")
            if self.whiny:
                raise ProcessingError(
                    f"There was an error processing the thumbnail for {self.label}"
                ) from e
            return None

        return dst

"""
Geometry Module.

Parses ImageMagick-style geometry strings ("100x100#", "200x", "x50") and
computes the resize and crop parameters needed to turn a source image of
known dimensions into a target geometry.
"""

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple, Union

from PIL import Image, UnidentifiedImageError

from attachery.core.errors import FormatError, NotIdentifiedError

logger = logging.getLogger(__name__)

GEOMETRY_PATTERN = re.compile(r"^\s*(\d*)x(\d*)([#><!^]?)\s*$", re.IGNORECASE)
CROP_MODIFIER = "#"


@dataclass(frozen=True)
class Transformation:
    """
    Resize and crop parameters for a single conversion.

    Attributes:
        scale: Argument for the resize step (e.g. "100x" or "100x75").
        crop: Argument for the crop step ("WxH+X+Y"), or None when not cropping.
        scaled: Dimensions of the image after the resize step.
        offset: (x, y) offset of the crop region within the scaled image.
    """

    scale: str
    crop: Optional[str]
    scaled: "Geometry"
    offset: Tuple[int, int] = (0, 0)


@dataclass(frozen=True)
class Geometry:
    """
    Width, height and modifier triple describing an image size.

    A dimension of 0 means the geometry is unconstrained along that axis.
    """

    width: int = 0
    height: int = 0
    modifier: Optional[str] = None

    @classmethod
    def parse(cls, spec: str) -> "Geometry":
        """
        Parses a geometry string.

        Args:
            spec: A string of the form "WxH", "WxH<modifier>", "Wx" or "xH".

        Returns:
            Geometry: The parsed geometry.

        Raises:
            FormatError: If the string is not a recognized geometry.
        """
        match = GEOMETRY_PATTERN.match(spec or "")
        if not match or not (match.group(1) or match.group(2)):
            raise FormatError(f"{spec!r} is not a valid geometry specification")

        width, height, modifier = match.groups()
        return cls(
            width=int(width) if width else 0,
            height=int(height) if height else 0,
            modifier=modifier or None,
        )

    @classmethod
    def from_file(cls, file: Union[str, Path, object]) -> "Geometry":
        """
        Reads the pixel dimensions of the first frame of an image file.

        Args:
            file: A path, or any object exposing a ``path`` attribute.

        Returns:
            Geometry: The actual dimensions of the image.

        Raises:
            NotIdentifiedError: If the file cannot be read as an image.
        """
        path = getattr(file, "path", file)
        if not path:
            raise NotIdentifiedError("Cannot find the geometry of a file with a blank name")

        try:
            with Image.open(path) as img:
                width, height = img.size
        except (UnidentifiedImageError, OSError) as e:
            logger.debug(f"Could not identify {path}: {e}")
            raise NotIdentifiedError(f"{path} is not recognized as an image") from e

        return cls(width=width, height=height)

    @property
    def is_square(self) -> bool:
        return self.width == self.height

    @property
    def is_horizontal(self) -> bool:
        return self.width > self.height

    @property
    def is_vertical(self) -> bool:
        return self.height > self.width

    @property
    def is_cropping(self) -> bool:
        return self.modifier == CROP_MODIFIER

    @property
    def aspect(self) -> float:
        """Width divided by height."""
        return self.width / self.height

    @property
    def larger(self) -> int:
        return max(self.width, self.height)

    @property
    def smaller(self) -> int:
        return min(self.width, self.height)

    def __str__(self) -> str:
        width = str(self.width) if self.width else ""
        height = str(self.height) if self.height else ""
        return f"{width}x{height}{self.modifier or ''}"

    def transformation_to(
        self, target: "Geometry", crop: bool = False
    ) -> Transformation:
        """
        Computes how to turn an image of this geometry into ``target``.

        Without cropping the image is scaled to fit inside the target while
        keeping its aspect ratio. With cropping it is scaled so that it fully
        covers the target box and a centered region of exactly the target
        size is cropped out. When the excess along an axis is odd the extra
        pixel is left on the trailing (right or bottom) edge.

        Cropping needs both target dimensions; if either is unconstrained the
        transformation falls back to a plain fit.

        Args:
            target: The desired geometry.
            crop: Whether to crop to the exact target size.

        Returns:
            Transformation: The resize and optional crop parameters.

        Raises:
            FormatError: If this geometry has non-positive dimensions.
        """
        if self.width <= 0 or self.height <= 0:
            raise FormatError(f"Cannot transform an image with dimensions {self}")

        if crop and target.width and target.height:
            return self._cover_and_crop(target)
        return self._fit(target)

    def _fit(self, target: "Geometry") -> Transformation:
        if target.modifier == "!" and target.width and target.height:
            scaled = Geometry(target.width, target.height)
            return Transformation(scale=f"{scaled.width}x{scaled.height}!", crop=None, scaled=scaled)

        ratios = []
        if target.width:
            ratios.append(target.width / self.width)
        if target.height:
            ratios.append(target.height / self.height)

        if not ratios:
            scale = 1.0
        elif target.modifier == "^":
            scale = max(ratios)
        else:
            scale = min(ratios)

        if target.modifier == ">":
            scale = min(scale, 1.0)
        elif target.modifier == "<":
            scale = max(scale, 1.0)

        width = max(1, round(self.width * scale))
        height = max(1, round(self.height * scale))

        # Rounding must never push a fitted dimension past its bound
        if target.modifier not in ("^", "<"):
            if target.width:
                width = min(width, target.width)
            if target.height:
                height = min(height, target.height)

        scaled = Geometry(width, height)
        return Transformation(scale=f"{width}x{height}", crop=None, scaled=scaled)

    def _cover_and_crop(self, target: "Geometry") -> Transformation:
        width_ratio = target.width / self.width
        height_ratio = target.height / self.height

        if width_ratio >= height_ratio:
            scale = f"{target.width}x"
            scaled = Geometry(
                target.width, max(target.height, round(self.height * width_ratio))
            )
        else:
            scale = f"x{target.height}"
            scaled = Geometry(
                max(target.width, round(self.width * height_ratio)), target.height
            )

        x_offset = (scaled.width - target.width) // 2
        y_offset = (scaled.height - target.height) // 2
        crop = f"{target.width}x{target.height}+{x_offset}+{y_offset}"

        return Transformation(
            scale=scale, crop=crop, scaled=scaled, offset=(x_offset, y_offset)
        )

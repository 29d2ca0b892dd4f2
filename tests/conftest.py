import pathlib
import re
import sys

import pytest
from PIL import Image

# Ensure project root is in sys.path
repo_root = pathlib.Path(__file__).parent.parent
sys.path.insert(0, str(repo_root))

from attachery.core.config import AttacheryConfig  # noqa: E402
from attachery.core.errors import CommandFailedError  # noqa: E402
from attachery.services.context import AttachmentContext  # noqa: E402


class FakeConvertRunner:
    """
    Stands in for ImageMagick's convert by applying the resize and crop
    arguments with Pillow. Records every call.
    """

    def __init__(self):
        self.calls = []
        self.fail = False

    def run(self, command, arguments=(), expected_outcodes=(0,)):
        arguments = [str(arg) for arg in arguments]
        self.calls.append((command, arguments))
        if self.fail:
            raise CommandFailedError(command, 1, "convert: unable to open image")

        source = re.sub(r"\[\d+\]$", "", arguments[0])
        destination = arguments[-1]

        with Image.open(source) as img:
            img = img.convert("RGB")
            if "-resize" in arguments:
                img = img.resize(self._size(img.size, arguments[arguments.index("-resize") + 1]))
            if "-crop" in arguments:
                w, h, x, y = map(
                    int,
                    re.match(r"(\d+)x(\d+)\+(\d+)\+(\d+)", arguments[arguments.index("-crop") + 1]).groups(),
                )
                img = img.crop((x, y, x + w, y + h))
            img.save(destination)
        return ""

    @staticmethod
    def _size(current, scale):
        width, height = re.match(r"(\d*)x(\d*)", scale).groups()
        if width and height:
            return int(width), int(height)
        if width:
            return int(width), max(1, round(current[1] * int(width) / current[0]))
        return max(1, round(current[0] * int(height) / current[1])), int(height)


@pytest.fixture
def make_image(tmp_path):
    """Factory creating solid-color images of a given size."""

    def _make(width=400, height=300, name="photo.png", color="red"):
        path = tmp_path / "uploads" / name
        path.parent.mkdir(parents=True, exist_ok=True)
        Image.new("RGB", (width, height), color=color).save(path)
        return path

    return _make


@pytest.fixture
def convert_runner():
    return FakeConvertRunner()


@pytest.fixture
def config(tmp_path):
    return AttacheryConfig(root=tmp_path / "app", env="test")


@pytest.fixture
def context(config, convert_runner):
    """Provides a context whose convert calls are served by Pillow."""
    return AttachmentContext(config=config, runner=convert_runner)

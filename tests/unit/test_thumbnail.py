"""
Tests for the Thumbnail processor.
"""

from pathlib import Path
from unittest.mock import MagicMock

import pytest
from PIL import Image

from attachery.core.errors import (
    CommandFailedError,
    CommandNotFoundError,
    NotIdentifiedError,
    ProcessingError,
)
from attachery.core.geometry import Geometry
from attachery.core.staged_file import StagedFile
from attachery.core.upload import UploadedFile
from attachery.services.processors import Thumbnail
from attachery.services.processors.thumbnail import transformation_arguments


@pytest.fixture
def source(make_image):
    """A staged 400x300 PNG."""
    with UploadedFile.from_path(make_image(400, 300)) as upload:
        staged = StagedFile.from_upload(upload)
    yield staged
    staged.close()


def test_captures_geometries(source, convert_runner):
    thumbnail = Thumbnail(source, {"geometry": "100x100#"}, runner=convert_runner)

    assert thumbnail.crop is True
    assert str(thumbnail.target_geometry) == "100x100#"
    assert (thumbnail.current_geometry.width, thumbnail.current_geometry.height) == (400, 300)
    assert thumbnail.whiny is True
    assert thumbnail.source_file_options == "[0]"
    assert thumbnail.current_format == ".png"


def test_transformation_command_with_crop(source, convert_runner):
    thumbnail = Thumbnail(
        source,
        {"geometry": "100x100#", "convert_options": "-strip -quality 75"},
        runner=convert_runner,
    )

    assert thumbnail.transformation_command() == [
        "-resize",
        "x100",
        "-crop",
        "100x100+16+0",
        "+repage",
        "-strip",
        "-quality",
        "75",
    ]


def test_transformation_command_without_crop(source, convert_runner):
    thumbnail = Thumbnail(source, {"geometry": "200x200"}, runner=convert_runner)

    assert thumbnail.transformation_command() == ["-resize", "200x150"]


def test_make_runs_convert_once(source, convert_runner):
    result = Thumbnail(source, {"geometry": "100x100#"}, runner=convert_runner).make()

    try:
        assert len(convert_runner.calls) == 1
        command, arguments = convert_runner.calls[0]
        assert command == "convert"
        assert arguments[0].endswith(".png[0]")
        assert arguments[-1] == str(Path(result.path).resolve())
        with Image.open(result.path) as img:
            assert img.size == (100, 100)
        assert result.content_type == "image/png"
    finally:
        result.close()


def test_make_converts_format(source, convert_runner):
    result = Thumbnail(source, {"geometry": "50x50", "format": "jpg"}, runner=convert_runner).make()

    try:
        assert result.path.endswith(".jpg")
        assert result.content_type == "image/jpeg"
        with Image.open(result.path) as img:
            assert img.format == "JPEG"
            assert img.size == (50, 38)
    finally:
        result.close()


def test_failure_raises_processing_error_when_whiny(source, convert_runner):
    convert_runner.fail = True
    attachment = MagicMock()
    attachment.name = "avatar"

    with pytest.raises(ProcessingError) as e:
        Thumbnail(source, {"geometry": "10x10"}, attachment, runner=convert_runner).make()

    assert "avatar" in str(e.value)


def test_failure_returns_none_when_not_whiny(source, convert_runner):
    convert_runner.fail = True

    result = Thumbnail(source, {"geometry": "10x10", "whiny": False}, runner=convert_runner).make()

    assert result is None


def test_missing_convert_always_propagates(source):
    runner = MagicMock()
    runner.run.side_effect = CommandNotFoundError("no convert")

    with pytest.raises(CommandNotFoundError) as e:
        Thumbnail(source, {"geometry": "10x10", "whiny": False}, runner=runner).make()

    assert "ImageMagick" in str(e.value)


def test_destination_removed_after_failure(source):
    runner = MagicMock()
    runner.run.side_effect = CommandFailedError("convert", 1)

    Thumbnail(source, {"geometry": "10x10", "whiny": False}, runner=runner).make()

    destination = runner.run.call_args[0][1][-1]
    assert not Path(destination).exists()


def test_non_image_is_not_identified(convert_runner):
    with StagedFile.from_upload(UploadedFile.from_bytes(b"plain text", "notes.txt")) as staged:
        with pytest.raises(NotIdentifiedError):
            Thumbnail(staged, {"geometry": "10x10"}, runner=convert_runner)


def test_runner_defaults_to_attachment_context(source, convert_runner):
    attachment = MagicMock()
    attachment.context.runner = convert_runner

    thumbnail = Thumbnail(source, {"geometry": "10x10"}, attachment)

    assert thumbnail.runner is convert_runner


def test_make_from_uses_attachment_runner(source, convert_runner):
    attachment = MagicMock()
    attachment.name = "avatar"
    attachment.context.runner = convert_runner

    result = Thumbnail.make_from(source, {"geometry": "40x40#"}, attachment)

    assert len(convert_runner.calls) == 1
    with Image.open(result.path) as img:
        assert img.size == (40, 40)
    result.close()


def test_transformation_arguments_shared_with_processor(source, convert_runner):
    thumbnail = Thumbnail(
        source, {"geometry": "100x100#", "convert_options": "-strip"}, runner=convert_runner
    )

    arguments = transformation_arguments(
        Geometry(400, 300), Geometry.parse("100x100#"), True, "-strip"
    )

    assert arguments == thumbnail.transformation_command()
    assert arguments == ["-resize", "x100", "-crop", "100x100+16+0", "+repage", "-strip"]

"""
Tests for Geometry parsing, identification and transformations.
"""

import pytest

from attachery.core.errors import FormatError, NotIdentifiedError
from attachery.core.geometry import Geometry


def test_parse_full_geometry_with_crop_modifier():
    geometry = Geometry.parse("100x75#")

    assert geometry.width == 100
    assert geometry.height == 75
    assert geometry.modifier == "#"
    assert geometry.is_cropping


def test_parse_width_only():
    geometry = Geometry.parse("100x")

    assert geometry.width == 100
    assert geometry.height == 0
    assert geometry.modifier is None
    assert str(geometry) == "100x"


def test_parse_height_only():
    geometry = Geometry.parse("x50>")

    assert geometry.width == 0
    assert geometry.height == 50
    assert geometry.modifier == ">"


@pytest.mark.parametrize("spec", ["", "x", "abc", "100", "100x50%", None])
def test_parse_rejects_invalid_geometry(spec):
    with pytest.raises(FormatError):
        Geometry.parse(spec)


def test_format_error_is_a_value_error():
    with pytest.raises(ValueError):
        Geometry.parse("nope")


def test_from_file_reads_dimensions(make_image):
    path = make_image(400, 300)

    geometry = Geometry.from_file(path)

    assert (geometry.width, geometry.height) == (400, 300)


def test_from_file_accepts_objects_with_path(make_image):
    class Holder:
        path = str(make_image(64, 32))

    assert str(Geometry.from_file(Holder())) == "64x32"


def test_from_file_rejects_non_images(tmp_path):
    text = tmp_path / "notes.txt"
    text.write_text("not an image")

    with pytest.raises(NotIdentifiedError):
        Geometry.from_file(text)


def test_from_file_rejects_blank_path():
    with pytest.raises(NotIdentifiedError):
        Geometry.from_file("")


def test_shape_properties():
    geometry = Geometry(400, 300)

    assert geometry.is_horizontal
    assert not geometry.is_vertical
    assert not geometry.is_square
    assert geometry.aspect == pytest.approx(4 / 3)
    assert geometry.larger == 400
    assert geometry.smaller == 300


def test_crop_landscape_into_square_scales_by_height():
    transformation = Geometry(400, 300).transformation_to(Geometry(100, 100), crop=True)

    assert transformation.scale == "x100"
    assert transformation.crop == "100x100+16+0"
    assert (transformation.scaled.width, transformation.scaled.height) == (133, 100)


def test_crop_portrait_into_square_scales_by_width():
    transformation = Geometry(300, 400).transformation_to(Geometry(100, 100), crop=True)

    assert transformation.scale == "100x"
    assert transformation.crop == "100x100+0+16"


def test_crop_leaves_extra_pixel_on_trailing_edge():
    transformation = Geometry(101, 100).transformation_to(Geometry(100, 100), crop=True)

    assert transformation.offset == (0, 0)
    assert transformation.crop == "100x100+0+0"


def test_crop_with_unconstrained_dimension_falls_back_to_fit():
    transformation = Geometry(400, 300).transformation_to(Geometry(200, 0), crop=True)

    assert transformation.crop is None
    assert transformation.scale == "200x150"


def test_fit_keeps_aspect_ratio():
    transformation = Geometry(400, 300).transformation_to(Geometry(200, 200))

    assert transformation.scale == "200x150"
    assert transformation.crop is None


def test_fit_shrink_only_never_enlarges():
    transformation = Geometry(400, 300).transformation_to(Geometry.parse("800x800>"))

    assert transformation.scale == "400x300"


def test_fit_exact_ignores_aspect_ratio():
    transformation = Geometry(400, 300).transformation_to(Geometry.parse("50x50!"))

    assert transformation.scale == "50x50!"


def test_fit_fill_covers_the_box():
    transformation = Geometry(400, 300).transformation_to(Geometry.parse("100x100^"))

    assert transformation.scale == "133x100"


def test_transformation_from_empty_geometry_fails():
    with pytest.raises(FormatError):
        Geometry(0, 100).transformation_to(Geometry(50, 50))


SOURCES = [(400, 300), (300, 400), (1, 1), (1024, 7), (333, 777), (100, 100)]
TARGETS = [(100, 100), (64, 48), (7, 300), (500, 20)]


@pytest.mark.parametrize("source", SOURCES)
@pytest.mark.parametrize("target", TARGETS)
def test_fit_stays_within_target_and_touches_one_edge(source, target):
    scaled = Geometry(*source).transformation_to(Geometry(*target)).scaled

    assert scaled.width <= target[0]
    assert scaled.height <= target[1]
    assert scaled.width == target[0] or scaled.height == target[1]


@pytest.mark.parametrize("source", SOURCES)
@pytest.mark.parametrize("target", TARGETS)
def test_crop_region_is_exact_and_centered(source, target):
    transformation = Geometry(*source).transformation_to(Geometry(*target), crop=True)
    scaled = transformation.scaled
    x, y = transformation.offset

    assert transformation.crop == f"{target[0]}x{target[1]}+{x}+{y}"
    assert x + target[0] <= scaled.width
    assert y + target[1] <= scaled.height
    assert abs((scaled.width - target[0] - x) - x) <= 1
    assert abs((scaled.height - target[1] - y) - y) <= 1


@pytest.mark.parametrize("spec", ["100x75", "100x", "x75", "10x20#", "5x5!"])
def test_parse_round_trips(spec):
    assert str(Geometry.parse(spec)) == spec
    assert Geometry.parse(str(Geometry.parse(spec))) == Geometry.parse(spec)

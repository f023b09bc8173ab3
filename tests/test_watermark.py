"""水印合成端到端测试。"""

from __future__ import annotations

from pathlib import Path

import pytest
from PIL import Image

from media_toolkit.core.config import ImageWatermark, TextColor, TextWatermark, WatermarkOptions, WatermarkPosition
from media_toolkit.core.exceptions import (
    AmbiguousWatermarkKindError,
    InvalidConfigurationError,
    InvalidPaddingError,
    InvalidSizeError,
    OverlayNotFoundError,
    UnsupportedOverlayFormatError,
)
from media_toolkit.core.models import OverlayGeometry, TextGeometry
from media_toolkit.processing.watermark import add_watermark, watermark_file
from media_toolkit.utils.colors import named_color


def make_canvas(path: Path, size: tuple[int, int] = (800, 800), color=(0, 0, 255)) -> Path:
    Image.new("RGB", size, color).save(path)
    return path


def make_overlay(path: Path, size: tuple[int, int] = (400, 400), color=(255, 0, 0, 255), fmt: str = "PNG") -> Path:
    mode = "RGBA" if fmt != "JPEG" else "RGB"
    fill = color if mode == "RGBA" else color[:3]
    Image.new(mode, size, fill).save(path, format=fmt)
    return path


def image_options(overlay: Path, **kwargs) -> WatermarkOptions:
    return WatermarkOptions(content=ImageWatermark(source_path=overlay), **kwargs)


def test_image_watermark_bottom_right(tmp_path: Path) -> None:
    canvas = make_canvas(tmp_path / "photo.png")
    overlay = make_overlay(tmp_path / "logo.png")
    output = tmp_path / "out" / "photo.png"

    placement = watermark_file(canvas, output, image_options(overlay, size_percent=25, padding_x="20", padding_y="20"))

    assert placement == OverlayGeometry(offset_x=580, offset_y=580, scaled_width=200, scaled_height=200)
    with Image.open(output) as result:
        assert result.size == (800, 800)
        assert result.convert("RGB").getpixel((680, 680)) == (255, 0, 0)
        assert result.convert("RGB").getpixel((570, 570)) == (0, 0, 255)
        assert result.convert("RGB").getpixel((790, 790)) == (0, 0, 255)


def test_half_opacity_blends_with_canvas(tmp_path: Path) -> None:
    canvas = make_canvas(tmp_path / "photo.png", color=(0, 0, 0))
    overlay = make_overlay(tmp_path / "logo.png", color=(255, 255, 255, 255))
    output = tmp_path / "photo-out.png"

    watermark_file(canvas, output, image_options(overlay, size_percent=25, opacity=0.5))

    with Image.open(output) as result:
        red, green, blue = result.convert("RGB").getpixel((680, 680))
    assert 120 <= red <= 135
    assert red == green == blue


def test_percentage_padding_and_top_left(tmp_path: Path) -> None:
    canvas = make_canvas(tmp_path / "photo.png", size=(1000, 500))
    overlay = make_overlay(tmp_path / "logo.png", size=(100, 100))
    options = image_options(
        overlay,
        position=WatermarkPosition.TOP_LEFT,
        size_percent=20,
        padding_x="10%",
        padding_y="10%",
    )

    placement = watermark_file(canvas, tmp_path / "out.png", options)

    assert placement == OverlayGeometry(offset_x=100, offset_y=50, scaled_width=100, scaled_height=100)


def test_overlay_is_not_enlarged(tmp_path: Path) -> None:
    canvas = make_canvas(tmp_path / "photo.png")
    overlay = make_overlay(tmp_path / "logo.png", size=(20, 10))

    placement = watermark_file(canvas, tmp_path / "out.png", image_options(overlay, size_percent=50))

    assert (placement.scaled_width, placement.scaled_height) == (20, 10)
    assert (placement.offset_x, placement.offset_y) == (800 - 20 - 20, 800 - 10 - 20)


def test_jpeg_overlay_and_jpeg_output(tmp_path: Path) -> None:
    canvas = make_canvas(tmp_path / "photo.jpg")
    overlay = make_overlay(tmp_path / "logo.jpg", color=(0, 255, 0, 255), fmt="JPEG")
    output = tmp_path / "photo-out.jpg"

    watermark_file(canvas, output, image_options(overlay, size_percent=25))

    with Image.open(output) as result:
        assert result.format == "JPEG"
        red, green, blue = result.getpixel((680, 680))
    assert green > 200 and red < 60 and blue < 60


def test_text_watermark_changes_corner_pixels(tmp_path: Path) -> None:
    canvas = make_canvas(tmp_path / "photo.png", color=(0, 0, 0))
    output = tmp_path / "text.png"
    options = WatermarkOptions(content=TextWatermark(text="Sample", color=TextColor.WHITE), size_percent=10)

    placement = watermark_file(canvas, output, options)

    assert isinstance(placement, TextGeometry)
    assert placement.font_size == 80
    assert placement.anchor == "end"
    with Image.open(output) as result:
        gray = result.convert("L")
        assert gray.crop((400, 600, 800, 800)).getextrema()[1] > 200
        assert gray.crop((0, 0, 300, 300)).getextrema() == (0, 0)


def test_unsupported_overlay_writes_nothing(tmp_path: Path) -> None:
    canvas = make_canvas(tmp_path / "photo.png")
    overlay = tmp_path / "logo.tiff"
    Image.new("RGBA", (50, 50), (255, 0, 0, 255)).save(overlay, format="TIFF")
    output = tmp_path / "out.png"

    with pytest.raises(UnsupportedOverlayFormatError) as excinfo:
        watermark_file(canvas, output, image_options(overlay))

    assert excinfo.value.format_name == "tiff"
    assert not output.exists()


def test_missing_overlay(tmp_path: Path) -> None:
    canvas = make_canvas(tmp_path / "photo.png")

    with pytest.raises(OverlayNotFoundError):
        watermark_file(canvas, tmp_path / "out.png", image_options(tmp_path / "missing.png"))


def test_invalid_padding_writes_nothing(tmp_path: Path) -> None:
    canvas = make_canvas(tmp_path / "photo.png")
    overlay = make_overlay(tmp_path / "logo.png")
    output = tmp_path / "out.png"

    with pytest.raises(InvalidPaddingError):
        watermark_file(canvas, output, image_options(overlay, padding_x="150%"))

    assert not output.exists()


def test_from_inputs_requires_exactly_one_kind(tmp_path: Path) -> None:
    with pytest.raises(AmbiguousWatermarkKindError):
        WatermarkOptions.from_inputs()
    with pytest.raises(AmbiguousWatermarkKindError):
        WatermarkOptions.from_inputs(text="hello", image=tmp_path / "logo.png")


def test_from_inputs_lenient_fallbacks() -> None:
    options = WatermarkOptions.from_inputs(text="hello", position="middle", text_color="purple")

    assert options.position is WatermarkPosition.BOTTOM_RIGHT
    assert isinstance(options.content, TextWatermark)
    assert options.content.color is TextColor.WHITE


def test_directory_batch_mirrors_tree(tmp_path: Path) -> None:
    source = tmp_path / "input"
    (source / "nested").mkdir(parents=True)
    make_canvas(source / "a.png", size=(200, 200))
    make_canvas(source / "nested" / "b.jpg", size=(200, 200))
    (source / "notes.txt").write_text("skip me")
    overlay = make_overlay(tmp_path / "logo.png", size=(50, 50))
    output = tmp_path / "output"

    result = add_watermark(source, output, image_options(overlay, recursive=True))

    assert (result.success, result.processed, result.errors) == (True, 2, 0)
    assert (output / "a.png").is_file()
    assert (output / "nested" / "b.jpg").is_file()
    assert not (output / "notes.txt").exists()


def test_named_colors() -> None:
    assert named_color("White") == (255, 255, 255)
    assert named_color(TextColor.BLACK.opposite.value) == (255, 255, 255)
    with pytest.raises(InvalidConfigurationError):
        named_color("red")


@pytest.mark.parametrize("value", [float("inf"), float("-inf"), float("nan")])
def test_non_finite_opacity_is_rejected(value: float) -> None:
    with pytest.raises(InvalidConfigurationError):
        WatermarkOptions(content=TextWatermark(text="x"), opacity=value)


@pytest.mark.parametrize("value", [float("inf"), float("-inf"), float("nan")])
def test_non_finite_size_is_rejected(value: float) -> None:
    with pytest.raises(InvalidSizeError):
        WatermarkOptions(content=TextWatermark(text="x"), size_percent=value)


def test_svg_files_are_not_watermarked(tmp_path: Path) -> None:
    source = tmp_path / "input"
    source.mkdir()
    make_canvas(source / "a.png", size=(200, 200))
    (source / "logo.svg").write_text(
        '<svg xmlns="http://www.w3.org/2000/svg" width="10" height="10"><rect width="10" height="10"/></svg>'
    )
    output = tmp_path / "output"

    result = add_watermark(source, output, WatermarkOptions(content=TextWatermark(text="x")))

    assert (result.success, result.processed, result.errors) == (True, 1, 0)
    assert (output / "a.png").is_file()
    assert not (output / "logo.svg").exists()

"""缩放、裁剪与格式转换。"""

from __future__ import annotations

from pathlib import Path

import pytest
from PIL import Image

from media_toolkit.core.config import ConvertOptions, CropOptions, ResizeOptions, parse_dimensions, parse_ratio
from media_toolkit.core.exceptions import (
    DimensionsExceedSourceError,
    InvalidConfigurationError,
    OutputExistsError,
    UnsupportedFormatError,
)
from media_toolkit.processing.convert import convert_image
from media_toolkit.processing.crop import crop_image
from media_toolkit.processing.resize import resize_image, target_size


def make_image(path: Path, size: tuple[int, int], mode: str = "RGB", color=(10, 120, 200)) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    fill = color if mode == "RGB" else (*color, 0)
    Image.new(mode, size, fill).save(path)
    return path


class TestResize:
    def test_target_size_modes(self) -> None:
        assert target_size((400, 200), ResizeOptions(scale=0.5)) == (200, 100)
        assert target_size((400, 200), ResizeOptions(fit=(100, 100))) == (100, 50)
        assert target_size((400, 200), ResizeOptions(fit=(1000, 1000))) == (1000, 500)
        assert target_size((400, 200), ResizeOptions(width=100)) == (100, 50)
        assert target_size((400, 200), ResizeOptions(height=50)) == (100, 50)
        assert target_size((400, 200), ResizeOptions(width=30, height=30)) == (30, 30)

    def test_options_validation(self) -> None:
        with pytest.raises(InvalidConfigurationError):
            ResizeOptions()
        with pytest.raises(InvalidConfigurationError):
            ResizeOptions(scale=11)
        with pytest.raises(InvalidConfigurationError):
            ResizeOptions(width=0)

    def test_resize_file(self, tmp_path: Path) -> None:
        source = make_image(tmp_path / "wide.png", (400, 200))
        output = tmp_path / "out" / "wide.png"

        result = resize_image(source, output, ResizeOptions(scale=0.25))

        assert (result.success, result.processed, result.errors) == (True, 1, 0)
        with Image.open(output) as img:
            assert img.size == (100, 50)

    def test_width_and_height_cover_exact_size(self, tmp_path: Path) -> None:
        source = make_image(tmp_path / "wide.jpg", (400, 200))
        output = tmp_path / "square.jpg"

        resize_image(source, output, ResizeOptions(width=80, height=80))

        with Image.open(output) as img:
            assert img.size == (80, 80)
            assert img.format == "JPEG"

    def test_directory(self, tmp_path: Path) -> None:
        source = tmp_path / "input"
        make_image(source / "a.png", (100, 100))
        make_image(source / "b.gif", (60, 30))
        (source / "c.png").write_text("broken")

        result = resize_image(source, tmp_path / "output", ResizeOptions(width=20))

        assert (result.success, result.processed, result.errors) == (False, 2, 1)
        assert result.error_messages[0].startswith("Error resizing ")
        with Image.open(tmp_path / "output" / "b.gif") as img:
            assert img.size == (20, 10)


class TestCrop:
    def test_aspect_crop_centre(self, tmp_path: Path) -> None:
        source = tmp_path / "wide.png"
        image = Image.new("RGB", (300, 100), (255, 0, 0))
        image.paste((0, 255, 0), (100, 0, 200, 100))
        image.save(source)
        output = tmp_path / "square.png"

        crop_image(source, output, CropOptions(aspect=(1, 1)))

        with Image.open(output) as img:
            assert img.size == (100, 100)
            assert img.convert("RGB").getpixel((0, 0)) == (0, 255, 0)
            assert img.convert("RGB").getpixel((99, 99)) == (0, 255, 0)

    def test_dimensions_with_anchor(self, tmp_path: Path) -> None:
        source = tmp_path / "photo.png"
        image = Image.new("RGB", (100, 100), (0, 0, 0))
        image.putpixel((99, 99), (255, 255, 255))
        image.save(source)
        output = tmp_path / "corner.png"

        crop_image(source, output, CropOptions(dimensions=(10, 10), position="bottom-right"))

        with Image.open(output) as img:
            assert img.size == (10, 10)
            assert img.convert("RGB").getpixel((9, 9)) == (255, 255, 255)

    def test_dimensions_larger_than_source(self, tmp_path: Path) -> None:
        source = make_image(tmp_path / "small.png", (50, 50))
        output = tmp_path / "out.png"

        with pytest.raises(DimensionsExceedSourceError, match=r"\(60x40\).*\(50x50\)"):
            crop_image(source, output, CropOptions(dimensions=(60, 40)))
        assert not output.exists()

    def test_dimensions_rejected_for_directory(self, tmp_path: Path) -> None:
        source = tmp_path / "input"
        make_image(source / "a.png", (50, 50))

        with pytest.raises(InvalidConfigurationError, match="--dimensions cannot be used with directory input"):
            crop_image(source, tmp_path / "output", CropOptions(dimensions=(10, 10)))

    def test_options_validation(self) -> None:
        with pytest.raises(InvalidConfigurationError):
            CropOptions()
        with pytest.raises(InvalidConfigurationError):
            CropOptions(aspect=(1, 1), dimensions=(10, 10))
        with pytest.raises(InvalidConfigurationError, match="Invalid position"):
            CropOptions(aspect=(1, 1), position="middle")

    def test_parsers(self) -> None:
        assert parse_ratio("4:5") == (4, 5)
        assert parse_dimensions("1080x1920") == (1080, 1920)
        with pytest.raises(InvalidConfigurationError):
            parse_ratio("4x5")
        with pytest.raises(InvalidConfigurationError):
            parse_dimensions("0x10")


class TestConvert:
    def test_png_with_alpha_to_jpeg_flattens_on_white(self, tmp_path: Path) -> None:
        source = make_image(tmp_path / "clear.png", (20, 20), mode="RGBA")
        output = tmp_path / "clear.jpg"

        result = convert_image(source, output, ConvertOptions())

        assert result.processed == 1
        with Image.open(output) as img:
            assert img.format == "JPEG"
            assert img.mode == "RGB"
            assert min(img.getpixel((10, 10))) > 245

    def test_single_file_rejects_format_option(self, tmp_path: Path) -> None:
        source = make_image(tmp_path / "a.png", (10, 10))

        with pytest.raises(InvalidConfigurationError, match="not allowed for single file"):
            convert_image(source, tmp_path / "a.jpg", ConvertOptions(format="jpg"))

    def test_single_file_rejects_unsupported_extensions(self, tmp_path: Path) -> None:
        gif = make_image(tmp_path / "a.gif", (10, 10))
        png = make_image(tmp_path / "b.png", (10, 10))

        with pytest.raises(UnsupportedFormatError, match="input format"):
            convert_image(gif, tmp_path / "a.png", ConvertOptions())
        with pytest.raises(UnsupportedFormatError, match="output format"):
            convert_image(png, tmp_path / "b.webp", ConvertOptions())

    def test_existing_output_requires_overwrite(self, tmp_path: Path) -> None:
        source = make_image(tmp_path / "a.png", (10, 10))
        output = make_image(tmp_path / "a.jpg", (5, 5))

        with pytest.raises(OutputExistsError, match="--overwrite"):
            convert_image(source, output, ConvertOptions())

        convert_image(source, output, ConvertOptions(overwrite=True))
        with Image.open(output) as img:
            assert img.size == (10, 10)

    def test_directory_requires_format(self, tmp_path: Path) -> None:
        source = tmp_path / "input"
        make_image(source / "a.png", (10, 10))

        with pytest.raises(InvalidConfigurationError, match="required for directory"):
            convert_image(source, tmp_path / "output", ConvertOptions())

    def test_directory_changes_extension(self, tmp_path: Path) -> None:
        source = tmp_path / "input"
        make_image(source / "a.png", (10, 10))
        make_image(source / "sub" / "b.jpeg", (10, 10))
        make_image(source / "c.gif", (10, 10))
        output = tmp_path / "output"

        result = convert_image(source, output, ConvertOptions(format="png", compression=9, recursive=True))

        assert (result.success, result.processed, result.errors) == (True, 2, 0)
        assert (output / "a.png").is_file()
        with Image.open(output / "sub" / "b.png") as img:
            assert img.format == "PNG"
        assert not (output / "c.png").exists()

    @pytest.mark.parametrize(
        ("kwargs", "message"),
        [
            ({"format": "webp"}, "Unsupported format"),
            ({"quality": 0}, "Quality must be between 1 and 100"),
            ({"compression": 10}, "Compression must be between 0 and 9"),
        ],
    )
    def test_options_validation(self, kwargs, message) -> None:
        with pytest.raises(InvalidConfigurationError, match=message):
            ConvertOptions(**kwargs)

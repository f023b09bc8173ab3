"""定位计算：边距、缩放尺寸、水印位置与裁剪框。"""

from __future__ import annotations

import math

import pytest

from media_toolkit.core.exceptions import InvalidConfigurationError, InvalidPaddingError, InvalidSizeError
from media_toolkit.processing.geometry import (
    resolve_aspect_crop,
    resolve_crop_box,
    resolve_font_size,
    resolve_overlay_size,
    resolve_padding,
    resolve_position,
    resolve_text_position,
    round_half_up,
    text_horizontal_anchor,
)


def test_round_half_up_differs_from_bankers_rounding() -> None:
    assert round_half_up(2.5) == 3
    assert round_half_up(0.5) == 1
    assert round_half_up(1.49) == 1


@pytest.mark.parametrize(
    ("value", "dimension", "expected"),
    [
        ("20", 800, 20.0),
        ("10%", 800, 80.0),
        ("0%", 800, 0.0),
        ("100%", 640, 640.0),
        (12, 100, 12.0),
        ("7.5", 100, 7.5),
    ],
)
def test_resolve_padding_accepts_pixels_and_percentages(value, dimension, expected) -> None:
    assert resolve_padding(value, dimension) == pytest.approx(expected)


@pytest.mark.parametrize("value", ["150%", "-5", "-1%", "abc", "abc%", math.inf, -3])
def test_resolve_padding_rejects_invalid_values(value) -> None:
    with pytest.raises(InvalidPaddingError):
        resolve_padding(value, 800)


def test_overlay_scaled_to_percentage_of_short_side() -> None:
    assert resolve_overlay_size(400, 400, 800, 800, 25) == (200, 200)
    # 目标为短边 500 的 10% = 50，按较长边适配
    assert resolve_overlay_size(400, 200, 1000, 500, 10) == (50, 25)


@pytest.mark.parametrize(("overlay", "canvas", "size"), [((300, 120), (1024, 768), 7), ((64, 640), (500, 900), 33)])
def test_overlay_never_exceeds_target_box(overlay, canvas, size) -> None:
    width, height = resolve_overlay_size(*overlay, *canvas, size)
    target = min(canvas) * size / 100

    assert width <= round_half_up(target)
    assert height <= round_half_up(target)
    # 宽高比保持在取整误差内
    assert width / height == pytest.approx(overlay[0] / overlay[1], rel=0.05)


@pytest.mark.parametrize("size", [0, -1, 101, math.nan])
def test_overlay_size_out_of_range(size) -> None:
    with pytest.raises(InvalidSizeError):
        resolve_overlay_size(100, 100, 800, 800, size)


def test_font_size_has_minimum() -> None:
    assert resolve_font_size(800, 600, 5) == 30
    assert resolve_font_size(100, 100, 5) == 20


@pytest.mark.parametrize(
    ("position", "expected"),
    [
        ("top-left", (20, 20)),
        ("top-right", (580, 20)),
        ("bottom-left", (20, 580)),
        ("bottom-right", (580, 580)),
        ("center", (300, 300)),
        ("somewhere", (580, 580)),
    ],
)
def test_resolve_position(position, expected) -> None:
    assert resolve_position(position, 800, 800, 200, 200, 20, 20) == expected


def test_center_position_ignores_padding_and_floors() -> None:
    assert resolve_position("center", 801, 600, 200, 101, 50, 50) == (300, 249)


def test_text_anchor_and_vertical_centering() -> None:
    assert text_horizontal_anchor("top-left") == "start"
    assert text_horizontal_anchor("center") == "middle"
    assert text_horizontal_anchor("bottom-right") == "end"

    assert resolve_text_position("top-left", 800, 600, 20, 20, 30) == (20, 35)
    assert resolve_text_position("bottom-right", 800, 600, 20, 20, 30) == (780, 565)
    assert resolve_text_position("center", 800, 600, 20, 20, 30) == (400, 300)


def test_crop_box_follows_anchor() -> None:
    assert resolve_crop_box(100, 50, 50, 50, "center") == (25, 0, 75, 50)
    assert resolve_crop_box(100, 50, 50, 50, "left") == (0, 0, 50, 50)
    assert resolve_crop_box(100, 50, 50, 50, "bottom-right") == (50, 0, 100, 50)
    assert resolve_crop_box(100, 100, 40, 40, "top") == (30, 0, 70, 40)


def test_crop_box_rejects_unknown_anchor() -> None:
    with pytest.raises(InvalidConfigurationError):
        resolve_crop_box(100, 100, 10, 10, "middle")


def test_aspect_crop_keeps_largest_region() -> None:
    assert resolve_aspect_crop(1000, 500, 1, 1) == (500, 500)
    assert resolve_aspect_crop(400, 1000, 4, 5) == (400, 500)
    assert resolve_aspect_crop(1920, 1080, 16, 9) == (1920, 1080)

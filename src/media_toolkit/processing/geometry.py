"""水印与裁剪的定位计算。

本模块只包含纯函数，不做任何 I/O。所有取整采用四舍五入（0.5 向上），
与 Python 内置 ``round`` 的银行家舍入不同。
"""

from __future__ import annotations

import math
from typing import Union

from media_toolkit.core.exceptions import InvalidConfigurationError, InvalidPaddingError, InvalidSizeError

MIN_FONT_SIZE = 20

# 裁剪锚点 -> (x, y) 方向上的相对偏移
CROP_OFFSETS = {
    "center": (0.5, 0.5),
    "top": (0.5, 0.0),
    "bottom": (0.5, 1.0),
    "left": (0.0, 0.5),
    "right": (1.0, 0.5),
    "top-left": (0.0, 0.0),
    "top-right": (1.0, 0.0),
    "bottom-left": (0.0, 1.0),
    "bottom-right": (1.0, 1.0),
}


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def resolve_padding(value: Union[str, int, float], dimension: int) -> float:
    """将像素值或百分比字符串解析为像素边距。

    ``"10%"`` 相对 ``dimension`` 计算；百分比须位于 [0, 100]，像素值须非负。
    """

    if isinstance(value, (int, float)):
        pixels = float(value)
        if not math.isfinite(pixels) or pixels < 0:
            raise InvalidPaddingError(f"Padding must be a positive number or percentage, got: {value}")
        return pixels

    text = value.strip()
    if text.endswith("%"):
        percent = _parse_number(text[:-1])
        if not math.isfinite(percent) or percent < 0 or percent > 100:
            raise InvalidPaddingError(f"Padding percentage must be between 0 and 100, got: {value}")
        return dimension * (percent / 100)

    pixels = _parse_number(text)
    if not math.isfinite(pixels) or pixels < 0:
        raise InvalidPaddingError(f"Padding must be a positive number or percentage, got: {value}")
    return pixels


def resolve_overlay_size(
    overlay_w: int,
    overlay_h: int,
    canvas_w: int,
    canvas_h: int,
    size_percent: float,
) -> tuple[int, int]:
    """按画布短边的百分比等比缩放水印图片。"""

    if not math.isfinite(size_percent) or size_percent <= 0 or size_percent > 100:
        raise InvalidSizeError("Size must be a number between 1 and 100 (percentage)")
    if overlay_w <= 0 or overlay_h <= 0:
        raise InvalidSizeError(f"Overlay image has invalid dimensions: {overlay_w}x{overlay_h}")

    target = min(canvas_w, canvas_h) * (size_percent / 100)
    scale = min(target / overlay_w, target / overlay_h)
    return round_half_up(overlay_w * scale), round_half_up(overlay_h * scale)


def resolve_font_size(canvas_w: int, canvas_h: int, size_percent: float) -> int:
    """文本水印字号，最小为 ``MIN_FONT_SIZE``，不限制百分比上限。"""

    return max(MIN_FONT_SIZE, round_half_up(min(canvas_w, canvas_h) * (size_percent / 100)))


def resolve_position(
    position: str,
    canvas_w: int,
    canvas_h: int,
    content_w: int,
    content_h: int,
    pad_x: float,
    pad_y: float,
) -> tuple[int, int]:
    """计算水印左上角在画布上的整数偏移。

    ``center`` 忽略边距；未识别的位置有意按 ``bottom-right`` 处理。
    """

    if position == "top-left":
        x, y = pad_x, pad_y
    elif position == "top-right":
        x, y = canvas_w - content_w - pad_x, pad_y
    elif position == "bottom-left":
        x, y = pad_x, canvas_h - content_h - pad_y
    elif position == "center":
        return (canvas_w - content_w) // 2, (canvas_h - content_h) // 2
    else:
        # bottom-right 以及所有未识别的位置
        x, y = canvas_w - content_w - pad_x, canvas_h - content_h - pad_y
    return round_half_up(x), round_half_up(y)


def text_horizontal_anchor(position: str) -> str:
    """文本水平对齐方式：start / middle / end。"""

    if position in ("top-left", "bottom-left"):
        return "start"
    if position == "center":
        return "middle"
    return "end"


def resolve_text_position(
    position: str,
    canvas_w: int,
    canvas_h: int,
    pad_x: float,
    pad_y: float,
    font_size: int,
) -> tuple[float, float]:
    """计算文本锚点坐标；文本在垂直方向以中线对齐，因此偏移半个字号。"""

    half = font_size / 2
    if position == "top-left":
        return pad_x, pad_y + half
    if position == "top-right":
        return canvas_w - pad_x, pad_y + half
    if position == "bottom-left":
        return pad_x, canvas_h - pad_y - half
    if position == "center":
        return canvas_w / 2, canvas_h / 2
    return canvas_w - pad_x, canvas_h - pad_y - half


def resolve_crop_box(
    image_w: int,
    image_h: int,
    target_w: int,
    target_h: int,
    position: str,
) -> tuple[int, int, int, int]:
    """按锚点计算裁剪区域，返回 (left, top, right, bottom)。"""

    offsets = CROP_OFFSETS.get(position)
    if offsets is None:
        raise InvalidConfigurationError(
            f"Invalid position: {position}. Valid positions: {', '.join(CROP_OFFSETS)}"
        )

    crop_w = min(target_w, image_w)
    crop_h = min(target_h, image_h)
    left = round_half_up((image_w - crop_w) * offsets[0])
    top = round_half_up((image_h - crop_h) * offsets[1])
    return left, top, left + crop_w, top + crop_h


def resolve_aspect_crop(image_w: int, image_h: int, ratio_w: int, ratio_h: int) -> tuple[int, int]:
    """计算给定宽高比下可容纳的最大裁剪尺寸。"""

    aspect = ratio_w / ratio_h
    if image_w / image_h > aspect:
        # 原图更宽，裁掉左右
        return round_half_up(image_h * aspect), image_h
    return image_w, round_half_up(image_w / aspect)


def _parse_number(text: str) -> float:
    try:
        return float(text)
    except ValueError:
        return math.nan

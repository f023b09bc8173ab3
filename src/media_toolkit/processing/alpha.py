"""水印图片的透明度处理。

JPEG 来源的水印没有原生 Alpha 通道，需要先合成一个统一的 Alpha 通道；
PNG / WebP / SVG 来源的水印则逐字节缩放已有的 Alpha 值。
透明度不在本层钳制，超出 [0, 1] 的结果在写回字节时被截断到 0~255。
"""

from __future__ import annotations

import logging

import numpy as np
from PIL import Image

from media_toolkit.core.exceptions import UnsupportedOverlayFormatError

LOGGER = logging.getLogger(__name__)

SUPPORTED_OVERLAY_FORMATS = ("jpeg", "png", "svg", "webp")

RGBA_CHANNELS = 4
ALPHA_OFFSET = 3


def ensure_supported_overlay_format(format_name: str | None) -> str:
    """校验水印格式，返回小写格式名。"""

    normalized = (format_name or "unknown").lower()
    if normalized == "jpg":
        normalized = "jpeg"
    if normalized not in SUPPORTED_OVERLAY_FORMATS:
        raise UnsupportedOverlayFormatError(normalized, SUPPORTED_OVERLAY_FORMATS)
    return normalized


def has_native_alpha(format_name: str) -> bool:
    return ensure_supported_overlay_format(format_name) != "jpeg"


def scale_alpha_bytes(raw: bytes, opacity: float) -> bytes:
    """对 RGBA 原始字节中每个像素的 Alpha 字节乘以 ``opacity``。

    从偏移 3 开始每隔 4 个字节替换为 ``round(alpha * opacity)``（0.5 向上取整），
    结果截断到 0~255。
    """

    if len(raw) % RGBA_CHANNELS:
        raise ValueError(f"RGBA 数据长度必须是 4 的倍数，实际为 {len(raw)}")

    buffer = np.frombuffer(raw, dtype=np.uint8).copy()
    alpha = buffer[ALPHA_OFFSET::RGBA_CHANNELS].astype(np.float64)
    scaled = np.floor(alpha * opacity + 0.5)
    np.clip(scaled, 0, 255, out=scaled)
    buffer[ALPHA_OFFSET::RGBA_CHANNELS] = scaled.astype(np.uint8)
    return buffer.tobytes()


def synthesize_alpha(image: Image.Image, opacity: float) -> Image.Image:
    """为无 Alpha 的图片合成统一的 Alpha 通道，取值为 ``255 * opacity``。"""

    value = int(np.clip(np.floor(255 * opacity + 0.5), 0, 255))
    rgba = image.convert("RGB").convert("RGBA")
    rgba.putalpha(value)
    return rgba


def apply_opacity(overlay: Image.Image, format_name: str | None, opacity: float) -> Image.Image:
    """按来源格式调整水印透明度，返回新的 RGBA 图像，输入图像不被修改。"""

    fmt = ensure_supported_overlay_format(format_name)

    if fmt == "jpeg":
        LOGGER.debug("JPEG 水印：合成 Alpha 通道，opacity=%s", opacity)
        return synthesize_alpha(overlay, opacity)

    rgba = overlay if overlay.mode == "RGBA" else overlay.convert("RGBA")
    raw = scale_alpha_bytes(rgba.tobytes(), opacity)
    return Image.frombytes("RGBA", rgba.size, raw)

"""输出格式选择与图像写入模块。"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from PIL import Image

from media_toolkit.core.exceptions import MediaToolkitError

LOGGER = logging.getLogger(__name__)

EXTENSION_FORMATS = {
    ".jpg": "JPEG",
    ".jpeg": "JPEG",
    ".png": "PNG",
    ".webp": "WEBP",
}

# 不支持 Alpha 通道的编码格式
_OPAQUE_FORMATS = {"JPEG", "MPO"}


class ImageWriteError(MediaToolkitError):
    """输出写入失败。"""


@dataclass(frozen=True, slots=True)
class EncoderSettings:
    """各编码器的质量/压缩参数。"""

    jpeg_quality: int = 80
    png_compress_level: int = 6
    webp_quality: int = 80


WATERMARK_ENCODER = EncoderSettings()
RESIZE_ENCODER = EncoderSettings(jpeg_quality=100, png_compress_level=9, webp_quality=100)


def resolve_output_format(destination: Path, native_format: Optional[str]) -> str:
    """根据输出扩展名选择编码格式，未知扩展名沿用原图格式。"""

    image_format = EXTENSION_FORMATS.get(destination.suffix.lower()) or native_format
    if not image_format:
        raise ImageWriteError(f"Cannot determine output format for: {destination}")
    return image_format


def save_image(
    image: Image.Image,
    destination: Path,
    *,
    native_format: Optional[str] = None,
    settings: Optional[EncoderSettings] = None,
) -> str:
    """将 PIL Image 保存到磁盘，返回实际使用的编码格式。"""

    image_format = resolve_output_format(destination, native_format)
    save_params = _encoder_params(image_format, settings)

    image_to_save = image
    if image_format in _OPAQUE_FORMATS:
        if image.mode != "RGB":
            image_to_save = image.convert("RGB")
    elif image.mode not in {"1", "L", "LA", "P", "RGB", "RGBA", "I;16"}:
        image_to_save = image.convert("RGBA" if "A" in image.getbands() else "RGB")

    destination.parent.mkdir(parents=True, exist_ok=True)
    try:
        image_to_save.save(destination, format=image_format, **save_params)
    except (OSError, KeyError, ValueError) as exc:
        raise ImageWriteError(f"Failed to write file: {destination}: {exc}") from exc

    LOGGER.debug("写入 %s (%s)", destination, image_format)
    return image_format


def _encoder_params(image_format: str, settings: Optional[EncoderSettings]) -> dict[str, Any]:
    if settings is None:
        return {}
    if image_format == "JPEG":
        return {"quality": settings.jpeg_quality}
    if image_format == "PNG":
        return {"compress_level": settings.png_compress_level}
    if image_format == "WEBP":
        return {"quality": settings.webp_quality}
    return {}

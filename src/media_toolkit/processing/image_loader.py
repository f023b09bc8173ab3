"""图片与水印素材的加载。"""

from __future__ import annotations

import io
import logging
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from media_toolkit.core.exceptions import MediaToolkitError, UnsupportedOverlayFormatError
from media_toolkit.core.models import LoadedImage
from media_toolkit.processing.alpha import SUPPORTED_OVERLAY_FORMATS

LOGGER = logging.getLogger(__name__)


class ImageLoadingError(MediaToolkitError):
    """图片加载失败。"""


def load_image(path: Path) -> LoadedImage:
    """加载单张图片，保留原始模式与格式。

    返回值中的 Image 为独立副本，调用者负责关闭。
    """

    try:
        with Image.open(path) as img:
            img.load()
            image_format = img.format
            payload = img.copy()
    except (UnidentifiedImageError, OSError) as exc:
        LOGGER.debug("无法识别图像文件 %s: %s", path, exc)
        raise ImageLoadingError(f"Could not load image: {path}: {exc}") from exc

    return LoadedImage(source_path=path, image_format=image_format, size=payload.size, payload=payload)


def load_overlay(path: Path) -> LoadedImage:
    """加载水印图片；SVG 先光栅化为 PNG 再解码，格式记为 ``SVG``。"""

    if path.suffix.lower() == ".svg":
        payload = _rasterize_svg(path)
        return LoadedImage(source_path=path, image_format="SVG", size=payload.size, payload=payload)

    try:
        with Image.open(path) as img:
            img.load()
            image_format = img.format
            payload = img.copy()
    except UnidentifiedImageError as exc:
        raise UnsupportedOverlayFormatError("unknown", SUPPORTED_OVERLAY_FORMATS) from exc
    except OSError as exc:
        raise ImageLoadingError(f"Could not load watermark image: {path}: {exc}") from exc

    return LoadedImage(source_path=path, image_format=image_format, size=payload.size, payload=payload)


def flatten_to_rgb(img: Image.Image) -> Image.Image:
    """将任意模式图像转换为 RGB，透明区域以白色背景混合。"""

    if img.mode in {"RGBA", "LA"} or (img.mode == "P" and "transparency" in img.info):
        rgba = img.convert("RGBA")
        background = Image.new("RGB", img.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.split()[-1])
        return background

    if img.mode == "RGB":
        return img.copy()

    return img.convert("RGB")


def _rasterize_svg(path: Path) -> Image.Image:
    # cairosvg 依赖系统 cairo 库，仅在确实使用 SVG 水印时导入
    import cairosvg

    try:
        png_bytes = cairosvg.svg2png(url=str(path))
        with Image.open(io.BytesIO(png_bytes)) as img:
            return img.convert("RGBA")
    except (OSError, ValueError) as exc:
        raise ImageLoadingError(f"Could not render SVG watermark: {path}: {exc}") from exc

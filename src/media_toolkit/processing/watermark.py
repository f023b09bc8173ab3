"""水印合成引擎：文本水印与图片水印。

单个文件的处理流程为 校验 -> 加载画布 -> 文本/图片分支 -> 合成 -> 编码写出，
任一步失败即放弃该文件，不会写出不完整的输出。
"""

from __future__ import annotations

import logging
from functools import partial
from pathlib import Path
from typing import Optional

from PIL import Image, ImageDraw, ImageFilter, ImageFont

from media_toolkit.core.config import (
    DEFAULT_PADDING,
    ImageWatermark,
    TextWatermark,
    WatermarkOptions,
    WatermarkPosition,
)
from media_toolkit.core.exceptions import OverlayNotFoundError
from media_toolkit.core.models import OverlayGeometry, Placement, ProcessingResult, TextGeometry
from media_toolkit.core.output_manager import WATERMARK_ENCODER, save_image
from media_toolkit.core.progress import ProgressCallback
from media_toolkit.core.scanner import IMAGE_EXTENSIONS
from media_toolkit.processing.alpha import apply_opacity, ensure_supported_overlay_format
from media_toolkit.processing.geometry import (
    resolve_font_size,
    resolve_overlay_size,
    resolve_padding,
    resolve_position,
    resolve_text_position,
    round_half_up,
    text_horizontal_anchor,
)
from media_toolkit.processing.image_loader import load_image, load_overlay
from media_toolkit.processing.pipeline import BatchOperation, PathLike, run_operation
from media_toolkit.utils.colors import named_color

LOGGER = logging.getLogger(__name__)

WATERMARK_BATCH_SIZE = 3

GLOW_RADIUS = 4

FONT_CANDIDATES = (
    "Nunito-Bold.ttf",
    "Arial Bold.ttf",
    "arialbd.ttf",
    "Arial.ttf",
    "DejaVuSans-Bold.ttf",
)


def add_watermark(
    input_path: PathLike,
    output_path: PathLike,
    options: WatermarkOptions,
    *,
    progress_callback: ProgressCallback = None,
) -> ProcessingResult:
    """为单个文件或整个目录添加水印。"""

    operation = BatchOperation(
        verb="watermarking",
        extensions=IMAGE_EXTENSIONS,
        batch_size=WATERMARK_BATCH_SIZE,
        process_file=partial(watermark_file, options=options),
    )
    return run_operation(
        input_path,
        output_path,
        operation,
        recursive=options.recursive,
        progress_callback=progress_callback,
    )


def watermark_file(input_path: Path, output_path: Path, options: WatermarkOptions) -> Placement:
    """为单张图片添加水印并写出，返回解析得到的定位信息。"""

    content = options.content
    if isinstance(content, ImageWatermark) and not content.source_path.is_file():
        raise OverlayNotFoundError(content.source_path)

    canvas = load_image(input_path)
    width, height = canvas.size
    position = options.position

    layer: Optional[Image.Image] = None
    try:
        pad_x, pad_y = _resolve_paddings(options, width, height)
        if isinstance(content, TextWatermark):
            layer, placement = _prepare_text_layer(content, options, (width, height), pad_x, pad_y)
            offset = (0, 0)
        else:
            layer, geometry = _prepare_image_layer(content, options, (width, height), pad_x, pad_y)
            placement = geometry
            offset = (geometry.offset_x, geometry.offset_y)

        LOGGER.debug("水印定位 %s: %s (position=%s)", input_path.name, placement, position.value)
        result = composite_layer(canvas.payload, layer, offset)
        save_image(result, output_path, native_format=canvas.image_format, settings=WATERMARK_ENCODER)
    finally:
        canvas.payload.close()
        if layer is not None:
            layer.close()

    return placement


def composite_layer(canvas: Image.Image, layer: Image.Image, offset: tuple[int, int]) -> Image.Image:
    """以 over 模式把图层叠加到画布的 ``offset`` 处，超出画布的部分被裁掉。"""

    base = canvas.convert("RGBA")
    positioned = Image.new("RGBA", base.size, (0, 0, 0, 0))
    positioned.paste(layer, offset)
    combined = Image.alpha_composite(base, positioned)

    if _has_alpha(canvas):
        return combined
    return combined.convert("RGB")


def render_text_layer(
    size: tuple[int, int],
    content: TextWatermark,
    geometry: TextGeometry,
    opacity: float,
) -> Image.Image:
    """绘制整幅画布大小的文本图层：反色模糊光晕 + 文字填充，整体乘以透明度。"""

    font = load_font(geometry.font_size)
    mask = Image.new("L", size, 0)
    draw = ImageDraw.Draw(mask)

    left, top, right, bottom = draw.textbbox((0, 0), content.text, font=font)
    if geometry.anchor == "start":
        origin_x = geometry.x - left
    elif geometry.anchor == "middle":
        origin_x = geometry.x - (left + right) / 2
    else:
        origin_x = geometry.x - right
    origin_y = geometry.y - (top + bottom) / 2
    draw.text((origin_x, origin_y), content.text, fill=255, font=font)

    glow = Image.new("RGBA", size, named_color(content.color.opposite.value) + (0,))
    glow.putalpha(mask.filter(ImageFilter.GaussianBlur(GLOW_RADIUS)))

    fill = Image.new("RGBA", size, named_color(content.color.value) + (0,))
    fill.putalpha(mask)

    layer = Image.alpha_composite(glow, fill)
    layer.putalpha(layer.getchannel("A").point(_opacity_table(opacity)))
    return layer


def load_font(font_size: int) -> ImageFont.ImageFont:
    for candidate in FONT_CANDIDATES:
        try:
            return ImageFont.truetype(candidate, font_size)
        except OSError:
            continue
    LOGGER.debug("未找到可用的 TrueType 字体，使用 Pillow 默认字体")
    return ImageFont.load_default(size=font_size)


def _prepare_text_layer(
    content: TextWatermark,
    options: WatermarkOptions,
    size: tuple[int, int],
    pad_x: float,
    pad_y: float,
) -> tuple[Image.Image, TextGeometry]:
    width, height = size
    font_size = resolve_font_size(width, height, options.size_percent)
    x, y = resolve_text_position(options.position, width, height, pad_x, pad_y, font_size)
    geometry = TextGeometry(x=x, y=y, font_size=font_size, anchor=text_horizontal_anchor(options.position))
    return render_text_layer(size, content, geometry, options.opacity), geometry


def _prepare_image_layer(
    content: ImageWatermark,
    options: WatermarkOptions,
    size: tuple[int, int],
    pad_x: float,
    pad_y: float,
) -> tuple[Image.Image, OverlayGeometry]:
    width, height = size
    overlay = load_overlay(content.source_path)
    try:
        fmt = ensure_supported_overlay_format(overlay.image_format)
        source_w, source_h = overlay.size
        scaled_w, scaled_h = resolve_overlay_size(source_w, source_h, width, height, options.size_percent)
        if scaled_w > source_w or scaled_h > source_h:
            # 不放大超过原始分辨率
            scaled_w, scaled_h = source_w, source_h
        scaled_w, scaled_h = max(1, scaled_w), max(1, scaled_h)

        x, y = resolve_position(options.position, width, height, scaled_w, scaled_h, pad_x, pad_y)

        working = overlay.payload.convert("RGB" if fmt == "jpeg" else "RGBA")
        if working.size != (scaled_w, scaled_h):
            working = working.resize((scaled_w, scaled_h), Image.LANCZOS)
        layer = apply_opacity(working, fmt, options.opacity)
    finally:
        overlay.payload.close()

    return layer, OverlayGeometry(offset_x=x, offset_y=y, scaled_width=scaled_w, scaled_height=scaled_h)


def _resolve_paddings(options: WatermarkOptions, width: int, height: int) -> tuple[float, float]:
    if options.position is WatermarkPosition.CENTER:
        return 0.0, 0.0
    pad_x = resolve_padding(options.padding_x or DEFAULT_PADDING, width)
    pad_y = resolve_padding(options.padding_y or DEFAULT_PADDING, height)
    return pad_x, pad_y


def _opacity_table(opacity: float) -> list[int]:
    return [min(255, max(0, round_half_up(value * opacity))) for value in range(256)]


def _has_alpha(image: Image.Image) -> bool:
    return "A" in image.getbands() or (image.mode == "P" and "transparency" in image.info)

"""图片缩放。"""

from __future__ import annotations

import logging
from functools import partial
from pathlib import Path

from PIL import Image, ImageOps

from media_toolkit.core.config import ResizeOptions
from media_toolkit.core.models import ProcessingResult
from media_toolkit.core.output_manager import RESIZE_ENCODER, save_image
from media_toolkit.core.progress import ProgressCallback
from media_toolkit.core.scanner import IMAGE_EXTENSIONS
from media_toolkit.processing.geometry import round_half_up
from media_toolkit.processing.image_loader import load_image
from media_toolkit.processing.pipeline import BatchOperation, PathLike, run_operation

LOGGER = logging.getLogger(__name__)

RESIZE_BATCH_SIZE = 10


def resize_image(
    input_path: PathLike,
    output_path: PathLike,
    options: ResizeOptions,
    *,
    progress_callback: ProgressCallback = None,
) -> ProcessingResult:
    operation = BatchOperation(
        verb="resizing",
        extensions=IMAGE_EXTENSIONS,
        batch_size=RESIZE_BATCH_SIZE,
        process_file=partial(resize_file, options=options),
    )
    return run_operation(
        input_path,
        output_path,
        operation,
        recursive=options.recursive,
        progress_callback=progress_callback,
    )


def target_size(source_size: tuple[int, int], options: ResizeOptions) -> tuple[int, int]:
    """计算输出尺寸。

    优先级为 scale > fit > width/height。fit 保持宽高比缩放到框内（可放大）；
    只给出宽或高时按比例计算另一边；同时给出宽高时输出恰好为该尺寸（居中裁切填满）。
    """

    width, height = source_size
    if options.scale is not None:
        return max(1, round_half_up(width * options.scale)), max(1, round_half_up(height * options.scale))

    if options.fit is not None:
        fit_w, fit_h = options.fit
        ratio = min(fit_w / width, fit_h / height)
        return max(1, round_half_up(width * ratio)), max(1, round_half_up(height * ratio))

    if options.width is not None and options.height is not None:
        return options.width, options.height
    if options.width is not None:
        return options.width, max(1, round_half_up(height * options.width / width))
    if options.height is not None:
        return max(1, round_half_up(width * options.height / height)), options.height

    raise ValueError("ResizeOptions 未指定任何缩放方式")


def resize_file(input_path: Path, output_path: Path, options: ResizeOptions) -> tuple[int, int]:
    """缩放单张图片并写出，返回输出尺寸。"""

    loaded = load_image(input_path)
    image = loaded.payload
    try:
        size = target_size(loaded.size, options)
        working = _resamplable(image)

        if options.scale is None and options.fit is None and options.width and options.height:
            resized = ImageOps.fit(working, size, method=Image.LANCZOS)
        else:
            resized = working.resize(size, Image.LANCZOS)

        LOGGER.debug("缩放 %s: %s -> %s", input_path.name, loaded.size, size)
        save_image(resized, output_path, native_format=loaded.image_format, settings=RESIZE_ENCODER)
    finally:
        image.close()

    return size


def _resamplable(image: Image.Image) -> Image.Image:
    # 调色板与二值图不支持 Lanczos 重采样
    if image.mode == "P":
        return image.convert("RGBA" if "transparency" in image.info else "RGB")
    if image.mode == "1":
        return image.convert("L")
    return image

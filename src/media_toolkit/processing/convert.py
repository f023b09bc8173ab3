"""JPEG 与 PNG 之间的格式转换。"""

from __future__ import annotations

import logging
from functools import partial
from pathlib import Path

from media_toolkit.core.config import ConvertOptions
from media_toolkit.core.exceptions import InvalidConfigurationError, OutputExistsError, UnsupportedFormatError
from media_toolkit.core.models import ProcessingResult
from media_toolkit.core.output_manager import EXTENSION_FORMATS, EncoderSettings, save_image
from media_toolkit.core.progress import ProgressCallback
from media_toolkit.core.scanner import CONVERT_EXTENSIONS
from media_toolkit.processing.image_loader import flatten_to_rgb, load_image
from media_toolkit.processing.pipeline import BatchOperation, PathLike, resolve_input, run_operation

LOGGER = logging.getLogger(__name__)

CONVERT_BATCH_SIZE = 10


def convert_image(
    input_path: PathLike,
    output_path: PathLike,
    options: ConvertOptions,
    *,
    progress_callback: ProgressCallback = None,
) -> ProcessingResult:
    """转换单个文件或整个目录。

    单文件的目标格式由输出扩展名决定，不允许再指定 ``format``；
    目录转换必须指定 ``format``，输出文件扩展名随之替换。
    """

    source = resolve_input(input_path)
    if source.is_dir():
        if not options.format:
            raise InvalidConfigurationError("--format option is required for directory conversion")
        suffix = f".{options.format.lower()}"
    else:
        if options.format:
            raise InvalidConfigurationError("--format option is not allowed for single file conversion")
        suffix = None

    operation = BatchOperation(
        verb="converting",
        extensions=CONVERT_EXTENSIONS,
        batch_size=CONVERT_BATCH_SIZE,
        process_file=partial(convert_file, options=options),
        output_suffix=suffix,
    )
    return run_operation(
        source,
        output_path,
        operation,
        recursive=options.recursive,
        progress_callback=progress_callback,
    )


def convert_file(input_path: Path, output_path: Path, options: ConvertOptions) -> str:
    """转换单张图片，返回写出的编码格式。"""

    input_ext = input_path.suffix.lower()
    output_ext = output_path.suffix.lower()
    if input_ext not in CONVERT_EXTENSIONS:
        raise UnsupportedFormatError(f"Unsupported input format: {input_ext or input_path.name}")
    if output_ext not in CONVERT_EXTENSIONS:
        raise UnsupportedFormatError(f"Unsupported output format: {output_ext or output_path.name}")
    if output_path.exists() and not options.overwrite:
        raise OutputExistsError(output_path)

    settings = EncoderSettings(
        jpeg_quality=options.quality,
        png_compress_level=options.compression,
        webp_quality=options.quality,
    )

    loaded = load_image(input_path)
    image = loaded.payload
    try:
        if EXTENSION_FORMATS[output_ext] == "JPEG":
            prepared = flatten_to_rgb(image)
        else:
            prepared = image
        LOGGER.debug("转换 %s -> %s", input_path.name, output_path.name)
        return save_image(prepared, output_path, settings=settings)
    finally:
        image.close()

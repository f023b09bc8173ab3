"""按宽高比或固定尺寸裁剪图片。"""

from __future__ import annotations

import logging
from functools import partial
from pathlib import Path

from media_toolkit.core.config import CropOptions
from media_toolkit.core.exceptions import DimensionsExceedSourceError, InvalidConfigurationError
from media_toolkit.core.models import ProcessingResult
from media_toolkit.core.output_manager import save_image
from media_toolkit.core.progress import ProgressCallback
from media_toolkit.core.scanner import IMAGE_EXTENSIONS
from media_toolkit.processing.geometry import resolve_aspect_crop, resolve_crop_box
from media_toolkit.processing.image_loader import load_image
from media_toolkit.processing.pipeline import BatchOperation, PathLike, resolve_input, run_operation

LOGGER = logging.getLogger(__name__)

CROP_BATCH_SIZE = 5


def crop_image(
    input_path: PathLike,
    output_path: PathLike,
    options: CropOptions,
    *,
    progress_callback: ProgressCallback = None,
) -> ProcessingResult:
    """裁剪单个文件或整个目录；固定尺寸只允许用于单个文件。"""

    source = resolve_input(input_path)
    if source.is_dir() and options.dimensions is not None:
        raise InvalidConfigurationError("--dimensions cannot be used with directory input")

    operation = BatchOperation(
        verb="cropping",
        extensions=IMAGE_EXTENSIONS,
        batch_size=CROP_BATCH_SIZE,
        process_file=partial(crop_file, options=options),
    )
    return run_operation(
        source,
        output_path,
        operation,
        recursive=options.recursive,
        progress_callback=progress_callback,
    )


def crop_target(options: CropOptions, image_w: int, image_h: int) -> tuple[int, int]:
    if options.aspect is not None:
        return resolve_aspect_crop(image_w, image_h, *options.aspect)
    if options.dimensions is not None:
        return options.dimensions
    raise InvalidConfigurationError("Please specify either --aspect or --dimensions")


def crop_file(input_path: Path, output_path: Path, options: CropOptions) -> tuple[int, int, int, int]:
    """裁剪单张图片并写出，返回裁剪框 (left, top, right, bottom)。"""

    loaded = load_image(input_path)
    try:
        image_w, image_h = loaded.size
        target_w, target_h = crop_target(options, image_w, image_h)
        if target_w > image_w or target_h > image_h:
            raise DimensionsExceedSourceError(
                f"Crop dimensions ({target_w}x{target_h}) cannot be larger than "
                f"image dimensions ({image_w}x{image_h})"
            )

        box = resolve_crop_box(image_w, image_h, target_w, target_h, options.position)
        LOGGER.debug("裁剪 %s: box=%s", input_path.name, box)
        cropped = loaded.payload.crop(box)
        save_image(cropped, output_path, native_format=loaded.image_format)
    finally:
        loaded.payload.close()

    return box

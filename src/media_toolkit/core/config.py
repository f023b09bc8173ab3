"""各操作的配置模型。

每种操作一个 dataclass，在构造时完成一次性校验，下游处理逻辑不再做零散检查。
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Tuple, Union

from media_toolkit.core.exceptions import (
    AmbiguousWatermarkKindError,
    InvalidConfigurationError,
    InvalidSizeError,
    UnsupportedFormatError,
)

LOGGER = logging.getLogger(__name__)

DIMENSIONS_RE = re.compile(r"^(\d+)x(\d+)$")
RATIO_RE = re.compile(r"^(\d+):(\d+)$")

CROP_POSITIONS = (
    "center",
    "top",
    "bottom",
    "left",
    "right",
    "top-left",
    "top-right",
    "bottom-left",
    "bottom-right",
)

CONVERT_FORMATS = ("jpg", "jpeg", "png")

DEFAULT_PADDING = "20"


class WatermarkPosition(str, Enum):
    TOP_LEFT = "top-left"
    TOP_RIGHT = "top-right"
    BOTTOM_LEFT = "bottom-left"
    BOTTOM_RIGHT = "bottom-right"
    CENTER = "center"

    @classmethod
    def parse(cls, value: Union[str, "WatermarkPosition", None]) -> "WatermarkPosition":
        """解析位置关键字；未知取值有意回退到右下角而不是报错。"""

        if isinstance(value, cls):
            return value
        if value is None:
            return cls.BOTTOM_RIGHT
        try:
            return cls(value.strip().lower())
        except ValueError:
            LOGGER.warning("未知的水印位置 %r，回退为 bottom-right", value)
            return cls.BOTTOM_RIGHT


class TextColor(str, Enum):
    BLACK = "black"
    WHITE = "white"

    @classmethod
    def parse(cls, value: Union[str, "TextColor", None]) -> "TextColor":
        """解析文字颜色；未知取值有意回退为白色。"""

        if isinstance(value, cls):
            return value
        if value is None:
            return cls.WHITE
        try:
            return cls(value.strip().lower())
        except ValueError:
            LOGGER.warning("未知的文字颜色 %r，回退为 white", value)
            return cls.WHITE

    @property
    def opposite(self) -> "TextColor":
        return TextColor.WHITE if self is TextColor.BLACK else TextColor.BLACK


@dataclass(frozen=True, slots=True)
class TextWatermark:
    """文本水印内容。"""

    text: str
    color: TextColor = TextColor.WHITE


@dataclass(frozen=True, slots=True)
class ImageWatermark:
    """图片水印内容。"""

    source_path: Path


WatermarkContent = Union[TextWatermark, ImageWatermark]


@dataclass(frozen=True, slots=True)
class WatermarkOptions:
    """水印操作配置。

    ``opacity`` 不做 [0, 1] 钳制，超出范围的值由编码阶段截断到合法像素区间。
    ``padding_x`` / ``padding_y`` 为 ``None`` 时使用默认 20 像素。
    """

    content: WatermarkContent
    position: WatermarkPosition = WatermarkPosition.BOTTOM_RIGHT
    opacity: float = 1.0
    size_percent: float = 5.0
    padding_x: Optional[str] = None
    padding_y: Optional[str] = None
    recursive: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.content, (TextWatermark, ImageWatermark)):
            raise AmbiguousWatermarkKindError("Please specify either --text or --image for watermark")
        if isinstance(self.content, TextWatermark) and not self.content.text:
            raise AmbiguousWatermarkKindError("Please specify either --text or --image for watermark")
        object.__setattr__(self, "position", WatermarkPosition.parse(self.position))
        if not math.isfinite(self.opacity):
            raise InvalidConfigurationError(f"Opacity must be a finite number, got: {self.opacity}")
        if not math.isfinite(self.size_percent):
            raise InvalidSizeError("Size must be a number between 1 and 100 (percentage)")

    @classmethod
    def from_inputs(
        cls,
        *,
        text: Optional[str] = None,
        image: Union[str, Path, None] = None,
        text_color: Optional[str] = None,
        position: Optional[str] = None,
        opacity: Union[float, str] = 1.0,
        size: Union[float, str] = 5.0,
        padding_x: Optional[str] = None,
        padding_y: Optional[str] = None,
        recursive: bool = False,
    ) -> "WatermarkOptions":
        """由命令行等松散输入构造配置，文本与图片必须且只能给出一个。"""

        if not text and not image:
            raise AmbiguousWatermarkKindError("Please specify either --text or --image for watermark")
        if text and image:
            raise AmbiguousWatermarkKindError("Please specify either --text or --image, not both")

        content: WatermarkContent
        if text:
            content = TextWatermark(text=text, color=TextColor.parse(text_color))
        else:
            content = ImageWatermark(source_path=Path(image).expanduser().resolve())

        return cls(
            content=content,
            position=WatermarkPosition.parse(position),
            opacity=_to_float(opacity, "Opacity must be a number"),
            size_percent=_to_float(size, "Size must be a number between 1 and 100 (percentage)"),
            padding_x=padding_x,
            padding_y=padding_y,
            recursive=recursive,
        )


@dataclass(frozen=True, slots=True)
class StripOptions:
    """元数据清除配置。"""

    recursive: bool = False
    verbose: bool = False


@dataclass(frozen=True, slots=True)
class InspectOptions:
    """元数据查看配置。"""

    recursive: bool = False


@dataclass(frozen=True, slots=True)
class ResizeOptions:
    """缩放配置：scale、fit、width/height 三选一。"""

    width: Optional[int] = None
    height: Optional[int] = None
    scale: Optional[float] = None
    fit: Optional[Tuple[int, int]] = None
    recursive: bool = False

    def __post_init__(self) -> None:
        if self.scale is None and self.fit is None and self.width is None and self.height is None:
            raise InvalidConfigurationError("Please specify resize options: --width, --height, --scale, or --fit")
        if self.scale is not None and (math.isnan(self.scale) or self.scale <= 0 or self.scale > 10):
            raise InvalidConfigurationError("Scale must be a number between 0.1 and 10")
        if self.fit is not None and (self.fit[0] <= 0 or self.fit[1] <= 0):
            raise InvalidConfigurationError("Fit dimensions must be positive integers")
        for name, value in (("Width", self.width), ("Height", self.height)):
            if value is not None and value <= 0:
                raise InvalidConfigurationError(f"{name} must be a positive integer")


@dataclass(frozen=True, slots=True)
class CropOptions:
    """裁剪配置：aspect 与 dimensions 二选一。"""

    aspect: Optional[Tuple[int, int]] = None
    dimensions: Optional[Tuple[int, int]] = None
    position: str = "center"
    recursive: bool = False

    def __post_init__(self) -> None:
        if self.aspect is None and self.dimensions is None:
            raise InvalidConfigurationError("Please specify either --aspect or --dimensions")
        if self.aspect is not None and self.dimensions is not None:
            raise InvalidConfigurationError("Cannot specify both --aspect and --dimensions")
        for pair in (self.aspect, self.dimensions):
            if pair is not None and (pair[0] <= 0 or pair[1] <= 0):
                raise InvalidConfigurationError("Crop dimensions must be positive integers")
        if self.position not in CROP_POSITIONS:
            raise InvalidConfigurationError(
                f"Invalid position: {self.position}. Valid positions: {', '.join(CROP_POSITIONS)}"
            )


@dataclass(frozen=True, slots=True)
class ConvertOptions:
    """JPEG/PNG 互转配置。"""

    format: Optional[str] = None
    quality: int = 92
    compression: int = 6
    overwrite: bool = False
    recursive: bool = False

    def __post_init__(self) -> None:
        if self.format is not None and self.format.lower() not in CONVERT_FORMATS:
            raise UnsupportedFormatError(
                f"Unsupported format: {self.format}. Supported formats: {', '.join(CONVERT_FORMATS)}"
            )
        if not 1 <= self.quality <= 100:
            raise InvalidConfigurationError("Quality must be between 1 and 100")
        if not 0 <= self.compression <= 9:
            raise InvalidConfigurationError("Compression must be between 0 and 9")


def parse_dimensions(value: str) -> Tuple[int, int]:
    """解析形如 ``1920x1080`` 的尺寸。"""

    match = DIMENSIONS_RE.match(value.strip())
    if not match:
        raise InvalidConfigurationError(f"Dimensions must be in format WIDTHxHEIGHT (e.g., 1080x1920), got: {value}")
    width, height = int(match.group(1)), int(match.group(2))
    if width <= 0 or height <= 0:
        raise InvalidConfigurationError("Dimensions must be positive integers")
    return width, height


def parse_ratio(value: str) -> Tuple[int, int]:
    """解析形如 ``4:5`` 的宽高比。"""

    match = RATIO_RE.match(value.strip())
    if not match:
        raise InvalidConfigurationError(f"Aspect ratio must be in format WIDTH:HEIGHT (e.g., 4:5), got: {value}")
    width, height = int(match.group(1)), int(match.group(2))
    if width <= 0 or height <= 0:
        raise InvalidConfigurationError("Aspect ratio dimensions must be positive integers")
    return width, height


def _to_float(value: Union[float, str], message: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidConfigurationError(f"{message}, got: {value}") from exc

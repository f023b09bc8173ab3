"""项目内使用的自定义异常定义。"""

from __future__ import annotations

from pathlib import Path
from typing import Sequence


class MediaToolkitError(Exception):
    """基础异常类型。"""


class InvalidConfigurationError(MediaToolkitError):
    """配置不合法时抛出。"""


class ProcessingAborted(MediaToolkitError):
    """任务被用户中断时抛出。"""


class InputNotFoundError(MediaToolkitError):
    """输入路径不存在。"""

    def __init__(self, path: Path) -> None:
        super().__init__(f"Input path does not exist: {path}")
        self.path = path


class InvalidInputKindError(MediaToolkitError):
    """输入路径既不是文件也不是目录。"""

    def __init__(self, path: Path) -> None:
        super().__init__(f"Invalid input path: {path}")
        self.path = path


class UnsupportedFormatError(InvalidConfigurationError):
    """输入或输出格式不受支持。"""


class AmbiguousWatermarkKindError(InvalidConfigurationError):
    """文本水印与图片水印必须且只能指定一个。"""


class OverlayNotFoundError(MediaToolkitError):
    """水印图片不存在。"""

    def __init__(self, path: Path) -> None:
        super().__init__(f"Watermark image not found: {path}")
        self.path = path


class UnsupportedOverlayFormatError(MediaToolkitError):
    """水印图片格式不在允许列表中。"""

    def __init__(self, format_name: str, supported: Sequence[str]) -> None:
        super().__init__(
            f"Unsupported overlay image format: {format_name}. Supported formats: {', '.join(supported)}"
        )
        self.format_name = format_name


class InvalidSizeError(InvalidConfigurationError):
    """尺寸百分比不合法。"""


class InvalidPaddingError(InvalidConfigurationError):
    """边距取值不合法。"""


class OutputExistsError(MediaToolkitError):
    """输出文件已存在且未允许覆盖。"""

    def __init__(self, path: Path) -> None:
        super().__init__(f"Output file already exists: {path}. Use --overwrite to replace it")
        self.path = path


class DimensionsExceedSourceError(MediaToolkitError):
    """裁剪尺寸大于原图尺寸。"""


class ExternalToolFailureError(MediaToolkitError):
    """外部元数据工具执行失败。"""

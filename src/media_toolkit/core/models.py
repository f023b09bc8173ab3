"""核心数据模型定义。"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Iterable, Optional, Union

if TYPE_CHECKING:
    from PIL import Image


@dataclass(frozen=True, slots=True)
class BatchTask:
    """扫描阶段得到的输入/输出路径对，输出路径镜像输入相对路径。"""

    source_path: Path
    output_path: Path
    relative_path: Path


@dataclass(slots=True)
class FileOutcome:
    """记录单个文件的处理结果。"""

    source_path: Path
    status: str
    output_path: Optional[Path] = None
    message: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status == "processed"


@dataclass(slots=True)
class LoadedImage:
    """解码后的图片及其原始格式。"""

    source_path: Path
    image_format: Optional[str]
    size: tuple[int, int]
    payload: "Image.Image"


@dataclass(frozen=True, slots=True)
class ProcessingResult:
    """单文件或批量操作的最终结果。

    ``success`` 恒等于 ``errors == 0``；``error_messages`` 仅在存在错误时给出。
    """

    success: bool
    processed: int
    errors: int
    error_messages: Optional[tuple[str, ...]] = None

    def __post_init__(self) -> None:
        if self.processed < 0 or self.errors < 0:
            raise ValueError("processed 与 errors 不能为负数")
        if self.success != (self.errors == 0):
            raise ValueError("success 必须与 errors == 0 一致")

    @classmethod
    def single(cls) -> "ProcessingResult":
        return cls(success=True, processed=1, errors=0)

    @classmethod
    def empty(cls) -> "ProcessingResult":
        return cls(success=True, processed=0, errors=0)

    @classmethod
    def from_outcomes(cls, outcomes: Iterable[FileOutcome]) -> "ProcessingResult":
        """汇总批处理中每个文件的结果。"""

        processed = 0
        messages: list[str] = []
        for outcome in outcomes:
            if outcome.succeeded:
                processed += 1
            else:
                messages.append(outcome.message or f"Error processing {outcome.source_path}")

        errors = len(messages)
        return cls(
            success=errors == 0,
            processed=processed,
            errors=errors,
            error_messages=tuple(messages) if messages else None,
        )


@dataclass(frozen=True, slots=True)
class OverlayGeometry:
    """图片水印的缩放尺寸与左上角偏移。"""

    offset_x: int
    offset_y: int
    scaled_width: int
    scaled_height: int


@dataclass(frozen=True, slots=True)
class TextGeometry:
    """文本水印的锚点坐标、字号与水平对齐方式。"""

    x: float
    y: float
    font_size: int
    anchor: str


Placement = Union[OverlayGeometry, TextGeometry]

"""文件扫描、扩展名筛选与输出路径镜像。"""

from __future__ import annotations

from pathlib import Path
from typing import Collection, Iterator, Optional

from media_toolkit.core.models import BatchTask

IMAGE_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".gif", ".bmp", ".tiff", ".tif", ".webp"})

CONVERT_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png"})

MEDIA_EXTENSIONS = frozenset(
    {
        # 图片
        ".jpg", ".jpeg", ".png", ".gif", ".bmp", ".tiff", ".tif", ".webp", ".svg", ".raw",
        # 视频
        ".mp4", ".avi", ".mov", ".mkv", ".webm", ".3gp", ".flv", ".wmv", ".m4v",
        # 音频
        ".mp3", ".wav", ".flac", ".aac", ".m4a", ".ogg", ".wma",
        # 文档
        ".pdf", ".doc", ".docx", ".xls", ".xlsx", ".ppt", ".pptx",
    }
)  # fmt: skip


def _iter_candidate_files(root: Path, recursive: bool) -> Iterator[Path]:
    """遍历目录下的所有文件。"""

    iterator = root.rglob("*") if recursive else root.glob("*")
    for candidate in iterator:
        if candidate.is_file():
            yield candidate


def collect_files(root: Path, extensions: Collection[str], recursive: bool) -> list[Path]:
    """返回目录下扩展名（不区分大小写）位于允许列表中的文件，按路径排序。"""

    collected = [
        candidate
        for candidate in _iter_candidate_files(root, recursive)
        if candidate.suffix.lower() in extensions
    ]
    collected.sort(key=lambda x: str(x).lower())
    return collected


def mirror_path(source: Path, input_root: Path, output_root: Path, suffix: Optional[str] = None) -> Path:
    """将 ``source`` 相对 ``input_root`` 的路径映射到 ``output_root`` 下。"""

    destination = output_root / source.relative_to(input_root)
    if suffix is not None:
        destination = destination.with_suffix(suffix)
    return destination


def collect_batch_tasks(
    input_root: Path,
    output_root: Path,
    extensions: Collection[str],
    recursive: bool,
    output_suffix: Optional[str] = None,
) -> list[BatchTask]:
    """扫描输入目录并生成输入/输出路径对。"""

    resolved_input = input_root.resolve()
    resolved_output = output_root.resolve()

    return [
        BatchTask(
            source_path=candidate,
            output_path=mirror_path(candidate, resolved_input, resolved_output, output_suffix),
            relative_path=candidate.relative_to(resolved_input),
        )
        for candidate in collect_files(resolved_input, extensions, recursive)
    ]

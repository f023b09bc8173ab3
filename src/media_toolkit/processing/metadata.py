"""基于 exiftool 的元数据清除与查看。

exiftool 以 ``-stay_open`` 常驻进程的方式通过 PyExifTool 调用。``MetadataTool`` 在首次使用时
才启动进程，并为并发任务维护一个进程池：每个任务独占一个进程，执行期间不持有任何锁。
"""

from __future__ import annotations

import logging
import queue
import shutil
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from functools import partial
from pathlib import Path
from typing import Any, Iterator, Mapping, Optional

from exiftool import ExifToolHelper
from exiftool.exceptions import ExifToolException

from media_toolkit.core.config import InspectOptions, StripOptions
from media_toolkit.core.exceptions import ExternalToolFailureError, InvalidInputKindError
from media_toolkit.core.models import ProcessingResult
from media_toolkit.core.progress import ProgressCallback
from media_toolkit.core.scanner import MEDIA_EXTENSIONS, collect_files
from media_toolkit.processing.pipeline import BatchOperation, PathLike, resolve_input, run_operation

LOGGER = logging.getLogger(__name__)

METADATA_BATCH_SIZE = 5

TAG_GROUPS = ("EXIF", "GPS", "XMP", "IPTC", "ICC", "Other")

# 汇总输出中这些分组只列出前几个标签
_TRUNCATED_GROUPS = {"EXIF", "XMP", "IPTC", "Other"}
_PREVIEW_LIMIT = 5


class MetadataTool:
    """exiftool 进程池句柄，``end()`` 之后不可再使用。"""

    def __init__(self, executable: Optional[str] = None) -> None:
        self._executable = executable
        self._idle: "queue.SimpleQueue[ExifToolHelper]" = queue.SimpleQueue()
        self._started: list[ExifToolHelper] = []
        self._lock = threading.Lock()
        self._closed = False

    def read(self, path: Path) -> dict[str, Any]:
        """读取全部标签，键带分组前缀（如 ``EXIF:Make``）。"""

        with self._helper() as helper:
            try:
                return dict(helper.get_metadata([str(path)])[0])
            except (ExifToolException, IndexError, ValueError, TypeError) as exc:
                raise ExternalToolFailureError(f"Failed to read metadata: {path}: {exc}") from exc

    def strip(self, path: Path) -> None:
        """原地清除文件的全部元数据。"""

        with self._helper() as helper:
            try:
                helper.execute("-all=", "-overwrite_original", str(path))
            except ExifToolException as exc:
                raise ExternalToolFailureError(f"Failed to strip metadata: {exc}") from exc

    def end(self) -> None:
        """终止所有已启动的 exiftool 进程。"""

        with self._lock:
            self._closed = True
            started, self._started = self._started, []
        for helper in started:
            _terminate(helper)
        if started:
            LOGGER.debug("已关闭 %d 个 exiftool 进程", len(started))

    @contextmanager
    def _helper(self) -> Iterator[ExifToolHelper]:
        if self._closed:
            raise ExternalToolFailureError("Metadata tool has already been closed")

        try:
            helper = self._idle.get_nowait()
        except queue.Empty:
            helper = self._start_helper()

        try:
            yield helper
        finally:
            with self._lock:
                closed = self._closed
            if closed:
                _terminate(helper)
            else:
                self._idle.put(helper)

    def _start_helper(self) -> ExifToolHelper:
        helper = ExifToolHelper(executable=self._executable) if self._executable else ExifToolHelper()
        try:
            helper.run()
        except (OSError, ExifToolException) as exc:
            raise ExternalToolFailureError(f"Could not start exiftool: {exc}") from exc

        with self._lock:
            self._started.append(helper)
        LOGGER.debug("启动 exiftool 进程（当前共 %d 个）", len(self._started))
        return helper


@contextmanager
def open_metadata_tool(executable: Optional[str] = None) -> Iterator[MetadataTool]:
    """打开元数据工具，退出时（包括异常与中断）保证释放所有进程。"""

    tool = MetadataTool(executable)
    try:
        yield tool
    finally:
        tool.end()


@dataclass(slots=True)
class MetadataReport:
    """单个文件的元数据读取结果。"""

    path: Path
    tags: dict[str, Any]
    relative_path: Optional[Path] = None
    group_counts: dict[str, int] = field(init=False)

    def __post_init__(self) -> None:
        self.group_counts = {
            "total": len(self.tags),
            "EXIF": sum(1 for key in self.tags if key.startswith("EXIF")),
            "GPS": sum(1 for key in self.tags if _tag_name(key).startswith("GPS")),
            "XMP": sum(1 for key in self.tags if key.startswith("XMP")),
        }

    def summary(self) -> dict[str, str]:
        """提取常用字段，缺失的字段不出现在结果中。"""

        lines: dict[str, str] = {}
        for label, tag in (("File", "FileName"), ("Type", "FileType")):
            value = _find_tag(self.tags, tag)
            if value is not None:
                lines[label] = str(value)

        size = _find_tag(self.tags, "FileSize")
        if size is not None:
            lines["Size"] = f"{size} bytes"

        width, height = _find_tag(self.tags, "ImageWidth"), _find_tag(self.tags, "ImageHeight")
        if width and height:
            lines["Dimensions"] = f"{width}x{height}"

        x_res, y_res = _find_tag(self.tags, "XResolution"), _find_tag(self.tags, "YResolution")
        if x_res and y_res:
            lines["Resolution"] = f"{x_res}x{y_res} DPI"

        duration = _find_tag(self.tags, "Duration")
        if duration:
            lines["Duration"] = str(duration)

        frame_rate = _find_tag(self.tags, "VideoFrameRate")
        if frame_rate:
            lines["Frame Rate"] = f"{frame_rate} fps"

        return lines


def strip_metadata(
    input_path: PathLike,
    output_path: PathLike,
    options: StripOptions,
    tool: Optional[MetadataTool] = None,
    *,
    progress_callback: ProgressCallback = None,
) -> ProcessingResult:
    """复制文件到输出位置后清除其全部元数据，支持单文件与目录。

    未传入 ``tool`` 时在本次调用内打开并关闭一个元数据工具。
    """

    with _scoped_tool(tool) as active:
        operation = BatchOperation(
            verb="processing",
            extensions=MEDIA_EXTENSIONS,
            batch_size=METADATA_BATCH_SIZE,
            process_file=partial(strip_file, tool=active, verbose=options.verbose),
        )
        return run_operation(
            input_path,
            output_path,
            operation,
            recursive=options.recursive,
            progress_callback=progress_callback,
        )


def strip_file(
    input_path: Path,
    output_path: Path,
    tool: MetadataTool,
    verbose: bool = False,
) -> Optional[dict[str, list[str]]]:
    """清除单个文件的元数据；``verbose`` 时返回按分组整理的被移除标签。"""

    output_path.parent.mkdir(parents=True, exist_ok=True)
    if input_path.resolve() != output_path.resolve():
        shutil.copyfile(input_path, output_path)

    before: dict[str, Any] = {}
    if verbose:
        try:
            before = tool.read(input_path)
        except ExternalToolFailureError as exc:
            LOGGER.warning("无法读取原始元数据 %s: %s", input_path, exc)

    tool.strip(output_path)

    if not verbose:
        return None

    try:
        after = tool.read(output_path)
    except ExternalToolFailureError as exc:
        LOGGER.warning("无法校验元数据清除结果 %s: %s", output_path, exc)
        return None

    removed = summarize_removed_tags(before, after)
    for line in format_removed_tags(input_path.name, removed):
        LOGGER.info(line)
    return removed


def summarize_removed_tags(before: Mapping[str, Any], after: Mapping[str, Any]) -> dict[str, list[str]]:
    """比较清除前后的标签，把被移除的标签按 EXIF / GPS / XMP / IPTC / ICC / Other 分组。"""

    groups: dict[str, list[str]] = {name: [] for name in TAG_GROUPS}
    for key in before:
        if key not in after:
            groups[_classify_tag(key)].append(key)
    return groups


def format_removed_tags(file_name: str, groups: Mapping[str, list[str]]) -> list[str]:
    total = sum(len(tags) for tags in groups.values())
    if total == 0:
        return [f"{file_name} - No metadata was found to strip"]

    lines = [f"{file_name} - Stripped {total} metadata fields:"]
    for name in TAG_GROUPS:
        tags = groups.get(name) or []
        if not tags:
            continue
        if name in _TRUNCATED_GROUPS and len(tags) > _PREVIEW_LIMIT:
            preview = ", ".join(tags[:_PREVIEW_LIMIT]) + "..."
        else:
            preview = ", ".join(tags)
        lines.append(f"  {name} ({len(tags)}): {preview}")
    return lines


def inspect_metadata(
    input_path: PathLike,
    options: InspectOptions,
    tool: Optional[MetadataTool] = None,
) -> list[MetadataReport]:
    """只读地查看元数据；目录输入按文件依次读取，报告中附带相对路径。"""

    source = resolve_input(input_path)
    with _scoped_tool(tool) as active:
        if source.is_file():
            return [MetadataReport(path=source, tags=active.read(source))]
        if not source.is_dir():
            raise InvalidInputKindError(source)

        files = collect_files(source, MEDIA_EXTENSIONS, options.recursive)
        LOGGER.info("发现 %d 个候选文件", len(files))
        return [
            MetadataReport(path=path, tags=active.read(path), relative_path=path.relative_to(source))
            for path in files
        ]


@contextmanager
def _scoped_tool(tool: Optional[MetadataTool]) -> Iterator[MetadataTool]:
    if tool is not None:
        yield tool
        return
    with open_metadata_tool() as scoped:
        yield scoped


def _classify_tag(key: str) -> str:
    if _tag_name(key).startswith("GPS"):
        return "GPS"
    for prefix in ("EXIF", "XMP", "IPTC", "ICC"):
        if key.startswith(prefix):
            return prefix
    return "Other"


def _tag_name(key: str) -> str:
    return key.rsplit(":", 1)[-1]


def _find_tag(tags: Mapping[str, Any], name: str) -> Any:
    if name in tags:
        return tags[name]
    for key, value in tags.items():
        if _tag_name(key) == name:
            return value
    return None


def _terminate(helper: ExifToolHelper) -> None:
    try:
        helper.terminate()
    except ExifToolException as exc:
        LOGGER.debug("关闭 exiftool 进程失败：%s", exc)

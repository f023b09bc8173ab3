"""批处理编排：扫描、按批并发执行、镜像输出目录并汇总结果。"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path
from typing import Collection, Iterator, Optional, Sequence, TypeVar, Union

from media_toolkit.core.exceptions import InputNotFoundError, InvalidInputKindError
from media_toolkit.core.models import BatchTask, FileOutcome, ProcessingResult
from media_toolkit.core.progress import ProgressCallback, emit_progress
from media_toolkit.core.scanner import collect_batch_tasks
from media_toolkit.processing.worker import FileOperation, format_error, run_task

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

PathLike = Union[str, Path]


@dataclass(frozen=True, slots=True)
class BatchOperation:
    """描述一次批处理：单文件操作、扩展名白名单与每批并发数。"""

    verb: str
    extensions: Collection[str]
    batch_size: int
    process_file: FileOperation
    output_suffix: Optional[str] = None

    def __post_init__(self) -> None:
        if self.batch_size < 1:
            raise ValueError("batch_size 必须大于 0")


def resolve_input(path: PathLike) -> Path:
    """展开并解析输入路径，不存在时抛出 ``InputNotFoundError``。"""

    resolved = Path(path).expanduser().resolve()
    if not resolved.exists():
        raise InputNotFoundError(resolved)
    return resolved


def run_operation(
    input_path: PathLike,
    output_path: PathLike,
    operation: BatchOperation,
    *,
    recursive: bool = False,
    progress_callback: ProgressCallback = None,
) -> ProcessingResult:
    """按输入类型分派：文件直接处理（错误向上抛出），目录交给 ``run_batch``。"""

    source = resolve_input(input_path)
    destination = Path(output_path).expanduser().resolve()

    if source.is_file():
        destination.parent.mkdir(parents=True, exist_ok=True)
        operation.process_file(source, destination)
        return ProcessingResult.single()
    if source.is_dir():
        return run_batch(
            source,
            destination,
            operation,
            recursive=recursive,
            progress_callback=progress_callback,
        )
    raise InvalidInputKindError(source)


def run_batch(
    input_dir: Path,
    output_dir: Path,
    operation: BatchOperation,
    *,
    recursive: bool = False,
    progress_callback: ProgressCallback = None,
) -> ProcessingResult:
    """批量处理入口。

    文件按 ``operation.batch_size`` 分组；同一批内并发执行，整批全部结束后才提交下一批，
    因此同时运行的任务数不超过批大小。单个文件失败只记录错误，不影响其他文件。
    没有匹配文件时直接返回空结果，不创建输出目录。
    """

    LOGGER.info("开始扫描输入目录 %s", input_dir)
    tasks = collect_batch_tasks(
        input_dir,
        output_dir,
        operation.extensions,
        recursive,
        output_suffix=operation.output_suffix,
    )
    total = len(tasks)
    LOGGER.info("发现 %d 个候选文件", total)

    if total == 0:
        emit_progress(progress_callback, completed=0, total=0, message="No supported files found", status="done")
        return ProcessingResult.empty()

    output_dir.mkdir(parents=True, exist_ok=True)

    outcomes: list[FileOutcome] = []
    completed = 0
    errors = 0
    emit_progress(progress_callback, completed, total, message=f"Found {total} files")

    with ThreadPoolExecutor(max_workers=operation.batch_size, thread_name_prefix="batch") as executor:
        for batch in chunked(tasks, operation.batch_size):
            future_map = {
                executor.submit(run_task, task, operation.process_file, operation.verb): task for task in batch
            }
            # as_completed 在整批结束前不会返回，下一批因此不会提前启动。
            for future in as_completed(future_map):
                outcome = _collect(future, future_map[future], operation.verb)
                outcomes.append(outcome)
                completed += 1
                if not outcome.succeeded:
                    errors += 1
                emit_progress(
                    progress_callback,
                    completed,
                    total,
                    errors=errors,
                    message=f"{outcome.status} {outcome.source_path.name}",
                )

    result = ProcessingResult.from_outcomes(outcomes)
    LOGGER.info("处理完成：成功 %d 个，失败 %d 个", result.processed, result.errors)
    emit_progress(progress_callback, total, total, errors=errors, message="Completed", status="done")
    return result


def chunked(items: Sequence[T], size: int) -> Iterator[Sequence[T]]:
    for start in range(0, len(items), size):
        yield items[start : start + size]


def _collect(future, task: BatchTask, verb: str) -> FileOutcome:
    try:
        return future.result()
    except Exception as exc:  # noqa: BLE001
        LOGGER.exception("任务执行异常：%s", exc)
        return FileOutcome(
            source_path=task.source_path,
            status="error",
            message=format_error(verb, task.source_path, exc),
        )

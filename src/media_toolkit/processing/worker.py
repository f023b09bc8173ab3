"""并发处理的工作单元。"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable

from media_toolkit.core.models import BatchTask, FileOutcome

LOGGER = logging.getLogger(__name__)

FileOperation = Callable[[Path, Path], object]


def run_task(task: BatchTask, process_file: FileOperation, verb: str) -> FileOutcome:
    """在工作线程中处理单个文件，任何异常都转换为失败记录而不向外抛出。"""

    try:
        task.output_path.parent.mkdir(parents=True, exist_ok=True)
        process_file(task.source_path, task.output_path)
    except Exception as exc:  # noqa: BLE001
        message = format_error(verb, task.source_path, exc)
        LOGGER.warning(message)
        return FileOutcome(source_path=task.source_path, status="error", message=message)

    return FileOutcome(source_path=task.source_path, status="processed", output_path=task.output_path)


def format_error(verb: str, path: Path, exc: BaseException) -> str:
    return f"Error {verb} {path}: {exc}"

"""命令行入口。"""

from __future__ import annotations

import logging
import signal
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

import typer
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
    TimeRemainingColumn,
)

from media_toolkit.core.config import (
    ConvertOptions,
    CropOptions,
    InspectOptions,
    ResizeOptions,
    StripOptions,
    WatermarkOptions,
    WatermarkPosition,
    parse_dimensions,
    parse_ratio,
)
from media_toolkit.core.exceptions import MediaToolkitError, ProcessingAborted
from media_toolkit.core.models import ProcessingResult
from media_toolkit.core.progress import ProgressCallback, ProgressUpdate
from media_toolkit.processing.convert import convert_image
from media_toolkit.processing.crop import crop_image
from media_toolkit.processing.metadata import inspect_metadata, open_metadata_tool, strip_metadata
from media_toolkit.processing.resize import resize_image
from media_toolkit.processing.watermark import add_watermark
from media_toolkit.utils.logging import setup_logging

app = typer.Typer(help="Image and media processing utilities: metadata, resize, crop, convert, watermark.")

LOGGER = logging.getLogger(__name__)

TEXT_COLORS = ("black", "white")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="输出调试日志"),
) -> None:
    setup_logging(logging.DEBUG if verbose else logging.WARNING)
    signal.signal(signal.SIGTERM, _abort_on_signal)


def _abort_on_signal(signum, frame) -> None:  # noqa: ARG001
    raise ProcessingAborted("Terminated")


@contextmanager
def _handle_errors() -> Iterator[None]:
    """把库异常转换为 ``Error: ...`` 输出与退出码 1；中断时正常退出。"""

    try:
        yield
    except (KeyboardInterrupt, ProcessingAborted):
        typer.secho("Interrupted. Cleaning up...", fg=typer.colors.YELLOW, err=True)
        raise typer.Exit(0)
    except (MediaToolkitError, OSError) as exc:
        LOGGER.debug("命令执行失败", exc_info=True)
        typer.secho(f"Error: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)


def _fail(message: str) -> None:
    typer.secho(f"Error: {message}", fg=typer.colors.RED, err=True)
    raise typer.Exit(1)


def _build_progress_callback(progress: Progress, description: str) -> ProgressCallback:
    task_id: Optional[int] = None

    def callback(update: ProgressUpdate) -> None:
        nonlocal task_id
        if update.total == 0:
            return
        if task_id is None:
            task_id = progress.add_task(description, total=update.total)
        progress.update(task_id, completed=update.completed)

    return callback


@contextmanager
def _progress(enabled: bool, description: str) -> Iterator[ProgressCallback]:
    if not enabled:
        yield None
        return

    progress = Progress(
        SpinnerColumn(),
        TextColumn("[bold blue]{task.description}"),
        BarColumn(),
        TimeElapsedColumn(),
        TimeRemainingColumn(),
    )
    with progress:
        yield _build_progress_callback(progress, description)


def _report(result: ProcessingResult, done: str) -> None:
    if result.processed == 0 and result.errors == 0:
        typer.secho("No supported files found", fg=typer.colors.YELLOW)
        return

    if result.success:
        typer.secho(f"{done} {result.processed} file(s) successfully", fg=typer.colors.GREEN)
    else:
        typer.secho(f"{done} {result.processed} file(s), {result.errors} error(s)", fg=typer.colors.YELLOW)
    for message in result.error_messages or ():
        typer.secho(f"  {message}", fg=typer.colors.RED, err=True)


@app.command("strip")
def strip_cli(
    input_path: Path = typer.Argument(..., help="输入文件或目录"),
    output_path: Path = typer.Argument(..., help="输出文件或目录"),
    recursive: bool = typer.Option(False, "--recursive", "-r", help="递归处理子目录"),
    progress: bool = typer.Option(False, "--progress", "-p", help="显示进度条"),
    verbose: bool = typer.Option(False, "--verbose", help="列出每个文件被移除的标签"),
) -> None:
    """清除图片、视频、音频与文档的全部元数据。"""

    if verbose:
        logging.getLogger("media_toolkit.processing.metadata").setLevel(logging.INFO)

    with _handle_errors(), open_metadata_tool() as tool, _progress(progress, "Processing files") as callback:
        result = strip_metadata(
            input_path,
            output_path,
            StripOptions(recursive=recursive, verbose=verbose),
            tool,
            progress_callback=callback,
        )
    _report(result, "Stripped metadata from")


@app.command("info")
def info_cli(
    input_path: Path = typer.Argument(..., help="输入文件或目录"),
    recursive: bool = typer.Option(False, "--recursive", "-r", help="递归处理子目录"),
) -> None:
    """只读地查看元数据。"""

    with _handle_errors(), open_metadata_tool() as tool:
        reports = inspect_metadata(input_path, InspectOptions(recursive=recursive), tool)

    if not reports:
        typer.secho("No supported files found in directory", fg=typer.colors.YELLOW)
        return

    for report in reports:
        if report.relative_path is not None:
            typer.secho(str(report.relative_path), fg=typer.colors.CYAN)
        for label, value in report.summary().items():
            typer.echo(f"  {label}: {value}")

        counts = report.group_counts
        typer.secho(f"  Total metadata fields: {counts['total']}", fg=typer.colors.YELLOW)
        for group in ("EXIF", "GPS", "XMP"):
            if counts[group]:
                typer.secho(f"  {group} fields: {counts[group]}", fg=typer.colors.YELLOW)
        typer.echo("")


@app.command("resize")
def resize_cli(
    input_path: Path = typer.Argument(..., help="输入文件或目录"),
    output_path: Path = typer.Argument(..., help="输出文件或目录"),
    width: Optional[int] = typer.Option(None, "--width", "-w", help="目标宽度"),
    height: Optional[int] = typer.Option(None, "--height", "-h", help="目标高度"),
    scale: Optional[float] = typer.Option(None, "--scale", "-s", help="缩放倍数 (0.1-10)"),
    fit: Optional[str] = typer.Option(None, "--fit", "-f", help="缩放到框内，形如 1920x1080"),
    recursive: bool = typer.Option(False, "--recursive", "-r", help="递归处理子目录"),
    progress: bool = typer.Option(False, "--progress", "-p", help="显示进度条"),
) -> None:
    """缩放图片。"""

    if width is not None and height is not None:
        _fail("Cannot specify both --width and --height. Use --fit for specific dimensions or --scale.")

    with _handle_errors():
        options = ResizeOptions(
            width=width,
            height=height,
            scale=scale,
            fit=parse_dimensions(fit) if fit else None,
            recursive=recursive,
        )
        with _progress(progress, "Resizing images") as callback:
            result = resize_image(input_path, output_path, options, progress_callback=callback)
    _report(result, "Resized")


@app.command("crop")
def crop_cli(
    input_path: Path = typer.Argument(..., help="输入文件或目录"),
    output_path: Path = typer.Argument(..., help="输出文件或目录"),
    aspect: Optional[str] = typer.Option(None, "--aspect", "-a", help="宽高比，形如 4:5"),
    dimensions: Optional[str] = typer.Option(None, "--dimensions", "-d", help="固定尺寸，形如 1080x1920"),
    position: str = typer.Option("center", "--position", "-p", help="裁剪锚点"),
    recursive: bool = typer.Option(False, "--recursive", "-r", help="递归处理子目录"),
    progress: bool = typer.Option(False, "--progress", help="显示进度条"),
) -> None:
    """按宽高比或固定尺寸裁剪图片。"""

    with _handle_errors():
        options = CropOptions(
            aspect=parse_ratio(aspect) if aspect else None,
            dimensions=parse_dimensions(dimensions) if dimensions else None,
            position=position,
            recursive=recursive,
        )
        with _progress(progress, "Cropping images") as callback:
            result = crop_image(input_path, output_path, options, progress_callback=callback)
    _report(result, "Cropped")


@app.command("convert")
def convert_cli(
    input_path: Path = typer.Argument(..., help="输入文件或目录"),
    output_path: Path = typer.Argument(..., help="输出文件或目录"),
    target_format: Optional[str] = typer.Option(None, "--format", "-f", help="目录转换的目标格式 (jpeg, png)"),
    quality: int = typer.Option(92, "--quality", "-q", help="JPEG 质量 1-100"),
    compression: int = typer.Option(6, "--compression", "-c", help="PNG 压缩级别 0-9"),
    recursive: bool = typer.Option(False, "--recursive", "-r", help="递归处理子目录"),
    progress: bool = typer.Option(False, "--progress", "-p", help="显示进度条"),
    overwrite: bool = typer.Option(False, "--overwrite", help="覆盖已存在的输出文件"),
) -> None:
    """在 JPEG 与 PNG 之间转换图片。"""

    with _handle_errors():
        options = ConvertOptions(
            format=target_format,
            quality=quality,
            compression=compression,
            overwrite=overwrite,
            recursive=recursive,
        )
        with _progress(progress, "Converting images") as callback:
            result = convert_image(input_path, output_path, options, progress_callback=callback)
    _report(result, "Converted")


@app.command("watermark")
def watermark_cli(  # noqa: PLR0913
    input_path: Path = typer.Argument(..., help="输入文件或目录"),
    output_path: Path = typer.Argument(..., help="输出文件或目录"),
    text: Optional[str] = typer.Option(None, "--text", "-t", help="文本水印"),
    image: Optional[Path] = typer.Option(None, "--image", "-i", help="图片水印路径"),
    position: str = typer.Option("bottom-right", "--position", "-p", help="水印位置"),
    opacity: float = typer.Option(1.0, "--opacity", "-o", help="水印透明度 (0-1)"),
    size: float = typer.Option(5.0, "--size", "-s", help="水印大小，占图片的百分比 (1-100)"),
    padding_x: Optional[str] = typer.Option(None, "--padding-x", help="水平边距（像素或百分比，如 10%）"),
    padding_y: Optional[str] = typer.Option(None, "--padding-y", help="垂直边距（像素或百分比，如 10%）"),
    text_color: str = typer.Option("white", "--text-color", help="文字颜色 black 或 white"),
    recursive: bool = typer.Option(False, "--recursive", "-r", help="递归处理子目录"),
    progress: bool = typer.Option(False, "--progress", help="显示进度条"),
) -> None:
    """为图片添加文本或图片水印。"""

    centered = WatermarkPosition.parse(position) is WatermarkPosition.CENTER
    if centered and (padding_x is not None or padding_y is not None):
        _fail("Center position does not support padding options")
    if text_color.lower() not in TEXT_COLORS:
        _fail('Text color must be either "black" or "white"')

    with _handle_errors():
        options = WatermarkOptions.from_inputs(
            text=text,
            image=image,
            text_color=text_color,
            position=position,
            opacity=opacity,
            size=size,
            padding_x=padding_x,
            padding_y=padding_y,
            recursive=recursive,
        )
        with _progress(progress, "Adding watermarks") as callback:
            result = add_watermark(input_path, output_path, options, progress_callback=callback)
    _report(result, "Watermarked")


if __name__ == "__main__":
    app()

"""命令行入口。"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
    TimeRemainingColumn,
)

from climageproc.core.config import (
    DEFAULT_QUALITY,
    ConvertOperation,
    JobConfig,
    Operation,
    ResizeOperation,
    TransformOptions,
)
from climageproc.core.exceptions import InvalidPathError, UnsupportedFormatError
from climageproc.core.formats import CHOICES, ImageFormat
from climageproc.core.models import BatchResult
from climageproc.core.progress import ProgressUpdate
from climageproc.processing.pipeline import process_job
from climageproc.utils.logging import setup_logging

app = typer.Typer(help="批量缩放图片并在 JPEG / PNG / GIF / WebP 之间转换格式。", add_completion=False)

EXIT_OK = 0
EXIT_FAILURES = 1
EXIT_USAGE = 2


def _parse_format(value: str) -> ImageFormat:
    try:
        return ImageFormat.parse(value)
    except UnsupportedFormatError as exc:
        raise typer.BadParameter(str(exc), param_hint="'-f' / '--format'") from exc


def _build_progress_callback(progress: Progress):
    task_id: Optional[int] = None

    def callback(update: ProgressUpdate) -> None:
        nonlocal task_id
        if update.total == 0:
            return
        if task_id is None:
            task_id = progress.add_task("处理图片", total=update.total)
        progress.update(task_id, completed=update.completed)

    return callback


def _run(
    input_path: Path,
    output_path: Path,
    operation: Operation,
    *,
    workers: Optional[int],
    recursive: bool,
    quality: int,
    auto_orient: bool,
    report: Optional[Path],
    verbose: bool,
) -> None:
    setup_logging(logging.DEBUG if verbose else logging.INFO)
    logging.getLogger(__name__).debug("CLI 参数解析完成")

    job = JobConfig(
        input_path=input_path.expanduser().resolve(),
        output_path=output_path.expanduser().resolve(),
        operation=operation,
        options=TransformOptions(quality=quality, auto_orient=auto_orient),
        recursive=recursive,
        max_workers=workers,
        report_path=report.expanduser().resolve() if report else None,
    )

    progress = Progress(
        SpinnerColumn(),
        TextColumn("[bold blue]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TimeElapsedColumn(),
        TimeRemainingColumn(),
        refresh_per_second=5,
    )

    try:
        with progress:
            result = process_job(job, progress_callback=_build_progress_callback(progress))
    except InvalidPathError as exc:
        typer.echo(f"错误：{exc}", err=True)
        raise typer.Exit(code=EXIT_USAGE) from exc

    _print_summary(result)
    if job.report_path is not None:
        typer.echo(f"报告文件：{job.report_path}")
    if result.failed_count:
        raise typer.Exit(code=EXIT_FAILURES)


def _print_summary(result: BatchResult) -> None:
    typer.echo(
        f"Processed {result.total} files: {result.succeeded_count} succeeded, {result.failed_count} failed"
    )
    for path, reason in result.failed_items:
        typer.echo(f"  {path}: {reason}", err=True)


@app.command("resize")
def resize_cli(  # noqa: PLR0913
    input_path: Path = typer.Option(..., "--input", "-i", help="输入图片文件或目录"),
    output_path: Path = typer.Option(..., "--output", "-o", help="输出文件或目录（目录不存在时自动创建）"),
    width: Optional[int] = typer.Option(None, "--width", "-w", min=1, help="目标宽度（像素）"),
    height: Optional[int] = typer.Option(None, "--height", "-h", min=1, help="目标高度（像素）"),
    workers: Optional[int] = typer.Option(None, "--workers", "-j", min=1, help="并发进程数量，默认等于 CPU 核数"),
    recursive: bool = typer.Option(False, "--recursive/--no-recursive", help="是否递归扫描子目录"),
    quality: int = typer.Option(DEFAULT_QUALITY, "--quality", "-q", min=1, max=100, help="JPEG / WebP 编码质量"),
    auto_orient: bool = typer.Option(False, "--auto-orient", help="按 EXIF 方向信息旋转图片"),
    report: Optional[Path] = typer.Option(None, "--report", help="将每个文件的处理结果写入 CSV"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="输出调试日志"),
) -> None:
    """缩放图片；只指定宽或高时保持原图宽高比。"""

    if width is None and height is None:
        raise typer.BadParameter("至少需要指定 --width 或 --height 之一", param_hint="'-w' / '-h'")

    _run(
        input_path,
        output_path,
        ResizeOperation(width=width, height=height),
        workers=workers,
        recursive=recursive,
        quality=quality,
        auto_orient=auto_orient,
        report=report,
        verbose=verbose,
    )


@app.command("convert")
def convert_cli(  # noqa: PLR0913
    input_path: Path = typer.Option(..., "--input", "-i", help="输入图片文件或目录"),
    output_path: Path = typer.Option(..., "--output", "-o", help="输出文件或目录（目录不存在时自动创建）"),
    image_format: str = typer.Option(..., "--format", "-f", help=f"目标格式：{' / '.join(CHOICES)}"),
    workers: Optional[int] = typer.Option(None, "--workers", "-j", min=1, help="并发进程数量，默认等于 CPU 核数"),
    recursive: bool = typer.Option(False, "--recursive/--no-recursive", help="是否递归扫描子目录"),
    quality: int = typer.Option(DEFAULT_QUALITY, "--quality", "-q", min=1, max=100, help="JPEG / WebP 编码质量"),
    auto_orient: bool = typer.Option(False, "--auto-orient", help="按 EXIF 方向信息旋转图片"),
    report: Optional[Path] = typer.Option(None, "--report", help="将每个文件的处理结果写入 CSV"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="输出调试日志"),
) -> None:
    """转换图片格式，像素数据保持不变。"""

    target_format = _parse_format(image_format)

    _run(
        input_path,
        output_path,
        ConvertOperation(target_format=target_format),
        workers=workers,
        recursive=recursive,
        quality=quality,
        auto_orient=auto_orient,
        report=report,
        verbose=verbose,
    )


if __name__ == "__main__":
    app()

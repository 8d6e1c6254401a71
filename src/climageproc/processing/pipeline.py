"""处理流水线：解析输入、并发执行转换并汇总结果。"""

from __future__ import annotations

import logging
import os
from concurrent.futures import ProcessPoolExecutor, as_completed
from concurrent.futures.process import BrokenProcessPool
from typing import Callable, Optional, Sequence

from climageproc.core.config import JobConfig
from climageproc.core.models import BatchResult, FileOutcome, WorkItem
from climageproc.core.progress import ProgressCallback, ProgressUpdate
from climageproc.core.report import write_csv_report
from climageproc.core.scanner import resolve_work_items
from climageproc.processing.worker import transform

LOGGER = logging.getLogger(__name__)


def process_job(config: JobConfig, progress_callback: ProgressCallback = None) -> BatchResult:
    """批量处理入口：解析输入路径、并发处理并按需写出报告。

    输入路径不存在时抛出 ``InvalidPathError``，此时不会处理任何文件。
    """

    LOGGER.info("开始解析输入路径 %s", config.input_path)
    items = resolve_work_items(
        config.input_path,
        config.output_path,
        config.operation,
        recursive=config.recursive,
        options=config.options,
    )
    result = run_batch(items, config.max_workers, progress_callback)

    if config.report_path is not None:
        _write_report(config, result)
    return result


def run_batch(
    items: Sequence[WorkItem],
    parallelism: Optional[int] = None,
    progress_callback: ProgressCallback = None,
) -> BatchResult:
    """把任务分发到进程池并汇总每个文件的结果。

    单个任务失败只会记录在结果中，不影响其他任务。结果只在主进程中累加。
    """

    total = len(items)
    result = BatchResult(total=total)

    if total == 0:
        _emit_progress(progress_callback, completed=0, total=0, message="没有需要处理的图片", status="done")
        return result

    workers = parallelism if parallelism is not None else (os.cpu_count() or 1)
    workers = max(1, min(workers, total))
    LOGGER.info("共 %d 个任务，使用 %d 个工作进程", total, workers)
    _emit_progress(progress_callback, 0, total, "开始执行处理任务")

    completed = 0

    def record(outcome: FileOutcome) -> None:
        nonlocal completed
        result.record(outcome)
        completed += 1
        _emit_progress(progress_callback, completed, total, _describe(outcome))

    if workers <= 1:
        for item in items:
            record(_run_in_process(item))
    else:
        suspects = _run_in_pool(items, workers, record)
        if suspects:
            LOGGER.warning("工作进程异常退出，逐个重新执行 %d 个未完成的任务", len(suspects))
            _run_isolated(suspects, record)

    LOGGER.info("处理完成：成功 %d，失败 %d", result.succeeded_count, result.failed_count)
    _emit_progress(progress_callback, total, total, "处理完成", status="done")
    return result


def _run_in_pool(
    items: Sequence[WorkItem],
    workers: int,
    record: Callable[[FileOutcome], None],
) -> list[WorkItem]:
    """并发执行任务，返回因进程池崩溃而没有结果的任务（保持原始顺序）。"""

    broken: set[int] = set()
    with ProcessPoolExecutor(max_workers=workers) as executor:
        future_map = {}
        for idx, item in enumerate(items):
            try:
                future_map[executor.submit(transform, item)] = idx
            except BrokenProcessPool:
                broken.update(range(idx, len(items)))
                break
        for future in as_completed(future_map):
            idx = future_map[future]
            item = items[idx]
            try:
                outcome = future.result()
            except BrokenProcessPool:
                broken.add(idx)
                continue
            except Exception as exc:  # noqa: BLE001
                LOGGER.exception("任务执行异常：%s", item.source_path)
                outcome = _worker_failure(item, exc)
            record(outcome)
    return [items[idx] for idx in sorted(broken)]


def _run_isolated(items: Sequence[WorkItem], record: Callable[[FileOutcome], None]) -> None:
    """在单进程池中按顺序执行，进程崩溃时只记在当时正在执行的任务上。

    每次崩溃恰好消耗一个任务，因此循环次数不超过任务数。
    """

    pending = list(items)
    while pending:
        crashed_at: Optional[int] = None
        with ProcessPoolExecutor(max_workers=1) as executor:
            futures = []
            for item in pending:
                try:
                    futures.append(executor.submit(transform, item))
                except BrokenProcessPool:
                    break
            for idx, (item, future) in enumerate(zip(pending, futures)):
                try:
                    outcome = future.result()
                except BrokenProcessPool as exc:
                    LOGGER.error("工作进程在处理 %s 时退出", item.source_path)
                    record(_worker_failure(item, exc))
                    crashed_at = idx
                    break
                except Exception as exc:  # noqa: BLE001
                    LOGGER.exception("任务执行异常：%s", item.source_path)
                    outcome = _worker_failure(item, exc)
                record(outcome)
        pending = pending[len(futures) :] if crashed_at is None else pending[crashed_at + 1 :]


def _run_in_process(item: WorkItem) -> FileOutcome:
    try:
        return transform(item)
    except Exception as exc:  # noqa: BLE001
        LOGGER.exception("任务执行异常：%s", item.source_path)
        return _worker_failure(item, exc)


def _worker_failure(item: WorkItem, exc: BaseException) -> FileOutcome:
    return FileOutcome(
        source_path=item.source_path,
        status="error-worker",
        message=f"{type(exc).__name__}: {exc}",
    )


def _describe(outcome: FileOutcome) -> str:
    verb = "完成" if outcome.ok else "失败"
    return f"{verb} {outcome.source_path.name}"


def _emit_progress(
    callback: ProgressCallback,
    completed: int,
    total: int,
    message: Optional[str] = None,
    status: str = "running",
) -> None:
    if not callback:
        return
    callback(ProgressUpdate(total=total, completed=completed, message=message, status=status))


def _write_report(config: JobConfig, result: BatchResult) -> None:
    assert config.report_path is not None
    try:
        path = write_csv_report(result.all_outcomes(), config.report_path)
    except OSError as exc:
        LOGGER.error("写入报告失败：%s", exc)
    else:
        LOGGER.info("报告已写入 %s", path)

"""核心数据模型定义。"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from climageproc.core.config import Operation, TransformOptions


@dataclass(slots=True, frozen=True)
class WorkItem:
    """扫描阶段生成的单个处理任务，创建后不可变。"""

    source_path: Path
    destination_path: Path
    operation: Operation
    options: TransformOptions = field(default_factory=TransformOptions)


@dataclass(slots=True)
class FileOutcome:
    """记录单个文件的处理结果（用于汇总/报告）。"""

    source_path: Path
    status: str
    output_path: Optional[Path] = None
    message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == "processed"


@dataclass(slots=True)
class BatchResult:
    """批处理的汇总结果。

    ``failed`` 按任务完成的先后排列；并发执行时顺序不固定。
    """

    total: int = 0
    succeeded: list[FileOutcome] = field(default_factory=list)
    failed: list[FileOutcome] = field(default_factory=list)

    @property
    def succeeded_count(self) -> int:
        return len(self.succeeded)

    @property
    def failed_count(self) -> int:
        return len(self.failed)

    @property
    def failed_items(self) -> list[tuple[Path, str]]:
        return [(outcome.source_path, outcome.message or outcome.status) for outcome in self.failed]

    def record(self, outcome: FileOutcome) -> None:
        if outcome.ok:
            self.succeeded.append(outcome)
        else:
            self.failed.append(outcome)

    def all_outcomes(self) -> list[FileOutcome]:
        """返回所有结果记录，方便生成报告。"""

        return [*self.succeeded, *self.failed]

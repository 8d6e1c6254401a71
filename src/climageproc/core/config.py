"""处理任务的配置模型。"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

from climageproc.core.exceptions import UsageError
from climageproc.core.formats import ImageFormat

DEFAULT_QUALITY = 90


@dataclass(slots=True, frozen=True)
class ResizeOperation:
    """缩放参数；只给出一个维度时另一个按原图比例计算。"""

    width: Optional[int] = None
    height: Optional[int] = None

    def __post_init__(self) -> None:
        if self.width is None and self.height is None:
            raise UsageError("缩放至少需要指定宽度或高度之一")
        for name, value in (("width", self.width), ("height", self.height)):
            if value is not None and value <= 0:
                raise UsageError(f"{name} 必须为正整数: {value}")


@dataclass(slots=True, frozen=True)
class ConvertOperation:
    """格式转换参数，像素数据保持不变。"""

    target_format: ImageFormat


Operation = Union[ResizeOperation, ConvertOperation]


@dataclass(slots=True, frozen=True)
class TransformOptions:
    """编码与解码相关的通用选项。"""

    quality: int = DEFAULT_QUALITY  # JPEG / WebP
    auto_orient: bool = False

    def __post_init__(self) -> None:
        if not 1 <= self.quality <= 100:
            raise UsageError(f"quality 必须在 1~100 之间: {self.quality}")


@dataclass(slots=True)
class JobConfig:
    """单次批处理任务的配置集合。"""

    input_path: Path
    output_path: Path
    operation: Operation
    options: TransformOptions = field(default_factory=TransformOptions)
    recursive: bool = False
    max_workers: Optional[int] = None  # None 表示使用 CPU 核数
    report_path: Optional[Path] = None

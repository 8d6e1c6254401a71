"""输入路径解析：把文件或目录展开为具体的处理任务。"""

from __future__ import annotations

import logging
import os
from itertools import count
from pathlib import Path
from typing import Iterator, Optional

from climageproc.core.config import ConvertOperation, Operation, TransformOptions
from climageproc.core.exceptions import InvalidPathError
from climageproc.core.formats import IMAGE_EXTENSIONS
from climageproc.core.models import WorkItem

LOGGER = logging.getLogger(__name__)


def resolve_work_items(
    input_path: Path,
    output_path: Path,
    operation: Operation,
    *,
    recursive: bool = False,
    options: Optional[TransformOptions] = None,
) -> list[WorkItem]:
    """根据输入路径生成任务列表。

    - 输入为文件时恰好生成一个任务；输出为已存在的目录时，目标文件放入该目录，
      否则输出路径原样使用。
    - 输入为目录时只收集扩展名可识别的图片（不区分大小写），目录为空时返回空列表。
    - 同一批次内多个源文件映射到同一目标时，后者自动加序号改名。
    """

    options = options or TransformOptions()

    if not input_path.exists():
        raise InvalidPathError(f"输入路径不存在: {input_path}")

    if input_path.is_file():
        if not os.access(input_path, os.R_OK):
            raise InvalidPathError(f"输入文件不可读: {input_path}")
        if output_path.is_dir():
            destination = _rewrite_suffix(output_path / input_path.name, operation)
        else:
            destination = output_path
        return [WorkItem(input_path, destination, operation, options)]

    if not input_path.is_dir():
        raise InvalidPathError(f"输入路径既不是文件也不是目录: {input_path}")
    if not os.access(input_path, os.R_OK | os.X_OK):
        raise InvalidPathError(f"输入目录不可读: {input_path}")

    items: list[WorkItem] = []
    reserved: set[Path] = set()
    for candidate in sorted(_iter_image_files(input_path, recursive), key=lambda p: str(p).lower()):
        relative = candidate.relative_to(input_path)
        destination = _rewrite_suffix(output_path / relative, operation)
        if destination in reserved:
            renamed = _generate_renamed_path(destination, reserved)
            LOGGER.info("目标重名，%s 改写为 %s", destination.name, renamed.name)
            destination = renamed
        reserved.add(destination)
        items.append(WorkItem(candidate, destination, operation, options))

    LOGGER.info("在 %s 中发现 %d 个图片文件", input_path, len(items))
    return items


def _iter_image_files(root: Path, recursive: bool) -> Iterator[Path]:
    """遍历目录下扩展名可识别的图片文件。"""

    iterator = root.rglob("*") if recursive else root.glob("*")
    for candidate in iterator:
        if not candidate.is_file():
            continue
        if candidate.suffix.lower() not in IMAGE_EXTENSIONS:
            LOGGER.debug("跳过非图片文件: %s", candidate)
            continue
        yield candidate


def _rewrite_suffix(destination: Path, operation: Operation) -> Path:
    if isinstance(operation, ConvertOperation):
        return destination.with_suffix(operation.target_format.extension)
    return destination


def _generate_renamed_path(destination: Path, reserved: set[Path]) -> Path:
    """为批次内冲突的目标生成新的文件名。"""

    stem = destination.stem
    suffix = destination.suffix

    for idx in count(1):
        candidate = destination.with_name(f"{stem}_{idx}{suffix}")
        if candidate not in reserved:
            return candidate

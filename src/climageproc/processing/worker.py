"""并发处理的工作单元。"""

from __future__ import annotations

import logging
from typing import Optional

from PIL import Image

from climageproc.core.config import ConvertOperation, ResizeOperation
from climageproc.core.exceptions import TransformError
from climageproc.core.formats import ImageFormat
from climageproc.core.models import FileOutcome, WorkItem
from climageproc.core.output_manager import ImageEncodeError, save_image
from climageproc.processing.image_loader import load_image
from climageproc.processing.resize import compute_target_size, resize_image

LOGGER = logging.getLogger(__name__)


def transform(item: WorkItem) -> FileOutcome:
    """在工作进程中执行 解码 -> 缩放/转换 -> 编码写入 的完整流程。

    单个文件的错误都转换为失败记录返回，不会向上抛出。
    """

    image: Optional[Image.Image] = None
    processed: Optional[Image.Image] = None

    try:
        image, source_format = load_image(item.source_path, auto_orient=item.options.auto_orient)
        target_format = _select_format(item, source_format)

        if isinstance(item.operation, ResizeOperation):
            target_size = compute_target_size(image.size, item.operation.width, item.operation.height)
            processed = resize_image(image, target_size)
            note = f"{image.width}x{image.height} -> {target_size[0]}x{target_size[1]}"
        else:
            processed = image
            note = f"{source_format.value if source_format else '?'} -> {target_format.value}"

        save_image(processed, item.destination_path, target_format, quality=item.options.quality)
    except TransformError as exc:
        LOGGER.warning("处理失败 %s: %s", item.source_path, exc)
        return FileOutcome(
            source_path=item.source_path,
            status=exc.status,
            message=str(exc),
        )
    finally:
        _close_if_needed(image, processed)

    return FileOutcome(
        source_path=item.source_path,
        status="processed",
        output_path=item.destination_path,
        message=note,
    )


def _select_format(item: WorkItem, source_format: Optional[ImageFormat]) -> ImageFormat:
    """转换时使用目标格式；缩放时按目标扩展名，其次沿用源格式。"""

    if isinstance(item.operation, ConvertOperation):
        return item.operation.target_format

    target_format = ImageFormat.from_path(item.destination_path) or source_format
    if target_format is None:
        raise ImageEncodeError(f"无法确定输出格式: {item.destination_path}")
    return target_format


def _close_if_needed(*images: Optional[Image.Image]) -> None:
    seen: set[int] = set()
    for img in images:
        if img is not None and id(img) not in seen:
            seen.add(id(img))
            img.close()

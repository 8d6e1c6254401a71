"""尺寸计算与缩放。"""

from __future__ import annotations

import logging
import math
from typing import Optional

from PIL import Image

from climageproc.core.exceptions import UsageError

LOGGER = logging.getLogger(__name__)

_RESAMPLING = getattr(Image, "Resampling", Image)


def compute_target_size(
    size: tuple[int, int],
    width: Optional[int] = None,
    height: Optional[int] = None,
) -> tuple[int, int]:
    """根据请求的宽高计算目标尺寸。

    两者都给出时原样使用；只给出一个时另一个按原图宽高比计算，
    四舍五入到最近的整数且不小于 1。
    """

    src_w, src_h = size
    if src_w <= 0 or src_h <= 0:
        raise ValueError(f"源图尺寸无效: {size}")

    if width is not None and height is not None:
        return width, height
    if width is not None:
        return width, max(1, _round_half_up(width * src_h / src_w))
    if height is not None:
        return max(1, _round_half_up(height * src_w / src_h)), height
    raise UsageError("缩放至少需要指定宽度或高度之一")


def resize_image(image: Image.Image, target_size: tuple[int, int]) -> Image.Image:
    """使用 Lanczos 滤波缩放，返回新的 Image 对象。"""

    if image.size == target_size:
        return image.copy()

    source = _expand_for_filtering(image)
    try:
        return source.resize(target_size, _RESAMPLING.LANCZOS)
    finally:
        if source is not image:
            source.close()


def _expand_for_filtering(image: Image.Image) -> Image.Image:
    """调色板与二值图像在缩放前展开，否则 Pillow 会退化为最近邻插值。"""

    if image.mode == "P":
        return image.convert("RGBA" if "transparency" in image.info else "RGB")
    if image.mode == "1":
        return image.convert("L")
    return image


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))

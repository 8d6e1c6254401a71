"""图片加载实现。"""

from __future__ import annotations

import logging
from pathlib import Path

from PIL import Image, ImageOps, UnidentifiedImageError

from climageproc.core.exceptions import TransformError
from climageproc.core.formats import ImageFormat

LOGGER = logging.getLogger(__name__)


class ImageDecodeError(TransformError):
    """图片无法读取或不是受支持的图片。"""

    status = "error-decode"


def load_image(path: Path, *, auto_orient: bool = False) -> tuple[Image.Image, ImageFormat | None]:
    """加载单张图片（多帧图片只取第一帧）。

    返回新的 Image 对象及其源格式，调用者负责关闭。
    """

    try:
        with Image.open(path) as img:
            img.load()
            source_format = _detect_format(img.format)

            if auto_orient:
                # EXIF Orientation 校正
                return ImageOps.exif_transpose(img), source_format

            return img.copy(), source_format
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError, Image.DecompressionBombError) as exc:
        LOGGER.debug("无法识别图像文件 %s: %s", path, exc)
        raise ImageDecodeError(f"无法加载图像: {path} ({exc})") from exc


def _detect_format(name: str | None) -> ImageFormat | None:
    if not name:
        return None
    try:
        return ImageFormat(name)
    except ValueError:
        return None

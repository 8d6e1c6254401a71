"""编码与输出写入模块。"""

from __future__ import annotations

import io
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from PIL import Image

from climageproc.core.exceptions import TransformError
from climageproc.core.formats import ImageFormat

LOGGER = logging.getLogger(__name__)

# 各编码器可直接接受的模式，其余模式需先转换
_NATIVE_MODES = {
    ImageFormat.JPEG: {"RGB", "L", "CMYK"},
    ImageFormat.PNG: {"1", "L", "LA", "P", "RGB", "RGBA", "I", "I;16"},
    ImageFormat.GIF: {"1", "L", "P", "RGB", "RGBA"},
    ImageFormat.WEBP: {"RGB", "RGBA"},
}


class ImageEncodeError(TransformError):
    """目标编码器无法表示该图像。"""

    status = "error-encode"


class ImageWriteError(TransformError):
    """输出写入失败。"""

    status = "error-write"


def encode_image(image: Image.Image, image_format: ImageFormat, *, quality: int) -> bytes:
    """按目标格式把图像编码为字节串。

    JPEG 不支持透明通道，带 Alpha 的图像会先合成到白色背景上。
    """

    prepared = _normalize_mode(image, image_format)
    save_params: dict[str, Any] = {}
    if image_format is ImageFormat.JPEG:
        save_params.update(quality=quality, optimize=True)
    elif image_format is ImageFormat.WEBP:
        save_params.update(quality=quality)
    elif image_format is ImageFormat.PNG:
        save_params.update(optimize=True)

    buffer = io.BytesIO()
    try:
        prepared.save(buffer, format=image_format.value, **save_params)
    except (OSError, ValueError, KeyError) as exc:
        raise ImageEncodeError(f"无法编码为 {image_format.value}: {exc}") from exc
    finally:
        if prepared is not image:
            prepared.close()
    return buffer.getvalue()


def write_atomic(data: bytes, destination: Path) -> None:
    """先写入同目录下的临时文件再重命名，避免留下不完整的输出。"""

    tmp_path: Path | None = None
    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=destination.parent, prefix=f".{destination.name}.", suffix=".tmp")
        tmp_path = Path(tmp_name)
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
        os.replace(tmp_path, destination)
        tmp_path = None
    except OSError as exc:
        raise ImageWriteError(f"写入文件失败: {destination} ({exc.strerror or exc})") from exc
    finally:
        # 重命名之前被中断（包括 KeyboardInterrupt）时清理临时文件
        if tmp_path is not None:
            tmp_path.unlink(missing_ok=True)


def save_image(image: Image.Image, destination: Path, image_format: ImageFormat, *, quality: int) -> None:
    """编码并原子写入到 ``destination``。"""

    data = encode_image(image, image_format, quality=quality)
    write_atomic(data, destination)
    LOGGER.debug("已写入 %s (%s, %d 字节)", destination, image_format.value, len(data))


def _normalize_mode(image: Image.Image, image_format: ImageFormat) -> Image.Image:
    if image.mode in _NATIVE_MODES[image_format]:
        return image

    if not image_format.supports_alpha:
        if _has_alpha(image):
            return _flatten_alpha(image)
        return image.convert("RGB")

    if _has_alpha(image):
        return image.convert("RGBA")
    return image.convert("RGB")


def _has_alpha(image: Image.Image) -> bool:
    return image.mode in {"RGBA", "LA", "PA"} or (image.mode == "P" and "transparency" in image.info)


def _flatten_alpha(image: Image.Image) -> Image.Image:
    """保留 Alpha 信息，通过白色背景混合生成 RGB。"""

    rgba = image.convert("RGBA")
    background = Image.new("RGB", rgba.size, (255, 255, 255))
    background.paste(rgba, mask=rgba.split()[-1])
    rgba.close()
    return background

"""支持的图片格式及其与 Pillow 编解码器的映射。"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Optional

from climageproc.core.exceptions import UnsupportedFormatError


class ImageFormat(Enum):
    """可读写的栅格格式，值为 Pillow 的格式名。"""

    JPEG = "JPEG"
    PNG = "PNG"
    GIF = "GIF"
    WEBP = "WEBP"

    @property
    def extension(self) -> str:
        return _CANONICAL_EXTENSIONS[self]

    @property
    def supports_alpha(self) -> bool:
        return self is not ImageFormat.JPEG

    @classmethod
    def parse(cls, name: str) -> "ImageFormat":
        """解析用户输入的格式名（不区分大小写，允许带点）。"""

        key = name.strip().lower()
        if not key.startswith("."):
            key = "." + key
        try:
            return _EXTENSION_TO_FORMAT[key]
        except KeyError:
            choices = ", ".join(sorted(CHOICES))
            raise UnsupportedFormatError(f"不支持的图片格式: {name}（可选: {choices}）") from None

    @classmethod
    def from_path(cls, path: Path) -> Optional["ImageFormat"]:
        return _EXTENSION_TO_FORMAT.get(path.suffix.lower())


_CANONICAL_EXTENSIONS = {
    ImageFormat.JPEG: ".jpg",
    ImageFormat.PNG: ".png",
    ImageFormat.GIF: ".gif",
    ImageFormat.WEBP: ".webp",
}

_EXTENSION_TO_FORMAT = {
    ".jpg": ImageFormat.JPEG,
    ".jpeg": ImageFormat.JPEG,
    ".png": ImageFormat.PNG,
    ".gif": ImageFormat.GIF,
    ".webp": ImageFormat.WEBP,
}

IMAGE_EXTENSIONS = frozenset(_EXTENSION_TO_FORMAT)

# 命令行 -f 参数可接受的取值
CHOICES = ("jpg", "jpeg", "png", "gif", "webp")

"""测试格式解析与输入路径解析逻辑。"""

from __future__ import annotations

from pathlib import Path

import pytest
from PIL import Image

from climageproc.core.config import ConvertOperation, ResizeOperation, TransformOptions
from climageproc.core.exceptions import InvalidPathError, UnsupportedFormatError, UsageError
from climageproc.core.formats import ImageFormat
from climageproc.core.scanner import resolve_work_items


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("jpg", ImageFormat.JPEG),
        ("JPEG", ImageFormat.JPEG),
        (".png", ImageFormat.PNG),
        ("Gif", ImageFormat.GIF),
        ("webp", ImageFormat.WEBP),
    ],
)
def test_parse_format_is_case_insensitive(name: str, expected: ImageFormat) -> None:
    assert ImageFormat.parse(name) is expected


def test_parse_unknown_format_raises_usage_error() -> None:
    with pytest.raises(UnsupportedFormatError):
        ImageFormat.parse("bmp")

    assert issubclass(UnsupportedFormatError, UsageError)


def test_format_from_path_and_extension() -> None:
    assert ImageFormat.from_path(Path("photo.JPEG")) is ImageFormat.JPEG
    assert ImageFormat.from_path(Path("notes.txt")) is None
    assert ImageFormat.JPEG.extension == ".jpg"
    assert not ImageFormat.JPEG.supports_alpha
    assert ImageFormat.WEBP.supports_alpha


def test_resize_operation_requires_a_dimension() -> None:
    with pytest.raises(UsageError):
        ResizeOperation()
    with pytest.raises(UsageError):
        ResizeOperation(width=0)


def test_missing_input_raises_invalid_path(tmp_path: Path) -> None:
    with pytest.raises(InvalidPathError):
        resolve_work_items(tmp_path / "missing", tmp_path / "out", ResizeOperation(width=10))


def test_single_file_uses_output_verbatim(tmp_path: Path) -> None:
    source = tmp_path / "a.png"
    Image.new("RGB", (10, 10)).save(source)

    items = resolve_work_items(source, tmp_path / "result.png", ResizeOperation(width=5))

    assert len(items) == 1
    assert items[0].source_path == source
    assert items[0].destination_path == tmp_path / "result.png"


def test_single_file_into_existing_directory_rewrites_extension(tmp_path: Path) -> None:
    source = tmp_path / "a.png"
    Image.new("RGB", (10, 10)).save(source)
    output = tmp_path / "out"
    output.mkdir()

    items = resolve_work_items(source, output, ConvertOperation(ImageFormat.WEBP))

    assert [item.destination_path for item in items] == [output / "a.webp"]


def test_directory_scan_filters_extensions_case_insensitively(tmp_path: Path) -> None:
    source = tmp_path / "input"
    (source / "nested").mkdir(parents=True)
    Image.new("RGB", (10, 10)).save(source / "one.PNG")
    Image.new("RGB", (10, 10)).save(source / "two.jpg")
    Image.new("RGB", (10, 10)).save(source / "nested" / "three.gif")
    (source / "notes.txt").write_text("hello")

    options = TransformOptions(quality=70)
    items = resolve_work_items(source, tmp_path / "out", ConvertOperation(ImageFormat.PNG), options=options)

    assert sorted(item.source_path.name for item in items) == ["one.PNG", "two.jpg"]
    assert sorted(item.destination_path.name for item in items) == ["one.png", "two.png"]
    assert all(item.options.quality == 70 for item in items)


def test_recursive_scan_keeps_relative_structure(tmp_path: Path) -> None:
    source = tmp_path / "input"
    (source / "nested").mkdir(parents=True)
    Image.new("RGB", (10, 10)).save(source / "top.png")
    Image.new("RGB", (10, 10)).save(source / "nested" / "deep.png")
    output = tmp_path / "out"

    items = resolve_work_items(source, output, ResizeOperation(width=5), recursive=True)

    destinations = {item.destination_path for item in items}
    assert destinations == {output / "top.png", output / "nested" / "deep.png"}


def test_empty_directory_yields_no_items(tmp_path: Path) -> None:
    source = tmp_path / "empty"
    source.mkdir()

    assert resolve_work_items(source, tmp_path / "out", ResizeOperation(width=5)) == []


def test_colliding_destinations_are_renamed(tmp_path: Path) -> None:
    source = tmp_path / "input"
    source.mkdir()
    Image.new("RGB", (10, 10)).save(source / "photo.jpg")
    Image.new("RGB", (10, 10)).save(source / "photo.png")
    output = tmp_path / "out"

    items = resolve_work_items(source, output, ConvertOperation(ImageFormat.WEBP))

    assert sorted(item.destination_path.name for item in items) == ["photo.webp", "photo_1.webp"]

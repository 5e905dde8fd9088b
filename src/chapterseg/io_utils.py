"""JSON I/O for chapter indexes, pages and extracted chapter records.

All JSON goes through orjson. Input documents may be a bare list or an
object wrapping the list under the upstream key (``Chapters`` /
``DocumentPages``) or a snake_case key (``chapters`` / ``pages``).
"""
from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import Any, cast

import orjson

from chapterseg.parsing_types import (
    ChapterIndex,
    DocumentPage,
    ExtractedChapterData,
    ExtractionReport,
)


class InputFormatError(ValueError):
    """Raised when an input JSON document does not have the expected shape."""


def load_json(path: Path) -> Any:
    """Load JSON from a file."""
    try:
        return orjson.loads(path.read_bytes())
    except orjson.JSONDecodeError as exc:
        raise InputFormatError(f"Invalid JSON in {path}: {exc}") from exc


def save_json(obj: Any, path: Path, *, pretty: bool = True) -> None:
    """Save an object as JSON, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(dump_json_bytes(obj, pretty=pretty))


def dump_json_bytes(obj: Any, *, pretty: bool = True) -> bytes:
    """Serialize to UTF-8 JSON bytes (non-ASCII kept as-is)."""
    return orjson.dumps(obj, option=orjson.OPT_INDENT_2 if pretty else 0)


def _unwrap_list(data: Any, keys: tuple[str, ...], what: str) -> list[dict[str, Any]]:
    if isinstance(data, dict):
        data_dict = cast(dict[str, Any], data)
        for key in keys:
            if key in data_dict:
                data = data_dict[key]
                break
        else:
            raise InputFormatError(
                f"{what} object must contain one of {list(keys)}, got keys {sorted(data_dict)}"
            )
    if data is None:
        return []
    if not isinstance(data, list):
        raise InputFormatError(f"{what} must be a JSON list, got {type(data).__name__}")
    items = cast(list[Any], data)
    for i, item in enumerate(items):
        if not isinstance(item, dict):
            raise InputFormatError(
                f"{what}[{i}] must be an object, got {type(item).__name__}"
            )
    return cast(list[dict[str, Any]], items)


def parse_chapter_index(data: Any) -> list[ChapterIndex]:
    """Build ChapterIndex entries from decoded JSON."""
    items = _unwrap_list(data, ("Chapters", "chapters", "Index", "index"), "Chapter index")
    try:
        return [ChapterIndex.from_dict(item) for item in items]
    except (TypeError, ValueError) as exc:
        raise InputFormatError(f"Invalid chapter index entry: {exc}") from exc


def parse_pages(data: Any) -> list[DocumentPage]:
    """Build DocumentPage entries from decoded JSON."""
    items = _unwrap_list(data, ("DocumentPages", "Pages", "pages"), "Pages")
    try:
        return [DocumentPage.from_dict(item) for item in items]
    except (TypeError, ValueError) as exc:
        raise InputFormatError(f"Invalid page entry: {exc}") from exc


def load_chapter_index(path: Path) -> list[ChapterIndex]:
    """Load a chapter index JSON file."""
    return parse_chapter_index(load_json(path))


def load_pages(path: Path) -> list[DocumentPage]:
    """Load a pages JSON file."""
    return parse_pages(load_json(path))


def chapters_to_wire(chapters: Sequence[ExtractedChapterData]) -> list[dict[str, Any]]:
    """Convert chapter records to their JSON wire dicts."""
    return [c.to_dict() for c in chapters]


def dump_chapters(chapters: Sequence[ExtractedChapterData], *, pretty: bool = True) -> bytes:
    """Serialize chapter records to wire-format JSON bytes."""
    return dump_json_bytes(chapters_to_wire(chapters), pretty=pretty)


def save_chapters(chapters: Sequence[ExtractedChapterData], path: Path) -> None:
    """Write chapter records to *path* in wire format."""
    save_json(chapters_to_wire(chapters), path)


def save_report(report: ExtractionReport, path: Path) -> None:
    """Write records plus skip details to *path*."""
    save_json(report.to_dict(), path)


def dump_report(report: ExtractionReport, *, pretty: bool = True) -> bytes:
    """Serialize records plus skip details to JSON bytes."""
    return dump_json_bytes(report.to_dict(), pretty=pretty)

"""Core types for the chapter segmentation engine.

Every layer shares these types. Span offsets are always char positions in
the single-line chapter text produced by ``normalization.to_single_line``.
All dataclasses use slots=True and are frozen.

Type hierarchy:
  Ok[T] / Err[E]          - Strict algebraic Result type
  SegmenterConfig         - Tunable constants (loaded from JSON)
  ChapterIndex            - Upstream table-of-contents entry (input)
  DocumentPage            - One page of extracted lines (input)
  SubchapterSpan          - Resolved (start, title_end, end) offsets
  ExtractedSubChapterData - Subchapter record (output)
  ExtractedChapterData    - Chapter record with its subchapters (output)
  SkipReason              - Why a chapter or subchapter was not emitted
  ChapterSkip / SubchapterSkip - Typed skip records
  ExtractionReport        - Records plus everything that was skipped
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import Any, Generic, TypeAlias, TypeVar

import orjson

# ---------------------------------------------------------------------------
# Result type
# ---------------------------------------------------------------------------

T = TypeVar("T")
E = TypeVar("E")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Success case of Result[T, E].

    Usage::

        result: Result[SubchapterSpan, SkipReason] = Ok(span)
        match result:
            case Ok(value=v): print(v.start)
            case Err(error=e): print(e)
    """
    value: T


@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    """Failure case of Result[T, E].

    Keeps the typed reason a title was dropped instead of a bare None.
    """
    error: E


Result: TypeAlias = "Ok[T] | Err[E]"


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

DEFAULT_PAGE_MARKER = "=== PÁGINA {page} ==="


@dataclass(frozen=True, slots=True)
class SegmenterConfig:
    """Tunable constants for title location and chapter text assembly."""
    page_marker_template: str = DEFAULT_PAGE_MARKER
    fuzzy_window_chars: int = 200       # width of the word-sequence window
    fuzzy_min_tail_chars: int = 50      # window stops this far from the end
    fuzzy_match_ratio: float = 0.8      # share of title words a window needs
    fuzzy_min_word_length: int = 3      # shorter title words are ignored
    title_end_padding: int = 10         # last-resort title length padding

    def __post_init__(self) -> None:
        if "{page}" not in self.page_marker_template:
            raise ValueError(
                "page_marker_template must contain a '{page}' placeholder, "
                f"got {self.page_marker_template!r}"
            )
        if self.fuzzy_window_chars <= 0:
            raise ValueError(
                f"fuzzy_window_chars must be positive, got {self.fuzzy_window_chars}"
            )
        if self.fuzzy_min_tail_chars < 0:
            raise ValueError(
                f"fuzzy_min_tail_chars must be non-negative, got {self.fuzzy_min_tail_chars}"
            )
        if not 0.0 < self.fuzzy_match_ratio <= 1.0:
            raise ValueError(
                f"fuzzy_match_ratio must be in (0, 1], got {self.fuzzy_match_ratio}"
            )
        if self.fuzzy_min_word_length < 1:
            raise ValueError(
                f"fuzzy_min_word_length must be >= 1, got {self.fuzzy_min_word_length}"
            )
        if self.title_end_padding < 0:
            raise ValueError(
                f"title_end_padding must be non-negative, got {self.title_end_padding}"
            )

    def page_marker(self, page_number: int) -> str:
        """Render the traceability marker line for a page."""
        return self.page_marker_template.replace("{page}", str(page_number))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SegmenterConfig:
        """Build a config from a plain dict; unknown keys are rejected."""
        known = set(cls.__dataclass_fields__)
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown segmenter config keys: {sorted(unknown)}")
        defaults = cls()
        return cls(
            page_marker_template=str(
                data.get("page_marker_template", defaults.page_marker_template)
            ),
            fuzzy_window_chars=int(data.get("fuzzy_window_chars", defaults.fuzzy_window_chars)),
            fuzzy_min_tail_chars=int(
                data.get("fuzzy_min_tail_chars", defaults.fuzzy_min_tail_chars)
            ),
            fuzzy_match_ratio=float(data.get("fuzzy_match_ratio", defaults.fuzzy_match_ratio)),
            fuzzy_min_word_length=int(
                data.get("fuzzy_min_word_length", defaults.fuzzy_min_word_length)
            ),
            title_end_padding=int(data.get("title_end_padding", defaults.title_end_padding)),
        )

    @classmethod
    def from_json(cls, path: Path) -> SegmenterConfig:
        """Load from a segmenter config JSON file."""
        data = orjson.loads(path.read_bytes())
        if not isinstance(data, dict):
            raise ValueError(f"Segmenter config must be a JSON object: {path}")
        return cls.from_dict(data)


DEFAULT_CONFIG = SegmenterConfig()


# ---------------------------------------------------------------------------
# Input types
# ---------------------------------------------------------------------------

def _pick(data: dict[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the first present key among wire-name aliases."""
    for key in keys:
        if key in data:
            return data[key]
    return default


@dataclass(frozen=True, slots=True)
class ChapterIndex:
    """A table-of-contents entry produced by the upstream classifier."""
    title: str
    page_from: int                      # inclusive
    page_to: int                        # inclusive
    subchapters: tuple[str, ...] = ()   # declared order drives search order

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ChapterIndex:
        """Accept upstream wire names (ChapterTitle/PageFrom/...) or snake_case."""
        subs = _pick(data, "Subchapters", "SubChapters", "subchapters", default=None) or []
        return cls(
            title=str(_pick(data, "ChapterTitle", "chapter_title", "title", default="") or ""),
            page_from=int(_pick(data, "PageFrom", "page_from", default=0)),
            page_to=int(_pick(data, "PageTo", "page_to", default=0)),
            subchapters=tuple(str(s) for s in subs if s is not None),
        )


@dataclass(frozen=True, slots=True)
class DocumentPage:
    """One extracted page: its number and its lines in reading order."""
    page_number: int
    lines: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DocumentPage:
        """Accept upstream wire names (PageNumber/LinesText) or snake_case."""
        lines = _pick(data, "LinesText", "lines_text", "lines", default=None) or []
        return cls(
            page_number=int(_pick(data, "PageNumber", "page_number", default=0)),
            lines=tuple(str(line) for line in lines if line is not None),
        )


# ---------------------------------------------------------------------------
# Boundary types
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class SubchapterSpan:
    """Offsets of one subchapter inside the single-line chapter text."""
    start: int       # where the title was located
    title_end: int   # where body content begins
    end: int         # exclusive; next declared title or end of text


# ---------------------------------------------------------------------------
# Output records
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class ExtractedSubChapterData:
    """A subchapter body with its token count.

    Page range is inherited from the parent chapter.
    """
    id: str
    chapter_id: str
    title: str
    text: str
    total_tokens_sub: int
    from_page: int
    to_page: int
    total_tokens: int

    def to_dict(self) -> dict[str, Any]:
        """Convert to the JSON wire format consumed downstream."""
        return {
            "id": self.id,
            "SubChapter": self.title,
            "ChapterID": self.chapter_id,
            "totalTokens": self.total_tokens,
            "TitleSub": self.title,
            "SubChapterText": self.text,
            "TotalTokensSub": self.total_tokens_sub,
            "FromPageSub": self.from_page,
            "ToPageSub": self.to_page,
        }


@dataclass(frozen=True, slots=True)
class ExtractedChapterData:
    """A chapter's full text, token count and ordered subchapters."""
    id: str
    twin_id: str
    chapter_id: str
    chapter_title: str
    text_chapter: str
    from_page: int
    to_page: int
    total_tokens: int
    subchapters: tuple[ExtractedSubChapterData, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        """Convert to the JSON wire format consumed downstream."""
        return {
            "chapter": self.chapter_title,
            "id": self.id,
            "TwinID": self.twin_id,
            "ChapterID": self.chapter_id,
            "TextChapter": self.text_chapter,
            "FromPageChapter": self.from_page,
            "ToPageChapter": self.to_page,
            "totalTokens": self.total_tokens,
            "SubChapters": [s.to_dict() for s in self.subchapters],
        }


# ---------------------------------------------------------------------------
# Skip reporting
# ---------------------------------------------------------------------------

class SkipReason(StrEnum):
    """Why a chapter or subchapter did not make it into the output."""
    EMPTY_CHAPTER_TEXT = "empty_chapter_text"
    TITLE_NOT_FOUND = "title_not_found"
    DEGENERATE_SPAN = "degenerate_span"
    EMPTY_BODY = "empty_body"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class ChapterSkip:
    """A chapter that was dropped from the output."""
    chapter_title: str
    page_from: int
    page_to: int
    reason: SkipReason
    detail: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "chapter": self.chapter_title,
            "page_from": self.page_from,
            "page_to": self.page_to,
            "reason": str(self.reason),
            "detail": self.detail,
        }


@dataclass(frozen=True, slots=True)
class SubchapterSkip:
    """A declared subchapter title that produced no record."""
    chapter_title: str
    subchapter_title: str
    position: int        # index in the declared subchapter list
    reason: SkipReason
    detail: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "chapter": self.chapter_title,
            "subchapter": self.subchapter_title,
            "position": self.position,
            "reason": str(self.reason),
            "detail": self.detail,
        }


@dataclass(frozen=True, slots=True)
class ExtractionReport:
    """Extracted chapters plus every chapter/subchapter that was skipped."""
    chapters: list[ExtractedChapterData] = field(default_factory=list[ExtractedChapterData])
    skipped_chapters: list[ChapterSkip] = field(default_factory=list[ChapterSkip])
    skipped_subchapters: list[SubchapterSkip] = field(default_factory=list[SubchapterSkip])

    @property
    def subchapter_count(self) -> int:
        return sum(len(c.subchapters) for c in self.chapters)

    def to_dict(self) -> dict[str, Any]:
        return {
            "chapters": [c.to_dict() for c in self.chapters],
            "skipped_chapters": [s.to_dict() for s in self.skipped_chapters],
            "skipped_subchapters": [s.to_dict() for s in self.skipped_subchapters],
        }

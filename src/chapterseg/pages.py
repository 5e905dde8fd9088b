"""Chapter text assembly from extracted pages, and its inverse.

Chapter text is the concatenation of every page in the chapter's inclusive
page range, ascending, each page introduced by a marker line::

    === PÁGINA 3 ===
    first line of page 3
    ...

    === PÁGINA 4 ===
    ...

The markers keep stored chapter text traceable to source pages;
``parse_marked_pages`` turns such text back into pages.
"""
from __future__ import annotations

import re
from collections.abc import Iterable

from chapterseg.parsing_types import DEFAULT_CONFIG, DocumentPage, SegmenterConfig

# Accepts the Spanish marker written by default and the English variant.
PAGE_MARKER_RE = re.compile(r"===\s*(?:P[ÁA]GINA|PAGE)\s*(\d+)\s*===", re.IGNORECASE)


def pages_in_range(
    pages: Iterable[DocumentPage],
    page_from: int,
    page_to: int,
) -> list[DocumentPage]:
    """Pages whose number lies in ``[page_from, page_to]``, ascending."""
    selected = [p for p in pages if page_from <= p.page_number <= page_to]
    selected.sort(key=lambda p: p.page_number)
    return selected


def build_chapter_text(
    pages: Iterable[DocumentPage],
    page_from: int,
    page_to: int,
    *,
    config: SegmenterConfig = DEFAULT_CONFIG,
) -> str:
    """Concatenate a page range into marked chapter text.

    Whitespace-only lines are dropped. Returns "" when no page falls in the
    range.
    """
    parts: list[str] = []
    for page in pages_in_range(pages, page_from, page_to):
        parts.append("")
        parts.append(config.page_marker(page.page_number))
        parts.extend(line for line in page.lines if line and line.strip())
    return "\n".join(parts).strip()


def parse_marked_pages(text: str) -> list[DocumentPage]:
    """Split marker-delimited text back into pages.

    Text without any marker becomes a single page numbered 1. Text before
    the first marker is discarded. Repeated page numbers keep the last
    occurrence.
    """
    if not text or not text.strip():
        return []
    matches = list(PAGE_MARKER_RE.finditer(text))
    if not matches:
        return [DocumentPage(page_number=1, lines=_content_lines(text))]

    by_number: dict[int, DocumentPage] = {}
    for i, m in enumerate(matches):
        number = int(m.group(1))
        body_end = matches[i + 1].start() if i + 1 < len(matches) else len(text)
        body = text[m.end():body_end]
        by_number[number] = DocumentPage(page_number=number, lines=_content_lines(body))
    return [by_number[n] for n in sorted(by_number)]


def _content_lines(body: str) -> tuple[str, ...]:
    return tuple(line.strip() for line in body.splitlines() if line.strip())

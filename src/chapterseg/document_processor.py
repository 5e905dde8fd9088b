"""Chapter and subchapter extraction pipeline.

Turns an upstream table of contents plus per-page extracted lines into
ExtractedChapterData records. The single entry point is
:func:`extract_chapters_with_report`; :func:`extract_chapters` returns only
the records.

Per chapter:

    pages in range -> marked chapter text        (empty: chapter skipped)
    declared subchapters?
      yes -> single-line text, then per title:
             locate -> resolve span -> clean -> count tokens
             (any failure skips that title only)
      no  -> one synthetic subchapter = whole chapter text
    count chapter tokens, build record

A failure inside one chapter never affects the others. Nothing here does
I/O; callers own cancellation and timeouts.
"""
from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence

from chapterseg.boundary_resolver import extract_subchapter_body
from chapterseg.normalization import to_single_line
from chapterseg.pages import build_chapter_text
from chapterseg.parsing_types import (
    DEFAULT_CONFIG,
    ChapterIndex,
    ChapterSkip,
    DocumentPage,
    Err,
    ExtractedChapterData,
    ExtractedSubChapterData,
    ExtractionReport,
    Ok,
    Result,
    SegmenterConfig,
    SkipReason,
    SubchapterSkip,
)
from chapterseg.tokens import TiktokenCounter, TokenCounter

log = logging.getLogger(__name__)


def new_id() -> str:
    """Generate a record identifier."""
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Record builders
# ---------------------------------------------------------------------------


def build_subchapter_record(
    *,
    title: str,
    text: str,
    chapter_id: str,
    page_from: int,
    page_to: int,
    token_counter: TokenCounter,
) -> ExtractedSubChapterData:
    """Count tokens for a subchapter body and wrap it in a record."""
    tokens = token_counter.count_tokens(text or "")
    return ExtractedSubChapterData(
        id=new_id(),
        chapter_id=chapter_id,
        title=title or "",
        text=text or "",
        total_tokens_sub=tokens,
        from_page=page_from,
        to_page=page_to,
        total_tokens=tokens,
    )


# ---------------------------------------------------------------------------
# Per-item steps
# ---------------------------------------------------------------------------


def _extract_declared_subchapters(
    chapter: ChapterIndex,
    chapter_text: str,
    chapter_id: str,
    *,
    token_counter: TokenCounter,
    config: SegmenterConfig,
    logger: logging.Logger,
) -> tuple[list[ExtractedSubChapterData], list[SubchapterSkip]]:
    """Resolve every declared subchapter; failures skip only that title."""
    single_line = to_single_line(chapter_text)
    titles = chapter.subchapters
    records: list[ExtractedSubChapterData] = []
    skips: list[SubchapterSkip] = []

    for index, title in enumerate(titles):
        outcome = _extract_one_subchapter(
            single_line, titles, index, chapter, chapter_id,
            token_counter=token_counter, config=config, logger=logger,
        )
        match outcome:
            case Ok(value=record):
                records.append(record)
            case Err(error=skip):
                logger.warning(
                    "Skipping subchapter %r of chapter %r (pages %d-%d): %s%s",
                    title, chapter.title, chapter.page_from, chapter.page_to,
                    skip.reason, f" ({skip.detail})" if skip.detail else "",
                )
                skips.append(skip)
    return records, skips


def _extract_one_subchapter(
    single_line: str,
    titles: Sequence[str],
    index: int,
    chapter: ChapterIndex,
    chapter_id: str,
    *,
    token_counter: TokenCounter,
    config: SegmenterConfig,
    logger: logging.Logger,
) -> Result[ExtractedSubChapterData, SubchapterSkip]:
    title = titles[index]
    try:
        body = extract_subchapter_body(single_line, titles, index, config=config)
        if isinstance(body, Err):
            return Err(SubchapterSkip(chapter.title, title, index, body.error))
        record = build_subchapter_record(
            title=title,
            text=body.value,
            chapter_id=chapter_id,
            page_from=chapter.page_from,
            page_to=chapter.page_to,
            token_counter=token_counter,
        )
    except Exception as exc:
        logger.exception(
            "Error extracting subchapter %r of chapter %r (pages %d-%d)",
            title, chapter.title, chapter.page_from, chapter.page_to,
        )
        return Err(SubchapterSkip(chapter.title, title, index, SkipReason.ERROR, repr(exc)))
    logger.debug("Subchapter %r: %d chars", title, len(record.text))
    return Ok(record)


def extract_chapter(
    chapter: ChapterIndex,
    twin_id: str,
    pages: Sequence[DocumentPage],
    *,
    token_counter: TokenCounter,
    config: SegmenterConfig = DEFAULT_CONFIG,
    logger: logging.Logger | None = None,
) -> tuple[Result[ExtractedChapterData, ChapterSkip], list[SubchapterSkip]]:
    """Extract one chapter and its subchapters.

    Returns:
        (result, subchapter_skips) where result is Ok(record) or
        Err(ChapterSkip). Subchapter skips are reported even when the chapter
        itself succeeds.
    """
    logger = logger or log
    try:
        chapter_text = build_chapter_text(
            pages, chapter.page_from, chapter.page_to, config=config,
        )
        if not chapter_text:
            return Err(ChapterSkip(
                chapter.title, chapter.page_from, chapter.page_to,
                SkipReason.EMPTY_CHAPTER_TEXT,
            )), []

        chapter_id = new_id()
        sub_skips: list[SubchapterSkip] = []
        if chapter.subchapters:
            logger.info(
                "Processing chapter %r with %d subchapters",
                chapter.title, len(chapter.subchapters),
            )
            subchapters, sub_skips = _extract_declared_subchapters(
                chapter, chapter_text, chapter_id,
                token_counter=token_counter, config=config, logger=logger,
            )
        else:
            logger.info("Processing chapter %r without subchapters", chapter.title)
            subchapters = [build_subchapter_record(
                title=chapter.title,
                text=chapter_text,
                chapter_id=chapter_id,
                page_from=chapter.page_from,
                page_to=chapter.page_to,
                token_counter=token_counter,
            )]

        record = ExtractedChapterData(
            id=new_id(),
            twin_id=twin_id,
            chapter_id=chapter_id,
            chapter_title=chapter.title or "",
            text_chapter=chapter_text,
            from_page=chapter.page_from,
            to_page=chapter.page_to,
            total_tokens=token_counter.count_tokens(chapter_text),
            subchapters=tuple(subchapters),
        )
    except Exception as exc:
        logger.exception(
            "Error processing chapter %r (pages %d-%d)",
            chapter.title, chapter.page_from, chapter.page_to,
        )
        return Err(ChapterSkip(
            chapter.title, chapter.page_from, chapter.page_to,
            SkipReason.ERROR, repr(exc),
        )), []

    logger.info(
        "Chapter %r processed with %d subchapter(s)",
        chapter.title, len(record.subchapters),
    )
    return Ok(record), sub_skips


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def extract_chapters_with_report(
    chapters: Sequence[ChapterIndex] | None,
    twin_id: str,
    pages: Sequence[DocumentPage] | None,
    *,
    token_counter: TokenCounter | None = None,
    config: SegmenterConfig | None = None,
    logger: logging.Logger | None = None,
) -> ExtractionReport:
    """Extract every chapter of *chapters* from *pages*.

    Args:
        chapters: Table-of-contents entries, in document order.
        twin_id: Owner identifier copied onto every chapter record.
        pages: Extracted pages, in any order.
        token_counter: Token counter; a TiktokenCounter when omitted.
        config: Segmenter constants; DEFAULT_CONFIG when omitted.
        logger: Logger for progress and skips; the module logger when omitted.

    Returns:
        ExtractionReport with the emitted chapters (declared order) and every
        skipped chapter and subchapter. Never raises for bad chapter data.
    """
    logger = logger or log
    report = ExtractionReport()
    if not chapters or not pages:
        return report

    config = config or DEFAULT_CONFIG
    counter = token_counter if token_counter is not None else TiktokenCounter()
    page_list = list(pages)

    for chapter in chapters:
        result, sub_skips = extract_chapter(
            chapter, twin_id, page_list,
            token_counter=counter, config=config, logger=logger,
        )
        report.skipped_subchapters.extend(sub_skips)
        match result:
            case Ok(value=record):
                report.chapters.append(record)
            case Err(error=skip):
                if skip.reason is SkipReason.EMPTY_CHAPTER_TEXT:
                    logger.warning(
                        "No text for chapter %r in pages %d-%d",
                        chapter.title, chapter.page_from, chapter.page_to,
                    )
                report.skipped_chapters.append(skip)

    logger.info(
        "Extraction completed: %d chapters with %d total subchapters",
        len(report.chapters), report.subchapter_count,
    )
    return report


def extract_chapters(
    chapters: Sequence[ChapterIndex] | None,
    twin_id: str,
    pages: Sequence[DocumentPage] | None,
    *,
    token_counter: TokenCounter | None = None,
    config: SegmenterConfig | None = None,
    logger: logging.Logger | None = None,
) -> list[ExtractedChapterData]:
    """Extracted chapter records only; see :func:`extract_chapters_with_report`."""
    return extract_chapters_with_report(
        chapters, twin_id, pages,
        token_counter=token_counter, config=config, logger=logger,
    ).chapters

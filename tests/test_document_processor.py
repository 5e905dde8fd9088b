"""Tests for chapterseg.document_processor module."""
from __future__ import annotations

import logging

import pytest

from chapterseg.document_processor import (
    build_subchapter_record,
    extract_chapter,
    extract_chapters,
    extract_chapters_with_report,
)
from chapterseg.parsing_types import (
    ChapterIndex,
    DocumentPage,
    Err,
    Ok,
    SegmenterConfig,
    SkipReason,
)
from chapterseg.tokens import WhitespaceTokenCounter

WORDS = WhitespaceTokenCounter()


class _RaisingCounter:
    """Word counter that fails on one exact text."""

    def __init__(self, poison: str) -> None:
        self.poison = poison

    def count_tokens(self, text: str) -> int:
        if text == self.poison:
            raise RuntimeError("tokenizer failure")
        return len(text.split())


class _ContainsRaisingCounter:
    """Word counter that fails on any text containing a marker."""

    def __init__(self, marker: str) -> None:
        self.marker = marker

    def count_tokens(self, text: str) -> int:
        if self.marker in text:
            raise RuntimeError("tokenizer failure")
        return len(text.split())


def _run(chapters: list[ChapterIndex], pages: list[DocumentPage], **kwargs):
    kwargs.setdefault("token_counter", WORDS)
    return extract_chapters_with_report(chapters, "twin-1", pages, **kwargs)


# ---------------------------------------------------------------------------
# Declared subchapters
# ---------------------------------------------------------------------------


class TestDeclaredSubchapters:
    def test_single_page_single_subchapter(self) -> None:
        pages = [DocumentPage(1, ("1. Introduction", "Text A. More text."))]
        chapters = [ChapterIndex("Ch1", 1, 1, ("1. Introduction",))]
        report = _run(chapters, pages)

        assert len(report.chapters) == 1
        chapter = report.chapters[0]
        assert chapter.twin_id == "twin-1"
        assert chapter.chapter_title == "Ch1"
        assert chapter.text_chapter == "=== PÁGINA 1 ===\n1. Introduction\nText A. More text."
        assert chapter.total_tokens == len(chapter.text_chapter.split())

        assert len(chapter.subchapters) == 1
        sub = chapter.subchapters[0]
        assert sub.title == "1. Introduction"
        assert sub.text == "Text A.\nMore text."
        assert sub.total_tokens_sub == 4
        assert sub.total_tokens == sub.total_tokens_sub
        assert sub.chapter_id == chapter.chapter_id
        assert (sub.from_page, sub.to_page) == (1, 1)
        assert report.skipped_subchapters == []

    def test_missing_title_is_skipped(self) -> None:
        pages = [DocumentPage(1, ("Alpha Section", "Alpha body text."))]
        chapters = [ChapterIndex("Ch", 1, 1, ("Alpha Section", "Beta Section"))]
        report = _run(chapters, pages)

        subs = report.chapters[0].subchapters
        assert [s.title for s in subs] == ["Alpha Section"]
        assert subs[0].text == "Alpha body text."

        assert len(report.skipped_subchapters) == 1
        skip = report.skipped_subchapters[0]
        assert skip.subchapter_title == "Beta Section"
        assert skip.position == 1
        assert skip.reason is SkipReason.TITLE_NOT_FOUND

    def test_single_letter_title_matches_inside_page_marker(self) -> None:
        # "A" is found case-insensitively in "PÁGINA" before the heading line,
        # so the body starts inside the marker and runs to the end of the text.
        pages = [DocumentPage(1, ("A", "alpha text here."))]
        report = _run([ChapterIndex("Ch", 1, 1, ("A", "B"))], pages)

        subs = report.chapters[0].subchapters
        assert [(s.title, s.text) for s in subs] == [("A", "1 === A alpha text here.")]
        assert [(s.subchapter_title, s.reason) for s in report.skipped_subchapters] == [
            ("B", SkipReason.TITLE_NOT_FOUND),
        ]

    def test_declared_order_kept(self) -> None:
        pages = [DocumentPage(1, (
            "First Topic", "one body.",
            "Second Topic", "two body.",
            "Third Topic", "three body.",
        ))]
        titles = ("First Topic", "Missing Topic Xyz", "Third Topic", "Second Topic")
        report = _run([ChapterIndex("Ch", 1, 1, titles)], pages)

        subs = report.chapters[0].subchapters
        assert [s.title for s in subs] == ["First Topic", "Third Topic", "Second Topic"]
        assert subs[0].text == "one body."
        assert subs[1].text == "three body."
        assert [s.subchapter_title for s in report.skipped_subchapters] == [
            "Missing Topic Xyz",
        ]

    def test_subchapter_inherits_chapter_pages(self) -> None:
        pages = [
            DocumentPage(4, ("Scope Notes", "Scope body.")),
            DocumentPage(5, ("More scope body.",)),
        ]
        report = _run([ChapterIndex("Ch", 4, 5, ("Scope Notes",))], pages)
        sub = report.chapters[0].subchapters[0]
        assert (sub.from_page, sub.to_page) == (4, 5)

    def test_ids_are_unique(self) -> None:
        pages = [DocumentPage(1, ("Alpha Section", "a body.", "Beta Section", "b body."))]
        chapters = [
            ChapterIndex("One", 1, 1, ("Alpha Section", "Beta Section")),
            ChapterIndex("Two", 1, 1),
        ]
        report = _run(chapters, pages)
        ids = [c.id for c in report.chapters] + [c.chapter_id for c in report.chapters]
        ids += [s.id for c in report.chapters for s in c.subchapters]
        assert len(ids) == len(set(ids))


# ---------------------------------------------------------------------------
# Chapters without declared subchapters
# ---------------------------------------------------------------------------


class TestSyntheticSubchapter:
    def test_whole_chapter_becomes_one_subchapter(self) -> None:
        pages = [DocumentPage(1, ("Only text here.",))]
        report = _run([ChapterIndex("Preface", 1, 1)], pages)

        chapter = report.chapters[0]
        assert len(chapter.subchapters) == 1
        sub = chapter.subchapters[0]
        assert sub.title == "Preface"
        assert sub.text == chapter.text_chapter
        assert sub.total_tokens_sub == chapter.total_tokens

    def test_pages_ordered(self) -> None:
        pages = [DocumentPage(2, ("second",)), DocumentPage(1, ("first",))]
        report = _run([ChapterIndex("Ch", 1, 2)], pages)
        assert report.chapters[0].text_chapter == (
            "=== PÁGINA 1 ===\nfirst\n\n=== PÁGINA 2 ===\nsecond"
        )

    def test_custom_page_marker(self) -> None:
        config = SegmenterConfig(page_marker_template="[page {page}]")
        pages = [DocumentPage(1, ("body",))]
        report = _run([ChapterIndex("Ch", 1, 1)], pages, config=config)
        assert report.chapters[0].text_chapter == "[page 1]\nbody"


# ---------------------------------------------------------------------------
# Skips and error isolation
# ---------------------------------------------------------------------------


class TestSkips:
    def test_empty_inputs(self) -> None:
        pages = [DocumentPage(1, ("x",))]
        assert extract_chapters([], "t", pages, token_counter=WORDS) == []
        assert extract_chapters(None, "t", pages, token_counter=WORDS) == []
        assert extract_chapters([ChapterIndex("Ch", 1, 1)], "t", [], token_counter=WORDS) == []
        assert extract_chapters([ChapterIndex("Ch", 1, 1)], "t", None, token_counter=WORDS) == []

    def test_no_pages_in_range(self) -> None:
        pages = [DocumentPage(1, ("first",))]
        chapters = [ChapterIndex("Missing", 7, 9), ChapterIndex("Present", 1, 1)]
        report = _run(chapters, pages)

        assert [c.chapter_title for c in report.chapters] == ["Present"]
        assert len(report.skipped_chapters) == 1
        skip = report.skipped_chapters[0]
        assert skip.chapter_title == "Missing"
        assert skip.reason is SkipReason.EMPTY_CHAPTER_TEXT

    def test_chapter_error_is_isolated(self) -> None:
        pages = [DocumentPage(1, ("boom goes here",)), DocumentPage(2, ("calm page",))]
        chapters = [ChapterIndex("Bad", 1, 1), ChapterIndex("Good", 2, 2)]
        report = _run(chapters, pages, token_counter=_ContainsRaisingCounter("boom"))

        assert [c.chapter_title for c in report.chapters] == ["Good"]
        assert len(report.skipped_chapters) == 1
        assert report.skipped_chapters[0].reason is SkipReason.ERROR
        assert "tokenizer failure" in report.skipped_chapters[0].detail

    def test_subchapter_error_is_isolated(self) -> None:
        pages = [DocumentPage(1, ("Good Part", "good body.", "Bad Part", "bad body."))]
        chapters = [ChapterIndex("Ch", 1, 1, ("Good Part", "Bad Part"))]
        report = _run(chapters, pages, token_counter=_RaisingCounter("bad body."))

        assert len(report.chapters) == 1
        assert [s.title for s in report.chapters[0].subchapters] == ["Good Part"]
        assert report.chapters[0].subchapters[0].text == "good body."
        assert len(report.skipped_subchapters) == 1
        skip = report.skipped_subchapters[0]
        assert skip.subchapter_title == "Bad Part"
        assert skip.reason is SkipReason.ERROR

    def test_skip_is_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        logger = logging.getLogger("chapterseg.test_skip")
        pages = [DocumentPage(1, ("Alpha Section", "Alpha body text."))]
        chapters = [ChapterIndex("Ch", 1, 1, ("Alpha Section", "Beta Section"))]
        with caplog.at_level(logging.WARNING, logger="chapterseg.test_skip"):
            _run(chapters, pages, logger=logger)
        assert "Skipping subchapter 'Beta Section'" in caplog.text
        assert "title_not_found" in caplog.text


class TestExtractChapter:
    def test_returns_result_and_skips(self) -> None:
        pages = [DocumentPage(1, ("Alpha Section", "Alpha body text."))]
        chapter = ChapterIndex("Ch", 1, 1, ("Alpha Section", "Beta Section"))
        result, skips = extract_chapter(chapter, "twin", pages, token_counter=WORDS)
        assert isinstance(result, Ok)
        assert len(skips) == 1

    def test_empty_chapter(self) -> None:
        result, skips = extract_chapter(
            ChapterIndex("Ch", 3, 3), "twin", [DocumentPage(1, ("x",))],
            token_counter=WORDS,
        )
        assert isinstance(result, Err)
        assert result.error.reason is SkipReason.EMPTY_CHAPTER_TEXT
        assert skips == []


class TestBuildSubchapterRecord:
    def test_counts_tokens(self) -> None:
        record = build_subchapter_record(
            title="T", text="a b c", chapter_id="c1",
            page_from=2, page_to=3, token_counter=WORDS,
        )
        assert record.total_tokens_sub == 3
        assert record.total_tokens == 3
        assert record.chapter_id == "c1"
        assert record.id

#!/usr/bin/env python3
"""Split extracted document pages into chapter and subchapter records.

Usage:
    python3 scripts/extract_chapters.py --index index.json --pages pages.json \\
      --twin-id twin-123 --tokenizer estimate

    # Pages recovered from text carrying "=== PÁGINA N ===" markers:
    python3 scripts/extract_chapters.py --index index.json \\
      --marked-text document.txt --output chapters.json --report

Structured JSON output goes to stdout (or --output); human messages go to
stderr. Exit code 2 means the input could not be read.
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from chapterseg.document_processor import extract_chapters_with_report
from chapterseg.io_utils import (
    InputFormatError,
    dump_chapters,
    dump_report,
    load_chapter_index,
    load_pages,
    save_chapters,
    save_report,
)
from chapterseg.pages import parse_marked_pages
from chapterseg.parsing_types import (
    DEFAULT_CONFIG,
    DocumentPage,
    ExtractionReport,
    SegmenterConfig,
)
from chapterseg.tokens import TOKEN_COUNTERS, get_token_counter

log = logging.getLogger("extract_chapters")


def write_stdout(payload: bytes) -> None:
    sys.stdout.buffer.write(payload)
    sys.stdout.buffer.write(b"\n")


def load_input_pages(args: argparse.Namespace) -> list[DocumentPage]:
    """Pages from --pages JSON or from --marked-text."""
    if args.pages is not None:
        return load_pages(args.pages)
    text = args.marked_text.read_text(encoding="utf-8")
    return parse_marked_pages(text)


def run_extraction(args: argparse.Namespace) -> ExtractionReport:
    """Run the extraction described by *args*."""
    config = SegmenterConfig.from_json(args.config) if args.config else DEFAULT_CONFIG
    chapters = load_chapter_index(args.index)
    pages = load_input_pages(args)
    log.info("Loaded %d chapter(s) and %d page(s)", len(chapters), len(pages))

    report = extract_chapters_with_report(
        chapters,
        args.twin_id,
        pages,
        token_counter=get_token_counter(args.tokenizer),
        config=config,
        logger=log,
    )
    if report.skipped_chapters or report.skipped_subchapters:
        log.warning(
            "Skipped %d chapter(s) and %d subchapter(s)",
            len(report.skipped_chapters), len(report.skipped_subchapters),
        )
    return report


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Extract chapter/subchapter records from page text.",
    )
    parser.add_argument("--index", type=Path, required=True, help="Chapter index JSON")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--pages", type=Path, help="Document pages JSON")
    source.add_argument(
        "--marked-text", type=Path,
        help="Text file with '=== PÁGINA N ===' page markers",
    )
    parser.add_argument("--twin-id", default="", help="Owner id copied onto every chapter")
    parser.add_argument(
        "--tokenizer", choices=sorted(TOKEN_COUNTERS), default="tiktoken",
        help="Token counter (default: tiktoken)",
    )
    parser.add_argument("--config", type=Path, help="Segmenter config JSON")
    parser.add_argument("--output", type=Path, help="Write JSON here instead of stdout")
    parser.add_argument(
        "--report", action="store_true",
        help="Emit {chapters, skipped_chapters, skipped_subchapters}",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        report = run_extraction(args)
    except InputFormatError as exc:
        log.error("Invalid input: %s", exc)
        return 2
    except (OSError, ValueError) as exc:
        log.error("Cannot read input: %s", exc)
        return 2

    if args.output is not None:
        if args.report:
            save_report(report, args.output)
        else:
            save_chapters(report.chapters, args.output)
        print(f"Wrote {args.output}", file=sys.stderr)
    elif args.report:
        write_stdout(dump_report(report))
    else:
        write_stdout(dump_chapters(report.chapters))
    return 0


if __name__ == "__main__":
    sys.exit(main())

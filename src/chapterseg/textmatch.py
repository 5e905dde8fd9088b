"""Title location in single-line chapter text.

A declared subchapter title rarely appears verbatim in extracted text:
spacing drifts, punctuation disappears, enumerators are dropped or glued to
the heading. Five strategies are tried in order and the first hit wins:

    1. exact                 - case-insensitive substring
    2. normalized            - punctuation/whitespace-insensitive substring
    3. enumerator_stripped   - as 2, without "IV." / "3." / "B." prefixes
    4. numbered_pattern      - regex tolerating spaces around "<n>."
    5. word_window           - >= 80% of the title words inside a window

Every strategy has the same signature ``(haystack, title, *, config)`` and
returns a char offset in *haystack* or None, so each can be tested alone.
Pure text operations with zero domain dependencies.
"""
from __future__ import annotations

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeAlias

from chapterseg.normalization import (
    map_to_original,
    normalize_for_search,
    strip_leading_enumerator,
)
from chapterseg.parsing_types import DEFAULT_CONFIG, SegmenterConfig

log = logging.getLogger(__name__)

TitleStrategy: TypeAlias = Callable[..., int | None]

_NUMBERED_TITLE_RE = re.compile(r"^(\d+)\.\s*(.+)$", re.DOTALL)


@dataclass(frozen=True, slots=True)
class TitleMatch:
    """A located title: offset in the single-line text and the strategy used."""

    offset: int
    strategy: str


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def find_ignore_case(haystack: str, needle: str, start: int = 0) -> int:
    """Case-insensitive ``str.find`` that keeps offsets in *haystack* space.

    Uses a regex rather than ``lower()`` because lowercasing can change the
    length of some characters and shift every later offset.
    """
    if not needle:
        return -1
    m = re.compile(re.escape(needle), re.IGNORECASE).search(haystack, start)
    return m.start() if m else -1


def split_numbered_title(title: str) -> tuple[str, str] | None:
    """Split ``"12. Title"`` into ``("12", "Title")``, or None."""
    m = _NUMBERED_TITLE_RE.match(title.strip())
    if not m:
        return None
    rest = m.group(2).strip()
    if not rest:
        return None
    return m.group(1), rest


def numbered_title_patterns(number: str, rest: str) -> list[re.Pattern[str]]:
    """Regex variants of ``"<n>. <rest>"`` with 0-1 spaces around the dot."""
    escaped = re.escape(rest)
    return [
        re.compile(rf"(?<!\d){number}\.\s{escaped}", re.IGNORECASE),
        re.compile(rf"(?<!\d){number}\s?\.\s?{escaped}", re.IGNORECASE),
        re.compile(rf"(?<!\d){number}\.{escaped}", re.IGNORECASE),
    ]


def _normalized_search(haystack: str, needle_normalized: str) -> int | None:
    if not needle_normalized:
        return None
    normalized = normalize_for_search(haystack)
    pos = find_ignore_case(normalized, needle_normalized)
    if pos < 0:
        return None
    return map_to_original(len(haystack), len(normalized), pos)


def title_words(title: str, *, config: SegmenterConfig = DEFAULT_CONFIG) -> list[str]:
    """Lowercased search-normalized title words long enough to be distinctive."""
    return [
        w.lower()
        for w in normalize_for_search(title).split(" ")
        if len(w) >= config.fuzzy_min_word_length
    ]


def word_window_position(
    text: str,
    words: list[str],
    *,
    config: SegmenterConfig = DEFAULT_CONFIG,
) -> int:
    """First window start in *text* holding enough of *words*, or -1.

    Words may appear in any order inside the window. The last
    ``fuzzy_min_tail_chars`` positions are never used as window starts, so
    text shorter than that never matches.
    """
    if not words:
        return -1
    required = max(1.0, len(words) * config.fuzzy_match_ratio)
    text_lower = text.lower()
    last_start = len(text_lower) - config.fuzzy_min_tail_chars
    for i in range(0, last_start + 1):
        window = text_lower[i:i + config.fuzzy_window_chars]
        matched = sum(1 for w in words if w in window)
        if matched >= required:
            return i
    return -1


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------


def exact_match(
    haystack: str, title: str, *, config: SegmenterConfig = DEFAULT_CONFIG,
) -> int | None:
    """Strategy 1: case-insensitive substring of the raw title."""
    pos = find_ignore_case(haystack, title.strip())
    return pos if pos >= 0 else None


def normalized_match(
    haystack: str, title: str, *, config: SegmenterConfig = DEFAULT_CONFIG,
) -> int | None:
    """Strategy 2: substring search after search-normalizing both sides."""
    return _normalized_search(haystack, normalize_for_search(title))


def enumerator_stripped_match(
    haystack: str, title: str, *, config: SegmenterConfig = DEFAULT_CONFIG,
) -> int | None:
    """Strategy 3: strategy 2 with the leading enumerator removed."""
    normalized_title = normalize_for_search(title)
    reduced = strip_leading_enumerator(normalized_title)
    if not reduced or reduced == normalized_title:
        return None
    return _normalized_search(haystack, reduced)


def numbered_pattern_match(
    haystack: str, title: str, *, config: SegmenterConfig = DEFAULT_CONFIG,
) -> int | None:
    """Strategy 4: ``"<n>. <rest>"`` variants searched in the raw haystack."""
    parts = split_numbered_title(title)
    if parts is None:
        return None
    for pattern in numbered_title_patterns(*parts):
        m = pattern.search(haystack)
        if m:
            return m.start()
    return None


def word_window_match(
    haystack: str, title: str, *, config: SegmenterConfig = DEFAULT_CONFIG,
) -> int | None:
    """Strategy 5: sliding window over search text containing the title words."""
    words = title_words(title, config=config)
    if not words:
        return None
    normalized = normalize_for_search(haystack)
    pos = word_window_position(normalized, words, config=config)
    if pos < 0:
        return None
    return map_to_original(len(haystack), len(normalized), pos)


TITLE_STRATEGIES: tuple[tuple[str, TitleStrategy], ...] = (
    ("exact", exact_match),
    ("normalized", normalized_match),
    ("enumerator_stripped", enumerator_stripped_match),
    ("numbered_pattern", numbered_pattern_match),
    ("word_window", word_window_match),
)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def locate_title(
    haystack: str,
    title: str,
    *,
    config: SegmenterConfig = DEFAULT_CONFIG,
) -> TitleMatch | None:
    """Locate *title* in single-line *haystack* using the strategy cascade.

    Args:
        haystack: Single-line chapter text (see ``to_single_line``).
        title: Declared subchapter title.
        config: Window sizes and thresholds for the fuzzy strategy.

    Returns:
        The first successful strategy's TitleMatch, or None when all fail.
    """
    if not haystack or not title or not title.strip():
        return None
    for name, strategy in TITLE_STRATEGIES:
        offset = strategy(haystack, title, config=config)
        if offset is not None:
            log.debug("Located %r via %s at offset %d", title, name, offset)
            return TitleMatch(offset=offset, strategy=name)
    log.debug("All strategies failed for %r (text length %d)", title, len(haystack))
    return None


def find_title_offset(
    haystack: str,
    title: str,
    *,
    config: SegmenterConfig = DEFAULT_CONFIG,
) -> int | None:
    """Offset-only shorthand for :func:`locate_title`."""
    match = locate_title(haystack, title, config=config)
    return match.offset if match is not None else None

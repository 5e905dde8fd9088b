"""Deterministic text normalization for title search.

Two views of the same chapter text are used throughout the engine:

- single-line text (``to_single_line``): page lines trimmed and joined with
  one space. All span offsets live in this coordinate space.
- search text (``normalize_for_search``): single spaces and no ``.,:;``
  punctuation, so a declared title such as ``"1. Scope:"`` still matches
  ``"1 Scope"`` in the body. Offsets found here are only approximately
  mappable back (see ``map_to_original``).
"""

from __future__ import annotations

import re

_LINE_BREAK_RE = re.compile(r"[\r\n]+")
_WHITESPACE_RE = re.compile(r"\s+")
_SEARCH_PUNCT_RE = re.compile(r"[.,:;]")

# Leading enumerators, applied in this order by strip_leading_enumerator().
# Roman numerals are validated structurally so plain words ("Did", "Mild")
# are left alone; a trailing dot or whitespace is required.
_LEADING_ROMAN_RE = re.compile(
    r"^(?=[ivxlcdm])m{0,3}(?:cm|cd|d?c{0,3})(?:xc|xl|l?x{0,3})(?:ix|iv|v?i{0,3})"
    r"(?:\.\s*|\s+)",
    re.IGNORECASE,
)
_LEADING_NUMBER_RE = re.compile(r"^\d+\.?\s*")
_LEADING_LETTER_RE = re.compile(r"^[A-Za-z](?:\.\s*|\s+)")


def to_single_line(text: str | None) -> str:
    """Collapse multi-line text into one line without gluing words together.

    Each line is trimmed, blank lines are dropped, and the survivors are
    joined with a single space.
    """
    if not text:
        return ""
    lines = (line.strip() for line in _LINE_BREAK_RE.split(text))
    return " ".join(line for line in lines if line)


def normalize_for_search(text: str | None) -> str:
    """Collapse whitespace and drop ``.``, ``,``, ``:``, ``;``."""
    if not text:
        return ""
    collapsed = _WHITESPACE_RE.sub(" ", text.strip())
    return _SEARCH_PUNCT_RE.sub("", collapsed).strip()


def strip_leading_enumerator(text: str | None) -> str:
    """Remove a leading Roman numeral, number, and/or single-letter label.

    >>> strip_leading_enumerator("IV. Results")
    'Results'
    >>> strip_leading_enumerator("3 Overview")
    'Overview'
    >>> strip_leading_enumerator("B. Appendix")
    'Appendix'
    """
    if not text:
        return ""
    result = text.strip()
    result = _LEADING_ROMAN_RE.sub("", result, count=1)
    result = _LEADING_NUMBER_RE.sub("", result, count=1)
    result = _LEADING_LETTER_RE.sub("", result, count=1)
    return result.strip()


def map_to_original(original_length: int, normalized_length: int, normalized_pos: int) -> int:
    """Map an offset in search text back to single-line text by ratio.

    Normalization removes punctuation unevenly, so the result can land a few
    characters off the true boundary. Always in ``[0, original_length - 1]``.
    """
    if normalized_length <= 0 or original_length <= 0:
        return 0
    approximate = round(normalized_pos / normalized_length * original_length)
    return max(0, min(approximate, original_length - 1))


def skip_whitespace(text: str, pos: int) -> int:
    """Advance *pos* past any whitespace; returns at most ``len(text)``."""
    while pos < len(text) and text[pos].isspace():
        pos += 1
    return pos

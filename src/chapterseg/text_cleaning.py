"""Reflow extracted single-line spans back into readable text."""
from __future__ import annotations

import re

_WHITESPACE_RE = re.compile(r"\s+")
_SENTENCE_BREAK_RE = re.compile(r"([.?!]) ")
_BLANK_LINES_RE = re.compile(r"\n\s*\n")


def clean_and_format(content: str | None) -> str:
    """Restore one sentence per line in a whitespace-collapsed span.

    1. Collapse whitespace runs to a single space.
    2. Break the line after ``.``, ``?`` or ``!`` followed by a space.
    3. Collapse blank-line runs to a single line break.
    4. Trim.

    Idempotent: the output has no spaces after sentence punctuation left to
    break, and re-collapsing turns each ``"\\n"`` back into a space that is
    immediately re-broken.
    """
    if not content:
        return ""
    text = _WHITESPACE_RE.sub(" ", content)
    text = _SENTENCE_BREAK_RE.sub("\\1\n", text)
    text = _BLANK_LINES_RE.sub("\n", text)
    return text.strip()

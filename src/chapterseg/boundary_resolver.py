"""Subchapter boundary resolution inside single-line chapter text.

For the subchapter at position ``i`` of the declared list:

    start     = located offset of titles[i]
    end       = smallest located offset of any titles[j], j > i, after start
                (or the end of the text when none is found after start)
    title_end = first offset after the title text itself, past whitespace

The body is ``text[title_end:end]``. Later titles that cannot be located
are absorbed into the current body.
"""
from __future__ import annotations

import logging
from collections.abc import Sequence

from chapterseg.normalization import map_to_original, normalize_for_search, skip_whitespace
from chapterseg.parsing_types import (
    DEFAULT_CONFIG,
    Err,
    Ok,
    Result,
    SegmenterConfig,
    SkipReason,
    SubchapterSpan,
)
from chapterseg.text_cleaning import clean_and_format
from chapterseg.textmatch import (
    find_ignore_case,
    find_title_offset,
    numbered_title_patterns,
    split_numbered_title,
)

log = logging.getLogger(__name__)


def find_title_end(
    haystack: str,
    title: str,
    start: int,
    *,
    config: SegmenterConfig = DEFAULT_CONFIG,
) -> int:
    """Offset where body content begins after the title located at *start*.

    Tried in order:
      1. Normalized title found in search text; its end is mapped back by
         ratio. Ignored when the mapped end lands before *start* (the title
         also occurs earlier, e.g. in a running header).
      2. Numbered-title regex re-searched in ``haystack[start:]``.
      3. Literal case-insensitive title search from *start*.
      4. ``start + min(len(title) + padding, remaining)``.
    Steps 1-3 advance past whitespace following the title.
    """
    normalized_title = normalize_for_search(title)
    normalized_text = normalize_for_search(haystack)
    if normalized_title:
        pos = find_ignore_case(normalized_text, normalized_title)
        if pos >= 0:
            approx_end = map_to_original(
                len(haystack), len(normalized_text), pos + len(normalized_title),
            )
            if approx_end >= start:
                return skip_whitespace(haystack, approx_end)

    parts = split_numbered_title(title)
    if parts is not None:
        number, rest = parts
        tail = haystack[start:]
        # Only the loosest variant; it covers the stricter ones.
        m = numbered_title_patterns(number, rest)[1].search(tail)
        if m:
            return skip_whitespace(haystack, start + m.end())

    stripped = title.strip()
    direct = find_ignore_case(haystack, stripped, start)
    if direct >= 0:
        return skip_whitespace(haystack, direct + len(stripped))

    remaining = len(haystack) - start
    return start + min(len(title) + config.title_end_padding, remaining)


def resolve_span(
    haystack: str,
    titles: Sequence[str],
    index: int,
    *,
    config: SegmenterConfig = DEFAULT_CONFIG,
) -> Result[SubchapterSpan, SkipReason]:
    """Resolve the body span for ``titles[index]``.

    Args:
        haystack: Single-line chapter text.
        titles: All declared subchapter titles, in declared order.
        index: Position of the subchapter being resolved.
        config: Locator thresholds.

    Returns:
        Ok(SubchapterSpan), or Err(TITLE_NOT_FOUND | DEGENERATE_SPAN).
    """
    title = titles[index]
    start = find_title_offset(haystack, title, config=config)
    if start is None:
        return Err(SkipReason.TITLE_NOT_FOUND)

    end = len(haystack)
    for later in titles[index + 1:]:
        pos = find_title_offset(haystack, later, config=config)
        if pos is not None and start < pos < end:
            end = pos

    if end <= start:
        log.debug("Degenerate span for %r: start=%d end=%d", title, start, end)
        return Err(SkipReason.DEGENERATE_SPAN)

    title_end = find_title_end(haystack, title, start, config=config)
    log.debug("Span for %r: start=%d title_end=%d end=%d", title, start, title_end, end)
    return Ok(SubchapterSpan(start=start, title_end=title_end, end=end))


def extract_subchapter_body(
    haystack: str,
    titles: Sequence[str],
    index: int,
    *,
    config: SegmenterConfig = DEFAULT_CONFIG,
) -> Result[str, SkipReason]:
    """Resolve the span for ``titles[index]`` and return its cleaned body."""
    match resolve_span(haystack, titles, index, config=config):
        case Err(error=reason):
            return Err(reason)
        case Ok(value=span):
            raw = haystack[span.title_end:span.end].strip() if span.title_end < span.end else ""
            body = clean_and_format(raw)
            if not body:
                return Err(SkipReason.EMPTY_BODY)
            return Ok(body)

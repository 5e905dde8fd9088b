"""Token counters used to size chapter and subchapter records.

The engine only needs ``count_tokens(text) -> int``; any object with that
method can be injected. Every counter returns 0 for empty or blank text.

Counters:
  tiktoken: BPE count with an OpenAI encoding (default ``cl100k_base``)
  estimate: average of ``len(text) // 4`` and the word count
  words: whitespace-delimited word count
"""
from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

import tiktoken

DEFAULT_ENCODING = "cl100k_base"


@runtime_checkable
class TokenCounter(Protocol):
    """Anything that can count tokens in a string."""

    def count_tokens(self, text: str) -> int: ...


class TiktokenCounter:
    """Exact BPE token counts via tiktoken.

    The encoding is loaded on first use; loading may download the BPE ranks
    once into tiktoken's cache.
    """

    def __init__(
        self,
        encoding_name: str = DEFAULT_ENCODING,
        *,
        model: str | None = None,
    ) -> None:
        self.encoding_name = encoding_name
        self.model = model
        self._encoding: Any = None

    def _get_encoding(self) -> Any:
        if self._encoding is None:
            if self.model is not None:
                try:
                    self._encoding = tiktoken.encoding_for_model(self.model)
                except KeyError:
                    self._encoding = tiktoken.get_encoding(self.encoding_name)
            else:
                self._encoding = tiktoken.get_encoding(self.encoding_name)
        return self._encoding

    def count_tokens(self, text: str) -> int:
        if not text or not text.strip():
            return 0
        # disallowed_special=() so "<|endoftext|>" in a document counts as text
        return len(self._get_encoding().encode(text, disallowed_special=()))


class EstimatingTokenCounter:
    """Cheap estimate: mean of a 4-chars-per-token and a word-count guess."""

    def count_tokens(self, text: str) -> int:
        if not text or not text.strip():
            return 0
        by_chars = len(text) // 4
        words = len(text.split())
        return round((by_chars + words) / 2)


class WhitespaceTokenCounter:
    """Number of whitespace-delimited words."""

    def count_tokens(self, text: str) -> int:
        if not text:
            return 0
        return len(text.split())


TOKEN_COUNTERS: dict[str, type[TiktokenCounter | EstimatingTokenCounter | WhitespaceTokenCounter]] = {
    "tiktoken": TiktokenCounter,
    "estimate": EstimatingTokenCounter,
    "words": WhitespaceTokenCounter,
}


def get_token_counter(name: str) -> TokenCounter:
    """Instantiate a counter by name (``tiktoken``, ``estimate``, ``words``)."""
    try:
        cls = TOKEN_COUNTERS[name]
    except KeyError:
        raise ValueError(
            f"Unknown token counter {name!r}; expected one of {sorted(TOKEN_COUNTERS)}"
        ) from None
    return cls()

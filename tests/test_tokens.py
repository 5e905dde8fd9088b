"""Tests for chapterseg.tokens module."""
from __future__ import annotations

from typing import Any

import pytest

from chapterseg import tokens
from chapterseg.tokens import (
    EstimatingTokenCounter,
    TiktokenCounter,
    TokenCounter,
    WhitespaceTokenCounter,
    get_token_counter,
)


class _CharEncoding:
    """Stand-in for a tiktoken Encoding: one token per character."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, Any]] = []

    def encode(self, text: str, *, disallowed_special: Any = "all") -> list[int]:
        self.calls.append((text, disallowed_special))
        return [ord(c) for c in text]


class _ExplodingEncoding:
    def encode(self, text: str, **kwargs: Any) -> list[int]:
        raise AssertionError("encoding should not be used for empty text")


class TestWhitespaceTokenCounter:
    def test_counts_words(self) -> None:
        assert WhitespaceTokenCounter().count_tokens("a b  c\nd") == 4

    def test_empty(self) -> None:
        assert WhitespaceTokenCounter().count_tokens("") == 0
        assert WhitespaceTokenCounter().count_tokens("   ") == 0


class TestEstimatingTokenCounter:
    def test_average_of_chars_and_words(self) -> None:
        # 18 chars // 4 = 4, 4 words -> 4
        assert EstimatingTokenCounter().count_tokens("one two three four") == 4

    def test_rounding(self) -> None:
        # 9 chars // 4 = 2, 2 words -> 2
        assert EstimatingTokenCounter().count_tokens("abcd efgh") == 2

    def test_empty(self) -> None:
        assert EstimatingTokenCounter().count_tokens("") == 0
        assert EstimatingTokenCounter().count_tokens(" \n ") == 0


class TestTiktokenCounter:
    def test_counts_with_encoding(self) -> None:
        counter = TiktokenCounter()
        encoding = _CharEncoding()
        counter._encoding = encoding
        assert counter.count_tokens("hello") == 5
        assert encoding.calls == [("hello", ())]

    def test_empty_skips_encoding(self) -> None:
        counter = TiktokenCounter()
        counter._encoding = _ExplodingEncoding()
        assert counter.count_tokens("") == 0
        assert counter.count_tokens("  ") == 0

    def test_loads_named_encoding_lazily(self, monkeypatch: pytest.MonkeyPatch) -> None:
        requested: list[str] = []
        encoding = _CharEncoding()

        def fake_get_encoding(name: str) -> _CharEncoding:
            requested.append(name)
            return encoding

        monkeypatch.setattr(tokens.tiktoken, "get_encoding", fake_get_encoding)
        counter = TiktokenCounter("o200k_base")
        assert requested == []
        assert counter.count_tokens("abc") == 3
        assert counter.count_tokens("de") == 2
        assert requested == ["o200k_base"]

    def test_unknown_model_falls_back(self, monkeypatch: pytest.MonkeyPatch) -> None:
        def unknown_model(model: str) -> Any:
            raise KeyError(model)

        monkeypatch.setattr(tokens.tiktoken, "encoding_for_model", unknown_model)
        monkeypatch.setattr(tokens.tiktoken, "get_encoding", lambda name: _CharEncoding())
        counter = TiktokenCounter(model="not-a-model")
        assert counter.count_tokens("abcd") == 4


class TestGetTokenCounter:
    def test_known_names(self) -> None:
        assert isinstance(get_token_counter("words"), WhitespaceTokenCounter)
        assert isinstance(get_token_counter("estimate"), EstimatingTokenCounter)
        assert isinstance(get_token_counter("tiktoken"), TiktokenCounter)

    def test_unknown_name(self) -> None:
        with pytest.raises(ValueError, match="Unknown token counter"):
            get_token_counter("bogus")

    def test_protocol(self) -> None:
        assert isinstance(WhitespaceTokenCounter(), TokenCounter)
        assert isinstance(EstimatingTokenCounter(), TokenCounter)
        assert isinstance(TiktokenCounter(), TokenCounter)

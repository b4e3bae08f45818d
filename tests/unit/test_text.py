from __future__ import annotations

from usermodel.text import normalize, page_tokens


def test_normalize_none_is_empty() -> None:
    assert normalize(None) == []


def test_normalize_splits_flattens_and_lowercases() -> None:
    assert normalize(["Hello  World", "FOO"]) == ["hello", "world", "foo"]


def test_normalize_handles_tabs_newlines_and_padding() -> None:
    assert normalize(["  Leading\tand\ntrailing  ", "", "x"]) == ["leading", "and", "trailing", "x"]


def test_page_tokens_puts_headers_before_body() -> None:
    assert page_tokens(["Title Here"], ["body text"]) == ["title", "here", "body", "text"]
    assert page_tokens(["Only header"], None) == ["only", "header"]

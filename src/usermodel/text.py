"""Tokenisation of scraped page text."""

from __future__ import annotations

from collections.abc import Iterable


def normalize(lines: Iterable[str] | None) -> list[str]:
    """Split lines on whitespace and return lowercase tokens in reading order.

    ``None`` is treated as an empty page. Empty tokens produced by leading or
    trailing whitespace are dropped.
    """

    if lines is None:
        return []
    tokens: list[str] = []
    for line in lines:
        if not line:
            continue
        tokens.extend(token.lower().strip() for token in str(line).split())
    return [token for token in tokens if token]


def page_tokens(headers: Iterable[str] | None, body: Iterable[str] | None) -> list[str]:
    """Return header tokens followed by body tokens."""

    return normalize(headers) + normalize(body)


__all__ = ["normalize", "page_tokens"]

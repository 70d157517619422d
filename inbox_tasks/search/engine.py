"""Free-text search over emails and tasks — AND-matched substring tokens."""

from __future__ import annotations

import re
from collections.abc import Iterable
from typing import Protocol, TypeVar


class Searchable(Protocol):
    """Anything with the three searchable fields (Email and Task alike)."""

    subject: str
    sender: str
    snippet: str


T = TypeVar("T", bound=Searchable)

DEFAULT_OPEN_TAG = "<mark>"
DEFAULT_CLOSE_TAG = "</mark>"


def tokenize(query: str | None) -> list[str]:
    """Lowercase the query and split on whitespace; empty tokens are dropped."""
    if not query:
        return []
    return [token for token in query.lower().split() if token]


def searchable_text(item: Searchable) -> str:
    return f"{item.subject} {item.sender} {item.snippet}".lower()


def matches(item: Searchable, tokens: list[str]) -> bool:
    text = searchable_text(item)
    return all(token in text for token in tokens)


def filter_by_query(items: Iterable[T], query: str | None) -> list[T]:
    """Keep the items whose searchable text contains every query token.

    An empty or whitespace-only query returns every item, in order.
    """
    tokens = tokenize(query)
    if not tokens:
        return list(items)
    return [item for item in items if matches(item, tokens)]


def highlight(
    text: str,
    query: str | None,
    open_tag: str = DEFAULT_OPEN_TAG,
    close_tag: str = DEFAULT_CLOSE_TAG,
) -> str:
    """Wrap each case-insensitive token occurrence in open/close markers.

    Tokens are applied one after another, so a later token can match inside
    text (or markers) wrapped by an earlier one. The original text is always
    preserved as a subsequence of the result.
    """
    for token in tokenize(query):
        text = re.sub(
            re.escape(token),
            lambda m: f"{open_tag}{m.group(0)}{close_tag}",
            text,
            flags=re.IGNORECASE,
        )
    return text


def highlight_spans(text: str, query: str | None) -> list[tuple[int, int]]:
    """Return sorted, merged ``(start, end)`` spans of all token matches in text."""
    spans: list[tuple[int, int]] = []
    for token in tokenize(query):
        for m in re.finditer(re.escape(token), text, flags=re.IGNORECASE):
            spans.append(m.span())
    spans.sort()

    merged: list[tuple[int, int]] = []
    for start, end in spans:
        if merged and start <= merged[-1][1]:
            merged[-1] = (merged[-1][0], max(merged[-1][1], end))
        else:
            merged.append((start, end))
    return merged

"""Excerpt generation around query matches."""

from __future__ import annotations

import re
from typing import List


def _find(text: str, query: str) -> re.Match[str] | None:
    # Regex matching keeps offsets in the original string; lower() may not.
    return re.search(re.escape(query), text, flags=re.IGNORECASE)


def make_snippet(text: str, query: str, max_len: int) -> str:
    """Return an excerpt of ``text`` centered on the first match of ``query``.

    Falls back to the head of the text when the query does not occur.
    """
    query = query.strip()
    if not text or not query:
        return ""
    match = _find(text, query)
    if match is None:
        return text[:max_len].strip()
    half = max_len // 2
    start = max(match.start() - half, 0)
    end = min(match.end() + half, len(text))
    return text[start:end].strip()


def make_snippets(text: str, query: str, max_len: int) -> List[str]:
    """Return one centered snippet per blank-line paragraph containing ``query``."""
    query = query.strip()
    if not text or not query:
        return []
    return [
        make_snippet(paragraph, query, max_len)
        for paragraph in text.split("\n\n")
        if _find(paragraph, query) is not None
    ]

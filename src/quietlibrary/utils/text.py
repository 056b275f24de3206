"""Text cleanup helpers shared by every extractor."""

from __future__ import annotations

import re
import unicodedata

_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")
_WHITESPACE_RUN = re.compile(r"\s+")

# Invisible or layout-only code points that PDF extraction tends to leak.
_INVISIBLE_RANGES = (
    (0x200B, 0x200F),
    (0x2028, 0x202F),
    (0x2060, 0x206F),
    (0xFEFF, 0xFEFF),
)
_KEPT_CONTROLS = {"\t", "\n", "\r"}


def _is_dropped(ch: str) -> bool:
    if ch == "\ufffd":
        return True
    if ch in _KEPT_CONTROLS:
        return False
    if unicodedata.category(ch) == "Cc":
        return True
    cp = ord(ch)
    return any(low <= cp <= high for low, high in _INVISIBLE_RANGES)


def sanitize_text(text: str) -> str:
    """Remove replacement, zero-width, format and control characters."""
    return "".join(ch for ch in text if not _is_dropped(ch))


def collapse_whitespace(text: str) -> str:
    """Collapse every whitespace run (newlines included) into one space."""
    return _WHITESPACE_RUN.sub(" ", text).strip()


def normalize_paragraphs(text: str) -> str:
    """Collapse whitespace inside paragraphs while keeping blank-line breaks.

    Lines of one paragraph are trimmed and joined with single spaces, runs of
    blank lines become exactly one, and empty paragraphs are dropped.
    """
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    paragraphs = []
    for paragraph in _PARAGRAPH_BREAK.split(text):
        collapsed = collapse_whitespace(" ".join(line.strip() for line in paragraph.split("\n")))
        if collapsed:
            paragraphs.append(collapsed)
    return "\n\n".join(paragraphs)


def clean_text(text: str) -> str:
    """Sanitize then paragraph-normalize extracted text."""
    return normalize_paragraphs(sanitize_text(text))

"""Plain text, Markdown and HTML extraction."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Tuple

from bs4 import BeautifulSoup

from quietlibrary.models import ExtractedDocument, ExtractorKind, Page
from quietlibrary.utils.text import clean_text, collapse_whitespace, sanitize_text

TEXT_EXTRACTOR = "text"
DEFAULT_MAX_BYTES = 2 * 1024 * 1024

_BLOCK_TAGS = [
    "p", "div", "br", "li", "tr", "table", "section", "article", "header", "footer",
    "blockquote", "pre", "h1", "h2", "h3", "h4", "h5", "h6", "ul", "ol", "dl", "dt", "dd",
]
_INVISIBLE_TAGS = ["script", "style", "noscript", "template"]

_MD_FENCE = re.compile(r"^[ \t]*(```|~~~).*$", re.MULTILINE)
_MD_RULE = re.compile(r"^[ \t]{0,3}([-*_=])([ \t]*\1){2,}[ \t]*$", re.MULTILINE)
_MD_HEADING = re.compile(r"^[ \t]{0,3}#{1,6}(?:[ \t]+(.*?))?[ \t]*#*[ \t]*$", re.MULTILINE)
_MD_QUOTE = re.compile(r"^[ \t]*(>[ \t]?)+", re.MULTILINE)
_MD_LIST = re.compile(r"^[ \t]*([-*+]|\d+[.)])[ \t]+", re.MULTILINE)
_MD_IMAGE = re.compile(r"!\[([^\]]*)\]\([^)]*\)")
_MD_LINK = re.compile(r"\[([^\]]+)\]\([^)]*\)")
_MD_REF_LINK = re.compile(r"\[([^\]]+)\]\[[^\]]*\]")
_MD_CODE = re.compile(r"`([^`]*)`")
_MD_STRONG = re.compile(r"(\*\*|__)(.+?)\1")
_MD_EM_STAR = re.compile(r"\*(?!\s)(.+?)\*")
_MD_EM_UNDERSCORE = re.compile(r"(?<!\w)_(?!\s)(.+?)_(?!\w)")
_MD_STRIKE = re.compile(r"~~(.+?)~~")
_MD_H1 = re.compile(r"^[ \t]{0,3}#[ \t]+(.+?)[ \t]*#*[ \t]*$", re.MULTILINE)
_MD_ANY_HEADING = re.compile(r"^[ \t]{0,3}#{1,6}[ \t]+(.+?)[ \t]*#*[ \t]*$", re.MULTILINE)


def read_prefix(path: Path, max_bytes: int = DEFAULT_MAX_BYTES) -> str:
    """Read at most ``max_bytes`` and decode as UTF-8, replacing bad sequences."""
    with path.open("rb") as handle:
        raw = handle.read(max_bytes)
    return raw.decode("utf-8", errors="replace")


def html_to_text(raw: str) -> Tuple[str | None, str]:
    """Return the ``<title>`` (if any) and the visible text of an HTML page."""
    soup = BeautifulSoup(raw, "html.parser")
    title = None
    if soup.title is not None:
        title = collapse_whitespace(sanitize_text(soup.title.get_text())) or None
    for tag in soup(_INVISIBLE_TAGS):
        tag.decompose()
    for tag in soup.find_all(_BLOCK_TAGS):
        tag.append("\n\n")
    return title, clean_text(soup.get_text())


def strip_markdown(raw: str) -> str:
    """Reduce Markdown to its textual content."""
    text = _MD_FENCE.sub("", raw)
    text = _MD_RULE.sub("", text)
    text = _MD_HEADING.sub(r"\1", text)
    text = _MD_QUOTE.sub("", text)
    text = _MD_LIST.sub("", text)
    text = _MD_IMAGE.sub(r"\1", text)
    text = _MD_LINK.sub(r"\1", text)
    text = _MD_REF_LINK.sub(r"\1", text)
    text = _MD_CODE.sub(r"\1", text)
    text = _MD_STRONG.sub(r"\2", text)
    text = _MD_EM_STAR.sub(r"\1", text)
    text = _MD_EM_UNDERSCORE.sub(r"\1", text)
    text = _MD_STRIKE.sub(r"\1", text)
    return clean_text(text)


def markdown_title(raw: str) -> str | None:
    match = _MD_H1.search(raw) or _MD_ANY_HEADING.search(raw)
    if match is None:
        return None
    return strip_markdown(match.group(1)) or None


def first_line_title(raw: str) -> str | None:
    for line in raw.splitlines():
        stripped = collapse_whitespace(sanitize_text(line))
        if stripped:
            return stripped
    return None


def extract_title_and_text(path: Path, *, max_bytes: int = DEFAULT_MAX_BYTES) -> Tuple[str, str]:
    """Extract a title and normalized body from a text-like file."""
    raw = read_prefix(path, max_bytes)
    suffix = path.suffix.lower()
    if suffix in {".html", ".htm"}:
        title, text = html_to_text(raw)
    elif suffix in {".md", ".markdown"}:
        title, text = markdown_title(raw), strip_markdown(raw)
    else:
        title, text = first_line_title(raw), clean_text(raw)
    return title or path.name, text


def extract_text_document(path: Path, *, max_bytes: int = DEFAULT_MAX_BYTES) -> ExtractedDocument:
    title, text = extract_title_and_text(path, max_bytes=max_bytes)
    return ExtractedDocument(
        title=title,
        path=str(path),
        pages=[Page(number=None, body=text)],
        extractor=ExtractorKind.PRIMARY,
        extractor_name=TEXT_EXTRACTOR,
    )

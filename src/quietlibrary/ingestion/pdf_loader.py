"""PDF text extraction.

PyMuPDF (fitz) is the primary, high-fidelity extractor. When it cannot be
imported or fails on a file, a structural pypdf parser walks each page's
content stream and decodes the text-showing operators directly.
"""

from __future__ import annotations

import importlib
import logging
import threading
from pathlib import Path
from typing import Any, Iterable, List, Sequence, Tuple

from pypdf import PdfReader
from pypdf.generic import ContentStream

from quietlibrary.models import ExtractedDocument, ExtractorKind, Page
from quietlibrary.utils.text import clean_text, collapse_whitespace

LOGGER = logging.getLogger(__name__)

PYMUPDF_EXTRACTOR = "pymupdf"
PYPDF_EXTRACTOR = "pypdf"

_TEXT_BLOCK = 0


class PyMuPDFBinding:
    """Binds the PyMuPDF module once, under a single initialization lock.

    The outcome of the first attempt (module or import error) is remembered so
    later callers never retry a broken installation. Documents are always
    opened per call and never shared across threads.
    """

    def __init__(self, module_name: str = "fitz") -> None:
        self.module_name = module_name
        self._lock = threading.Lock()
        self._attempted = False
        self._module: Any = None
        self.error: str | None = None

    def bind(self) -> Any:
        """Return the bound module, or None when PyMuPDF is unavailable."""
        with self._lock:
            if not self._attempted:
                self._attempted = True
                try:
                    self._module = importlib.import_module(self.module_name)
                    LOGGER.debug("Bound PyMuPDF from %s", getattr(self._module, "__file__", "?"))
                except ImportError as exc:
                    self.error = str(exc)
                    LOGGER.warning("PyMuPDF unavailable, using pypdf fallback: %s", exc)
            return self._module

    @property
    def available(self) -> bool:
        return self.bind() is not None


PYMUPDF = PyMuPDFBinding()


def _page_text_pymupdf(page: Any) -> str:
    # Text blocks keep the layout's paragraph structure.
    blocks = page.get_text("blocks") or []
    parts = [block[4] for block in blocks if len(block) > 6 and block[6] == _TEXT_BLOCK]
    return "\n\n".join(parts)


def extract_with_pymupdf(path: Path, binding: PyMuPDFBinding = PYMUPDF) -> Tuple[str, List[Page]]:
    """Extract (title, pages) with PyMuPDF; raises when unbound or unreadable."""
    fitz = binding.bind()
    if fitz is None:
        raise RuntimeError(f"PyMuPDF unavailable: {binding.error}")

    doc = fitz.open(path)
    try:
        metadata = doc.metadata or {}
        title = collapse_whitespace(metadata.get("title") or "") or path.name
        pages: List[Page] = []
        for index in range(len(doc)):
            try:
                body = clean_text(_page_text_pymupdf(doc[index]))
            except Exception as exc:  # pragma: no cover - defensive path
                LOGGER.warning("Failed to read page %s in %s: %s", index + 1, path, exc)
                continue
            if body:
                pages.append(Page(number=index + 1, body=body))
        return title, pages
    finally:
        doc.close()


def _operand_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    return ""


def decode_text_operations(operations: Iterable[Tuple[Sequence[Any], bytes]]) -> str:
    """Rebuild raw page text from content-stream operations.

    Handles ``Tj``, ``TJ``, ``'`` and ``"``; ``T*`` and the quote operators
    start a new line.
    """
    out: List[str] = []
    for operands, operator in operations:
        if operator == b"Tj" and operands:
            out.append(_operand_text(operands[0]))
            out.append(" ")
        elif operator == b"TJ" and operands:
            for item in operands[0]:
                out.append(_operand_text(item))
            out.append(" ")
        elif operator in (b"'", b'"') and operands:
            out.append("\n")
            out.append(_operand_text(operands[-1]))
            out.append(" ")
        elif operator == b"T*":
            out.append("\n")
    return "".join(out)


def _page_text_pypdf(reader: PdfReader, page: Any) -> str:
    contents = page.get_contents()
    if contents is None:
        return ""
    if not isinstance(contents, ContentStream):
        contents = ContentStream(contents, reader)
    return clean_text(decode_text_operations(contents.operations))


def extract_with_pypdf(path: Path) -> Tuple[str, List[Page]]:
    """Best-effort structural extraction used when PyMuPDF is unavailable."""
    reader = PdfReader(path)
    metadata = reader.metadata
    raw_title = metadata.title if metadata is not None else None
    title = collapse_whitespace(raw_title or "") or path.name

    pages: List[Page] = []
    for number, page in enumerate(reader.pages, start=1):
        try:
            body = _page_text_pypdf(reader, page)
        except Exception as exc:
            LOGGER.warning("Failed to decode page %s in %s: %s", number, path, exc)
            continue
        if body:
            pages.append(Page(number=number, body=body))
    return title, pages


def pymupdf_document(path: Path, binding: PyMuPDFBinding = PYMUPDF) -> ExtractedDocument:
    title, pages = extract_with_pymupdf(path, binding)
    return ExtractedDocument(
        title=title,
        path=str(path),
        pages=pages,
        extractor=ExtractorKind.PRIMARY,
        extractor_name=PYMUPDF_EXTRACTOR,
    )


def pypdf_document(path: Path) -> ExtractedDocument:
    title, pages = extract_with_pypdf(path)
    return ExtractedDocument(
        title=title,
        path=str(path),
        pages=pages,
        extractor=ExtractorKind.FALLBACK,
        extractor_name=PYPDF_EXTRACTOR,
    )

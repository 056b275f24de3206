"""Utility helpers for working with files."""

from __future__ import annotations

import hashlib
import logging
from pathlib import Path
from typing import Iterable, Iterator

from quietlibrary.models import FileFingerprint

LOGGER = logging.getLogger(__name__)

TEXT_EXTENSIONS = frozenset({".txt", ".md", ".markdown", ".html", ".htm"})
PDF_EXTENSIONS = frozenset({".pdf"})


def is_supported_text(path: Path) -> bool:
    return path.suffix.lower() in TEXT_EXTENSIONS


def is_pdf(path: Path) -> bool:
    return path.suffix.lower() in PDF_EXTENSIONS


def is_supported(path: Path) -> bool:
    return is_supported_text(path) or is_pdf(path)


def iter_document_paths(folders: Iterable[Path | str]) -> Iterator[Path]:
    """Yield supported files under each watched folder, descending recursively."""
    for folder in folders:
        root = Path(folder).expanduser()
        if root.is_file():
            if is_supported(root):
                yield root.absolute()
            continue
        if not root.is_dir():
            LOGGER.warning("Watched folder %s does not exist, skipping", root)
            continue
        try:
            children = sorted(root.rglob("*"))
        except OSError as exc:
            LOGGER.warning("Cannot list %s: %s", root, exc)
            continue
        for child in children:
            if child.is_file() and is_supported(child):
                yield child.absolute()


def file_fingerprint(path: Path) -> FileFingerprint:
    """Return the (mtime, size) fingerprint of a file."""
    return FileFingerprint.from_path(path)


def cache_key(path: str, mtime_secs: int, size: int) -> str:
    """Fixed-width hex key for an extraction cache entry."""
    digest = hashlib.sha256(f"{path}\0{mtime_secs}\0{size}".encode("utf-8", "surrogateescape"))
    return digest.hexdigest()[:16]

"""Core QuietLibrary data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple


class ExtractorKind(str, Enum):
    """Quality tier of the extractor that produced a document."""

    PRIMARY = "primary"
    FALLBACK = "fallback"


@dataclass(slots=True)
class Page:
    """One page of extracted text; ``number`` is None for non-paginated files."""

    number: Optional[int]
    body: str


@dataclass(slots=True)
class ExtractedDocument:
    title: str
    path: str
    pages: List[Page]
    extractor: ExtractorKind
    extractor_name: str

    def truncated(self, max_pages: int) -> "ExtractedDocument":
        if len(self.pages) <= max_pages:
            return self
        return ExtractedDocument(
            title=self.title,
            path=self.path,
            pages=self.pages[:max_pages],
            extractor=self.extractor,
            extractor_name=self.extractor_name,
        )

    @property
    def is_paginated(self) -> bool:
        return any(page.number is not None for page in self.pages)


@dataclass(frozen=True, slots=True)
class FileFingerprint:
    """Cheap change detector: equal iff path, mtime and size all match."""

    path: str
    mtime_secs: int
    size: int

    @classmethod
    def from_path(cls, path: Path) -> "FileFingerprint":
        stat = path.stat()
        return cls(path=str(path), mtime_secs=int(stat.st_mtime), size=stat.st_size)

    def as_pair(self) -> Tuple[int, int]:
        return (self.mtime_secs, self.size)


@dataclass(slots=True)
class IndexDocument:
    """One row of the full-text index (a whole text file or one PDF page)."""

    title: str
    path: str
    body: str
    page: Optional[int] = None
    section: Optional[str] = None


@dataclass(slots=True)
class SearchResult:
    title: str
    path: str
    page: Optional[int]
    section: Optional[str]
    snippet: str
    score: float


@dataclass(slots=True)
class IndexStats:
    added: int = 0
    updated: int = 0
    deleted: int = 0
    unchanged: int = 0
    failed: int = 0
    documents: int = 0
    processed_files: list[str] = field(default_factory=list)

    def increment(self, status: str, path: str) -> None:
        if status == "added":
            self.added += 1
        elif status == "updated":
            self.updated += 1
        elif status == "deleted":
            self.deleted += 1
        elif status == "unchanged":
            self.unchanged += 1
        else:
            self.failed += 1
        self.processed_files.append(path)

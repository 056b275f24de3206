"""Exception hierarchy shared across QuietLibrary components."""

from __future__ import annotations


class QuietLibraryError(Exception):
    """Base class for all library errors."""


class ExtractionError(QuietLibraryError):
    """Raised when no extractor could produce text for a file."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


class IndexUnavailableError(QuietLibraryError):
    """Raised when no index directory exists yet."""


class IndexEngineError(QuietLibraryError):
    """Raised when the search engine fails to open, parse or execute."""

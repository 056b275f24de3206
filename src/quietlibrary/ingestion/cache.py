"""Fingerprint-keyed on-disk cache of extraction results."""

from __future__ import annotations

import json
import logging
import shutil
import threading
import time
from pathlib import Path
from typing import Callable, List, Optional

from quietlibrary.errors import ExtractionError
from quietlibrary.ingestion.extractor import (
    Extractor,
    kind_for_extractor,
    should_upgrade,
)
from quietlibrary.models import ExtractedDocument, ExtractorKind, FileFingerprint, Page
from quietlibrary.utils.files import cache_key, file_fingerprint

LOGGER = logging.getLogger(__name__)

ENTRY_PREFIX = "doc_"
ENTRY_SUFFIX = ".json"

DEFAULT_MAX_BYTES = 300 * 1024 * 1024
DEFAULT_MAX_AGE_SECS = 30 * 24 * 60 * 60
DEFAULT_PRUNE_INTERVAL_SECS = 10 * 60


class ExtractionCache:
    """Read-through cache in front of an :class:`Extractor`.

    One JSON file per document, named by a hash of (path, mtime, size). The
    size and age budget is enforced by :meth:`prune`, which
    :meth:`maybe_prune` rate-limits around lookups and writes.
    """

    def __init__(
        self,
        cache_dir: Path,
        extractor: Extractor,
        *,
        max_bytes: int = DEFAULT_MAX_BYTES,
        max_age_secs: int = DEFAULT_MAX_AGE_SECS,
        prune_interval_secs: int = DEFAULT_PRUNE_INTERVAL_SECS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.cache_dir = Path(cache_dir)
        self.extractor = extractor
        self.max_bytes = max_bytes
        self.max_age_secs = max_age_secs
        self.prune_interval_secs = prune_interval_secs
        self._clock = clock
        self._prune_lock = threading.Lock()
        self._last_prune: float | None = None

    def entry_path(self, fingerprint: FileFingerprint) -> Path:
        key = cache_key(fingerprint.path, fingerprint.mtime_secs, fingerprint.size)
        return self.cache_dir / f"{ENTRY_PREFIX}{key}{ENTRY_SUFFIX}"

    def get_or_extract(self, path: Path, max_pages: int) -> ExtractedDocument:
        """Return the cached extraction for ``path`` or extract and store it."""
        path = Path(path)
        self.maybe_prune()
        try:
            fingerprint = file_fingerprint(path)
        except OSError as exc:
            raise ExtractionError(str(path), f"cannot stat file: {exc}") from exc

        entry_path = self.entry_path(fingerprint)
        cached = self._read_entry(entry_path, fingerprint, max_pages)
        if cached is not None:
            if should_upgrade(cached.extractor, self.extractor.available_kinds(path)):
                outcome = self.extractor.extract(path, kinds={ExtractorKind.PRIMARY})
                if outcome.document is not None:
                    upgraded = self._store(entry_path, fingerprint, outcome.document, max_pages)
                    LOGGER.info("Upgraded cached extraction of %s to %s", path, upgraded.extractor_name)
                    return upgraded
                LOGGER.debug("Upgrade of %s failed, keeping cached result: %s", path, outcome.reason)
            return cached.truncated(max_pages)

        outcome = self.extractor.extract(path)
        if outcome.document is None:
            raise ExtractionError(str(path), outcome.reason or "extraction failed")
        document = self._store(entry_path, fingerprint, outcome.document, max_pages)
        self.maybe_prune()
        return document

    def _store(
        self, entry_path: Path, fingerprint: FileFingerprint, document: ExtractedDocument, max_pages: int
    ) -> ExtractedDocument:
        # Remember the cap only when it cut pages, so larger requests can tell the entry is short.
        page_cap = max_pages if len(document.pages) > max_pages else None
        document = document.truncated(max_pages)
        self._write_entry(entry_path, fingerprint, document, page_cap)
        return document

    def _read_entry(
        self, entry_path: Path, fingerprint: FileFingerprint, max_pages: int
    ) -> Optional[ExtractedDocument]:
        if not entry_path.is_file():
            return None
        try:
            payload = json.loads(entry_path.read_text(encoding="utf-8"))
            if payload["mtime_secs"] != fingerprint.mtime_secs or payload["size"] != fingerprint.size:
                return None
            page_cap = payload.get("page_cap")
            if page_cap is not None and page_cap < max_pages:
                LOGGER.debug("Cache entry %s holds %d pages, %d requested", entry_path, page_cap, max_pages)
                return None
            which = payload.get("which")
            return ExtractedDocument(
                title=payload["title"],
                path=fingerprint.path,
                pages=[Page(number=number, body=body) for number, body in payload["pages"]],
                extractor=kind_for_extractor(which),
                extractor_name=which or "cache",
            )
        except (OSError, ValueError, KeyError, TypeError) as exc:
            LOGGER.debug("Ignoring unreadable cache entry %s: %s", entry_path, exc)
            return None

    def _write_entry(
        self,
        entry_path: Path,
        fingerprint: FileFingerprint,
        document: ExtractedDocument,
        page_cap: Optional[int] = None,
    ) -> None:
        payload = {
            "title": document.title,
            "pages": [[page.number, page.body] for page in document.pages],
            "mtime_secs": fingerprint.mtime_secs,
            "size": fingerprint.size,
            "which": document.extractor_name,
            "page_cap": page_cap,
        }
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            entry_path.write_text(json.dumps(payload, ensure_ascii=False), encoding="utf-8")
        except OSError as exc:
            LOGGER.warning("Could not write cache entry for %s: %s", fingerprint.path, exc)

    def maybe_prune(self) -> bool:
        """Run :meth:`prune` unless one ran within the last interval."""
        now = self._clock()
        with self._prune_lock:
            if self._last_prune is not None and now - self._last_prune < self.prune_interval_secs:
                return False
            self._last_prune = now
        self.prune()
        return True

    def prune(self, max_bytes: int | None = None, max_age_secs: int | None = None) -> int:
        """Evict expired entries, then oldest-modified ones until under budget.

        Returns the number of removed entries. Errors are logged, never raised.
        """
        max_bytes = self.max_bytes if max_bytes is None else max_bytes
        max_age_secs = self.max_age_secs if max_age_secs is None else max_age_secs
        if not self.cache_dir.is_dir():
            return 0

        entries: List[tuple[Path, int, float]] = []
        try:
            for entry in self.cache_dir.glob(f"{ENTRY_PREFIX}*{ENTRY_SUFFIX}"):
                try:
                    stat = entry.stat()
                except OSError:
                    continue
                entries.append((entry, stat.st_size, stat.st_mtime))
        except OSError as exc:
            LOGGER.warning("Cannot scan cache directory %s: %s", self.cache_dir, exc)
            return 0

        removed = 0
        total = sum(size for _, size, _ in entries)
        cutoff = self._clock() - max_age_secs
        keep = []
        for entry, size, mtime in entries:
            if mtime < cutoff:
                if self._remove(entry):
                    total -= size
                    removed += 1
                    continue
            keep.append((entry, size, mtime))

        if total > max_bytes:
            keep.sort(key=lambda item: item[2])
            for entry, size, _ in keep:
                if total <= max_bytes:
                    break
                if self._remove(entry):
                    total -= size
                    removed += 1

        if removed:
            LOGGER.info("Pruned %d extraction cache entries (%d bytes left)", removed, total)
        return removed

    @staticmethod
    def _remove(entry: Path) -> bool:
        try:
            entry.unlink(missing_ok=True)
            return True
        except OSError as exc:
            LOGGER.warning("Could not evict cache entry %s: %s", entry, exc)
            return False

    def clear(self) -> None:
        """Delete every cached extraction."""
        if self.cache_dir.exists():
            shutil.rmtree(self.cache_dir)
        with self._prune_lock:
            self._last_prune = None

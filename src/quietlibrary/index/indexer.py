"""Index lifecycle: full rebuild and fingerprint-driven incremental update."""

from __future__ import annotations

import logging
import os
import shutil
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from quietlibrary.context import LibraryContext
from quietlibrary.errors import ExtractionError
from quietlibrary.index.fingerprints import Snapshot, diff_snapshots
from quietlibrary.index.storage import (
    IndexWriterSession,
    create_index,
    index_exists,
    open_index,
)
from quietlibrary.models import ExtractedDocument, FileFingerprint, IndexDocument, IndexStats
from quietlibrary.utils.files import file_fingerprint, iter_document_paths

LOGGER = logging.getLogger(__name__)


def worker_count(min_workers: int = 2, max_workers: int = 8) -> int:
    """Thread pool size: available CPUs clamped to [min_workers, max_workers]."""
    return max(min_workers, min(os.cpu_count() or 1, max_workers))


def to_index_documents(document: ExtractedDocument, max_pages: int) -> List[IndexDocument]:
    """One index row per page; PDF rows record the extractor in ``section``."""
    rows = []
    for page in document.pages[:max_pages]:
        rows.append(
            IndexDocument(
                title=document.title,
                path=document.path,
                body=page.body,
                page=page.number,
                section=document.extractor_name if page.number is not None else None,
            )
        )
    return rows


def filename_only_document(path: str) -> IndexDocument:
    return IndexDocument(title=Path(path).name, path=path, body="")


@dataclass(slots=True)
class FileExtraction:
    path: str
    fingerprint: Optional[FileFingerprint]
    documents: List[IndexDocument] = field(default_factory=list)
    ok: bool = True
    reason: Optional[str] = None


class Indexer:
    """Coordinates extraction and the single-writer index updates."""

    def __init__(self, context: LibraryContext) -> None:
        self.context = context
        self.config = context.config

    def extract_file(self, path: Path) -> FileExtraction:
        """Extract one file; failures are reported, never raised."""
        try:
            fingerprint = file_fingerprint(path)
        except OSError as exc:
            LOGGER.warning("Skipping unreadable file %s: %s", path, exc)
            return FileExtraction(str(path), None, ok=False, reason=str(exc))

        try:
            document = self.context.cache.get_or_extract(path, max_pages=self.config.cache_max_pages)
        except ExtractionError as exc:
            LOGGER.warning("No text extracted from %s: %s", path, exc.reason)
            return FileExtraction(str(path), fingerprint, ok=False, reason=exc.reason)
        except Exception as exc:
            LOGGER.error("Failed to process %s: %s", path, exc)
            return FileExtraction(str(path), fingerprint, ok=False, reason=str(exc))

        documents = to_index_documents(document, self.config.index_max_pages)
        if not documents:
            # Scanned PDFs and empty files stay findable by name.
            documents = [filename_only_document(str(path))]
        return FileExtraction(str(path), fingerprint, documents)

    def extract_all(self, paths: Sequence[Path]) -> List[FileExtraction]:
        if not paths:
            return []
        workers = worker_count(self.config.min_workers, self.config.max_workers)
        LOGGER.info("Extracting %d files with %d workers", len(paths), workers)
        with ThreadPoolExecutor(max_workers=workers) as pool:
            return list(pool.map(self.extract_file, paths))

    def rebuild(self, folders: Iterable[Path | str]) -> IndexStats:
        """Recreate the index from scratch for every file under ``folders``."""
        index_dir = self.config.index_dir
        self.context.handles.invalidate()
        if index_dir.exists():
            shutil.rmtree(index_dir)
        index_dir.mkdir(parents=True, exist_ok=True)
        index = create_index(index_dir)

        paths = list(iter_document_paths(folders))
        extractions = self.extract_all(paths)

        stats = IndexStats()
        snapshot: Snapshot = {}
        with IndexWriterSession(index, heap_bytes=self.config.writer_heap_bytes) as session:
            for extraction in extractions:
                if extraction.fingerprint is None:
                    stats.increment("failed", extraction.path)
                    continue
                rows = extraction.documents if extraction.ok else [filename_only_document(extraction.path)]
                for row in rows:
                    session.add(row)
                stats.documents += len(rows)
                snapshot[extraction.path] = extraction.fingerprint
                stats.increment("added" if extraction.ok else "failed", extraction.path)
            session.commit()

        self.context.handles.invalidate()
        self.context.fingerprints.save(snapshot)
        LOGGER.info("Rebuilt index: %d files, %d rows", len(snapshot), stats.documents)
        return stats

    def update(self, folders: Iterable[Path | str]) -> IndexStats:
        """Re-index only files whose fingerprint changed since the last run.

        Rows of a changed file are replaced only once its new extraction has
        succeeded; on failure the previous rows and fingerprint are kept so
        the next run retries.
        """
        folders = list(folders)
        if not index_exists(self.config.index_dir):
            LOGGER.info("No index found, running a full rebuild")
            return self.rebuild(folders)

        previous = self.context.fingerprints.load()
        current: Snapshot = {}
        for path in iter_document_paths(folders):
            try:
                current[str(path)] = file_fingerprint(path)
            except OSError as exc:
                LOGGER.warning("Cannot fingerprint %s: %s", path, exc)

        changed, deleted = diff_snapshots(previous, current)
        stats = IndexStats(unchanged=len(current) - len(changed))
        if not changed and not deleted:
            LOGGER.info("Index is up to date (%d files)", len(current))
            return stats

        extractions = self.extract_all([Path(path) for path in changed])
        snapshot: Snapshot = {path: fp for path, fp in previous.items() if path in current}
        index = open_index(self.config.index_dir)
        with IndexWriterSession(index, heap_bytes=self.config.writer_heap_bytes) as session:
            for path in deleted:
                session.delete_path(path)
                stats.increment("deleted", path)

            for extraction in extractions:
                path = extraction.path
                indexed_before = path in previous
                if extraction.ok:
                    if indexed_before:
                        session.delete_path(path)
                    rows = extraction.documents
                    status = "updated" if indexed_before else "added"
                elif indexed_before:
                    LOGGER.warning("Keeping previous rows for %s: %s", path, extraction.reason)
                    stats.increment("failed", path)
                    continue
                else:
                    rows = [filename_only_document(path)]
                    status = "failed"
                for row in rows:
                    session.add(row)
                stats.documents += len(rows)
                snapshot[path] = current[path]
                stats.increment(status, path)
            session.commit()

        self.context.handles.invalidate()
        self.context.fingerprints.save(snapshot)
        LOGGER.info(
            "Incremental update: %d added, %d updated, %d deleted, %d failed",
            stats.added,
            stats.updated,
            stats.deleted,
            stats.failed,
        )
        return stats

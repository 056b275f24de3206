"""Tantivy full-text index: schema, writer sessions and the shared handle cache."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import tantivy

from quietlibrary.errors import IndexEngineError, IndexUnavailableError
from quietlibrary.models import IndexDocument

LOGGER = logging.getLogger(__name__)

TITLE = "title"
PATH = "path"
PAGE = "page"
SECTION = "section"
BODY = "body"

DEFAULT_HEAP_BYTES = 128 * 1024 * 1024


def build_schema() -> tantivy.Schema:
    """Create the fixed index schema.

    ``path`` and ``section`` use the raw tokenizer so a path is one exact term
    and can be deleted or filtered on as a keyed identity.
    """
    builder = tantivy.SchemaBuilder()
    builder.add_text_field(TITLE, stored=True, index_option="position")
    builder.add_text_field(PATH, stored=True, tokenizer_name="raw")
    builder.add_unsigned_field(PAGE, stored=True, indexed=True)
    builder.add_text_field(SECTION, stored=True, tokenizer_name="raw")
    builder.add_text_field(BODY, stored=True, index_option="position")
    return builder.build()


def index_exists(index_dir: Path) -> bool:
    return (Path(index_dir) / "meta.json").exists()


def create_index(index_dir: Path) -> tantivy.Index:
    """Create a fresh index in an (empty) directory."""
    try:
        return tantivy.Index(build_schema(), path=str(index_dir), reuse=False)
    except Exception as exc:
        raise IndexEngineError(f"Cannot create index in {index_dir}: {exc}") from exc


def open_index(index_dir: Path) -> tantivy.Index:
    try:
        return tantivy.Index.open(str(index_dir))
    except Exception as exc:
        raise IndexEngineError(f"Cannot open index in {index_dir}: {exc}") from exc


def to_tantivy(document: IndexDocument) -> tantivy.Document:
    doc = tantivy.Document()
    doc.add_text(TITLE, document.title)
    doc.add_text(PATH, document.path)
    if document.page is not None:
        doc.add_unsigned(PAGE, document.page)
    if document.section is not None:
        doc.add_text(SECTION, document.section)
    doc.add_text(BODY, document.body)
    return doc


def from_tantivy(doc: Any) -> IndexDocument:
    return IndexDocument(
        title=doc.get_first(TITLE) or "",
        path=doc.get_first(PATH) or "",
        body=doc.get_first(BODY) or "",
        page=doc.get_first(PAGE),
        section=doc.get_first(SECTION),
    )


def path_query(schema: tantivy.Schema, path: str) -> tantivy.Query:
    """Exact-term query on the untokenized ``path`` field."""
    return tantivy.Query.term_query(schema, PATH, path)


class IndexWriterSession:
    """The single writer used by one rebuild or incremental update.

    Uncommitted changes are rolled back when the block exits with an error.
    """

    def __init__(self, index: tantivy.Index, *, heap_bytes: int = DEFAULT_HEAP_BYTES) -> None:
        self._schema = index.schema
        try:
            self._writer = index.writer(heap_size=heap_bytes)
        except Exception as exc:
            raise IndexEngineError(f"Cannot acquire index writer: {exc}") from exc
        self._closed = False

    def __enter__(self) -> "IndexWriterSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is not None:
            try:
                self._writer.rollback()
            except Exception as rollback_exc:  # pragma: no cover - defensive
                LOGGER.error("Rollback failed: %s", rollback_exc)
        self.close()

    def add(self, document: IndexDocument) -> None:
        try:
            self._writer.add_document(to_tantivy(document))
        except Exception as exc:
            raise IndexEngineError(f"Cannot add {document.path}: {exc}") from exc

    def delete_path(self, path: str) -> None:
        """Delete every row (all pages) whose path equals ``path`` exactly."""
        try:
            self._writer.delete_documents_by_query(path_query(self._schema, path))
        except Exception as exc:
            raise IndexEngineError(f"Cannot delete {path}: {exc}") from exc

    def commit(self) -> None:
        try:
            self._writer.commit()
        except Exception as exc:
            raise IndexEngineError(f"Commit failed: {exc}") from exc
        LOGGER.info("Committed index changes")

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._writer.wait_merging_threads()


@dataclass(slots=True)
class IndexHandle:
    """An open index; tantivy keeps the reader inside the index object."""

    index: tantivy.Index

    @property
    def schema(self) -> tantivy.Schema:
        return self.index.schema

    def searcher(self) -> tantivy.Searcher:
        # Reload so segments committed since the last query become visible.
        self.index.reload()
        return self.index.searcher()


class IndexHandleCache:
    """Lazily opened index shared by all queries, dropped after every write."""

    def __init__(self, index_dir: Path) -> None:
        self.index_dir = Path(index_dir)
        self._lock = threading.Lock()
        self._handle: Optional[IndexHandle] = None

    def get(self) -> IndexHandle:
        if not index_exists(self.index_dir):
            raise IndexUnavailableError(f"No index at {self.index_dir}")
        with self._lock:
            if self._handle is None:
                self._handle = IndexHandle(open_index(self.index_dir))
                LOGGER.debug("Opened index at %s", self.index_dir)
            return self._handle

    def invalidate(self) -> None:
        with self._lock:
            self._handle = None

    @property
    def is_open(self) -> bool:
        with self._lock:
            return self._handle is not None

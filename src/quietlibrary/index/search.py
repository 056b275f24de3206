"""Full-text query interface over the shared index handle."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, List

import tantivy

from quietlibrary.context import LibraryContext
from quietlibrary.errors import IndexEngineError, IndexUnavailableError
from quietlibrary.index.scan import scan_folders
from quietlibrary.index.storage import BODY, PAGE, TITLE, from_tantivy, path_query
from quietlibrary.models import SearchResult
from quietlibrary.utils.snippet import make_snippet, make_snippets

LOGGER = logging.getLogger(__name__)


class Searcher:
    """High-level API to query the index."""

    def __init__(self, context: LibraryContext) -> None:
        self.context = context

    def _parse(self, index: tantivy.Index, query: str, fields: List[str]) -> tantivy.Query:
        try:
            return index.parse_query(query, fields)
        except ValueError as exc:
            raise IndexEngineError(f"Invalid query {query!r}: {exc}") from exc

    def search(self, query: str, *, limit: int = 20) -> List[SearchResult]:
        """Return up to ``limit`` rows, one per matching paragraph of each hit.

        Raises :class:`IndexUnavailableError` when nothing has been indexed yet.
        """
        handle = self.context.handles.get()
        parsed = self._parse(handle.index, query, [TITLE, BODY])
        max_len = self.context.config.snippet_chars

        results: List[SearchResult] = []
        try:
            searcher = handle.searcher()
            hits = searcher.search(parsed, limit).hits
            for score, address in hits:
                row = from_tantivy(searcher.doc(address))
                snippets = make_snippets(row.body, query, max_len) or [make_snippet(row.body, query, max_len)]
                for snippet in snippets:
                    results.append(
                        SearchResult(
                            title=row.title,
                            path=row.path,
                            page=row.page,
                            section=row.section,
                            snippet=snippet,
                            score=float(score),
                        )
                    )
                    if len(results) >= limit:
                        return results
        except Exception as exc:
            raise IndexEngineError(f"Search failed: {exc}") from exc
        return results

    def search_pages(self, path: str, query: str, *, limit: int = 1000) -> List[int]:
        """Sorted distinct page numbers of ``path`` whose body matches ``query``."""
        handle = self.context.handles.get()
        body_query = self._parse(handle.index, query, [BODY])
        combined = tantivy.Query.boolean_query(
            [
                (tantivy.Occur.Must, path_query(handle.schema, path)),
                (tantivy.Occur.Must, body_query),
            ]
        )
        try:
            searcher = handle.searcher()
            pages = set()
            for _score, address in searcher.search(combined, limit).hits:
                page = searcher.doc(address).get_first(PAGE)
                if page is not None:
                    pages.add(int(page))
        except Exception as exc:
            raise IndexEngineError(f"Page search failed: {exc}") from exc
        return sorted(pages)


def search_with_fallback(
    context: LibraryContext,
    query: str,
    *,
    limit: int = 20,
    folders: Iterable[Path | str] = (),
) -> List[SearchResult]:
    """Prefer the index; scan the folders directly when it is missing, broken or empty."""
    query = query.strip()
    if not query:
        return []
    try:
        results = Searcher(context).search(query, limit=limit)
    except IndexUnavailableError:
        LOGGER.info("No index yet, scanning folders directly")
        results = []
    except IndexEngineError as exc:
        LOGGER.warning("Index search failed, scanning folders directly: %s", exc)
        results = []
    if results:
        return results
    return scan_folders(context, folders, query, limit=limit)

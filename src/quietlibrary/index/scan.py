"""Direct folder scan used when the index cannot answer a query."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, List

from quietlibrary.context import LibraryContext
from quietlibrary.errors import ExtractionError
from quietlibrary.models import SearchResult
from quietlibrary.utils.files import iter_document_paths
from quietlibrary.utils.snippet import make_snippets

LOGGER = logging.getLogger(__name__)

TEXT_SCORE = 1.0
PAGE_SCORE = 1.1
FILENAME_SCORE = 0.05


def _filename_match(path: Path, query: str) -> SearchResult | None:
    if query.lower() not in path.name.lower():
        return None
    return SearchResult(
        title=path.name,
        path=str(path),
        page=None,
        section=None,
        snippet="",
        score=FILENAME_SCORE,
    )


def scan_folders(
    context: LibraryContext,
    folders: Iterable[Path | str],
    query: str,
    *,
    limit: int = 20,
) -> List[SearchResult]:
    """Extract and grep every supported file until ``limit`` rows are found.

    Files without extractable text can still match on their file name.
    """
    query = query.strip()
    if not query:
        return []
    max_len = context.config.snippet_chars
    results: List[SearchResult] = []

    for path in iter_document_paths(folders):
        try:
            document = context.cache.get_or_extract(path, max_pages=context.config.scan_max_pages)
        except ExtractionError as exc:
            LOGGER.debug("Falling back to file name for %s: %s", path, exc.reason)
            match = _filename_match(path, query)
            if match is not None:
                results.append(match)
        else:
            for page in document.pages:
                for snippet in make_snippets(page.body, query, max_len):
                    if page.number is None:
                        score = TEXT_SCORE
                    else:
                        snippet = f"{snippet} · [{document.extractor_name}]"
                        score = PAGE_SCORE
                    results.append(
                        SearchResult(
                            title=document.title,
                            path=str(path),
                            page=page.number,
                            section=None,
                            snippet=snippet,
                            score=score,
                        )
                    )
        if len(results) >= limit:
            break

    results.sort(key=lambda result: (-result.score, result.path))
    return results[:limit]

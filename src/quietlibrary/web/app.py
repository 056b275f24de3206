"""FastAPI application exposing search, indexing and cache maintenance."""

from __future__ import annotations

import asyncio
import logging
import threading
from pathlib import Path
from typing import Any, List

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from quietlibrary.config import AppConfig
from quietlibrary.context import LibraryContext
from quietlibrary.errors import IndexEngineError, IndexUnavailableError
from quietlibrary.index.indexer import Indexer
from quietlibrary.index.search import Searcher, search_with_fallback

LOGGER = logging.getLogger(__name__)

# One index job at a time: rebuilds remove the index directory and tantivy allows a single writer.
_INDEX_LOCK = threading.Lock()

app = FastAPI(title="QuietLibrary", version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


class SearchPayload(BaseModel):
    query: str
    limit: int = 20
    folders: List[str] = []


class PagesPayload(BaseModel):
    path: str
    query: str
    limit: int = 1000


class IndexPayload(BaseModel):
    folders: List[str]
    full: bool = False


def configure(context: LibraryContext) -> None:
    """Attach the context every request handler works against."""
    app.state.context = context


def get_context(request: Request) -> LibraryContext:
    context = getattr(request.app.state, "context", None)
    if context is None:
        config = AppConfig()
        config.app_dir = config.resolve_app_dir(Path.cwd())
        config.app_dir.mkdir(parents=True, exist_ok=True)
        context = LibraryContext.from_config(config)
        request.app.state.context = context
    return context


@app.on_event("startup")
async def startup_event() -> None:
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")


@app.post("/search")
async def search_documents(
    payload: SearchPayload, context: LibraryContext = Depends(get_context)
) -> dict[str, Any]:
    query = payload.query.strip()
    if not query:
        raise HTTPException(status_code=400, detail="Empty query")

    limit = max(1, min(payload.limit, 100))
    results = await asyncio.to_thread(
        search_with_fallback, context, query, limit=limit, folders=payload.folders
    )
    return {"results": results}


@app.post("/pages")
async def matching_pages(
    payload: PagesPayload, context: LibraryContext = Depends(get_context)
) -> dict[str, Any]:
    if not payload.query.strip():
        raise HTTPException(status_code=400, detail="Empty query")
    try:
        pages = await asyncio.to_thread(
            Searcher(context).search_pages, payload.path, payload.query, limit=payload.limit
        )
    except IndexUnavailableError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except IndexEngineError as exc:
        LOGGER.error("Page search failed: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    return {"path": payload.path, "pages": pages}


def _run_index_job(context: LibraryContext, folders: List[Path], full: bool) -> dict[str, Any]:
    indexer = Indexer(context)
    stats = indexer.rebuild(folders) if full else indexer.update(folders)
    return {
        "added": stats.added,
        "updated": stats.updated,
        "deleted": stats.deleted,
        "unchanged": stats.unchanged,
        "failed": stats.failed,
        "documents": stats.documents,
        "processed_files": list(stats.processed_files),
    }


@app.post("/index")
async def index_documents(
    payload: IndexPayload, context: LibraryContext = Depends(get_context)
) -> dict[str, Any]:
    folders = []
    for raw in payload.folders:
        clean = raw.strip().replace("\r", "").replace("\n", "")
        if not clean:
            continue
        if "\0" in clean:
            raise HTTPException(status_code=400, detail="Invalid path: contains null byte")
        folders.append(Path(clean).expanduser())
    if not folders:
        raise HTTPException(status_code=400, detail="No folder provided")

    if not _INDEX_LOCK.acquire(blocking=False):
        raise HTTPException(status_code=409, detail="Indexing already in progress")
    try:
        stats = await asyncio.to_thread(_run_index_job, context, folders, payload.full)
    except IndexEngineError as exc:
        LOGGER.exception("Indexing failed: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    finally:
        _INDEX_LOCK.release()
    return {"status": "ok", "index": str(context.config.index_dir), "stats": stats}


@app.post("/cache/prune")
async def prune_cache(context: LibraryContext = Depends(get_context)) -> dict[str, Any]:
    removed = await asyncio.to_thread(context.cache.prune)
    return {"status": "ok", "removed": removed}


@app.delete("/cache")
async def clear_cache(context: LibraryContext = Depends(get_context)) -> dict[str, str]:
    await asyncio.to_thread(context.cache.clear)
    return {"status": "ok"}

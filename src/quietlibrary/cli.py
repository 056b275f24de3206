"""Command line interface for QuietLibrary."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from quietlibrary.config import AppConfig
from quietlibrary.context import LibraryContext
from quietlibrary.errors import IndexEngineError, IndexUnavailableError
from quietlibrary.index.indexer import Indexer
from quietlibrary.index.search import Searcher, search_with_fallback
from quietlibrary.web.app import app as web_app, configure


console = Console()
app = typer.Typer(help="QuietLibrary - local full-text search for your documents")


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def _build_context(app_dir: Optional[Path]) -> LibraryContext:
    config = AppConfig(app_dir=app_dir if app_dir is not None else AppConfig().app_dir)
    config.app_dir = config.resolve_app_dir(Path.cwd())
    config.app_dir.mkdir(parents=True, exist_ok=True)
    return LibraryContext.from_config(config)


@app.command()
def index(
    folders: List[Path] = typer.Argument(..., help="Watched folders to index.", resolve_path=True),
    full: bool = typer.Option(False, "--full", help="Rebuild the index from scratch"),
    app_dir: Path = typer.Option(None, "--app-dir", help="Data directory (index, cache)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Index the given folders (incrementally unless --full)."""
    _setup_logging(verbose)
    context = _build_context(app_dir)
    indexer = Indexer(context)

    console.print(f"Indexing into [bold]{context.config.index_dir}[/bold]...")
    try:
        stats = indexer.rebuild(folders) if full else indexer.update(folders)
    except IndexEngineError as exc:
        console.print(f"[red]Indexing failed:[/red] {exc}")
        raise typer.Exit(code=1)

    console.print(
        f"Added: {stats.added}, updated: {stats.updated}, deleted: {stats.deleted}, "
        f"unchanged: {stats.unchanged}, failed: {stats.failed}"
    )


@app.command()
def search(
    query: str = typer.Argument(..., help="Query text"),
    folder: List[Path] = typer.Option([], "--folder", "-f", help="Folders to scan if the index is unavailable"),
    limit: int = typer.Option(20, help="Number of results to display"),
    app_dir: Path = typer.Option(None, "--app-dir", help="Data directory (index, cache)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Run a full-text search."""
    _setup_logging(verbose)
    context = _build_context(app_dir)

    results = search_with_fallback(context, query, limit=limit, folders=folder)
    if not results:
        console.print("[yellow]No matches found.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Score")
    table.add_column("Document")
    table.add_column("Page")
    table.add_column("Snippet")

    for result in results:
        snippet = result.snippet.replace("\n", " ")
        page = "" if result.page is None else str(result.page)
        table.add_row(f"{result.score:.4f}", result.path, page, snippet[:180])

    console.print(table)


@app.command()
def pages(
    path: Path = typer.Argument(..., help="Indexed document", resolve_path=True),
    query: str = typer.Argument(..., help="Query text"),
    limit: int = typer.Option(1000, help="Maximum number of rows to inspect"),
    app_dir: Path = typer.Option(None, "--app-dir", help="Data directory (index, cache)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """List the pages of one document that match a query."""
    _setup_logging(verbose)
    context = _build_context(app_dir)
    try:
        matches = Searcher(context).search_pages(str(path), query, limit=limit)
    except IndexUnavailableError:
        console.print("[yellow]Index not found, run 'index' first.[/yellow]")
        raise typer.Exit(code=1)
    except IndexEngineError as exc:
        console.print(f"[red]Search failed:[/red] {exc}")
        raise typer.Exit(code=1)

    if not matches:
        console.print("[yellow]No matching pages.[/yellow]")
        return
    console.print("Pages: " + ", ".join(str(page) for page in matches))


@app.command("prune-cache")
def prune_cache(
    app_dir: Path = typer.Option(None, "--app-dir", help="Data directory (index, cache)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Evict expired and over-budget extraction cache entries."""
    _setup_logging(verbose)
    context = _build_context(app_dir)
    removed = context.cache.prune()
    console.print(f"Removed {removed} cache entries.")


@app.command("clear-cache")
def clear_cache(
    app_dir: Path = typer.Option(None, "--app-dir", help="Data directory (index, cache)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Delete the whole extraction cache."""
    _setup_logging(verbose)
    context = _build_context(app_dir)
    context.cache.clear()
    console.print("Extraction cache cleared.")


@app.command()
def web(
    host: str = typer.Option("127.0.0.1", help="Host interface"),
    port: int = typer.Option(8000, help="Server port"),
    app_dir: Path = typer.Option(None, "--app-dir", help="Data directory (index, cache)"),
) -> None:
    """Start the HTTP API."""
    try:
        import uvicorn
    except ImportError as exc:  # pragma: no cover - defensive
        raise typer.BadParameter(
            "uvicorn is not installed. Install the web extras with \"python -m pip install '.[web]'\""
        ) from exc

    context = _build_context(app_dir)
    configure(context)
    console.print(f"Starting API on http://{host}:{port} (data: {context.config.app_dir})")
    uvicorn.run(web_app, host=host, port=port, reload=False, log_level="info")


if __name__ == "__main__":  # pragma: no cover
    app()

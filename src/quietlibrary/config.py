"""Application configuration defaults."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from pathlib import Path


def _get_default_app_dir() -> Path:
    """Get the default data directory based on platform and execution context."""
    user_dir = Path.home() / "Documents" / "QuietLibrary"

    # When running as a frozen app (PyInstaller bundle)
    if getattr(sys, "frozen", False):
        return user_dir

    # When running from source, prefer local data/ if it exists
    local_dir = Path("data/quietlibrary")
    if local_dir.exists():
        return local_dir

    return user_dir


@dataclass(slots=True)
class AppConfig:
    app_dir: Path | None = None
    text_max_bytes: int = 2 * 1024 * 1024
    cache_max_bytes: int = 300 * 1024 * 1024
    cache_max_age_secs: int = 30 * 24 * 60 * 60
    prune_interval_secs: int = 10 * 60
    cache_max_pages: int = 2_000
    index_max_pages: int = 300
    scan_max_pages: int = 50
    min_workers: int = 2
    max_workers: int = 8
    writer_heap_bytes: int = 128 * 1024 * 1024
    snippet_chars: int = 400

    def __post_init__(self) -> None:
        if self.app_dir is None:
            self.app_dir = _get_default_app_dir()

    def resolve_app_dir(self, base_dir: Path | None = None) -> Path:
        if self.app_dir is None:
            self.app_dir = _get_default_app_dir()
        if Path(self.app_dir).is_absolute() or base_dir is None:
            return Path(self.app_dir)
        return base_dir / self.app_dir

    @property
    def index_dir(self) -> Path:
        return Path(self.app_dir) / "index"

    @property
    def cache_dir(self) -> Path:
        return Path(self.app_dir) / "cache"

    @property
    def fingerprints_path(self) -> Path:
        return Path(self.app_dir) / "fingerprints.json"

"""Explicit owner of the caches shared by indexing and search."""

from __future__ import annotations

from dataclasses import dataclass

from quietlibrary.config import AppConfig
from quietlibrary.index.fingerprints import FingerprintStore
from quietlibrary.index.storage import IndexHandleCache
from quietlibrary.ingestion.cache import ExtractionCache
from quietlibrary.ingestion.extractor import Extractor, default_strategies


@dataclass(slots=True)
class LibraryContext:
    config: AppConfig
    extractor: Extractor
    cache: ExtractionCache
    handles: IndexHandleCache
    fingerprints: FingerprintStore

    @classmethod
    def from_config(cls, config: AppConfig, *, extractor: Extractor | None = None) -> "LibraryContext":
        extractor = extractor or Extractor(default_strategies(text_max_bytes=config.text_max_bytes))
        cache = ExtractionCache(
            config.cache_dir,
            extractor,
            max_bytes=config.cache_max_bytes,
            max_age_secs=config.cache_max_age_secs,
            prune_interval_secs=config.prune_interval_secs,
        )
        return cls(
            config=config,
            extractor=extractor,
            cache=cache,
            handles=IndexHandleCache(config.index_dir),
            fingerprints=FingerprintStore(config.fingerprints_path),
        )

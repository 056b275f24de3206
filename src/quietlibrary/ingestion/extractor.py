"""Ordered extraction strategies with an explicit tagged outcome."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Collection, List, Optional, Set

from quietlibrary.errors import ExtractionError
from quietlibrary.ingestion.pdf_loader import (
    PYMUPDF,
    PYMUPDF_EXTRACTOR,
    PYPDF_EXTRACTOR,
    PyMuPDFBinding,
    pymupdf_document,
    pypdf_document,
)
from quietlibrary.ingestion.text_loader import (
    DEFAULT_MAX_BYTES,
    TEXT_EXTRACTOR,
    extract_text_document,
)
from quietlibrary.models import ExtractedDocument, ExtractorKind
from quietlibrary.utils.files import is_pdf, is_supported_text

LOGGER = logging.getLogger(__name__)

PRIMARY_EXTRACTORS = frozenset({TEXT_EXTRACTOR, PYMUPDF_EXTRACTOR})


class ExtractionStatus(str, Enum):
    PRIMARY = "primary"
    FALLBACK = "fallback"
    FAILED = "failed"


@dataclass(slots=True)
class ExtractionOutcome:
    """Result of running the strategy chain on one file."""

    status: ExtractionStatus
    document: Optional[ExtractedDocument] = None
    reason: Optional[str] = None

    @classmethod
    def failed(cls, reason: str) -> "ExtractionOutcome":
        return cls(status=ExtractionStatus.FAILED, reason=reason)

    @property
    def ok(self) -> bool:
        return self.status is not ExtractionStatus.FAILED


@dataclass(slots=True)
class ExtractionStrategy:
    name: str
    kind: ExtractorKind
    applies: Callable[[Path], bool]
    run: Callable[[Path], ExtractedDocument]
    available: Callable[[], bool] = field(default=lambda: True)


def kind_for_extractor(name: str | None) -> ExtractorKind:
    """Map a persisted extractor name back to its quality tier."""
    return ExtractorKind.PRIMARY if name in PRIMARY_EXTRACTORS else ExtractorKind.FALLBACK


def should_upgrade(cached_kind: ExtractorKind, available_kinds: Collection[ExtractorKind]) -> bool:
    """True when a cached fallback result could be replaced by a primary pass."""
    return cached_kind is ExtractorKind.FALLBACK and ExtractorKind.PRIMARY in available_kinds


def default_strategies(
    *, binding: PyMuPDFBinding = PYMUPDF, text_max_bytes: int = DEFAULT_MAX_BYTES
) -> List[ExtractionStrategy]:
    return [
        ExtractionStrategy(
            name=TEXT_EXTRACTOR,
            kind=ExtractorKind.PRIMARY,
            applies=is_supported_text,
            run=lambda path: extract_text_document(path, max_bytes=text_max_bytes),
        ),
        ExtractionStrategy(
            name=PYMUPDF_EXTRACTOR,
            kind=ExtractorKind.PRIMARY,
            applies=is_pdf,
            run=lambda path: pymupdf_document(path, binding),
            available=lambda: binding.available,
        ),
        ExtractionStrategy(
            name=PYPDF_EXTRACTOR,
            kind=ExtractorKind.FALLBACK,
            applies=is_pdf,
            run=pypdf_document,
        ),
    ]


class Extractor:
    """Runs the first applicable, available strategy that succeeds."""

    def __init__(self, strategies: List[ExtractionStrategy] | None = None) -> None:
        self.strategies = strategies if strategies is not None else default_strategies()

    def strategies_for(self, path: Path) -> List[ExtractionStrategy]:
        return [strategy for strategy in self.strategies if strategy.applies(path)]

    def available_kinds(self, path: Path) -> Set[ExtractorKind]:
        return {s.kind for s in self.strategies_for(path) if s.available()}

    def extract(
        self, path: Path, *, kinds: Collection[ExtractorKind] | None = None
    ) -> ExtractionOutcome:
        reasons: List[str] = []
        for strategy in self.strategies_for(path):
            if kinds is not None and strategy.kind not in kinds:
                continue
            if not strategy.available():
                reasons.append(f"{strategy.name}: unavailable")
                continue
            try:
                document = strategy.run(path)
            except Exception as exc:
                LOGGER.debug("Extractor %s failed on %s: %s", strategy.name, path, exc)
                reasons.append(f"{strategy.name}: {exc}")
                continue
            LOGGER.debug(
                "extractor=%s file=%s (%d pages)", strategy.name, path, len(document.pages)
            )
            return ExtractionOutcome(status=ExtractionStatus(strategy.kind.value), document=document)

        if not reasons:
            reasons.append("unsupported file type")
        return ExtractionOutcome.failed("; ".join(reasons))

    def extract_or_raise(self, path: Path) -> ExtractedDocument:
        outcome = self.extract(path)
        if outcome.document is None:
            raise ExtractionError(str(path), outcome.reason or "extraction failed")
        return outcome.document

"""Shared fixtures: isolated app directories and scripted extractors."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, List

import pytest

from quietlibrary.config import AppConfig
from quietlibrary.context import LibraryContext
from quietlibrary.ingestion.extractor import ExtractionStrategy, Extractor, default_strategies
from quietlibrary.ingestion.pdf_loader import PyMuPDFBinding
from quietlibrary.models import ExtractedDocument, ExtractorKind, Page
from quietlibrary.utils.files import is_pdf


class FakePdfStrategy:
    """PDF strategy returning scripted pages and counting its runs."""

    def __init__(self, name: str, kind: ExtractorKind, pages: List[str], *, fail: bool = False) -> None:
        self.name = name
        self.kind = kind
        self.pages = pages
        self.fail = fail
        self.available = True
        self.calls = 0

    def run(self, path: Path) -> ExtractedDocument:
        self.calls += 1
        if self.fail:
            raise ValueError(f"{self.name} cannot read {path.name}")
        return ExtractedDocument(
            title=path.name,
            path=str(path),
            pages=[Page(number=i + 1, body=body) for i, body in enumerate(self.pages)],
            extractor=self.kind,
            extractor_name=self.name,
        )

    def strategy(self) -> ExtractionStrategy:
        return ExtractionStrategy(
            name=self.name,
            kind=self.kind,
            applies=is_pdf,
            run=self.run,
            available=lambda: self.available,
        )


def text_strategies() -> List[ExtractionStrategy]:
    """Default text strategy only, with PyMuPDF forced unavailable."""
    binding = PyMuPDFBinding(module_name="quietlibrary_no_such_module")
    return [s for s in default_strategies(binding=binding) if s.name == "text"]


@pytest.fixture
def make_context(tmp_path: Path) -> Callable[..., LibraryContext]:
    def factory(*strategies: ExtractionStrategy, **overrides) -> LibraryContext:
        config = AppConfig(app_dir=tmp_path / "app", **overrides)
        extractor = Extractor(text_strategies() + list(strategies))
        return LibraryContext.from_config(config, extractor=extractor)

    return factory


@pytest.fixture
def docs_dir(tmp_path: Path) -> Path:
    folder = tmp_path / "docs"
    folder.mkdir()
    return folder

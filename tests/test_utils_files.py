"""Tests for file utility functions."""

from __future__ import annotations

import os
from pathlib import Path

from quietlibrary.utils.files import (
    cache_key,
    file_fingerprint,
    is_pdf,
    is_supported,
    is_supported_text,
    iter_document_paths,
)


class TestSupportedTypes:
    """Test extension checks."""

    def test_text_extensions(self) -> None:
        """Text, Markdown and HTML are text-like, case-insensitively."""
        for name in ("a.txt", "b.md", "c.markdown", "d.html", "e.HTM"):
            assert is_supported_text(Path(name))

    def test_pdf_extension(self) -> None:
        """PDF detection ignores case."""
        assert is_pdf(Path("paper.PDF"))
        assert not is_pdf(Path("paper.txt"))

    def test_unsupported(self) -> None:
        """Other formats are skipped."""
        assert not is_supported(Path("image.png"))
        assert not is_supported(Path("noextension"))


class TestIterDocumentPaths:
    """Test iter_document_paths function."""

    def test_walks_recursively(self, tmp_path: Path) -> None:
        """Should yield supported files in nested folders."""
        (tmp_path / "sub" / "deeper").mkdir(parents=True)
        (tmp_path / "a.txt").write_text("a")
        (tmp_path / "sub" / "b.md").write_text("b")
        (tmp_path / "sub" / "deeper" / "c.pdf").write_bytes(b"%PDF")
        (tmp_path / "sub" / "ignored.png").write_bytes(b"png")

        paths = list(iter_document_paths([tmp_path]))

        names = sorted(path.name for path in paths)
        assert names == ["a.txt", "b.md", "c.pdf"]
        assert all(path.is_absolute() for path in paths)

    def test_single_file_root(self, tmp_path: Path) -> None:
        """A watched path that is a file is yielded as is."""
        note = tmp_path / "note.txt"
        note.write_text("hi")
        assert list(iter_document_paths([note])) == [note.absolute()]

    def test_missing_folder_is_skipped(self, tmp_path: Path) -> None:
        """Missing folders are skipped without raising."""
        (tmp_path / "a.txt").write_text("a")
        paths = list(iter_document_paths([tmp_path / "missing", tmp_path]))
        assert [path.name for path in paths] == ["a.txt"]

    def test_accepts_strings(self, tmp_path: Path) -> None:
        """Folders can be given as strings."""
        (tmp_path / "a.html").write_text("<p>a</p>")
        assert len(list(iter_document_paths([str(tmp_path)]))) == 1


class TestFingerprints:
    """Test file_fingerprint and cache_key."""

    def test_fingerprint_tracks_mtime_and_size(self, tmp_path: Path) -> None:
        """Fingerprint changes when mtime or size changes."""
        path = tmp_path / "a.txt"
        path.write_text("one")
        first = file_fingerprint(path)
        assert first.size == 3

        os.utime(path, (first.mtime_secs + 10, first.mtime_secs + 10))
        second = file_fingerprint(path)
        assert second != first
        assert second.mtime_secs == first.mtime_secs + 10

    def test_cache_key_is_stable_hex(self) -> None:
        """Same inputs give the same fixed-width key."""
        key = cache_key("/docs/a.pdf", 100, 2048)
        assert key == cache_key("/docs/a.pdf", 100, 2048)
        assert len(key) == 16
        int(key, 16)

    def test_cache_key_varies_with_each_component(self) -> None:
        """Path, mtime and size all feed the key."""
        base = cache_key("/docs/a.pdf", 100, 2048)
        assert cache_key("/docs/b.pdf", 100, 2048) != base
        assert cache_key("/docs/a.pdf", 101, 2048) != base
        assert cache_key("/docs/a.pdf", 100, 2049) != base

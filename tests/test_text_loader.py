"""Tests for text, Markdown and HTML extraction."""

from __future__ import annotations

from pathlib import Path

from quietlibrary.ingestion.text_loader import (
    TEXT_EXTRACTOR,
    extract_text_document,
    extract_title_and_text,
    html_to_text,
    markdown_title,
    read_prefix,
    strip_markdown,
)
from quietlibrary.models import ExtractorKind


class TestReadPrefix:
    """Test read_prefix function."""

    def test_respects_byte_cap(self, tmp_path: Path) -> None:
        """Only the first max_bytes are read."""
        path = tmp_path / "big.txt"
        path.write_text("a" * 100)
        assert read_prefix(path, 10) == "a" * 10

    def test_lossy_decoding(self, tmp_path: Path) -> None:
        """Invalid UTF-8 is replaced instead of raising."""
        path = tmp_path / "bad.txt"
        path.write_bytes(b"ok \xff\xfe done")
        assert read_prefix(path).startswith("ok ")
        assert read_prefix(path).endswith(" done")


class TestHtmlToText:
    """Test html_to_text function."""

    def test_title_and_visible_text(self) -> None:
        """Should return the <title> and text without markup or scripts."""
        raw = (
            "<html><head><title> My  Page </title><style>p {color: red}</style></head>"
            "<body><p>First paragraph</p><script>var x = 1;</script><p>Second</p></body></html>"
        )
        title, text = html_to_text(raw)
        assert title == "My Page"
        assert "First paragraph" in text
        assert "Second" in text
        assert "var x" not in text
        assert "color" not in text
        assert "<p>" not in text

    def test_block_tags_separate_paragraphs(self) -> None:
        """Block elements become separate paragraphs."""
        _title, text = html_to_text("<div>one</div><div>two</div>")
        assert text == "one\n\ntwo"

    def test_missing_title(self) -> None:
        """Pages without <title> have no title."""
        title, _text = html_to_text("<p>body</p>")
        assert title is None


class TestMarkdown:
    """Test Markdown helpers."""

    def test_strip_markdown(self) -> None:
        """Headings, emphasis, links and code reduce to their text."""
        raw = "# Title\n\nSome **bold** and *em* text with a [link](http://x.y) and `code`.\n\n- item one\n- item two"
        text = strip_markdown(raw)
        assert text.startswith("Title\n\nSome bold and em text with a link and code.")
        assert "item one" in text
        assert "**" not in text
        assert "http" not in text

    def test_hashtag_is_not_a_heading(self) -> None:
        """A word glued to a hash mark stays text."""
        assert "#hashtag" in strip_markdown("#hashtag is text")

    def test_markdown_title_prefers_h1(self) -> None:
        """The H1 wins over earlier lower-level headings."""
        assert markdown_title("## Intro\n\n# Main *Title*\n") == "Main Title"

    def test_markdown_title_any_heading(self) -> None:
        """Without an H1 the first heading is used."""
        assert markdown_title("text\n\n### Notes\n") == "Notes"

    def test_markdown_title_none(self) -> None:
        """No heading, no title."""
        assert markdown_title("just text") is None


class TestExtractTitleAndText:
    """Test extract_title_and_text and extract_text_document."""

    def test_plain_text_first_line_title(self, tmp_path: Path) -> None:
        """Plain text uses the first non-empty line as title."""
        path = tmp_path / "notes.txt"
        path.write_text("\n\n  Shopping list  \nmilk\n\neggs\n")
        title, text = extract_title_and_text(path)
        assert title == "Shopping list"
        assert text == "Shopping list milk\n\neggs"

    def test_empty_file_falls_back_to_name(self, tmp_path: Path) -> None:
        """Empty files are titled by their file name."""
        path = tmp_path / "empty.md"
        path.write_text("")
        title, text = extract_title_and_text(path)
        assert title == "empty.md"
        assert text == ""

    def test_html_file(self, tmp_path: Path) -> None:
        """HTML files use <title>."""
        path = tmp_path / "page.html"
        path.write_text("<title>Doc</title><p>Hello world</p>")
        title, text = extract_title_and_text(path)
        assert title == "Doc"
        assert "Hello world" in text

    def test_extract_text_document(self, tmp_path: Path) -> None:
        """Text documents are a single unnumbered page from the primary extractor."""
        path = tmp_path / "notes.txt"
        path.write_text("Hello world")
        document = extract_text_document(path)
        assert document.path == str(path)
        assert len(document.pages) == 1
        assert document.pages[0].number is None
        assert document.pages[0].body == "Hello world"
        assert document.extractor is ExtractorKind.PRIMARY
        assert document.extractor_name == TEXT_EXTRACTOR

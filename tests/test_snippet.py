"""Tests for snippet generation."""

from __future__ import annotations

from quietlibrary.utils.snippet import make_snippet, make_snippets


class TestMakeSnippet:
    """Test make_snippet function."""

    def test_centered_on_match(self) -> None:
        """The window surrounds the first match."""
        text = "x" * 100 + "needle" + "y" * 100
        snippet = make_snippet(text, "needle", 20)
        assert "needle" in snippet
        assert snippet == "x" * 10 + "needle" + "y" * 10

    def test_case_insensitive(self) -> None:
        """Matching ignores case."""
        assert "Hello" in make_snippet("Say Hello there", "hello", 40)

    def test_no_match_returns_head(self) -> None:
        """Without a match the head of the text is returned."""
        assert make_snippet("abcdefghij", "zzz", 4) == "abcd"

    def test_empty_inputs(self) -> None:
        """Empty text or blank query produce an empty snippet."""
        assert make_snippet("", "query", 10) == ""
        assert make_snippet("some text", "   ", 10) == ""

    def test_match_at_start(self) -> None:
        """A match at offset zero does not underflow."""
        assert make_snippet("needle in a haystack", "needle", 8) == "needle in"

    def test_multibyte_text(self) -> None:
        """Windows never split a character."""
        text = "ééééé 東京タワー ééééé"
        snippet = make_snippet(text, "東京", 4)
        assert "東京" in snippet
        assert snippet in text


class TestMakeSnippets:
    """Test make_snippets function."""

    def test_one_snippet_per_matching_paragraph(self) -> None:
        """Each paragraph containing the query yields one snippet."""
        text = "I like apples.\n\nBananas are yellow.\n\nApple pie is great."
        snippets = make_snippets(text, "apple", 400)
        assert snippets == ["I like apples.", "Apple pie is great."]

    def test_no_match(self) -> None:
        """No paragraph matches, no snippets."""
        assert make_snippets("one\n\ntwo", "three", 100) == []

    def test_blank_query(self) -> None:
        """A blank query never matches."""
        assert make_snippets("one\n\ntwo", " ", 100) == []

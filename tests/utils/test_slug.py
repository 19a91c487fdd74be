"""Unit tests for slug generation."""

import pytest

from blogforge.utils.slug import slugify


class TestSlugify:
    def test_title_with_punctuation(self) -> None:
        assert slugify("How to Restore Old Photos (2025 Guide)!") == "how-to-restore-old-photos-2025-guide"

    def test_collapses_whitespace_and_hyphen_runs(self) -> None:
        assert slugify("  Photo   restoration -- made  easy ") == "photo-restoration-made-easy"

    def test_strips_leading_and_trailing_hyphens(self) -> None:
        assert slugify("- Best tips -") == "best-tips"

    @pytest.mark.parametrize("text", ["", "   ", "!!!", "¿?"])
    def test_nothing_usable_gives_empty_slug(self, text: str) -> None:
        assert slugify(text) == ""

    def test_output_alphabet(self) -> None:
        slug = slugify("Café & Crème: 10 Ways_to Win")
        assert all(c.isascii() and (c.isalnum() or c == "-") for c in slug)
        assert slug == slug.lower()
        assert "--" not in slug

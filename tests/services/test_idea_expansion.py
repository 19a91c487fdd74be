"""Tests for idea universe expansion and competitor validation."""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from blogforge.schemas.brand import BrandDetails
from blogforge.services.idea_expansion import (
    build_validation_prompt,
    expand_idea_universe,
    format_idea_universe,
    validate_with_competitors,
)
from tests.conftest import completion


@pytest.fixture
def gemini() -> MagicMock:
    client = MagicMock()
    client.generate = AsyncMock()
    return client


class TestExpandIdeaUniverse:
    async def test_returns_clean_domains_capped_at_fifteen(
        self, gemini: MagicMock, brand_details: BrandDetails
    ) -> None:
        domains = ["  grief and remembrance  ", ""] + [f"domain {i}" for i in range(20)]
        gemini.generate.return_value = completion(json.dumps({"domains": domains}))

        result = await expand_idea_universe(gemini, brand_details)

        assert result[0] == "grief and remembrance"
        assert len(result) == 15
        assert "" not in result
        prompt = gemini.generate.await_args.args[0]
        assert "Restora" in prompt
        assert "Do NOT output keywords" in prompt

    async def test_failure_returns_empty(self, gemini: MagicMock, brand_details: BrandDetails) -> None:
        gemini.generate.return_value = completion(success=False)
        assert await expand_idea_universe(gemini, brand_details) == []

    async def test_unparseable_returns_empty(self, gemini: MagicMock, brand_details: BrandDetails) -> None:
        gemini.generate.return_value = completion("here are some ideas: family history")
        assert await expand_idea_universe(gemini, brand_details) == []


class TestValidateWithCompetitors:
    async def test_missing_and_invalid_labels_default_to_none(self, gemini: MagicMock) -> None:
        gemini.generate.return_value = completion(
            json.dumps({"coverage": {"family history": "HEAVY", "grief": "medium"}})
        )

        coverage = await validate_with_competitors(
            gemini, ["family history", "grief", "scrapbooking"], "competitor posts"
        )

        assert coverage == {"family history": "heavy", "grief": "none", "scrapbooking": "none"}

    async def test_total_failure_marks_every_domain_none(self, gemini: MagicMock) -> None:
        gemini.generate.return_value = completion(success=False)
        coverage = await validate_with_competitors(gemini, ["a", "b"], "text")
        assert coverage == {"a": "none", "b": "none"}

    async def test_no_domains_skips_the_call(self, gemini: MagicMock) -> None:
        assert await validate_with_competitors(gemini, [], "text") == {}
        gemini.generate.assert_not_awaited()


def test_validation_prompt_truncates_competitor_text() -> None:
    prompt = build_validation_prompt(["a"], "x" * 50 + "TAIL", budget=50)
    assert "TAIL" not in prompt
    assert "1. a" in prompt


def test_format_idea_universe_marks_levels() -> None:
    text = format_idea_universe(["a", "b", "c"], {"a": "heavy", "b": "light"})
    assert text.splitlines() == ["🔴 [HEAVY] a", "🟡 [LIGHT] b", "🟢 [NONE] c"]

"""Tests for the Search Console content plan service."""

import json
from datetime import date
from unittest.mock import AsyncMock, MagicMock

import pytest

from blogforge.schemas.content_plan import GSCPlanCandidate, GSCQueryRow
from blogforge.services.errors import ContentPlanError, ContentPlanValidationError
from blogforge.services.gsc_plan import (
    GSCPlanService,
    build_gsc_plan_prompt,
    map_plan_items,
    match_cluster,
)
from blogforge.services.query_clustering import ClusterCategory, KeywordCluster
from blogforge.services.query_scoring import QueryIntent
from tests.conftest import completion


def _cluster(primary: str, supporting: list[str] | None = None, score: int = 55) -> KeywordCluster:
    return KeywordCluster(
        primary_keyword=primary,
        supporting_keywords=supporting or [],
        intent=QueryIntent.INFORMATIONAL,
        opportunity_score=score,
        impressions=400,
        position=11.5,
        ctr=0.01,
        expected_ctr=0.01,
        category=ClusterCategory.QUICK_WIN,
    )


ROWS = [
    GSCQueryRow(query="restore old photos", impressions=900, clicks=5, ctr=0.005, position=12),
    GSCQueryRow(query="restore old photos free", impressions=300, clicks=1, ctr=0.003, position=15),
    GSCQueryRow(query="buy", impressions=5000, clicks=50, ctr=0.01, position=3),
]


class TestMatchCluster:
    def test_exact_then_case_insensitive_then_substring(self) -> None:
        clusters = [_cluster("restore old photos"), _cluster("colorize photos")]
        assert match_cluster("restore old photos", clusters) is clusters[0]
        assert match_cluster("Colorize Photos", clusters) is clusters[1]
        assert match_cluster("how to colorize photos fast", clusters) is clusters[1]
        assert match_cluster("unrelated", clusters) is None
        assert match_cluster("", clusters) is None


class TestMapPlanItems:
    def test_items_carry_cluster_metrics_and_dates(self) -> None:
        clusters = [_cluster("restore old photos", ["restore old photos free"], score=72)]
        candidates = [
            GSCPlanCandidate(gsc_query="restore old photos", title="Fix Faded Photos Fast", badge="quick_win"),
            GSCPlanCandidate(
                gsc_query="Restore Old Photos",
                target_keyword="restore water damaged photos",
                article_type="listicle",
                badge="viral",
                impact="High",
            ),
        ]

        items = map_plan_items(candidates, clusters, today=date(2026, 1, 31), timestamp_ms=1000)

        first, second = items
        assert first.id == "gsc-plan-1000-0"
        assert first.scheduled_date == "2026-01-31"
        assert first.main_keyword == "restore old photos"
        assert first.supporting_keywords == ["restore old photos free"]
        assert first.opportunity_score == 72
        assert first.gsc_impressions == 400
        assert first.badge == "quick_win"
        assert first.status == "pending"

        assert second.scheduled_date == "2026-02-01"
        assert second.main_keyword == "restore water damaged photos"
        assert second.article_type == "informational"
        assert second.badge is None
        assert second.impact == "High"
        assert second.title == "Post 2"

    def test_unmatched_entry_gets_zero_metrics(self) -> None:
        items = map_plan_items([GSCPlanCandidate(gsc_query="nothing like it")], [], today=date(2026, 1, 1))
        assert items[0].gsc_impressions == 0
        assert items[0].opportunity_score == 0

    def test_capped_at_thirty(self) -> None:
        candidates = [GSCPlanCandidate(gsc_query=f"query {i}") for i in range(40)]
        assert len(map_plan_items(candidates, [], today=date(2026, 1, 1))) == 30


def test_prompt_embeds_clusters_and_fallbacks() -> None:
    prompt = build_gsc_plan_prompt([_cluster("restore old photos")], None, [], today=date(2026, 5, 1))
    assert "[Current Date: May 2026]" in prompt
    assert "No brand data available" in prompt
    assert "No competitor data available" in prompt
    assert '"primary_keyword": "restore old photos"' in prompt


class TestGSCPlanService:
    @pytest.fixture
    def gemini(self) -> MagicMock:
        client = MagicMock()
        client.generate = AsyncMock()
        return client

    async def test_generate(self, gemini: MagicMock) -> None:
        gemini.generate.return_value = completion(
            "```json\n"
            + json.dumps(
                [
                    {"gsc_query": "restore old photos", "title": "Bring Old Photos Back", "badge": "quick_win"},
                    "not an entry",
                    {"gsc_query": "restore old photos free", "title": "Free Fixes", "opportunity_score": "high"},
                ]
            )
            + "\n```"
        )

        result = await GSCPlanService(gemini).generate(ROWS, {"product_name": "Restora"}, ["competitor"])

        assert result.kept_queries == 2
        assert len(result.clusters) == 1
        assert [item.title for item in result.items] == ["Bring Old Photos Back"]
        assert result.items[0].supporting_keywords == ["restore old photos free"]
        assert gemini.generate.await_args.kwargs["json_output"] is True

    async def test_nothing_survives_filter(self, gemini: MagicMock) -> None:
        with pytest.raises(ContentPlanValidationError):
            await GSCPlanService(gemini).generate([ROWS[2]])
        gemini.generate.assert_not_awaited()

    async def test_branded_rows_are_filtered(self, gemini: MagicMock) -> None:
        rows = [GSCQueryRow(query="restora photo review", impressions=900, ctr=0.01, position=8)]
        with pytest.raises(ContentPlanValidationError):
            await GSCPlanService(gemini).generate(rows, brand_name="Restora")

    async def test_request_failure(self, gemini: MagicMock) -> None:
        gemini.generate.return_value = completion(success=False)
        with pytest.raises(ContentPlanError):
            await GSCPlanService(gemini).generate(ROWS)

    async def test_unparseable_response(self, gemini: MagicMock) -> None:
        gemini.generate.return_value = completion("Sorry, I can't do that.")
        with pytest.raises(ContentPlanError, match="Failed to parse"):
            await GSCPlanService(gemini).generate(ROWS)

"""Tests for strategic content plan generation."""

import json
from collections.abc import Iterator
from datetime import date
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from blogforge.integrations.gemini import CompletionResult
from blogforge.models.brand import Brand
from blogforge.models.content_plan import ContentPlan
from blogforge.repositories.content_plan import ContentPlanRepository
from blogforge.schemas.brand import BrandDetails
from blogforge.schemas.content_plan import ContentPlanGenerateRequest, PlanPostCandidate
from blogforge.services.content_plan_generator import (
    PLAN_SIZE,
    ContentPlanGenerator,
    build_plan_prompt,
    category_shortfall,
    finalize_plan_items,
)
from blogforge.services.errors import BrandNotFoundError, ContentPlanError
from blogforge.services.topic_memory import DuplicateCheck
from tests.conftest import completion

TODAY = date(2026, 5, 1)

CATEGORY_LAYOUT = (
    ["Core Answers"] * 12
    + ["Supporting Articles"] * 8
    + ["Conversion Pages"] * 6
    + ["Authority Plays"] * 4
)


def _post(index: int, category: str = "Core Answers", **overrides: Any) -> dict[str, Any]:
    post = {
        "title": f"Photo Restoration Topic {index}",
        "main_keyword": f"restore photos {index}",
        "supporting_keywords": [f"kw {index}a", f"kw {index}b"],
        "article_type": "informational",
        "cluster": "Restoration",
        "intent_role": "Core Answer",
        "article_category": category,
        "parent_question": f"Question number {index}?",
    }
    post.update(overrides)
    return post


def _posts_completion(posts: list[dict[str, Any]]) -> CompletionResult:
    return completion(json.dumps({"posts": posts}))


def _full_plan() -> list[dict[str, Any]]:
    return [_post(i, category) for i, category in enumerate(CATEGORY_LAYOUT)]


def _request(**overrides: Any) -> ContentPlanGenerateRequest:
    data: dict[str, Any] = {"user_id": "user-1", "brand_id": "brand-1", "competitor_seeds": ["photo restoration"]}
    data.update(overrides)
    return ContentPlanGenerateRequest(**data)


def _generator(
    responses: list[CompletionResult], duplicate_titles: set[str] | None = None
) -> tuple[ContentPlanGenerator, MagicMock]:
    gemini = MagicMock()
    gemini.generate = AsyncMock(side_effect=responses)

    duplicate_titles = duplicate_titles or set()

    async def is_duplicate(session: AsyncSession, topic: str, user_id: str, brand_id: str | None) -> DuplicateCheck:
        title = topic.split(" : ")[0]
        return DuplicateCheck(is_duplicate=title in duplicate_titles, similar_article_id="old", similarity=0.9)

    topic_memory = MagicMock()
    topic_memory.is_duplicate = AsyncMock(side_effect=is_duplicate)
    coverage = MagicMock()
    coverage.get_coverage_context = AsyncMock(return_value=[])
    generator = ContentPlanGenerator(
        gemini, topic_memory=topic_memory, coverage=coverage, max_top_up_attempts=2
    )
    return generator, gemini


@pytest.fixture(autouse=True)
def no_idea_universe() -> Iterator[AsyncMock]:
    with patch(
        "blogforge.services.content_plan_generator.expand_idea_universe",
        new=AsyncMock(return_value=[]),
    ) as mock:
        yield mock


class TestGenerate:
    async def test_full_plan_is_dated_and_distributed(
        self, db_session: AsyncSession, brand_details: BrandDetails
    ) -> None:
        generator, gemini = _generator([_posts_completion(_full_plan())])

        result = await generator.generate(db_session, _request(), brand_details, today=TODAY)

        assert len(result.items) == PLAN_SIZE
        assert result.category_distribution == {
            "Core Answers": 12,
            "Supporting Articles": 8,
            "Conversion Pages": 6,
            "Authority Plays": 4,
        }
        assert result.items[0].scheduled_date == "2026-05-01"
        assert result.items[29].scheduled_date == "2026-05-30"
        assert all(item.status == "pending" for item in result.items)
        assert result.top_up_attempts == 0
        assert gemini.generate.await_count == 1

    async def test_duplicate_parent_question_triggers_top_up(
        self, db_session: AsyncSession, brand_details: BrandDetails
    ) -> None:
        posts = _full_plan()
        posts[5]["parent_question"] = "  QUESTION NUMBER 4?"
        top_up = [_post(99, "Core Answers")]
        generator, gemini = _generator([_posts_completion(posts), _posts_completion(top_up)])

        result = await generator.generate(db_session, _request(), brand_details, today=TODAY)

        assert len(result.items) == PLAN_SIZE
        assert result.top_up_attempts == 1
        assert result.items[-1].title == "Photo Restoration Topic 99"
        assert result.category_distribution["Core Answers"] == 12
        top_up_prompt = gemini.generate.await_args_list[1].args[0]
        assert "- Core Answers: 1 more articles" in top_up_prompt

    async def test_top_up_stops_when_nothing_new(
        self, db_session: AsyncSession, brand_details: BrandDetails
    ) -> None:
        posts = _full_plan()[:16]
        repeat = [_post(3), _post(50, main_keyword="RESTORE PHOTOS 4")]
        generator, gemini = _generator([_posts_completion(posts), _posts_completion(repeat)])

        result = await generator.generate(db_session, _request(), brand_details, today=TODAY)

        assert len(result.items) == 16
        assert result.top_up_attempts == 1
        assert gemini.generate.await_count == 2

    async def test_top_up_failure_keeps_partial_plan(
        self, db_session: AsyncSession, brand_details: BrandDetails
    ) -> None:
        posts = _full_plan()[:20]
        generator, _ = _generator([_posts_completion(posts), completion(success=False)])

        result = await generator.generate(db_session, _request(), brand_details, today=TODAY)

        assert len(result.items) == 20
        assert result.top_up_attempts == 1

    async def test_small_plan_is_not_topped_up(
        self, db_session: AsyncSession, brand_details: BrandDetails
    ) -> None:
        generator, gemini = _generator([_posts_completion(_full_plan()[:10])])

        result = await generator.generate(db_session, _request(), brand_details, today=TODAY)

        assert len(result.items) == 10
        assert gemini.generate.await_count == 1

    async def test_aggressive_dedup_falls_back_to_candidates(
        self, db_session: AsyncSession, brand_details: BrandDetails
    ) -> None:
        posts = _full_plan()
        duplicates = {post["title"] for post in posts[10:]}
        generator, gemini = _generator([_posts_completion(posts)], duplicate_titles=duplicates)

        result = await generator.generate(db_session, _request(), brand_details, today=TODAY)

        assert len(result.items) == PLAN_SIZE
        assert gemini.generate.await_count == 1

    async def test_top_up_skips_repeated_parent_question(
        self, db_session: AsyncSession, brand_details: BrandDetails
    ) -> None:
        posts = _full_plan()[:20]
        top_up = [_post(60, parent_question="question number 2?"), _post(61)]
        generator, gemini = _generator(
            [_posts_completion(posts), _posts_completion(top_up), _posts_completion([])]
        )

        result = await generator.generate(db_session, _request(), brand_details, today=TODAY)

        titles = [item.title for item in result.items]
        assert len(result.items) == 21
        assert "Photo Restoration Topic 61" in titles
        assert "Photo Restoration Topic 60" not in titles
        questions = [(item.parent_question or "").lower() for item in result.items]
        assert len(set(questions)) == len(questions)
        assert result.top_up_attempts == 2
        assert gemini.generate.await_count == 3

    async def test_unparseable_plan_raises(
        self, db_session: AsyncSession, brand_details: BrandDetails
    ) -> None:
        generator, _ = _generator([completion("I could not build a plan today.")])

        with pytest.raises(ContentPlanError):
            await generator.generate(db_session, _request(), brand_details, today=TODAY)

    @pytest.mark.parametrize("text", ['{"posts": []}', "{}"])
    async def test_empty_plan_response_raises(
        self, db_session: AsyncSession, brand_details: BrandDetails, text: str
    ) -> None:
        generator, _ = _generator([completion(text)])

        with pytest.raises(ContentPlanError):
            await generator.generate(db_session, _request(), brand_details, today=TODAY)

    async def test_every_candidate_duplicate_raises(
        self, db_session: AsyncSession, brand_details: BrandDetails
    ) -> None:
        posts = _full_plan()[:5]
        duplicates = {post["title"] for post in posts}
        generator, _ = _generator([_posts_completion(posts)], duplicate_titles=duplicates)

        with pytest.raises(ContentPlanError):
            await generator.generate(db_session, _request(), brand_details, today=TODAY)


class TestCreatePlan:
    async def test_persists_plan(self, db_session: AsyncSession, brand: Brand) -> None:
        generator, _ = _generator([_posts_completion(_full_plan()[:10])])

        plan, result = await generator.create_plan(
            db_session, _request(brand_id=brand.id), today=TODAY
        )

        stored = await ContentPlanRepository(db_session).get_by_id(plan.id)
        assert stored is not None
        assert len(stored.plan_data) == 10
        assert stored.competitor_seeds == ["photo restoration"]
        assert stored.gsc_enhanced is False
        assert len(result.items) == 10

    async def test_empty_plan_is_not_persisted(self, db_session: AsyncSession, brand: Brand) -> None:
        generator, _ = _generator([completion('{"posts": []}')])

        with pytest.raises(ContentPlanError):
            await generator.create_plan(db_session, _request(brand_id=brand.id), today=TODAY)

        count = await db_session.scalar(select(func.count()).select_from(ContentPlan))
        assert count == 0

    async def test_missing_brand(self, db_session: AsyncSession) -> None:
        generator, gemini = _generator([])

        with pytest.raises(BrandNotFoundError):
            await generator.create_plan(db_session, _request(brand_id="missing"))
        gemini.generate.assert_not_awaited()


class TestHelpers:
    def test_finalize_normalizes_fields(self) -> None:
        posts = [
            PlanPostCandidate(main_keyword="colorize photos", article_type="listicle", article_category="Misc"),
            PlanPostCandidate(title="Fix Torn Photos", main_keyword="fix torn photos", article_type="howto"),
        ]
        items = finalize_plan_items(posts, today=TODAY, timestamp_ms=1000)

        assert items[0].id == "plan-1000-0"
        assert items[0].title == "Post 1"
        assert items[0].article_type == "informational"
        assert items[0].article_category == "Core Answers"
        assert items[0].cluster == "General"
        assert items[0].parent_question is None
        assert items[1].scheduled_date == "2026-05-02"
        assert items[1].article_type == "howto"

    def test_category_shortfall_omits_full_categories(self) -> None:
        assert category_shortfall(
            {"Core Answers": 12, "Supporting Articles": 5, "Conversion Pages": 6, "Authority Plays": 0}
        ) == {"Supporting Articles": 3, "Authority Plays": 4}

    def test_plan_prompt_lists_covered_questions(self, brand_details: BrandDetails) -> None:
        prompt = build_plan_prompt(
            brand_details, ["photo restoration"], ["Can AI restore my photos?"], today=TODAY
        )
        assert "May 2026" in prompt
        assert '- "Can AI restore my photos?"' in prompt
        assert "30 = 12 + 8 + 6 + 4" in prompt

"""Tests for answer coverage extraction and summaries."""

import json
from unittest.mock import AsyncMock, MagicMock

from sqlalchemy.ext.asyncio import AsyncSession

from blogforge.models.answer_coverage import AnswerCoverage
from blogforge.repositories.article import ArticleRepository
from blogforge.services.coverage import (
    ARTICLE_TEXT_BUDGET,
    AnswerUnit,
    CoverageService,
    build_coverage_prompt,
    summarize_coverage,
)
from tests.conftest import completion


def _coverage(question: str, strength: str) -> AnswerCoverage:
    return AnswerCoverage(
        user_id="user-1",
        article_id="a-1",
        question=question,
        intent_role="Core Answer",
        coverage_strength=strength,
    )


class TestAnswerUnit:
    def test_unknown_role_and_strength_fall_back(self) -> None:
        unit = AnswerUnit(question="Is it free?", intent_role="Pricing", coverage_strength="HUGE")
        assert unit.intent_role == "Core Answer"
        assert unit.coverage_strength == "partial"

    def test_strength_is_normalized(self) -> None:
        assert AnswerUnit(question="q", coverage_strength=" Dominant ").coverage_strength == "dominant"


def test_summarize_coverage_buckets_by_strength() -> None:
    summary = summarize_coverage(
        [
            _coverage("How does restoration work?", "strong"),
            _coverage("What does it cost?", "dominant"),
            _coverage("Can it fix water damage?", "partial"),
            _coverage("Does it work offline?", "weak"),
        ]
    )
    assert summary.strongly_answered == ["How does restoration work?", "What does it cost?"]
    assert summary.partially_answered == ["Can it fix water damage?"]
    assert summary.total == 4


def test_prompt_truncates_long_articles() -> None:
    prompt = build_coverage_prompt("x" * (ARTICLE_TEXT_BUDGET + 10), "restore photos", "Restoration")
    assert "...[truncated]" in prompt
    assert 'ARTICLE KEYWORD: "restore photos"' in prompt


class TestAnalyzeArticleCoverage:
    async def test_without_client_writes_nothing(self, db_session: AsyncSession) -> None:
        written = await CoverageService(None).analyze_article_coverage(
            db_session, "a-1", "content", "kw", None, "user-1"
        )
        assert written == 0

    async def test_failed_completion_writes_nothing(self, db_session: AsyncSession) -> None:
        gemini = MagicMock()
        gemini.generate = AsyncMock(return_value=completion(success=False))
        written = await CoverageService(gemini).analyze_article_coverage(
            db_session, "a-1", "content", "kw", None, "user-1"
        )
        assert written == 0

    async def test_saves_deduplicated_units(self, db_session: AsyncSession) -> None:
        article = await ArticleRepository(db_session).create(
            user_id="user-1", keyword="restore old photos"
        )
        await db_session.commit()
        units = [
            {"question": "How do I restore old photos?", "intent_role": "Core Answer", "coverage_strength": "strong"},
            {"question": "How do I restore old photos?", "intent_role": "Core Answer", "coverage_strength": "strong"},
            {"question": "Is it worth paying for restoration?", "intent_role": "Decision", "coverage_strength": "partial"},
        ]
        gemini = MagicMock()
        gemini.generate = AsyncMock(return_value=completion("```json\n" + json.dumps(units) + "\n```"))
        service = CoverageService(gemini)

        written = await service.analyze_article_coverage(
            db_session, article.id, "content", "restore old photos", "Restoration", "user-1"
        )

        assert written == 2
        rows = await service.get_coverage_context(db_session, "user-1")
        assert {r.question for r in rows} == {
            "How do I restore old photos?",
            "Is it worth paying for restoration?",
        }

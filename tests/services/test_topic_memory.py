"""Tests for embedding-based topic duplicate detection."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from blogforge.integrations.gemini import EmbeddingResult
from blogforge.repositories.article import ArticleRepository
from blogforge.services.topic_memory import TopicMemoryService, cosine_similarity


def _gemini(values: list[float] | None) -> MagicMock:
    gemini = MagicMock()
    if values is None:
        result = EmbeddingResult(success=False, error="Server error (500)", status_code=500)
    else:
        result = EmbeddingResult(success=True, values=values, status_code=200)
    gemini.embed = AsyncMock(return_value=result)
    return gemini


class TestCosineSimilarity:
    def test_identical_vectors(self) -> None:
        assert cosine_similarity([1.0, 2.0], [1.0, 2.0]) == pytest.approx(1.0)

    def test_orthogonal_vectors(self) -> None:
        assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)

    def test_mismatched_or_zero_vectors(self) -> None:
        assert cosine_similarity([1.0], [1.0, 0.0]) == 0.0
        assert cosine_similarity([0.0, 0.0], [1.0, 0.0]) == 0.0
        assert cosine_similarity([], []) == 0.0


class TestTopicMemory:
    async def _embedded_article(self, session: AsyncSession, vector: list[float]) -> str:
        repo = ArticleRepository(session)
        article = await repo.create(user_id="user-1", keyword="restore old photos")
        await repo.update(article.id, topic_embedding=vector)
        await session.commit()
        return article.id

    async def test_near_identical_topic_is_duplicate(self, db_session: AsyncSession) -> None:
        article_id = await self._embedded_article(db_session, [1.0, 0.0, 0.0])
        service = TopicMemoryService(_gemini([0.99, 0.05, 0.0]), threshold=0.85)

        check = await service.is_duplicate(db_session, "restoring old photos", "user-1")

        assert check.is_duplicate is True
        assert check.similar_article_id == article_id
        assert check.similarity > 0.85

    async def test_distinct_topic_is_new(self, db_session: AsyncSession) -> None:
        await self._embedded_article(db_session, [1.0, 0.0, 0.0])
        service = TopicMemoryService(_gemini([0.0, 1.0, 0.0]), threshold=0.85)

        check = await service.is_duplicate(db_session, "colorize black and white photos", "user-1")

        assert check.is_duplicate is False

    async def test_embedding_failure_fails_open(self, db_session: AsyncSession) -> None:
        await self._embedded_article(db_session, [1.0, 0.0, 0.0])
        service = TopicMemoryService(_gemini(None), threshold=0.85)

        check = await service.is_duplicate(db_session, "restore old photos", "user-1")

        assert check.is_duplicate is False

    async def test_save_topic_memory_stores_embedding(self, db_session: AsyncSession) -> None:
        repo = ArticleRepository(db_session)
        article = await repo.create(user_id="user-1", keyword="fix torn photos")
        await db_session.commit()
        service = TopicMemoryService(_gemini([0.1, 0.2, 0.3]), threshold=0.85)

        assert await service.save_topic_memory(db_session, article.id, "fix torn photos") is True
        assert await repo.list_topic_embeddings("user-1") == [(article.id, [0.1, 0.2, 0.3])]

    async def test_save_topic_memory_without_embedding(self, db_session: AsyncSession) -> None:
        service = TopicMemoryService(_gemini(None), threshold=0.85)
        assert await service.save_topic_memory(db_session, "missing", "topic") is False

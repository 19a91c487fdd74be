"""Topic memory: embedding-based duplicate detection across a user's articles.

Each completed article stores an embedding of its topic. A proposed topic
is a duplicate when its cosine similarity to any stored embedding reaches
the configured threshold (0.85 by default).

The check fails open: if embedding or lookup fails the topic is treated
as new so plan generation is never blocked.
"""

import math
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from blogforge.core.config import get_settings
from blogforge.core.logging import get_logger
from blogforge.integrations.gemini import GeminiClient
from blogforge.repositories.article import ArticleRepository

logger = get_logger(__name__)


@dataclass(frozen=True)
class DuplicateCheck:
    is_duplicate: bool
    similar_article_id: str | None = None
    similarity: float = 0.0


NOT_DUPLICATE = DuplicateCheck(is_duplicate=False)


def cosine_similarity(a: list[float], b: list[float]) -> float:
    if not a or not b or len(a) != len(b):
        return 0.0
    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return dot / (norm_a * norm_b)


class TopicMemoryService:
    def __init__(self, gemini: GeminiClient, threshold: float | None = None) -> None:
        self._gemini = gemini
        self._threshold = (
            threshold if threshold is not None else get_settings().topic_duplicate_threshold
        )

    async def is_duplicate(
        self,
        session: AsyncSession,
        topic: str,
        user_id: str,
        brand_id: str | None = None,
    ) -> DuplicateCheck:
        embedding = await self._gemini.embed(topic)
        if not embedding.success:
            logger.warning(
                "Topic duplication check skipped, no embedding",
                extra={"user_id": user_id, "error": embedding.error},
            )
            return NOT_DUPLICATE

        try:
            stored = await ArticleRepository(session).list_topic_embeddings(user_id, brand_id)
        except SQLAlchemyError as e:
            logger.warning(
                "Topic duplication check skipped, lookup failed",
                extra={"user_id": user_id, "error": str(e)},
            )
            return NOT_DUPLICATE

        best_id: str | None = None
        best_score = 0.0
        for article_id, vector in stored:
            score = cosine_similarity(embedding.values, vector)
            if score > best_score:
                best_id, best_score = article_id, score

        if best_id is not None and best_score >= self._threshold:
            logger.info(
                "Duplicate topic detected",
                extra={"topic": topic[:100], "article_id": best_id, "similarity": round(best_score, 4)},
            )
            return DuplicateCheck(True, best_id, best_score)
        return DuplicateCheck(False, best_id, best_score)

    async def save_topic_memory(self, session: AsyncSession, article_id: str, topic: str) -> bool:
        """Store the topic embedding on the article. Best-effort."""
        embedding = await self._gemini.embed(topic)
        if not embedding.success:
            logger.warning(
                "Topic memory not saved, no embedding",
                extra={"article_id": article_id, "error": embedding.error},
            )
            return False

        try:
            updated = await ArticleRepository(session).update(
                article_id, topic_embedding=embedding.values
            )
            await session.commit()
        except SQLAlchemyError as e:
            await session.rollback()
            logger.error(
                "Failed to save topic memory",
                extra={"article_id": article_id, "error": str(e)},
                exc_info=True,
            )
            return False
        logger.debug("Saved topic memory", extra={"article_id": article_id})
        return updated

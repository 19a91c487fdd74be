"""ArticleRepository: persistence for articles and pipeline state.

ERROR LOGGING REQUIREMENTS:
- Log method entry at DEBUG level with entity IDs
- Log all exceptions with table name and context
- Log status transitions at INFO level
"""

import time
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from blogforge.core.logging import db_logger, get_logger
from blogforge.models.article import Article, ArticleStatus

logger = get_logger(__name__)


class ArticleRepository:
    TABLE_NAME = "articles"
    SLOW_OPERATION_THRESHOLD_MS = 1000

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create(
        self,
        user_id: str,
        keyword: str,
        brand_id: str | None = None,
        title: str | None = None,
        article_type: str = "informational",
        supporting_keywords: list[str] | None = None,
        cluster: str | None = None,
        voice_id: str | None = None,
    ) -> Article:
        """Insert a pending article and return it with its generated id."""
        logger.debug(
            "Creating article",
            extra={"user_id": user_id, "brand_id": brand_id, "keyword": keyword[:200]},
        )
        try:
            article = Article(
                user_id=user_id,
                brand_id=brand_id,
                keyword=keyword,
                title=title,
                article_type=article_type,
                supporting_keywords=list(supporting_keywords or []),
                cluster=cluster,
                voice_id=voice_id,
                status=ArticleStatus.PENDING.value,
            )
            self.session.add(article)
            await self.session.flush()
            await self.session.refresh(article)
            return article
        except SQLAlchemyError as e:
            db_logger.transaction_failure(
                e, table=self.TABLE_NAME, context=f"Creating article keyword={keyword[:100]}"
            )
            raise

    async def get_by_id(self, article_id: str) -> Article | None:
        logger.debug("Fetching article by ID", extra={"article_id": article_id})
        try:
            result = await self.session.execute(select(Article).where(Article.id == article_id))
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(
                "Failed to fetch article by ID",
                extra={
                    "article_id": article_id,
                    "error_type": type(e).__name__,
                    "error_message": str(e),
                },
                exc_info=True,
            )
            raise

    async def update(self, article_id: str, **fields: Any) -> bool:
        """Update columns on one article. Returns False if no row matched."""
        start_time = time.monotonic()
        logger.debug(
            "Updating article",
            extra={"article_id": article_id, "fields": sorted(fields)},
        )
        try:
            result = await self.session.execute(
                update(Article)
                .where(Article.id == article_id)
                .values(**fields)
                .execution_options(synchronize_session=False)
            )
        except SQLAlchemyError as e:
            db_logger.transaction_failure(
                e, table=self.TABLE_NAME, context=f"Updating article id={article_id}"
            )
            raise

        if "status" in fields:
            logger.info(
                "Article status changed",
                extra={"article_id": article_id, "new_status": fields["status"]},
            )

        duration_ms = (time.monotonic() - start_time) * 1000
        if duration_ms > self.SLOW_OPERATION_THRESHOLD_MS:
            db_logger.slow_query(
                query=f"UPDATE articles WHERE id={article_id}",
                duration_ms=duration_ms,
                table=self.TABLE_NAME,
            )
        return bool(result.rowcount)

    async def list_topic_embeddings(
        self, user_id: str, brand_id: str | None = None
    ) -> list[tuple[str, list[float]]]:
        """Return (article_id, embedding) pairs for a user's embedded articles."""
        query = select(Article.id, Article.topic_embedding).where(
            Article.user_id == user_id,
            Article.topic_embedding.is_not(None),
        )
        if brand_id:
            query = query.where(Article.brand_id == brand_id)
        try:
            result = await self.session.execute(query)
        except SQLAlchemyError as e:
            db_logger.transaction_failure(
                e, table=self.TABLE_NAME, context=f"Listing embeddings user_id={user_id}"
            )
            raise
        return [(row[0], row[1]) for row in result.all() if row[1]]

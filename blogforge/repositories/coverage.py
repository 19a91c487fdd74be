"""CoverageRepository: questions already answered by published articles."""

from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from blogforge.core.logging import db_logger, get_logger
from blogforge.models.answer_coverage import AnswerCoverage

logger = get_logger(__name__)


class CoverageRepository:
    TABLE_NAME = "answer_coverage"

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def list_for(self, user_id: str, brand_id: str | None = None) -> list[AnswerCoverage]:
        query = select(AnswerCoverage).where(AnswerCoverage.user_id == user_id)
        if brand_id:
            query = query.where(AnswerCoverage.brand_id == brand_id)
        try:
            result = await self.session.execute(query.order_by(AnswerCoverage.created_at))
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            db_logger.transaction_failure(
                e, table=self.TABLE_NAME, context=f"Listing coverage user_id={user_id}"
            )
            raise

    async def replace_for_article(
        self,
        article_id: str,
        user_id: str,
        brand_id: str | None,
        rows: list[dict[str, Any]],
    ) -> int:
        """Replace an article's coverage rows. Returns the number written."""
        logger.debug(
            "Replacing article coverage",
            extra={"article_id": article_id, "row_count": len(rows)},
        )
        try:
            await self.session.execute(
                delete(AnswerCoverage).where(AnswerCoverage.article_id == article_id)
            )
            seen: set[str] = set()
            for row in rows:
                question = row["question"]
                if question in seen:
                    continue
                seen.add(question)
                self.session.add(
                    AnswerCoverage(
                        user_id=user_id,
                        brand_id=brand_id,
                        article_id=article_id,
                        question=question,
                        intent_role=row["intent_role"],
                        coverage_strength=row["coverage_strength"],
                    )
                )
            await self.session.flush()
            return len(seen)
        except SQLAlchemyError as e:
            db_logger.transaction_failure(
                e, table=self.TABLE_NAME, context=f"Replacing coverage article_id={article_id}"
            )
            raise

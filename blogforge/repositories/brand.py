"""BrandRepository: read/write brand profiles."""

from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from blogforge.core.logging import db_logger, get_logger
from blogforge.models.brand import Brand

logger = get_logger(__name__)


class BrandRepository:
    TABLE_NAME = "brands"

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create(
        self,
        user_id: str,
        name: str,
        brand_data: dict[str, Any],
        website_url: str | None = None,
    ) -> Brand:
        try:
            brand = Brand(
                user_id=user_id, name=name, brand_data=brand_data, website_url=website_url
            )
            self.session.add(brand)
            await self.session.flush()
            await self.session.refresh(brand)
            return brand
        except SQLAlchemyError as e:
            db_logger.transaction_failure(
                e, table=self.TABLE_NAME, context=f"Creating brand name={name}"
            )
            raise

    async def get_by_id(self, brand_id: str) -> Brand | None:
        logger.debug("Fetching brand by ID", extra={"brand_id": brand_id})
        try:
            result = await self.session.execute(select(Brand).where(Brand.id == brand_id))
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            db_logger.transaction_failure(
                e, table=self.TABLE_NAME, context=f"Fetching brand id={brand_id}"
            )
            raise

"""ContentPlanRepository: persistence for content plans.

plan_data updates that can race with the watchman go through
compare_and_swap_plan_data, which only writes when the stored version
still matches the version the caller read.

ERROR LOGGING REQUIREMENTS:
- Log method entry at DEBUG level with entity IDs
- Log all exceptions with table name and context
- Log lost optimistic-concurrency races at INFO level
"""

from typing import Any

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from blogforge.core.logging import db_logger, get_logger
from blogforge.models.content_plan import AutomationStatus, ContentPlan

logger = get_logger(__name__)


class ContentPlanRepository:
    TABLE_NAME = "content_plans"

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create(
        self,
        user_id: str,
        plan_data: list[dict[str, Any]],
        brand_id: str | None = None,
        competitor_seeds: list[str] | None = None,
        gsc_enhanced: bool = False,
    ) -> ContentPlan:
        logger.debug(
            "Creating content plan",
            extra={"user_id": user_id, "brand_id": brand_id, "items": len(plan_data)},
        )
        try:
            plan = ContentPlan(
                user_id=user_id,
                brand_id=brand_id,
                plan_data=plan_data,
                competitor_seeds=list(competitor_seeds or []),
                gsc_enhanced=gsc_enhanced,
            )
            self.session.add(plan)
            await self.session.flush()
            await self.session.refresh(plan)
            return plan
        except SQLAlchemyError as e:
            db_logger.transaction_failure(
                e, table=self.TABLE_NAME, context=f"Creating plan user_id={user_id}"
            )
            raise

    async def get_by_id(self, plan_id: str) -> ContentPlan | None:
        logger.debug("Fetching content plan by ID", extra={"plan_id": plan_id})
        try:
            result = await self.session.execute(
                select(ContentPlan).where(ContentPlan.id == plan_id)
            )
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            db_logger.transaction_failure(
                e, table=self.TABLE_NAME, context=f"Fetching plan id={plan_id}"
            )
            raise

    async def list_active(self) -> list[ContentPlan]:
        """All plans the watchman should look at."""
        try:
            result = await self.session.execute(
                select(ContentPlan)
                .where(ContentPlan.automation_status == AutomationStatus.ACTIVE.value)
                .order_by(ContentPlan.created_at)
            )
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            db_logger.transaction_failure(
                e, table=self.TABLE_NAME, context="Listing active plans"
            )
            raise

    async def get_latest_gsc_plan(
        self, user_id: str, brand_id: str | None = None
    ) -> ContentPlan | None:
        """Most recent GSC-enhanced plan for a user (and brand, if given)."""
        query = select(ContentPlan).where(
            ContentPlan.user_id == user_id,
            ContentPlan.gsc_enhanced.is_(True),
        )
        if brand_id:
            query = query.where(ContentPlan.brand_id == brand_id)
        query = query.order_by(ContentPlan.created_at.desc()).limit(1)
        try:
            result = await self.session.execute(query)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            db_logger.transaction_failure(
                e, table=self.TABLE_NAME, context=f"Latest GSC plan user_id={user_id}"
            )
            raise

    async def update(self, plan_id: str, **fields: Any) -> bool:
        """Unconditional update; bumps the version so in-flight CAS writers lose."""
        logger.debug("Updating content plan", extra={"plan_id": plan_id, "fields": sorted(fields)})
        try:
            result = await self.session.execute(
                update(ContentPlan)
                .where(ContentPlan.id == plan_id)
                .values(**fields, version=ContentPlan.version + 1)
                .execution_options(synchronize_session=False)
            )
        except SQLAlchemyError as e:
            db_logger.transaction_failure(
                e, table=self.TABLE_NAME, context=f"Updating plan id={plan_id}"
            )
            raise
        return bool(result.rowcount)

    async def compare_and_swap_plan_data(
        self,
        plan_id: str,
        expected_version: int,
        plan_data: list[dict[str, Any]],
        **fields: Any,
    ) -> bool:
        """Write plan_data only if the row is still at expected_version.

        Returns True when the write won, False when another writer got
        there first (the caller should re-read or give up).
        """
        try:
            result = await self.session.execute(
                update(ContentPlan)
                .where(
                    ContentPlan.id == plan_id,
                    ContentPlan.version == expected_version,
                )
                .values(plan_data=plan_data, version=expected_version + 1, **fields)
                .execution_options(synchronize_session=False)
            )
        except SQLAlchemyError as e:
            db_logger.transaction_failure(
                e, table=self.TABLE_NAME, context=f"CAS plan id={plan_id}"
            )
            raise

        if not result.rowcount:
            db_logger.version_conflict(self.TABLE_NAME, plan_id, expected_version)
            return False
        return True

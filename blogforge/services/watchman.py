"""The watchman: hourly dispatch of due content plan items.

plan_dispatches is a pure function of (now, plans): it decides which plans
are complete, which items are due and how overdue items are treated under
each catch-up mode. Watchman.sweep applies those decisions. Every plan is
written with a version-checked compare-and-swap, so two overlapping sweeps
can never dispatch the same item twice: the loser skips the plan.

Catch-up modes for items whose scheduled_date is before today:
    gradual     dispatch only the first due item per sweep
    skip        mark overdue items skipped, dispatch today's items
    reschedule  shift pending items so the earliest overdue one lands today

ERROR LOGGING REQUIREMENTS:
- Log each sweep summary via scheduler_logger.watchman_sweep
- Log lost compare-and-swap races at INFO level
- Log per-plan failures with exc_info and continue with the next plan
"""

import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from blogforge.core.config import get_settings
from blogforge.core.database import db_manager, transaction
from blogforge.core.logging import get_logger, scheduler_logger
from blogforge.core.scheduler import SchedulerManager
from blogforge.models.content_plan import AutomationStatus, CatchUpMode, ContentPlan
from blogforge.repositories.article import ArticleRepository
from blogforge.repositories.content_plan import ContentPlanRepository
from blogforge.services.blog_generation import GenerationPayload

logger = get_logger(__name__)

WATCHMAN_JOB_ID = "content-watchman"
DONE_STATUSES = ("published", "skipped")


@dataclass
class PlanDispatch:
    """What one sweep should do to one active plan."""

    plan_id: str
    user_id: str
    brand_id: str | None
    version: int
    plan_data: list[dict[str, Any]]
    due_item_ids: list[str] = field(default_factory=list)
    skipped_item_ids: list[str] = field(default_factory=list)
    rescheduled: bool = False

    @property
    def changed(self) -> bool:
        return bool(self.due_item_ids or self.skipped_item_ids or self.rescheduled)


@dataclass
class WatchmanDecision:
    completed_plan_ids: list[str] = field(default_factory=list)
    dispatches: list[PlanDispatch] = field(default_factory=list)

    @property
    def due_count(self) -> int:
        return sum(len(d.due_item_ids) for d in self.dispatches)


@dataclass
class WatchmanResult:
    triggered: int = 0
    completed_plans: int = 0
    active_plans: int = 0
    skipped: int = 0
    conflicts: int = 0


def is_plan_complete(plan_data: Sequence[dict[str, Any]]) -> bool:
    return bool(plan_data) and all(item.get("status") in DONE_STATUSES for item in plan_data)


def _is_pending(item: dict[str, Any]) -> bool:
    return item.get("status") == "pending"


def _reschedule(plan_data: list[dict[str, Any]], today: date) -> bool:
    """Shift pending items forward so the earliest overdue one is due today."""
    overdue = [
        date.fromisoformat(item["scheduled_date"])
        for item in plan_data
        if _is_pending(item) and item.get("scheduled_date", "") < today.isoformat()
    ]
    if not overdue:
        return False
    shift = today - min(overdue)
    for item in plan_data:
        if _is_pending(item):
            moved = date.fromisoformat(item["scheduled_date"]) + shift
            item["scheduled_date"] = moved.isoformat()
    return True


def decide_for_plan(plan: ContentPlan, today: date) -> PlanDispatch:
    plan_data = [dict(item) for item in plan.plan_data or []]
    dispatch = PlanDispatch(
        plan_id=plan.id,
        user_id=plan.user_id,
        brand_id=plan.brand_id,
        version=plan.version,
        plan_data=plan_data,
    )
    today_iso = today.isoformat()
    mode = plan.catch_up_mode or CatchUpMode.GRADUAL.value

    if mode == CatchUpMode.SKIP.value:
        for item in plan_data:
            if _is_pending(item) and item.get("scheduled_date", "") < today_iso:
                item["status"] = "skipped"
                dispatch.skipped_item_ids.append(item["id"])
    elif mode == CatchUpMode.RESCHEDULE.value:
        dispatch.rescheduled = _reschedule(plan_data, today)

    due = [
        item for item in plan_data
        if _is_pending(item) and item.get("scheduled_date", "") <= today_iso
    ]
    if mode == CatchUpMode.GRADUAL.value:
        due = due[:1]
    dispatch.due_item_ids = [item["id"] for item in due]
    return dispatch


def plan_dispatches(now: datetime, plans: Sequence[ContentPlan]) -> WatchmanDecision:
    """Decide completions and dispatches for a set of active plans.

    Pure: reads the plans, returns new plan_data copies, writes nothing.
    """
    today = now.astimezone(UTC).date() if now.tzinfo else now.date()
    decision = WatchmanDecision()
    for plan in plans:
        if plan.automation_status != AutomationStatus.ACTIVE.value:
            continue
        if is_plan_complete(plan.plan_data or []):
            decision.completed_plan_ids.append(plan.id)
            continue
        try:
            dispatch = decide_for_plan(plan, today)
        except (KeyError, TypeError, ValueError) as e:
            logger.error(
                "Skipping plan with malformed plan_data",
                extra={"plan_id": plan.id, "error": str(e)},
                exc_info=True,
            )
            continue
        if dispatch.changed:
            decision.dispatches.append(dispatch)
    return decision


Dispatcher = Callable[[GenerationPayload], Any]


class Watchman:
    """Applies plan_dispatches decisions against the database.

    Usage:
        watchman = Watchman(dispatcher=lambda payload: dispatch_generation(pipeline, payload))
        result = await watchman.sweep()
    """

    def __init__(
        self,
        dispatcher: Dispatcher,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
    ) -> None:
        self._dispatcher = dispatcher
        self._session_factory_override = session_factory

    @property
    def _session_factory(self) -> async_sessionmaker[AsyncSession]:
        return self._session_factory_override or db_manager.session_factory

    async def sweep(self, now: datetime | None = None) -> WatchmanResult:
        start_time = time.monotonic()
        now = now or datetime.now(UTC)

        async with self._session_factory() as session:
            plans = await ContentPlanRepository(session).list_active()
        decision = plan_dispatches(now, plans)
        result = WatchmanResult(active_plans=len(plans))

        for plan_id in decision.completed_plan_ids:
            try:
                async with self._session_factory() as session, transaction(
                    session, table="content_plans"
                ):
                    await ContentPlanRepository(session).update(
                        plan_id, automation_status=AutomationStatus.COMPLETED.value
                    )
            except SQLAlchemyError as e:
                logger.error(
                    "Failed to mark content plan completed",
                    extra={"plan_id": plan_id, "error": str(e)},
                    exc_info=True,
                )
                continue
            result.completed_plans += 1
            logger.info("Content plan completed", extra={"plan_id": plan_id})

        for dispatch in decision.dispatches:
            try:
                payloads = await self._apply(dispatch)
            except (SQLAlchemyError, KeyError) as e:
                logger.error(
                    "Failed to apply plan dispatch",
                    extra={"plan_id": dispatch.plan_id, "error": str(e)},
                    exc_info=True,
                )
                continue
            if payloads is None:
                result.conflicts += 1
                continue
            result.skipped += len(dispatch.skipped_item_ids)
            for payload in payloads:
                self._dispatcher(payload)
                result.triggered += 1

        scheduler_logger.watchman_sweep(
            active_plans=result.active_plans,
            triggered=result.triggered,
            completed_plans=result.completed_plans,
            skipped=result.skipped,
            duration_ms=(time.monotonic() - start_time) * 1000,
        )
        return result

    async def _apply(self, dispatch: PlanDispatch) -> list[GenerationPayload] | None:
        """Create articles, flip due items to writing and CAS the plan.

        Returns the payloads to dispatch, or None when another writer
        changed the plan first (nothing is committed in that case).
        """
        due = set(dispatch.due_item_ids)
        payloads: list[GenerationPayload] = []
        async with self._session_factory() as session:
            articles = ArticleRepository(session)
            for item in dispatch.plan_data:
                if item["id"] not in due:
                    continue
                article_id = item.get("article_id")
                if not article_id:
                    article = await articles.create(
                        user_id=dispatch.user_id,
                        keyword=item["main_keyword"],
                        brand_id=dispatch.brand_id,
                        title=item.get("title"),
                        article_type=item.get("article_type") or "informational",
                        supporting_keywords=item.get("supporting_keywords") or [],
                        cluster=item.get("cluster"),
                    )
                    article_id = article.id
                item["article_id"] = article_id
                item["status"] = "writing"
                payloads.append(
                    GenerationPayload(
                        article_id=article_id,
                        keyword=item["main_keyword"],
                        brand_id=dispatch.brand_id or "",
                        user_id=dispatch.user_id,
                        title=item.get("title"),
                        article_type=item.get("article_type") or "informational",
                        supporting_keywords=list(item.get("supporting_keywords") or []),
                        cluster=item.get("cluster"),
                        plan_id=dispatch.plan_id,
                        item_id=item["id"],
                    )
                )

            won = await ContentPlanRepository(session).compare_and_swap_plan_data(
                dispatch.plan_id, dispatch.version, dispatch.plan_data
            )
            if not won:
                await session.rollback()
                logger.info(
                    "Skipped plan dispatch after losing version race",
                    extra={"plan_id": dispatch.plan_id, "expected_version": dispatch.version},
                )
                return None
            await session.commit()
        return payloads


def register_watchman(scheduler: SchedulerManager, watchman: Watchman) -> str | None:
    """Add the sweep to the scheduler on the configured crontab."""
    settings = get_settings()
    if not settings.watchman_enabled:
        logger.info("Watchman disabled by configuration")
        return None

    async def run_sweep() -> None:
        await watchman.sweep()

    return scheduler.add_cron_job(
        run_sweep, settings.watchman_cron, job_id=WATCHMAN_JOB_ID, name="Content plan watchman"
    )

"""Content plan API endpoints.

- POST /api/v1/content-plans - Strategic plan for a brand
- POST /api/v1/content-plans/gsc - Plan from Search Console query rows
- GET /api/v1/content-plans/{plan_id} - Get a plan
- PUT /api/v1/content-plans/{plan_id}/automation - Activate the watchman for a plan
- DELETE /api/v1/content-plans/{plan_id}/automation - Pause automation
- PATCH /api/v1/content-plans/{plan_id}/items/{item_id} - Edit one plan item

Error Logging Requirements:
- Log every request at DEBUG level with request_id
- Return structured error responses: {"error": str, "code": str, "request_id": str}
- Log 4xx outcomes at WARNING, provider failures at ERROR
"""

from collections import Counter

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from blogforge.api.v1.deps import error_response, get_request_id
from blogforge.core.database import get_session
from blogforge.core.logging import get_logger
from blogforge.integrations.gemini import GeminiClient, get_gemini
from blogforge.models.content_plan import AutomationStatus, ContentPlan
from blogforge.repositories.brand import BrandRepository
from blogforge.repositories.content_plan import ContentPlanRepository
from blogforge.schemas.content_plan import (
    AutomationUpdateRequest,
    ContentPlanGenerateRequest,
    ContentPlanItem,
    ContentPlanResponse,
    GSCPlanGenerateRequest,
    PlanItemUpdateRequest,
)
from blogforge.services.content_plan_generator import ContentPlanGenerator
from blogforge.services.errors import (
    BrandNotFoundError,
    ContentPlanError,
    ContentPlanValidationError,
)
from blogforge.services.gsc_plan import GSCPlanService

logger = get_logger(__name__)

router = APIRouter()


def to_response(plan: ContentPlan, distribution: dict[str, int] | None = None) -> ContentPlanResponse:
    items = [ContentPlanItem.model_validate(item) for item in plan.plan_data or []]
    if distribution is None:
        distribution = dict(Counter(item.article_category for item in items if item.article_category))
    return ContentPlanResponse(
        id=plan.id,
        user_id=plan.user_id,
        brand_id=plan.brand_id,
        plan_data=items,
        competitor_seeds=list(plan.competitor_seeds or []),
        gsc_enhanced=plan.gsc_enhanced,
        automation_status=plan.automation_status,
        catch_up_mode=plan.catch_up_mode,
        category_distribution=distribution,
    )


def _not_found(plan_id: str, request_id: str) -> JSONResponse:
    logger.warning("Content plan not found", extra={"request_id": request_id, "plan_id": plan_id})
    return error_response(
        status.HTTP_404_NOT_FOUND, f"Content plan not found: {plan_id}", "NOT_FOUND", request_id
    )


@router.post(
    "",
    response_model=ContentPlanResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Generate a content plan",
    description="Generate and store a deduplicated 30-day plan for a brand.",
)
async def generate_plan(
    request: Request,
    data: ContentPlanGenerateRequest,
    session: AsyncSession = Depends(get_session),
    gemini: GeminiClient = Depends(get_gemini),
) -> ContentPlanResponse | JSONResponse:
    request_id = get_request_id(request)
    logger.debug(
        "Generate content plan request",
        extra={"request_id": request_id, "user_id": data.user_id, "brand_id": data.brand_id},
    )
    try:
        plan, result = await ContentPlanGenerator(gemini).create_plan(session, data)
    except BrandNotFoundError as e:
        return error_response(status.HTTP_404_NOT_FOUND, str(e), "NOT_FOUND", request_id)
    except ContentPlanError as e:
        logger.error(
            "Content plan generation failed",
            extra={"request_id": request_id, "brand_id": data.brand_id, "error": str(e)},
        )
        return error_response(status.HTTP_502_BAD_GATEWAY, str(e), "PLAN_GENERATION_FAILED", request_id)
    return to_response(plan, result.category_distribution)


@router.post(
    "/gsc",
    response_model=ContentPlanResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Generate a plan from Search Console data",
    description="Score, cluster and plan from raw query rows; stored as a GSC-enhanced plan.",
)
async def generate_gsc_plan(
    request: Request,
    data: GSCPlanGenerateRequest,
    session: AsyncSession = Depends(get_session),
    gemini: GeminiClient = Depends(get_gemini),
) -> ContentPlanResponse | JSONResponse:
    request_id = get_request_id(request)
    logger.debug(
        "Generate GSC plan request",
        extra={"request_id": request_id, "brand_id": data.brand_id, "rows": len(data.rows)},
    )
    brand = await BrandRepository(session).get_by_id(data.brand_id)
    if brand is None:
        return error_response(
            status.HTTP_404_NOT_FOUND, f"Brand not found: {data.brand_id}", "NOT_FOUND", request_id
        )

    try:
        result = await GSCPlanService(gemini).generate(
            data.rows,
            brand_data=brand.brand_data,
            competitor_seeds=data.competitor_seeds,
            brand_name=brand.name,
        )
    except ContentPlanValidationError as e:
        logger.warning(
            "GSC plan validation error",
            extra={"request_id": request_id, "field": e.field_name, "value": e.value},
        )
        return error_response(
            status.HTTP_422_UNPROCESSABLE_ENTITY, str(e), "VALIDATION_ERROR", request_id
        )
    except ContentPlanError as e:
        logger.error(
            "GSC plan generation failed",
            extra={"request_id": request_id, "brand_id": data.brand_id, "error": str(e)},
        )
        return error_response(status.HTTP_502_BAD_GATEWAY, str(e), "PLAN_GENERATION_FAILED", request_id)

    plan = await ContentPlanRepository(session).create(
        user_id=data.user_id,
        brand_id=data.brand_id,
        plan_data=[item.model_dump() for item in result.items],
        competitor_seeds=data.competitor_seeds,
        gsc_enhanced=True,
    )
    await session.commit()
    return to_response(plan)


@router.get(
    "/{plan_id}",
    response_model=ContentPlanResponse,
    summary="Get a content plan",
)
async def get_plan(
    request: Request,
    plan_id: str,
    session: AsyncSession = Depends(get_session),
) -> ContentPlanResponse | JSONResponse:
    plan = await ContentPlanRepository(session).get_by_id(plan_id)
    if plan is None:
        return _not_found(plan_id, get_request_id(request))
    return to_response(plan)


async def _set_automation(
    session: AsyncSession, plan_id: str, request_id: str, **fields: str
) -> ContentPlanResponse | JSONResponse:
    repo = ContentPlanRepository(session)
    if not await repo.update(plan_id, **fields):
        return _not_found(plan_id, request_id)
    await session.commit()
    plan = await repo.get_by_id(plan_id)
    if plan is None:
        return _not_found(plan_id, request_id)
    await session.refresh(plan)
    logger.info(
        "Plan automation updated",
        extra={"request_id": request_id, "plan_id": plan_id, **fields},
    )
    return to_response(plan)


@router.put(
    "/{plan_id}/automation",
    response_model=ContentPlanResponse,
    summary="Activate automation",
    description="Let the watchman dispatch due items for this plan.",
)
async def activate_automation(
    request: Request,
    plan_id: str,
    data: AutomationUpdateRequest,
    session: AsyncSession = Depends(get_session),
) -> ContentPlanResponse | JSONResponse:
    return await _set_automation(
        session,
        plan_id,
        get_request_id(request),
        automation_status=AutomationStatus.ACTIVE.value,
        catch_up_mode=data.catch_up_mode,
    )


@router.delete(
    "/{plan_id}/automation",
    response_model=ContentPlanResponse,
    summary="Pause automation",
)
async def pause_automation(
    request: Request,
    plan_id: str,
    session: AsyncSession = Depends(get_session),
) -> ContentPlanResponse | JSONResponse:
    return await _set_automation(
        session,
        plan_id,
        get_request_id(request),
        automation_status=AutomationStatus.PAUSED.value,
    )


@router.patch(
    "/{plan_id}/items/{item_id}",
    response_model=ContentPlanResponse,
    summary="Edit a plan item",
    description="Update one item; fails with 409 if the plan changed concurrently.",
)
async def update_plan_item(
    request: Request,
    plan_id: str,
    item_id: str,
    data: PlanItemUpdateRequest,
    session: AsyncSession = Depends(get_session),
) -> ContentPlanResponse | JSONResponse:
    request_id = get_request_id(request)
    repo = ContentPlanRepository(session)
    plan = await repo.get_by_id(plan_id)
    if plan is None:
        return _not_found(plan_id, request_id)

    changes = {key: value for key, value in data.model_dump(exclude_unset=True).items() if value is not None}
    plan_data = [dict(item) for item in plan.plan_data or []]
    target = next((item for item in plan_data if item.get("id") == item_id), None)
    if target is None:
        return error_response(
            status.HTTP_404_NOT_FOUND, f"Plan item not found: {item_id}", "NOT_FOUND", request_id
        )
    target.update(changes)

    if not await repo.compare_and_swap_plan_data(plan_id, plan.version, plan_data):
        return error_response(
            status.HTTP_409_CONFLICT,
            "Plan was modified concurrently, reload and retry",
            "CONFLICT",
            request_id,
        )
    await session.commit()
    await session.refresh(plan)
    return to_response(plan)

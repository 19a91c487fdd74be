"""Brand profile API endpoints.

- POST /api/v1/brands - Store a brand profile
- GET /api/v1/brands/{brand_id} - Get a brand profile
"""

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from blogforge.api.v1.deps import error_response, get_request_id
from blogforge.core.database import get_session
from blogforge.core.logging import get_logger
from blogforge.models.brand import Brand
from blogforge.repositories.brand import BrandRepository
from blogforge.schemas.brand import BrandCreateRequest, BrandDetails, BrandResponse

logger = get_logger(__name__)

router = APIRouter()


def to_response(brand: Brand) -> BrandResponse:
    return BrandResponse(
        id=brand.id,
        user_id=brand.user_id,
        name=brand.name,
        website_url=brand.website_url,
        brand_data=BrandDetails.model_validate(brand.brand_data or {}),
    )


@router.post(
    "",
    response_model=BrandResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a brand",
)
async def create_brand(
    request: Request,
    data: BrandCreateRequest,
    session: AsyncSession = Depends(get_session),
) -> BrandResponse:
    logger.debug(
        "Create brand request",
        extra={"request_id": get_request_id(request), "brand_name": data.name},
    )
    brand = await BrandRepository(session).create(
        user_id=data.user_id,
        name=data.name,
        brand_data=data.brand_data.model_dump(by_alias=True, exclude_none=True),
        website_url=data.website_url,
    )
    await session.commit()
    return to_response(brand)


@router.get(
    "/{brand_id}",
    response_model=BrandResponse,
    summary="Get a brand",
)
async def get_brand(
    request: Request,
    brand_id: str,
    session: AsyncSession = Depends(get_session),
) -> BrandResponse | JSONResponse:
    brand = await BrandRepository(session).get_by_id(brand_id)
    if brand is None:
        request_id = get_request_id(request)
        logger.warning("Brand not found", extra={"request_id": request_id, "brand_id": brand_id})
        return error_response(
            status.HTTP_404_NOT_FOUND, f"Brand not found: {brand_id}", "NOT_FOUND", request_id
        )
    return to_response(brand)

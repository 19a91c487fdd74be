"""API v1 router and endpoint organization."""

from fastapi import APIRouter

from blogforge.api.v1.endpoints import articles, brands, content_plans

router = APIRouter(tags=["v1"])

router.include_router(brands.router, prefix="/brands", tags=["Brands"])
router.include_router(articles.router, prefix="/articles", tags=["Articles"])
router.include_router(content_plans.router, prefix="/content-plans", tags=["Content Plans"])

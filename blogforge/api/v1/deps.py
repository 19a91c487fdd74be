"""Shared dependencies and error responses for v1 endpoints."""

from fastapi import Request
from fastapi.responses import JSONResponse

from blogforge.integrations.fal import get_fal
from blogforge.integrations.gemini import get_gemini
from blogforge.integrations.s3 import get_s3
from blogforge.integrations.tavily import get_tavily
from blogforge.services.blog_generation import BlogGenerationPipeline


def get_request_id(request: Request) -> str:
    """Get request_id from request state."""
    return getattr(request.state, "request_id", "unknown")


def error_response(status_code: int, error: str, code: str, request_id: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": error, "code": code, "request_id": request_id},
    )


async def get_pipeline() -> BlogGenerationPipeline:
    """Dependency building a pipeline over the global provider clients."""
    return BlogGenerationPipeline(
        gemini=await get_gemini(),
        tavily=await get_tavily(),
        fal=await get_fal(),
        storage=await get_s3(),
    )

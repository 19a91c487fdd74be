"""Articles API endpoints.

- POST /api/v1/articles - Create an article and start its generation run
- GET /api/v1/articles/{article_id} - Status, failed phase and progress
- POST /api/v1/articles/titles - Five title suggestions for a keyword

Error Logging Requirements:
- Log every request at DEBUG level with request_id
- Return structured error responses: {"error": str, "code": str, "request_id": str}
- Log 4xx outcomes at WARNING, provider failures at ERROR
"""

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from blogforge.api.v1.deps import error_response, get_pipeline, get_request_id
from blogforge.core.database import get_session
from blogforge.core.logging import get_logger
from blogforge.integrations.gemini import GeminiClient, get_gemini
from blogforge.models.article import Article
from blogforge.repositories.article import ArticleRepository
from blogforge.repositories.brand import BrandRepository
from blogforge.schemas.article import (
    ArticleCreateRequest,
    ArticleResponse,
    TitleSuggestionRequest,
    TitleSuggestionResponse,
)
from blogforge.schemas.brand import BrandDetails
from blogforge.services.blog_generation import (
    BlogGenerationPipeline,
    GenerationPayload,
    dispatch_generation,
)
from blogforge.services.errors import LLMResponseError
from blogforge.services.title_suggestions import TitleSuggestionService

logger = get_logger(__name__)

router = APIRouter()


def to_response(article: Article) -> ArticleResponse:
    sections = (article.outline or {}).get("sections")
    return ArticleResponse(
        id=article.id,
        keyword=article.keyword,
        title=article.title,
        article_type=article.article_type,
        status=article.status,
        failed_at_phase=article.failed_at_phase,
        error_message=article.error_message,
        current_step_index=article.current_step_index or 0,
        total_sections=len(sections) if isinstance(sections, list) else None,
        slug=article.slug,
        meta_description=article.meta_description,
        featured_image_url=article.featured_image_url,
        final_html=article.final_html,
        created_at=article.created_at,
        updated_at=article.updated_at,
    )


@router.post(
    "",
    response_model=ArticleResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Create an article",
    description="Create a pending article and start the generation pipeline in the background.",
)
async def create_article(
    request: Request,
    data: ArticleCreateRequest,
    session: AsyncSession = Depends(get_session),
    pipeline: BlogGenerationPipeline = Depends(get_pipeline),
) -> ArticleResponse | JSONResponse:
    request_id = get_request_id(request)
    logger.debug(
        "Create article request",
        extra={"request_id": request_id, "keyword": data.keyword[:200], "brand_id": data.brand_id},
    )

    brand = await BrandRepository(session).get_by_id(data.brand_id)
    if brand is None:
        logger.warning("Brand not found", extra={"request_id": request_id, "brand_id": data.brand_id})
        return error_response(
            status.HTTP_404_NOT_FOUND, f"Brand not found: {data.brand_id}", "NOT_FOUND", request_id
        )

    article = await ArticleRepository(session).create(
        user_id=data.user_id,
        keyword=data.keyword,
        brand_id=data.brand_id,
        title=data.title,
        article_type=data.article_type,
        supporting_keywords=data.supporting_keywords,
        cluster=data.cluster,
        voice_id=data.voice_id,
    )
    # The pipeline reads the row from its own sessions
    await session.commit()

    dispatch_generation(
        pipeline,
        GenerationPayload(
            article_id=article.id,
            keyword=data.keyword,
            brand_id=data.brand_id,
            user_id=data.user_id,
            voice_id=data.voice_id,
            title=data.title,
            article_type=data.article_type,
            supporting_keywords=list(data.supporting_keywords),
            cluster=data.cluster,
        ),
    )
    logger.info(
        "Article generation dispatched",
        extra={"request_id": request_id, "article_id": article.id},
    )
    return to_response(article)


@router.post(
    "/titles",
    response_model=TitleSuggestionResponse,
    summary="Suggest titles",
    description="Generate five SEO titles for a keyword, optionally matched to a brand.",
)
async def suggest_titles(
    request: Request,
    data: TitleSuggestionRequest,
    session: AsyncSession = Depends(get_session),
    gemini: GeminiClient = Depends(get_gemini),
) -> TitleSuggestionResponse | JSONResponse:
    request_id = get_request_id(request)
    brand: BrandDetails | None = None
    if data.brand_id:
        row = await BrandRepository(session).get_by_id(data.brand_id)
        if row is None:
            return error_response(
                status.HTTP_404_NOT_FOUND, f"Brand not found: {data.brand_id}", "NOT_FOUND", request_id
            )
        brand = BrandDetails.model_validate(row.brand_data)

    try:
        titles = await TitleSuggestionService(gemini).suggest(data.keyword, data.article_type, brand)
    except LLMResponseError as e:
        logger.error(
            "Title suggestion failed",
            extra={"request_id": request_id, "keyword": data.keyword[:200], "error": str(e)},
        )
        return error_response(status.HTTP_502_BAD_GATEWAY, str(e), "LLM_ERROR", request_id)
    return TitleSuggestionResponse(keyword=data.keyword, titles=titles)


@router.get(
    "/{article_id}",
    response_model=ArticleResponse,
    summary="Get an article",
    description="Pipeline status, progress and generated fields for one article.",
)
async def get_article(
    request: Request,
    article_id: str,
    session: AsyncSession = Depends(get_session),
) -> ArticleResponse | JSONResponse:
    request_id = get_request_id(request)
    article = await ArticleRepository(session).get_by_id(article_id)
    if article is None:
        logger.warning("Article not found", extra={"request_id": request_id, "article_id": article_id})
        return error_response(
            status.HTTP_404_NOT_FOUND, f"Article not found: {article_id}", "NOT_FOUND", request_id
        )
    return to_response(article)

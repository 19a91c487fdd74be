"""Multi-phase blog generation pipeline.

Phases run strictly in order and the article row is persisted after each
one, so a crash loses at most the phase in flight:

    research   -> competitor_data, status outlining
    outline    -> outline, raw_content "# {title}", status writing
    writing    -> intro, then one section at a time (snowball drafting)
    polish     -> full-draft copyedit, status polishing
    assets     -> slug, meta description, featured image (best-effort)
    complete   -> single update with final_html and status completed

Any exception in the four core phases marks the article failed with the
phase it happened in and is re-raised unchanged. Best-effort steps log and
leave their field empty.

ERROR LOGGING REQUIREMENTS:
- Log phase start/complete with durations via pipeline_logger
- Log failures with the phase and exception type
- Log skipped best-effort assets with the reason
"""

import asyncio
import time
import uuid
from dataclasses import dataclass, field
from typing import Any

import markdown
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from blogforge.core.config import get_settings
from blogforge.core.database import db_manager, transaction
from blogforge.core.logging import get_logger, pipeline_logger
from blogforge.integrations.fal import FalClient
from blogforge.integrations.gemini import GeminiClient
from blogforge.integrations.s3 import S3Client, S3Error
from blogforge.integrations.tavily import TavilyClient
from blogforge.models.article import ArticleStatus, PipelinePhase
from blogforge.repositories.article import ArticleRepository
from blogforge.repositories.brand import BrandRepository
from blogforge.repositories.content_plan import ContentPlanRepository
from blogforge.schemas.brand import BrandDetails
from blogforge.schemas.outline import ArticleOutline
from blogforge.schemas.research import CompetitorData
from blogforge.services import article_prompts as prompts
from blogforge.services.coverage import CoverageService
from blogforge.services.errors import BlogGenerationError, BrandNotFoundError, LLMResponseError
from blogforge.services.topic_memory import TopicMemoryService
from blogforge.utils.llm_json import parse_llm_json, strip_code_fences
from blogforge.utils.slug import slugify

logger = get_logger(__name__)

SEARCH_RESULT_COUNT = 5
META_DESCRIPTION_LIMIT = 160
MARKDOWN_EXTENSIONS = ["extra", "sane_lists"]
MAX_ITEM_UPDATE_ATTEMPTS = 3


@dataclass
class GenerationPayload:
    """Everything a pipeline run needs besides the stored article row."""

    article_id: str
    keyword: str
    brand_id: str
    user_id: str | None = None
    voice_id: str | None = None
    title: str | None = None
    article_type: str = "informational"
    supporting_keywords: list[str] = field(default_factory=list)
    cluster: str | None = None
    plan_id: str | None = None
    item_id: str | None = None


@dataclass
class AssetOutcome:
    """Best-effort fields; None means the step was skipped or failed."""

    slug: str | None = None
    meta_description: str | None = None
    featured_image_url: str | None = None


def render_html(markdown_text: str) -> str:
    return markdown.markdown(markdown_text, extensions=MARKDOWN_EXTENSIONS)


def format_section(heading: str, level: int, body: str) -> str:
    return f"{'#' * level} {heading}\n\n{body.strip()}\n\n"


def clamp_meta_description(text: str) -> str:
    text = " ".join(text.split())
    if len(text) <= META_DESCRIPTION_LIMIT:
        return text
    return text[: META_DESCRIPTION_LIMIT - 3].rstrip() + "..."


def _search_payload(hits: list[Any]) -> list[dict[str, Any]]:
    return [
        {
            "url": hit.url,
            "title": hit.title,
            "content": hit.raw_content or hit.content,
        }
        for hit in hits
    ]


class BlogGenerationPipeline:
    """Runs one article from keyword to finished HTML.

    Usage:
        pipeline = BlogGenerationPipeline(gemini, tavily, fal, s3)
        await pipeline.run(payload)
    """

    def __init__(
        self,
        gemini: GeminiClient,
        tavily: TavilyClient,
        fal: FalClient | None = None,
        storage: S3Client | None = None,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        coverage: CoverageService | None = None,
        topic_memory: TopicMemoryService | None = None,
        section_delay: float | None = None,
    ) -> None:
        self._gemini = gemini
        self._tavily = tavily
        self._fal = fal
        self._storage = storage
        self._session_factory_override = session_factory
        self._coverage = coverage or CoverageService(gemini)
        self._topic_memory = topic_memory or TopicMemoryService(gemini)
        self._section_delay = (
            section_delay if section_delay is not None else get_settings().section_delay_seconds
        )
        logger.debug(
            "BlogGenerationPipeline initialized",
            extra={"images": fal is not None and storage is not None, "section_delay": self._section_delay},
        )

    @property
    def _session_factory(self) -> async_sessionmaker[AsyncSession]:
        return self._session_factory_override or db_manager.session_factory

    # =========================================================================
    # PERSISTENCE
    # =========================================================================

    async def _persist(self, article_id: str, **fields: Any) -> None:
        async with self._session_factory() as session, transaction(session, table="articles"):
            await ArticleRepository(session).update(article_id, **fields)

    async def _load_brand(self, brand_id: str) -> BrandDetails:
        async with self._session_factory() as session:
            brand = await BrandRepository(session).get_by_id(brand_id)
        if brand is None:
            raise BrandNotFoundError(brand_id)
        return BrandDetails.model_validate(brand.brand_data)

    async def _mark_failed(self, article_id: str, phase: str, error: Exception) -> None:
        try:
            await self._persist(
                article_id,
                status=ArticleStatus.FAILED.value,
                error_message=str(error)[:2000] or type(error).__name__,
                failed_at_phase=phase,
            )
        except Exception as persist_error:
            logger.error(
                "Failed to record pipeline failure",
                extra={
                    "article_id": article_id,
                    "phase": phase,
                    "error": str(persist_error),
                },
                exc_info=True,
            )

    # =========================================================================
    # RUN
    # =========================================================================

    async def run(self, payload: GenerationPayload) -> AssetOutcome:
        """Execute every phase for one article.

        Raises:
            Whatever a core phase raised, after the article row has been
            marked failed with failed_at_phase.
        """
        start_time = time.monotonic()
        article_id = payload.article_id
        pipeline_logger.run_start(article_id, payload.keyword, payload.article_type)

        phase = PipelinePhase.RESEARCH.value
        try:
            brand = await self._load_brand(payload.brand_id)
            competitor_data = await self._research(payload)

            phase = PipelinePhase.OUTLINE.value
            outline, title = await self._outline(payload, competitor_data, brand)

            phase = PipelinePhase.WRITING.value
            draft = await self._write(payload, outline, title, competitor_data, brand)

            phase = PipelinePhase.POLISH.value
            final_content = await self._polish(payload, draft, brand)

            assets = await self._assets(payload, title, outline, brand)
            await self._persist(
                article_id,
                title=title,
                raw_content=final_content,
                final_html=render_html(final_content),
                status=ArticleStatus.COMPLETED.value,
                meta_description=assets.meta_description,
                slug=assets.slug,
                featured_image_url=assets.featured_image_url,
            )
        except Exception as e:
            pipeline_logger.phase_failed(article_id, phase, str(e), type(e).__name__)
            await self._mark_failed(article_id, phase, e)
            raise

        await self._after_completion(payload, title, final_content)
        pipeline_logger.run_complete(
            article_id, (time.monotonic() - start_time) * 1000, len(final_content.split())
        )
        return assets

    # =========================================================================
    # PHASES
    # =========================================================================

    async def _research(self, payload: GenerationPayload) -> CompetitorData:
        phase_start = time.monotonic()
        phase = PipelinePhase.RESEARCH.value
        pipeline_logger.phase_start(payload.article_id, phase)
        await self._persist(payload.article_id, status=ArticleStatus.RESEARCHING.value)

        query = prompts.build_research_query(payload.keyword, payload.supporting_keywords)
        search = await self._tavily.search(
            query,
            max_results=SEARCH_RESULT_COUNT,
            search_depth="advanced",
            include_raw_content=True,
        )
        if not search.success:
            raise BlogGenerationError(
                f"Search failed: {search.error}", phase=phase, article_id=payload.article_id
            )

        prompt = prompts.build_research_prompt(
            payload.keyword,
            payload.article_type,
            _search_payload(search.results),
            supporting_keywords=payload.supporting_keywords,
            cluster=payload.cluster,
        )
        result = await self._gemini.generate(
            prompt, model=get_settings().gemini_research_model, grounded=True
        )
        if not result.success:
            raise LLMResponseError("research", result.error or "request failed")

        parsed = parse_llm_json(result.text, CompetitorData)
        if not parsed.ok or parsed.value is None:
            raise LLMResponseError("research", parsed.error or "invalid research brief")

        competitor_data = parsed.value
        await self._persist(
            payload.article_id,
            competitor_data=competitor_data.model_dump(),
            status=ArticleStatus.OUTLINING.value,
        )
        pipeline_logger.phase_complete(
            payload.article_id, phase, (time.monotonic() - phase_start) * 1000
        )
        return competitor_data

    async def _outline(
        self,
        payload: GenerationPayload,
        competitor_data: CompetitorData,
        brand: BrandDetails,
    ) -> tuple[ArticleOutline, str]:
        phase_start = time.monotonic()
        phase = PipelinePhase.OUTLINE.value
        pipeline_logger.phase_start(payload.article_id, phase)

        prompt = prompts.build_outline_prompt(
            payload.keyword, competitor_data, payload.article_type, brand, payload.title
        )
        result = await self._gemini.generate(
            prompt, model=get_settings().gemini_fast_model, json_output=True
        )
        if not result.success:
            raise LLMResponseError("outline", result.error or "request failed")

        parsed = parse_llm_json(result.text, ArticleOutline)
        if not parsed.ok or parsed.value is None:
            raise LLMResponseError("outline", parsed.error or "invalid outline")

        outline = parsed.value
        title = payload.title or outline.title
        await self._persist(
            payload.article_id,
            title=title,
            outline=outline.model_dump(),
            raw_content=f"# {title}\n\n",
            current_step_index=0,
            status=ArticleStatus.WRITING.value,
        )
        pipeline_logger.phase_complete(
            payload.article_id, phase, (time.monotonic() - phase_start) * 1000
        )
        return outline, title

    async def _generate_section(self, system_prompt: str, user_prompt: str, operation: str) -> str:
        result = await self._gemini.generate(
            user_prompt,
            model=get_settings().gemini_fast_model,
            system_prompt=system_prompt,
            grounded=True,
        )
        if not result.success:
            raise LLMResponseError(operation, result.error or "request failed")
        return result.text.strip()

    async def _write(
        self,
        payload: GenerationPayload,
        outline: ArticleOutline,
        title: str,
        competitor_data: CompetitorData,
        brand: BrandDetails,
    ) -> str:
        phase_start = time.monotonic()
        phase = PipelinePhase.WRITING.value
        pipeline_logger.phase_start(payload.article_id, phase)

        system_prompt = prompts.build_writing_system_prompt(
            brand.effective_style_dna, competitor_data.fact_sheet, brand
        )
        draft = f"# {title}\n\n"

        intro = await self._generate_section(
            system_prompt,
            prompts.build_intro_prompt(
                draft,
                outline.intro.instruction_note,
                outline.intro.keywords_to_include,
                payload.article_type,
            ),
            "write_intro",
        )
        draft += f"{intro}\n\n"
        await self._persist(payload.article_id, raw_content=draft)

        total = len(outline.sections)
        for index, section in enumerate(outline.sections):
            await self._persist(payload.article_id, current_step_index=index + 1)
            body = await self._generate_section(
                system_prompt,
                prompts.build_section_prompt(
                    draft,
                    section.heading,
                    prompts.build_section_instruction(section),
                    section.keywords_to_include,
                ),
                "write_section",
            )
            draft += format_section(section.heading, section.level, body)
            await self._persist(payload.article_id, raw_content=draft)
            pipeline_logger.section_written(
                payload.article_id, index + 1, total, section.heading, len(draft)
            )
            if self._section_delay > 0:
                await asyncio.sleep(self._section_delay)

        pipeline_logger.phase_complete(
            payload.article_id, phase, (time.monotonic() - phase_start) * 1000
        )
        return draft

    async def _polish(self, payload: GenerationPayload, draft: str, brand: BrandDetails) -> str:
        phase_start = time.monotonic()
        phase = PipelinePhase.POLISH.value
        pipeline_logger.phase_start(payload.article_id, phase)
        await self._persist(payload.article_id, status=ArticleStatus.POLISHING.value)

        result = await self._gemini.generate(
            prompts.build_polish_prompt(draft, brand),
            model=get_settings().gemini_polish_model,
        )
        if not result.success:
            raise LLMResponseError("polish", result.error or "request failed")

        polished = strip_code_fences(result.text).replace("```markdown", "").replace("```", "").strip()
        if not polished:
            raise LLMResponseError("polish", "empty polished draft")

        pipeline_logger.phase_complete(
            payload.article_id, phase, (time.monotonic() - phase_start) * 1000
        )
        return polished

    # =========================================================================
    # BEST-EFFORT ASSETS
    # =========================================================================

    async def _assets(
        self,
        payload: GenerationPayload,
        title: str,
        outline: ArticleOutline,
        brand: BrandDetails,
    ) -> AssetOutcome:
        """Slug, meta description and featured image. Never raises."""
        slug = slugify(title) or slugify(outline.title) or slugify(payload.keyword) or None

        try:
            meta = await self._meta_description(payload, title)
        except Exception as e:
            pipeline_logger.best_effort_skipped(
                payload.article_id, "meta_description", f"{type(e).__name__}: {e}"
            )
            meta = clamp_meta_description(prompts.fallback_meta_description(title, payload.keyword))

        image_url: str | None
        try:
            image_url = await self._featured_image(payload, title, outline, brand.image_style)
        except Exception as e:
            pipeline_logger.best_effort_skipped(
                payload.article_id, "featured_image_url", f"{type(e).__name__}: {e}"
            )
            image_url = None

        return AssetOutcome(slug=slug, meta_description=meta, featured_image_url=image_url)

    async def _meta_description(self, payload: GenerationPayload, title: str) -> str:
        fallback = clamp_meta_description(prompts.fallback_meta_description(title, payload.keyword))
        result = await self._gemini.generate(
            prompts.build_meta_description_prompt(title, payload.keyword),
            model=get_settings().gemini_fast_model,
            json_output=True,
        )
        if not result.success:
            pipeline_logger.best_effort_skipped(payload.article_id, "meta_description", result.error or "")
            return fallback

        parsed = parse_llm_json(result.text, dict[str, Any])
        value = parsed.value.get("meta_description") if parsed.ok and parsed.value else None
        if not isinstance(value, str) or not value.strip():
            pipeline_logger.best_effort_skipped(
                payload.article_id, "meta_description", parsed.error or "missing meta_description"
            )
            return fallback
        return clamp_meta_description(value)

    async def _featured_image(
        self,
        payload: GenerationPayload,
        title: str,
        outline: ArticleOutline,
        image_style: str,
    ) -> str | None:
        if self._fal is None or self._storage is None or not self._fal.available:
            pipeline_logger.best_effort_skipped(payload.article_id, "featured_image_url", "images not configured")
            return None
        if not self._storage.available:
            pipeline_logger.best_effort_skipped(payload.article_id, "featured_image_url", "storage not configured")
            return None

        image_prompt = f"A professional featured image for a blog post about {payload.keyword}"
        result = await self._gemini.generate(
            prompts.build_image_prompt_request(
                title, [section.heading for section in outline.sections], image_style
            ),
            model=get_settings().gemini_fast_model,
        )
        if result.success and result.text.strip():
            image_prompt = result.text.strip()

        image = await self._fal.generate(image_prompt)
        if not image.success or not image.data:
            pipeline_logger.best_effort_skipped(
                payload.article_id, "featured_image_url", image.error or "no image data"
            )
            return None

        key = f"featured-images/{payload.article_id}/{uuid.uuid4()}.png"
        try:
            await self._storage.put_object(key, image.data, content_type="image/png")
        except S3Error as e:
            pipeline_logger.best_effort_skipped(payload.article_id, "featured_image_url", str(e))
            return None
        return self._storage.public_url(key)

    async def _after_completion(self, payload: GenerationPayload, title: str, content: str) -> None:
        """Topic memory, answer coverage and plan item status. Never raises."""
        try:
            async with self._session_factory() as session:
                await self._topic_memory.save_topic_memory(
                    session, payload.article_id, f"{title} : {payload.keyword}"
                )
                if payload.user_id:
                    await self._coverage.analyze_article_coverage(
                        session,
                        payload.article_id,
                        content,
                        payload.keyword,
                        payload.cluster,
                        payload.user_id,
                        payload.brand_id,
                    )
                if payload.plan_id and payload.item_id:
                    await mark_plan_item_published(session, payload.plan_id, payload.item_id)
        except Exception as e:
            logger.error(
                "Post-completion bookkeeping failed",
                extra={"article_id": payload.article_id, "error": str(e)},
                exc_info=True,
            )


async def mark_plan_item_published(session: AsyncSession, plan_id: str, item_id: str) -> bool:
    """Flip a plan item to published, retrying lost version races."""
    repo = ContentPlanRepository(session)
    for _ in range(MAX_ITEM_UPDATE_ATTEMPTS):
        plan = await repo.get_by_id(plan_id)
        if plan is None:
            return False
        await session.refresh(plan)
        plan_data = [
            {**item, "status": "published"} if item.get("id") == item_id else item
            for item in plan.plan_data or []
        ]
        if await repo.compare_and_swap_plan_data(plan_id, plan.version, plan_data):
            await session.commit()
            return True
        await session.rollback()
    logger.warning(
        "Gave up marking plan item published",
        extra={"plan_id": plan_id, "item_id": item_id},
    )
    return False


# =============================================================================
# DISPATCH
# =============================================================================

_running_tasks: set[asyncio.Task[Any]] = set()


def _on_task_done(task: asyncio.Task[Any]) -> None:
    _running_tasks.discard(task)
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.warning(
            "Generation task finished with error",
            extra={"task": task.get_name(), "error": str(error), "error_type": type(error).__name__},
        )


def dispatch_generation(
    pipeline: BlogGenerationPipeline, payload: GenerationPayload
) -> asyncio.Task[AssetOutcome]:
    """Run the pipeline as an independent task and keep a reference to it."""
    task = asyncio.create_task(pipeline.run(payload), name=f"generate-{payload.article_id}")
    _running_tasks.add(task)
    task.add_done_callback(_on_task_done)
    return task


def running_generations() -> int:
    return len(_running_tasks)

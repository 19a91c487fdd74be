"""Strategic 30-day content plan generation for a brand.

Flow:
1. Coverage context: questions the user's site already answers strongly
   (answer_coverage rows plus sitemap content passed in by the caller)
2. Content stage from the latest GSC-enhanced plan (framing only with GSC)
3. Idea universe: adjacent problem domains annotated with competitor coverage
4. One structured planning call (posts array, 12/8/6/4 category split)
5. Dedup on parent question and against topic memory, capped at 30
6. Fallback fill when dedup was too aggressive
7. Bounded top-up calls for the per-category shortfall
8. Finalize into dated ContentPlanItem rows

ERROR LOGGING REQUIREMENTS:
- Log skipped duplicates at DEBUG level with the reason
- Log the final category distribution at INFO level
- Log top-up failures as graceful fallbacks, never raise them
"""

import time
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from blogforge.core.config import get_settings
from blogforge.core.logging import gemini_logger, get_logger
from blogforge.integrations.gemini import GeminiClient
from blogforge.models.content_plan import ContentPlan
from blogforge.repositories.brand import BrandRepository
from blogforge.repositories.content_plan import ContentPlanRepository
from blogforge.schemas.brand import BrandDetails
from blogforge.schemas.content_plan import (
    ContentPlanGenerateRequest,
    ContentPlanItem,
    PlanPostCandidate,
    PlanPostsEnvelope,
)
from blogforge.services.coverage import CoverageService, summarize_coverage
from blogforge.services.errors import BrandNotFoundError, ContentPlanError
from blogforge.services.idea_expansion import (
    expand_idea_universe,
    format_idea_universe,
    validate_with_competitors,
)
from blogforge.services.strategy_detector import (
    ContentStage,
    detect_content_stage,
    get_strategy_prompt,
)
from blogforge.services.topic_memory import TopicMemoryService
from blogforge.utils.dates import schedule_date, utc_today
from blogforge.utils.llm_json import parse_llm_json

logger = get_logger(__name__)

PLAN_SIZE = 30
FALLBACK_THRESHOLD = 20
TOP_UP_THRESHOLD = 15
MAX_LISTED_COVERED = 20
VALID_ARTICLE_TYPES = ("informational", "commercial", "howto")
DEFAULT_CATEGORY = "Core Answers"


@dataclass(frozen=True)
class ArticleCategory:
    count: int
    description: str
    intent_roles: tuple[str, ...]
    article_type: str
    focus: str


ARTICLE_CATEGORIES: dict[str, ArticleCategory] = {
    "Core Answers": ArticleCategory(
        count=12,
        description="Foundation articles that establish topical authority",
        intent_roles=("Core Answer", "Definition"),
        article_type="informational",
        focus="Answer fundamental 'What is X?' and 'How does X work?' questions",
    ),
    "Supporting Articles": ArticleCategory(
        count=8,
        description="Deepen existing coverage with specific problems and tutorials",
        intent_roles=("Problem-Specific", "How-To"),
        article_type="howto",
        focus="Create step-by-step guides and solve specific user problems",
    ),
    "Conversion Pages": ArticleCategory(
        count=6,
        description="Commercial intent - comparisons and buying decisions",
        intent_roles=("Comparison", "Decision"),
        article_type="commercial",
        focus="Help users choose between options and make buying decisions",
    ),
    "Authority Plays": ArticleCategory(
        count=4,
        description="Edge cases, deep expertise, and emotional stories",
        intent_roles=("Authority/Edge", "Emotional/Story"),
        article_type="informational",
        focus="Establish expert positioning with edge cases and compelling stories",
    ),
}

_POST_FIELDS = (
    "title",
    "main_keyword",
    "supporting_keywords",
    "article_type",
    "cluster",
    "intent_role",
    "article_category",
    "parent_question",
)

POSTS_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "posts": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    name: (
                        {"type": "ARRAY", "items": {"type": "STRING"}}
                        if name == "supporting_keywords"
                        else {"type": "STRING"}
                    )
                    for name in _POST_FIELDS
                },
                "required": list(_POST_FIELDS),
            },
        }
    },
    "required": ["posts"],
}


@dataclass
class ContentPlanResult:
    items: list[ContentPlanItem]
    category_distribution: dict[str, int]
    top_up_attempts: int = 0
    stage: ContentStage = ContentStage.FOUNDATION
    idea_domains: list[str] = field(default_factory=list)


def empty_distribution() -> dict[str, int]:
    return {name: 0 for name in ARTICLE_CATEGORIES}


def category_of(post: PlanPostCandidate) -> str:
    return post.article_category if post.article_category in ARTICLE_CATEGORIES else DEFAULT_CATEGORY


def category_shortfall(distribution: dict[str, int]) -> dict[str, int]:
    """Articles still missing per category, zero entries omitted."""
    shortfall = {}
    for name, spec in ARTICLE_CATEGORIES.items():
        missing = spec.count - distribution.get(name, 0)
        if missing > 0:
            shortfall[name] = missing
    return shortfall


# =============================================================================
# PROMPTS
# =============================================================================


def build_coverage_section(covered_questions: list[str]) -> str:
    if not covered_questions:
        return ""
    listed = "\n".join(f'- "{q}"' for q in covered_questions[:MAX_LISTED_COVERED])
    more = ""
    if len(covered_questions) > MAX_LISTED_COVERED:
        more = f"\n... and {len(covered_questions) - MAX_LISTED_COVERED} more covered questions"
    return f"""
## COVERAGE STATE (CRITICAL - READ CAREFULLY)

The following parent questions are ALREADY COVERED on the user's site.
DO NOT create articles that simply re-answer these questions.

**SATURATED (DO NOT TARGET DIRECTLY):**
{listed}{more}

**YOUR STRATEGY:**
- For saturated topics: Only create EXPANSION articles (edge cases, comparisons, specific problems)
- For new topics: Create Core Answers FIRST
- DO NOT duplicate existing coverage

**EXPANSION RULES (For saturated topics):**
a) Expand the perimeter (new sub-question)
b) Support internally (linking-focused article)
c) Attack a comparison (X vs Y)
d) Address edge cases (why X fails)
"""


def build_feature_section(core_features: list[str]) -> str:
    if len(core_features) < 2:
        return "Focus deeply on the core product offering."
    numbered = "\n".join(f"{i + 1}. {feature}" for i, feature in enumerate(core_features))
    return f"""This brand has MULTIPLE distinct features/products:
{numbered}

YOU MUST create articles covering ALL features proportionally.
If there are {len(core_features)} features, distribute ~{PLAN_SIZE // len(core_features)} articles per feature.
DO NOT focus on just one feature. This is a multi-product brand."""


def build_idea_universe_section(idea_universe: str) -> str:
    if not idea_universe:
        return ""
    return f"""
## IDEA UNIVERSE (Adjacent problem domains)
🔴 HEAVY = crowded by competitors, 🟡 LIGHT = partially covered, 🟢 NONE = untapped.
Prefer untapped domains when choosing new parent questions.

{idea_universe}
"""


def build_category_section() -> str:
    blocks = []
    for name, spec in ARTICLE_CATEGORIES.items():
        blocks.append(
            f"### {name} ({spec.count} articles)\n"
            f"Purpose: {spec.description}\n"
            f"Intent Roles: {', '.join(spec.intent_roles)}\n"
            f"Article Type: {spec.article_type}\n"
            f"Focus: {spec.focus}"
        )
    return "\n\n".join(blocks)


TITLE_RULES = """## TITLE RULES (MODERN SEO)

1. Use SPECIFIC numbers: "7 Ways..." not "Ways..."
2. Include the YEAR when relevant
3. Attack a PAIN POINT: "Why Your [X] Keeps Failing"
4. Use POWER WORDS: "Proven", "Exact", "Without", "Actually"
5. Keep under 60 characters

FORMAT PATTERNS (use variety):
- How-To: "How to [X] Without [Pain Point]"
- List: "[Number] [Adjective] Ways to [Benefit]"
- Comparison: "[X] vs [Y]: Which [Benefit] Better?"
- Question: "Is [X] Worth It? (Real Data Inside)"
- Problem: "Why [Common Approach] Doesn't Work (And What Does)"

BANNED PATTERNS (NEVER USE):
- "What is X? (Explained)" - Too generic, boring
- "Ultimate Guide to X" - Overused, ignored by searchers
- "Everything You Need to Know About X" - Vague, no hook
- "A Comprehensive Look at X" - Academic, not engaging
- "The Complete Guide to X" - Same as ultimate guide"""


def build_plan_prompt(
    brand: BrandDetails,
    seeds: list[str],
    covered_questions: list[str],
    strategy_prompt: str = "",
    idea_universe: str = "",
    today: date | None = None,
) -> str:
    today = today or utc_today()
    current_date = f"{today.strftime('%B')} {today.year}"
    distribution = " + ".join(str(spec.count) for spec in ARTICLE_CATEGORIES.values())
    breakdown = "\n".join(
        f"- {name}: {spec.count} articles" for name, spec in ARTICLE_CATEGORIES.items()
    )

    return f"""
You are an elite SEO strategist building a STRATEGIC content plan. [Current Date: {current_date}]
{strategy_prompt}
## BRAND CONTEXT
- Product: {brand.product_name}
- What it is: {brand.product_identity.literally}
- Core Features/Products: {', '.join(brand.core_features) or 'Not specified'}
- Target Audience: {brand.audience.primary}
- Unique Value: {', '.join(brand.uvp)}
- Voice/Style: {brand.style_dna or 'Professional and informative'}

## FEATURE COVERAGE REQUIREMENT (CRITICAL)

{build_feature_section(brand.core_features)}

## SEED KEYWORDS & TOPICS
{chr(10).join(seeds)}
{build_idea_universe_section(idea_universe)}
{build_coverage_section(covered_questions)}
---

## THE 4 STRATEGIC CATEGORIES (MANDATORY DISTRIBUTION: {PLAN_SIZE} = {distribution})

THIS IS A STRICT REQUIREMENT. You MUST generate EXACTLY this distribution:

{build_category_section()}

---

## ANTI-CANNIBALIZATION RULES (CRITICAL)

Each article must answer a DIFFERENT parent question. Examples of SAME parent question (BAD):
- "How to restore old photos" = "What is AI photo restoration" = "Does AI enhancement work"
These all answer: "Can AI restore my photos?"

Examples of DIFFERENT parent questions (GOOD):
- "Can AI restore my photos?" (Core Answer)
- "How much does restoration cost?" (Core Answer - DIFFERENT)
- "AI vs professional restoration?" (Conversion)
- "Why some photos can't be restored?" (Authority)

---

{TITLE_RULES}

---

## YOUR TASK

Generate EXACTLY {PLAN_SIZE} articles distributed as follows (NO EXCEPTIONS):
{breakdown}

For each article provide:
1. title: Compelling blog post title (follow the title rules above)
2. main_keyword: Primary target keyword (2-4 words)
3. supporting_keywords: 2-3 related keywords (array)
4. article_type: "informational" | "commercial" | "howto"
5. cluster: Topic cluster for organization
6. intent_role: The specific intent ("Core Answer", "Problem-Specific", "Comparison", "Decision", "Emotional/Story", "Authority/Edge")
7. article_category: One of {', '.join(f'"{name}"' for name in ARTICLE_CATEGORIES)}
8. parent_question: The ONE fundamental user question this article answers

## CRITICAL REQUIREMENTS:
1. Each article's parent_question must be UNIQUE across the plan.
2. If the brand has multiple features, articles must be distributed across ALL features.
3. You MUST generate EXACTLY {PLAN_SIZE} articles with the {distribution.replace(' + ', '-')} distribution.
"""


def build_top_up_prompt(
    brand: BrandDetails,
    seeds: list[str],
    shortfall: dict[str, int],
    accepted: list[PlanPostCandidate],
    today: date | None = None,
) -> str:
    today = today or utc_today()
    needed = "\n".join(f"- {name}: {count} more articles" for name, count in shortfall.items())
    taken_titles = "\n".join(f"- {post.title}" for post in accepted)
    taken_questions = "\n".join(f"- {post.parent_question}" for post in accepted if post.parent_question)
    return f"""
You are an elite SEO strategist completing a content plan. [Current Date: {today.strftime('%B')} {today.year}]

## BRAND CONTEXT
- Product: {brand.product_name}
- What it is: {brand.product_identity.literally}
- Target Audience: {brand.audience.primary}

## SEED KEYWORDS & TOPICS
{chr(10).join(seeds)}

## ARTICLES STILL NEEDED
{needed}

## ALREADY IN THE PLAN (DO NOT REPEAT TITLES, KEYWORDS OR PARENT QUESTIONS)
{taken_titles}

Parent questions already answered:
{taken_questions}

{TITLE_RULES}

Generate ONLY the missing articles, each answering a NEW parent question.
Use the same fields as before: title, main_keyword, supporting_keywords, article_type,
cluster, intent_role, article_category, parent_question.
"""


# =============================================================================
# FINALIZATION
# =============================================================================


def finalize_plan_items(
    posts: list[PlanPostCandidate],
    today: date | None = None,
    timestamp_ms: int | None = None,
) -> list[ContentPlanItem]:
    """Dated, normalized plan items; one day per index starting today."""
    today = today or utc_today()
    ts = timestamp_ms if timestamp_ms is not None else int(time.time() * 1000)
    items = []
    for index, post in enumerate(posts):
        items.append(
            ContentPlanItem(
                id=f"plan-{ts}-{index}",
                title=post.title or f"Post {index + 1}",
                main_keyword=post.main_keyword,
                supporting_keywords=list(post.supporting_keywords),
                article_type=post.article_type
                if post.article_type in VALID_ARTICLE_TYPES
                else "informational",
                cluster=post.cluster or "General",
                scheduled_date=schedule_date(today, index),
                status="pending",
                intent_role=post.intent_role or "Core Answer",
                article_category=category_of(post),
                parent_question=post.parent_question or None,
            )
        )
    return items


def _normalize(text: str) -> str:
    return text.lower().strip()


# =============================================================================
# GENERATOR
# =============================================================================


class ContentPlanGenerator:
    """Generates and persists brand content plans.

    Usage:
        generator = ContentPlanGenerator(gemini)
        plan = await generator.create_plan(session, request)
    """

    def __init__(
        self,
        gemini: GeminiClient,
        topic_memory: TopicMemoryService | None = None,
        coverage: CoverageService | None = None,
        max_top_up_attempts: int | None = None,
    ) -> None:
        self._gemini = gemini
        self._topic_memory = topic_memory or TopicMemoryService(gemini)
        self._coverage = coverage or CoverageService(gemini)
        self._max_top_up_attempts = (
            max_top_up_attempts
            if max_top_up_attempts is not None
            else get_settings().plan_topup_max_attempts
        )
        logger.debug(
            "ContentPlanGenerator initialized",
            extra={"max_top_up_attempts": self._max_top_up_attempts},
        )

    async def generate(
        self,
        session: AsyncSession,
        request: ContentPlanGenerateRequest,
        brand: BrandDetails,
        today: date | None = None,
    ) -> ContentPlanResult:
        """Build a plan for one brand.

        Raises:
            ContentPlanError: The primary planning call failed, its
                response could not be parsed or no entry survived
                deduplication. Nothing is persisted.
        """
        start_time = time.monotonic()
        today = today or utc_today()
        user_id, brand_id = request.user_id, request.brand_id

        coverage_rows = await self._coverage.get_coverage_context(session, user_id, brand_id)
        covered = summarize_coverage(coverage_rows).strongly_answered + list(request.existing_content)

        stage = await detect_content_stage(session, user_id, brand_id)
        domains = await expand_idea_universe(self._gemini, brand)
        if domains and request.competitor_text:
            idea_coverage = await validate_with_competitors(self._gemini, domains, request.competitor_text)
        else:
            idea_coverage = {domain: "none" for domain in domains}

        prompt = build_plan_prompt(
            brand,
            request.competitor_seeds,
            covered,
            strategy_prompt=get_strategy_prompt(stage.stage, stage.has_gsc),
            idea_universe=format_idea_universe(domains, idea_coverage),
            today=today,
        )
        candidates = await self._request_posts(prompt)
        if candidates is None:
            raise ContentPlanError("Failed to parse content plan from LLM")
        if not candidates:
            raise ContentPlanError("Model returned no plan entries")

        accepted, distribution = await self._dedupe(session, candidates, user_id, brand_id)

        if len(accepted) < FALLBACK_THRESHOLD and len(candidates) >= PLAN_SIZE:
            logger.warning(
                "Deduplication too aggressive, filling from remaining candidates",
                extra={"accepted": len(accepted), "candidates": len(candidates)},
            )
            for post in candidates:
                if len(accepted) >= PLAN_SIZE:
                    break
                if not any(post is taken for taken in accepted):
                    accepted.append(post)
                    distribution[category_of(post)] += 1

        attempts = 0
        if TOP_UP_THRESHOLD <= len(accepted) < PLAN_SIZE:
            attempts = await self._top_up(session, brand, request, accepted, distribution, today)
        if not accepted:
            raise ContentPlanError("No plan entries left after deduplication")

        items = finalize_plan_items(accepted, today)
        logger.info(
            "Content plan generated",
            extra={
                "user_id": user_id,
                "brand_id": brand_id,
                "items": len(items),
                "category_distribution": distribution,
                "top_up_attempts": attempts,
                "stage": stage.stage.value,
                "duration_ms": round((time.monotonic() - start_time) * 1000, 2),
            },
        )
        return ContentPlanResult(
            items=items,
            category_distribution=distribution,
            top_up_attempts=attempts,
            stage=stage.stage,
            idea_domains=domains,
        )

    async def create_plan(
        self,
        session: AsyncSession,
        request: ContentPlanGenerateRequest,
        today: date | None = None,
    ) -> tuple[ContentPlan, ContentPlanResult]:
        """Generate a plan for the request's brand and persist it.

        Raises:
            BrandNotFoundError: The brand does not exist.
            ContentPlanError: Generation failed.
        """
        brand_row = await BrandRepository(session).get_by_id(request.brand_id)
        if brand_row is None:
            raise BrandNotFoundError(request.brand_id)
        brand = BrandDetails.model_validate(brand_row.brand_data)

        result = await self.generate(session, request, brand, today)
        plan = await ContentPlanRepository(session).create(
            user_id=request.user_id,
            brand_id=request.brand_id,
            plan_data=[item.model_dump() for item in result.items],
            competitor_seeds=request.competitor_seeds,
        )
        await session.commit()
        return plan, result

    async def _request_posts(self, prompt: str) -> list[PlanPostCandidate] | None:
        result = await self._gemini.generate(
            prompt,
            model=get_settings().gemini_fast_model,
            response_schema=POSTS_SCHEMA,
        )
        if not result.success:
            logger.error("Plan request failed", extra={"error": result.error})
            return None
        parsed = parse_llm_json(result.text, PlanPostsEnvelope)
        if not parsed.ok or parsed.value is None:
            logger.error(
                "Failed to parse plan response",
                extra={"error": parsed.error, "snippet": (result.text or "")[:500]},
            )
            return None
        return parsed.value.posts

    async def _dedupe(
        self,
        session: AsyncSession,
        candidates: list[PlanPostCandidate],
        user_id: str,
        brand_id: str | None,
    ) -> tuple[list[PlanPostCandidate], dict[str, int]]:
        accepted: list[PlanPostCandidate] = []
        distribution = empty_distribution()
        seen_questions: set[str] = set()

        for post in candidates:
            question = _normalize(post.parent_question)
            if question in seen_questions:
                logger.debug(
                    "Skipped duplicate parent question",
                    extra={"parent_question": post.parent_question[:200]},
                )
                continue

            check = await self._topic_memory.is_duplicate(
                session, f"{post.title} : {post.main_keyword}", user_id, brand_id
            )
            if check.is_duplicate:
                logger.debug(
                    "Skipped duplicate topic",
                    extra={"title": post.title[:200], "similar_article_id": check.similar_article_id},
                )
                continue

            accepted.append(post)
            seen_questions.add(question)
            distribution[category_of(post)] += 1
            if len(accepted) >= PLAN_SIZE:
                break
        return accepted, distribution

    async def _top_up(
        self,
        session: AsyncSession,
        brand: BrandDetails,
        request: ContentPlanGenerateRequest,
        accepted: list[PlanPostCandidate],
        distribution: dict[str, int],
        today: date,
    ) -> int:
        """Ask for the missing articles until full, stale or out of attempts.

        Mutates accepted and distribution in place; returns attempts made.
        """
        attempts = 0
        while len(accepted) < PLAN_SIZE and attempts < self._max_top_up_attempts:
            attempts += 1
            shortfall = category_shortfall(distribution) or {DEFAULT_CATEGORY: PLAN_SIZE - len(accepted)}
            prompt = build_top_up_prompt(brand, request.competitor_seeds, shortfall, accepted, today)
            extra_posts = await self._request_posts(prompt)
            if extra_posts is None:
                gemini_logger.graceful_fallback("plan_top_up", "top-up response unusable")
                break

            titles = {_normalize(post.title) for post in accepted}
            keywords = {_normalize(post.main_keyword) for post in accepted}
            questions = {_normalize(post.parent_question) for post in accepted}
            novel = 0
            for post in extra_posts:
                if len(accepted) >= PLAN_SIZE:
                    break
                question = _normalize(post.parent_question)
                if (
                    _normalize(post.title) in titles
                    or _normalize(post.main_keyword) in keywords
                    or question in questions
                ):
                    continue
                accepted.append(post)
                titles.add(_normalize(post.title))
                keywords.add(_normalize(post.main_keyword))
                questions.add(question)
                distribution[category_of(post)] += 1
                novel += 1

            logger.info(
                "Plan top-up attempt finished",
                extra={"attempt": attempts, "added": novel, "total": len(accepted)},
            )
            if novel == 0:
                break
        return attempts

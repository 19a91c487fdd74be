"""Idea universe expansion and competitor coverage validation.

Phase A asks the model for the broader problem domains a brand's audience
lives in (not keywords, not titles). Phase B classifies each domain by how
heavily competitors already cover it.

Both phases fail open: Phase A returns [] and Phase B returns "none" for
every domain, so plan generation continues without the enrichment.
"""

from typing import Literal

from pydantic import BaseModel, Field

from blogforge.core.config import get_settings
from blogforge.core.logging import gemini_logger, get_logger
from blogforge.integrations.gemini import GeminiClient
from blogforge.schemas.brand import BrandDetails
from blogforge.utils.llm_json import parse_llm_json

logger = get_logger(__name__)

MAX_DOMAINS = 15
CoverageLevel = Literal["heavy", "light", "none"]
COVERAGE_LEVELS: tuple[str, ...] = ("heavy", "light", "none")

COVERAGE_MARKERS = {
    "heavy": "🔴",
    "light": "🟡",
    "none": "🟢",
}

DOMAINS_SCHEMA = {
    "type": "OBJECT",
    "properties": {"domains": {"type": "ARRAY", "items": {"type": "STRING"}}},
    "required": ["domains"],
}

COVERAGE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "coverage": {"type": "OBJECT", "additionalProperties": {"type": "STRING"}}
    },
    "required": ["coverage"],
}


class _DomainsEnvelope(BaseModel):
    domains: list[str] = Field(default_factory=list)


class _CoverageEnvelope(BaseModel):
    coverage: dict[str, str] = Field(default_factory=dict)


def build_expansion_prompt(brand: BrandDetails) -> str:
    return f"""You are NOT creating a content plan.

Your job is to expand the IDEA UNIVERSE for this product.

## PRODUCT CONTEXT
Product: {brand.product_name}
What it does: {brand.product_identity.literally}
Target audience: {brand.audience.primary}
Core problem solved: {brand.product_identity.emotionally}

## TASK
List the broader problems, life situations, goals, and contexts where this audience exists,
even if the product is NOT the direct solution.

Think in terms of:
- What happens in their life BEFORE they need this product?
- What happens AFTER they've used it successfully?
- Life moments and emotional drivers
- Adjacent goals and workflows
- Long-term outcomes they care about
- Situations before and after the product is needed

## RULES
- Do NOT output keywords
- Do NOT output article titles
- Do NOT think about SEO
- Do NOT limit yourself to the product features
- Each item must be conceptually distinct
- Short, clear phrases only (3-8 words each)

## OUTPUT
Return a simple list of 12-15 distinct problem domains."""


def build_validation_prompt(domains: list[str], competitor_text: str, budget: int) -> str:
    numbered = "\n".join(f"{i + 1}. {d}" for i, d in enumerate(domains))
    return f"""You are NOT generating content ideas.

You are analyzing competitor coverage to validate an idea universe.

## IDEA UNIVERSE
{numbered}

## COMPETITOR CONTENT (summarized)
{competitor_text[:budget]}

## TASK
For each idea domain, determine how heavily competitors already cover it.

Classify each domain as ONE of:
- heavy: Well-covered, crowded, multiple competitors write about this
- light: Partially covered, some mention but not deep
- none: Largely ignored, untapped opportunity

## RULES
- Do NOT suggest new ideas
- Do NOT generate keywords
- Do NOT rewrite domain names
- Use the EXACT domain text as the key
- Base judgment only on competitor content presence

## OUTPUT
Return a JSON object with each domain as key and coverage level as value."""


async def expand_idea_universe(gemini: GeminiClient, brand: BrandDetails) -> list[str]:
    """Phase A. Returns at most 15 domains, [] on any failure."""
    result = await gemini.generate(
        build_expansion_prompt(brand),
        model=get_settings().gemini_fast_model,
        response_schema=DOMAINS_SCHEMA,
    )
    if not result.success:
        gemini_logger.graceful_fallback("expand_idea_universe", result.error or "request failed")
        return []

    parsed = parse_llm_json(result.text, _DomainsEnvelope)
    if not parsed.ok or parsed.value is None:
        gemini_logger.graceful_fallback("expand_idea_universe", parsed.error or "unparseable")
        return []

    domains = [d.strip() for d in parsed.value.domains if d and d.strip()][:MAX_DOMAINS]
    logger.info("Generated idea universe", extra={"domain_count": len(domains)})
    return domains


async def validate_with_competitors(
    gemini: GeminiClient,
    domains: list[str],
    competitor_text: str,
) -> dict[str, CoverageLevel]:
    """Phase B. Every input domain gets a level; unknowns default to "none"."""
    if not domains:
        return {}

    fallback: dict[str, CoverageLevel] = {domain: "none" for domain in domains}
    budget = get_settings().competitor_text_budget
    result = await gemini.generate(
        build_validation_prompt(domains, competitor_text, budget),
        model=get_settings().gemini_fast_model,
        response_schema=COVERAGE_SCHEMA,
    )
    if not result.success:
        gemini_logger.graceful_fallback("validate_with_competitors", result.error or "request failed")
        return fallback

    parsed = parse_llm_json(result.text, _CoverageEnvelope)
    if not parsed.ok or parsed.value is None:
        gemini_logger.graceful_fallback("validate_with_competitors", parsed.error or "unparseable")
        return fallback

    coverage: dict[str, CoverageLevel] = {}
    for domain in domains:
        level = str(parsed.value.coverage.get(domain, "none")).strip().lower()
        coverage[domain] = level if level in COVERAGE_LEVELS else "none"  # type: ignore[assignment]

    logger.info(
        "Validated idea coverage",
        extra={
            "heavy": sum(1 for v in coverage.values() if v == "heavy"),
            "light": sum(1 for v in coverage.values() if v == "light"),
            "none": sum(1 for v in coverage.values() if v == "none"),
        },
    )
    return coverage


def format_idea_universe(domains: list[str], coverage: dict[str, CoverageLevel]) -> str:
    """Annotated domain lines for the plan prompt, e.g. "🟢 [NONE] meal prep"."""
    lines = []
    for domain in domains:
        level = coverage.get(domain, "none")
        lines.append(f"{COVERAGE_MARKERS[level]} [{level.upper()}] {domain}")
    return "\n".join(lines)

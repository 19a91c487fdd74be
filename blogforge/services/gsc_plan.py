"""30-day content plan built from Search Console data.

Flow:
1. score_queries: garbage filter, intent tags, opportunity scores
2. cluster_queries: greedy Jaccard clustering with strategic categories
3. One planning call to the polish model with the clusters as JSON
4. Map the returned array onto ContentPlanItem, matching each entry back
   to its cluster for real impressions/position/CTR

ERROR LOGGING REQUIREMENTS:
- Log filtered/clustered counts at INFO level
- Log parse failures with a response snippet
"""

import json
import time
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from pydantic import ValidationError

from blogforge.core.config import get_settings
from blogforge.core.logging import get_logger
from blogforge.integrations.gemini import GeminiClient
from blogforge.schemas.content_plan import (
    ContentPlanItem,
    GSCPlanCandidate,
    GSCQueryRow,
)
from blogforge.services.errors import ContentPlanError, ContentPlanValidationError
from blogforge.services.query_clustering import KeywordCluster, cluster_queries
from blogforge.services.query_scoring import score_queries
from blogforge.utils.dates import schedule_date, utc_today
from blogforge.utils.llm_json import parse_llm_json

logger = get_logger(__name__)

MAX_PLAN_ITEMS = 30
VALID_ARTICLE_TYPES = ("informational", "commercial", "howto")
VALID_BADGES = ("high_impact", "quick_win", "low_ctr", "new_opportunity")
VALID_IMPACTS = ("Low", "Medium", "High")


@dataclass
class GSCPlanResult:
    items: list[ContentPlanItem]
    clusters: list[KeywordCluster] = field(default_factory=list)
    kept_queries: int = 0


def build_gsc_plan_prompt(
    clusters: list[KeywordCluster],
    brand_data: dict[str, Any] | None,
    competitor_seeds: list[str],
    today: date | None = None,
) -> str:
    today = today or utc_today()
    current_date = f"{today.strftime('%B')} {today.year}"
    brand_block = (
        json.dumps(brand_data, indent=2)
        if brand_data
        else "No brand data available - use general best practices"
    )
    seeds_block = ", ".join(competitor_seeds) if competitor_seeds else "No competitor data available"
    clusters_block = json.dumps([c.to_prompt_dict() for c in clusters], indent=2)

    return f"""You are an expert SEO strategist. [Current Date: {current_date}] Your goal is to select the highest-value topics from the GSC keyword clusters below and create a 30-day content plan to dominate the SERP and modern AI Search Engines.

## Website Brand DNA
{brand_block}

## Competitor Topics & Focus Areas
{seeds_block}

## GSC Keyword Clusters (Real Search Data)
{clusters_block}

---

## CRITICAL CONSTRAINTS (MUST FOLLOW):

1. **USE EXACT GSC QUERIES**: The `gsc_query` field MUST be copied EXACTLY from the `primary_keyword` of the clusters above.
   - DO NOT modify, expand, or create new keywords.
   - If the cluster says "restore old photos", you MUST use "restore old photos" - not "how to restore old photos" or "best way to restore old photos".

2. **SUPPORTING KEYWORDS COME FROM CLUSTERS**: The `supporting_keywords` array should be taken from the cluster's `supporting_keywords` array (these are real GSC queries with similar intent).

3. **TARGET KEYWORD IS OPTIONAL**: If you want to suggest a more specific long-tail keyword for the article title, use the `target_keyword` field. This is the keyword the article will actually target for SEO.

---

## YOUR TASK:

### 1. Select 30 highest-value topics from the clusters
Use this strategic breakdown:
- **10 Quick Wins**: position 7-20, high impressions, low CTR (easiest to rank page 1)
- **10 High Potential Topics**: high impressions, position 20-40 (mid-term SEO value)
- **5 Strategic Cluster Builders**: strengthen topical authority
- **5 New Opportunity Topics**: rising queries with future growth potential

### 2. For each topic, provide:
- **gsc_query**: EXACT `primary_keyword` from the cluster (COPY IT EXACTLY)
- **target_keyword**: (Optional) A more specific long-tail variant for article targeting
- **title**: A compelling, human-like article title that fulfils SEO needs.
- **article_type**: MUST be one of: informational, commercial, howto
- **supporting_keywords**: Array from the cluster's supporting_keywords
- **cluster**: Topic category/cluster name
- **opportunity_score**: Number from 0-100 (use the cluster's score)
- **badge**: quick_win, high_impact, low_ctr, or new_opportunity
- **reason**: 1 sentence explaining why this topic matters
- **impact**: Low, Medium, or High expected traffic impact

### 3. TITLE RULES:
1. Create curiosity, not clickbait
2. Use numbers when possible
3. Attack a pain point
4. Keep title under 60 characters
5. Remove weak words (very, really, extremely)
6. NO robotic phrases: "ultimate guide", "comprehensive", "everything you need to know"
7. Speak like a human, not a corporation, be conversational
8. Aim for 6-15 words or 30-60 characters (around 55 characters for search engines), descriptive, using key terms, with a strong hook.

### 4. Output Format (strict JSON array):
[
  {{
    "gsc_query": "exact query from cluster",
    "target_keyword": "optional long-tail variant",
    "title": "string",
    "article_type": "informational|commercial|howto",
    "supporting_keywords": ["from cluster"],
    "cluster": "string",
    "opportunity_score": number,
    "badge": "quick_win|high_impact|low_ctr|new_opportunity",
    "reason": "string",
    "impact": "Low|Medium|High"
  }}
]

Return ONLY the JSON array. No explanations."""


def match_cluster(gsc_query: str, clusters: list[KeywordCluster]) -> KeywordCluster | None:
    """Find the cluster an LLM entry refers to.

    Exact match first, then case-insensitive, then substring either way.
    """
    for cluster in clusters:
        if cluster.primary_keyword == gsc_query:
            return cluster

    needle = gsc_query.lower().strip()
    for cluster in clusters:
        if cluster.primary_keyword.lower().strip() == needle:
            return cluster

    if not needle:
        return None
    for cluster in clusters:
        primary = cluster.primary_keyword.lower()
        if primary in needle or needle in primary:
            return cluster
    return None


def _candidates_from(entries: list[Any]) -> list[GSCPlanCandidate]:
    candidates = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        try:
            candidates.append(GSCPlanCandidate.model_validate(entry))
        except ValidationError as e:
            logger.warning(
                "Skipping malformed GSC plan entry",
                extra={"error_count": e.error_count(), "entry": str(entry)[:200]},
            )
    return candidates


def map_plan_items(
    candidates: list[GSCPlanCandidate],
    clusters: list[KeywordCluster],
    today: date | None = None,
    timestamp_ms: int | None = None,
) -> list[ContentPlanItem]:
    """Turn LLM entries into dated plan items with cluster metrics."""
    today = today or utc_today()
    ts = timestamp_ms if timestamp_ms is not None else int(time.time() * 1000)

    items = []
    for index, entry in enumerate(candidates[:MAX_PLAN_ITEMS]):
        cluster = match_cluster(entry.gsc_query, clusters)
        supporting = entry.supporting_keywords or (cluster.supporting_keywords if cluster else [])
        score = entry.opportunity_score or (cluster.opportunity_score if cluster else 0)

        items.append(
            ContentPlanItem(
                id=f"gsc-plan-{ts}-{index}",
                title=entry.title or f"Post {index + 1}",
                main_keyword=entry.target_keyword or entry.gsc_query,
                gsc_query=entry.gsc_query or None,
                supporting_keywords=list(supporting),
                article_type=entry.article_type
                if entry.article_type in VALID_ARTICLE_TYPES
                else "informational",
                cluster=entry.cluster or None,
                scheduled_date=schedule_date(today, index),
                status="pending",
                opportunity_score=score,
                badge=entry.badge if entry.badge in VALID_BADGES else None,
                gsc_impressions=cluster.impressions if cluster else 0,
                gsc_position=cluster.position if cluster else 0,
                gsc_ctr=cluster.ctr if cluster else 0,
                reason=entry.reason,
                impact=entry.impact if entry.impact in VALID_IMPACTS else None,
            )
        )
    return items


class GSCPlanService:
    """Builds a content plan from raw Search Console query rows.

    Usage:
        service = GSCPlanService(gemini)
        result = await service.generate(rows, brand_data, seeds, brand_name="Acme")
    """

    def __init__(self, gemini: GeminiClient, model: str | None = None) -> None:
        self._gemini = gemini
        self._model = model

    async def generate(
        self,
        rows: list[GSCQueryRow],
        brand_data: dict[str, Any] | None = None,
        competitor_seeds: list[str] | None = None,
        brand_name: str | None = None,
    ) -> GSCPlanResult:
        """Score, cluster and plan.

        Raises:
            ContentPlanValidationError: No query survived the garbage filter.
            ContentPlanError: The model response is missing or unparseable.
        """
        start_time = time.monotonic()
        scored, max_impressions = score_queries(rows, brand_name)
        if not scored:
            raise ContentPlanValidationError(
                "rows", len(rows), "no valid queries after filtering"
            )

        clusters = cluster_queries(scored, max_impressions)
        prompt = build_gsc_plan_prompt(clusters, brand_data, list(competitor_seeds or []))

        result = await self._gemini.generate(
            prompt,
            model=self._model or get_settings().gemini_polish_model,
            json_output=True,
        )
        if not result.success:
            raise ContentPlanError(f"Plan generation request failed: {result.error}")

        parsed = parse_llm_json(result.text, list[Any])
        if not parsed.ok:
            logger.error(
                "Failed to parse GSC plan response",
                extra={"error": parsed.error, "snippet": (result.text or "")[:500]},
            )
            raise ContentPlanError("Failed to parse content plan from LLM")

        items = map_plan_items(_candidates_from(parsed.value or []), clusters)
        if not items:
            raise ContentPlanError("Model returned no usable plan entries")

        logger.info(
            "GSC content plan generated",
            extra={
                "kept_queries": len(scored),
                "clusters": len(clusters),
                "items": len(items),
                "duration_ms": round((time.monotonic() - start_time) * 1000, 2),
            },
        )
        return GSCPlanResult(items=items, clusters=clusters, kept_queries=len(scored))

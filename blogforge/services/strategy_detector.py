"""Content stage detection.

Stage is derived from the summed GSC impressions of the most recent
GSC-enhanced plan:

    foundation  < 1,000 impressions (or no GSC plan yet)
    growth      < 50,000
    maturity    otherwise

The stage only changes the plan prompt when GSC data exists.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from blogforge.core.logging import get_logger
from blogforge.repositories.content_plan import ContentPlanRepository

logger = get_logger(__name__)

GROWTH_THRESHOLD = 1_000
MATURITY_THRESHOLD = 50_000


class ContentStage(str, Enum):
    FOUNDATION = "foundation"
    GROWTH = "growth"
    MATURITY = "maturity"


@dataclass(frozen=True)
class StageDetectionResult:
    stage: ContentStage
    total_impressions: float
    has_gsc: bool


STRATEGY_PROMPTS: dict[ContentStage, str] = {
    ContentStage.FOUNDATION: """
## STRATEGIC MODE: FOUNDATION BUILDING 🌱
Your user has LIMITED search visibility. This is a new/early-stage site.

**Your Mission:**
- PRIORITIZE the IDEA UNIVERSE broadly (plant seeds everywhere)
- Cover DIVERSE problem domains - establish topical breadth
- Do NOT over-optimize for any single keyword
- Create VARIETY across categories

**Content Mix:**
- 70% from Idea Universe (untapped adjacent topics)
- 30% from validated demand signals

**Goal:** Establish topical authority footprint across the entire niche.
""",
    ContentStage.GROWTH: """
## STRATEGIC MODE: GROWTH OPTIMIZATION 📈
Your user has GROWING search visibility. Some content is ranking.

**Your Mission:**
- BALANCE exploration with exploitation
- EXPAND topics where they already show traction
- Create SUPPORTING content for emerging winners
- Explore adjacent IDEA UNIVERSE domains strategically

**Content Mix:**
- 50% from Idea Universe (strategic expansion)
- 50% from GSC-validated topics (double down on winners)

**Goal:** Accelerate growth by reinforcing what works while exploring new opportunities.
""",
    ContentStage.MATURITY: """
## STRATEGIC MODE: AUTHORITY DEFENSE 🏰
Your user has STRONG search visibility. They are an established player.

**Your Mission:**
- DEFEND top-ranking topics with depth content
- Target "striking distance" keywords (position 5-15)
- Create strategic CLUSTERS around winning topics
- Only NEW topics if Idea Universe shows clear untapped gaps

**Content Mix:**
- 30% from Idea Universe (strategic bets only)
- 70% from GSC-optimized topics (maximize existing authority)

**Goal:** Maximize returns from existing authority while making targeted expansions.
""",
}


def stage_for_impressions(total_impressions: float) -> ContentStage:
    if total_impressions < GROWTH_THRESHOLD:
        return ContentStage.FOUNDATION
    if total_impressions < MATURITY_THRESHOLD:
        return ContentStage.GROWTH
    return ContentStage.MATURITY


def total_plan_impressions(plan_data: list[dict[str, Any]] | None) -> float:
    return sum(float(item.get("gsc_impressions") or 0) for item in plan_data or [])


async def detect_content_stage(
    session: AsyncSession, user_id: str, brand_id: str | None = None
) -> StageDetectionResult:
    plan = await ContentPlanRepository(session).get_latest_gsc_plan(user_id, brand_id)
    if plan is None or not plan.plan_data:
        return StageDetectionResult(ContentStage.FOUNDATION, 0, has_gsc=False)

    total = total_plan_impressions(plan.plan_data)
    stage = stage_for_impressions(total)
    logger.info(
        "Detected content stage",
        extra={"user_id": user_id, "stage": stage.value, "total_impressions": total},
    )
    return StageDetectionResult(stage, total, has_gsc=True)


def get_strategy_prompt(stage: ContentStage, has_gsc: bool) -> str:
    """Stage framing for the plan prompt; empty without GSC data."""
    if not has_gsc:
        return ""
    return STRATEGY_PROMPTS[stage]

"""Pydantic schemas for content plans.

- GSCQueryRow: one Search Console query row (input only, never stored)
- ContentPlanItem: a single dated article topic stored in plan_data
- PlanPostCandidate: a raw post as the LLM proposes it, before dedup
- Request/response models for the content plan API
"""

from typing import Literal

from pydantic import BaseModel, Field, field_validator

ArticleTypeValue = Literal["informational", "commercial", "howto"]
ItemStatus = Literal["pending", "writing", "published", "skipped"]
Badge = Literal["high_impact", "quick_win", "low_ctr", "new_opportunity"]
Impact = Literal["Low", "Medium", "High"]
CatchUpModeValue = Literal["gradual", "skip", "reschedule"]

# =============================================================================
# SEARCH CONSOLE INPUT
# =============================================================================


class GSCQueryRow(BaseModel):
    """One Search Console query row."""

    query: str = Field(..., min_length=1)
    impressions: float = Field(..., ge=0)
    clicks: float = Field(default=0, ge=0)
    ctr: float = Field(default=0, ge=0)
    position: float = Field(..., ge=0)


# =============================================================================
# PLAN ITEM
# =============================================================================


class ContentPlanItem(BaseModel):
    """A single scheduled article in a content plan."""

    id: str
    title: str
    main_keyword: str
    gsc_query: str | None = None
    supporting_keywords: list[str] = Field(default_factory=list)
    article_type: ArticleTypeValue = "informational"
    cluster: str | None = None
    scheduled_date: str = Field(..., description="ISO date (YYYY-MM-DD)")
    status: ItemStatus = "pending"
    article_id: str | None = None
    intent_role: str | None = None
    article_category: str | None = None
    parent_question: str | None = None
    opportunity_score: float | None = None
    badge: Badge | None = None
    gsc_impressions: float | None = None
    gsc_clicks: float | None = None
    gsc_position: float | None = None
    gsc_ctr: float | None = None
    reason: str | None = None
    impact: Impact | None = None


class PlanPostCandidate(BaseModel):
    """A post as proposed by the plan LLM, loosely typed on purpose.

    Normalization into ContentPlanItem (enum fallbacks, default titles)
    happens during finalization, so invalid enum values survive parsing.
    """

    title: str = ""
    main_keyword: str = ""
    supporting_keywords: list[str] = Field(default_factory=list)
    article_type: str = "informational"
    cluster: str = ""
    intent_role: str = ""
    article_category: str = ""
    parent_question: str = ""

    @field_validator("supporting_keywords", mode="before")
    @classmethod
    def coerce_keywords(cls, v: object) -> list[str]:
        if isinstance(v, str):
            return [part.strip() for part in v.split(",") if part.strip()]
        if isinstance(v, list):
            return [str(part) for part in v if str(part).strip()]
        return []


class PlanPostsEnvelope(BaseModel):
    posts: list[PlanPostCandidate] = Field(default_factory=list)


class GSCPlanCandidate(BaseModel):
    """A GSC-plan entry as proposed by the LLM."""

    gsc_query: str = ""
    target_keyword: str = ""
    title: str = ""
    article_type: str = "informational"
    supporting_keywords: list[str] = Field(default_factory=list)
    cluster: str = ""
    opportunity_score: float | None = None
    badge: str | None = None
    reason: str | None = None
    impact: str | None = None

    @field_validator("supporting_keywords", mode="before")
    @classmethod
    def coerce_keywords(cls, v: object) -> list[str]:
        if isinstance(v, list):
            return [str(part) for part in v if str(part).strip()]
        return []


# =============================================================================
# API REQUESTS
# =============================================================================


class ContentPlanGenerateRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    brand_id: str = Field(..., min_length=1)
    competitor_seeds: list[str] = Field(default_factory=list, max_length=20)
    competitor_text: str | None = Field(
        None, description="Scraped competitor content used to annotate topic domains"
    )
    existing_content: list[str] = Field(
        default_factory=list, description="Titles or questions already published (e.g. sitemap)"
    )


class GSCPlanGenerateRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    brand_id: str = Field(..., min_length=1)
    rows: list[GSCQueryRow] = Field(..., min_length=1)
    competitor_seeds: list[str] = Field(default_factory=list, max_length=20)


class AutomationUpdateRequest(BaseModel):
    catch_up_mode: CatchUpModeValue = "gradual"


class PlanItemUpdateRequest(BaseModel):
    """Editable fields of a plan item. Omitted fields are left unchanged."""

    title: str | None = Field(None, min_length=1, max_length=300)
    main_keyword: str | None = Field(None, min_length=1, max_length=300)
    supporting_keywords: list[str] | None = None
    article_type: ArticleTypeValue | None = None
    scheduled_date: str | None = Field(None, pattern=r"^\d{4}-\d{2}-\d{2}$")
    status: ItemStatus | None = None


# =============================================================================
# API RESPONSES
# =============================================================================


class ContentPlanResponse(BaseModel):
    id: str
    user_id: str
    brand_id: str | None = None
    plan_data: list[ContentPlanItem]
    competitor_seeds: list[str] = Field(default_factory=list)
    gsc_enhanced: bool = False
    automation_status: str
    catch_up_mode: str
    category_distribution: dict[str, int] = Field(default_factory=dict)

"""Schemas layer - Pydantic models for LLM payloads and API I/O."""

from blogforge.schemas.brand import BrandDetails, StyleDNA
from blogforge.schemas.content_plan import ContentPlanItem, GSCQueryRow
from blogforge.schemas.outline import ArticleOutline, OutlineSection
from blogforge.schemas.research import CompetitorData

__all__ = [
    "ArticleOutline",
    "BrandDetails",
    "CompetitorData",
    "ContentPlanItem",
    "GSCQueryRow",
    "OutlineSection",
    "StyleDNA",
]

"""Pydantic schemas for the article API."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


class ArticleCreateRequest(BaseModel):
    """Trigger a generation run for a new article."""

    user_id: str = Field(..., min_length=1)
    brand_id: str = Field(..., min_length=1)
    keyword: str = Field(..., min_length=1, max_length=500)
    title: str | None = Field(None, max_length=300)
    voice_id: str | None = None
    article_type: Literal["informational", "commercial", "howto"] = "informational"
    supporting_keywords: list[str] = Field(default_factory=list, max_length=20)
    cluster: str | None = None


class ArticleResponse(BaseModel):
    id: str
    keyword: str
    title: str | None = None
    article_type: str
    status: str
    failed_at_phase: str | None = None
    error_message: str | None = None
    current_step_index: int = 0
    total_sections: int | None = None
    slug: str | None = None
    meta_description: str | None = None
    featured_image_url: str | None = None
    final_html: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class TitleSuggestionRequest(BaseModel):
    keyword: str = Field(..., min_length=1, max_length=500)
    article_type: Literal["informational", "commercial", "howto"] = "informational"
    brand_id: str | None = None


class TitleSuggestionResponse(BaseModel):
    keyword: str
    titles: list[str]

"""Competitor research brief produced by the research phase."""

from pydantic import BaseModel, Field


class ProductMatrixItem(BaseModel):
    """One product row, used by commercial / comparison articles."""

    name: str
    price: str = "Unknown"
    pros: list[str] = Field(default_factory=list)
    cons: list[str] = Field(default_factory=list)
    unique_selling_point: str = ""
    best_for: str = ""


class StepSequenceItem(BaseModel):
    """One step, used by how-to articles."""

    step: int
    title: str
    details: str
    pro_tip: str | None = None


class AuthorityLink(BaseModel):
    url: str
    title: str
    snippet: str = ""


class SourceSummary(BaseModel):
    url: str = Field(..., pattern=r"^https?://")
    title: str


class ContentGap(BaseModel):
    missing_topics: list[str]
    outdated_info: str = ""
    user_intent_gaps: list[str]


class CompetitorData(BaseModel):
    fact_sheet: list[str]
    content_gap: ContentGap
    sources_summary: list[SourceSummary] = Field(default_factory=list)
    product_matrix: list[ProductMatrixItem] = Field(default_factory=list)
    step_sequence: list[StepSequenceItem] = Field(default_factory=list)
    prerequisites: list[str] = Field(default_factory=list)
    authority_links: list[AuthorityLink] = Field(default_factory=list)

"""Article outline produced by the outline phase.

Section order is the order sections are written and concatenated.
"""

from pydantic import BaseModel, Field, field_validator


class ExternalLink(BaseModel):
    url: str
    anchor_context: str = Field(
        ..., description="What concept the link verifies, e.g. 'The 2024 price increase'"
    )


class OutlineIntro(BaseModel):
    instruction_note: str = Field(..., min_length=10, max_length=2000)
    keywords_to_include: list[str] = Field(default_factory=list, max_length=20)


class OutlineSection(BaseModel):
    id: int = Field(..., gt=0)
    heading: str = Field(..., min_length=3, max_length=200)
    level: int = Field(default=2, ge=2, le=4)
    instruction_note: str = Field(..., min_length=10, max_length=2000)
    keywords_to_include: list[str] = Field(default_factory=list, max_length=20)
    external_link: ExternalLink | None = None


class ArticleOutline(BaseModel):
    title: str = Field(..., min_length=3, max_length=200)
    intro: OutlineIntro
    sections: list[OutlineSection] = Field(..., min_length=1)

    @field_validator("sections")
    @classmethod
    def validate_unique_ids(cls, v: list[OutlineSection]) -> list[OutlineSection]:
        ids = [section.id for section in v]
        if len(ids) != len(set(ids)):
            raise ValueError("section ids must be unique within an outline")
        return v

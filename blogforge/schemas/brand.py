"""Brand profile and voice schemas.

BrandDetails is the prompt-facing brand profile stored in brands.brand_data.
StyleDNA is a structured writing voice extracted from sample content.
"""

from typing import Literal

from pydantic import BaseModel, Field

DEFAULT_STYLE_DNA = (
    "Write in a professional yet conversational tone. Use active voice and be direct. "
    "Address the reader as 'you'. Keep sentences varied for natural rhythm. "
    "Avoid corporate jargon and be specific with examples and data."
)


class ProductIdentity(BaseModel):
    literally: str = Field(..., description="What the product literally is")
    emotionally: str = Field(..., description="What it means to the customer")
    not_: str = Field(..., alias="not", description="What the product is not")

    model_config = {"populate_by_name": True}


class Audience(BaseModel):
    primary: str
    psychology: str


class SentenceStructure(BaseModel):
    avg_length: Literal["short", "medium", "long", "varied"]
    complexity: Literal["simple", "academic", "technical"]
    use_of_questions: bool


class StyleDNA(BaseModel):
    """Structured writing voice."""

    tone: str = Field(..., min_length=1, max_length=200)
    perspective: Literal["first-person", "third-person", "brand-we", "neutral"] = "neutral"
    formality: Literal["casual", "professional", "formal", "academic"] = "professional"
    sentence_structure: SentenceStructure
    narrative_rules: list[str] = Field(default_factory=list, max_length=50)
    avoid_words: list[str] = Field(default_factory=list)


class BrandDetails(BaseModel):
    """Brand profile every prompt is grounded in."""

    product_name: str
    product_identity: ProductIdentity
    mission: str
    audience: Audience
    enemy: list[str] = Field(default_factory=list)
    uvp: list[str] = Field(default_factory=list)
    core_features: list[str] = Field(default_factory=list)
    pricing: list[str] = Field(default_factory=list)
    how_it_works: list[str] = Field(default_factory=list)
    image_style: str = Field(default="stock")
    style_dna: str = Field(default="")
    voice: StyleDNA | None = Field(
        default=None, description="Structured voice; enables formality and perspective rules"
    )

    @property
    def effective_style_dna(self) -> str:
        """The brand's voice paragraph, or the house default when empty."""
        return self.style_dna.strip() or DEFAULT_STYLE_DNA


class BrandCreateRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=255)
    website_url: str | None = None
    brand_data: BrandDetails


class BrandResponse(BaseModel):
    id: str
    user_id: str
    name: str
    website_url: str | None = None
    brand_data: BrandDetails

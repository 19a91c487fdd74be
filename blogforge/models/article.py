"""Article model: one generated blog post and its pipeline state.

The pipeline persists after every phase, so a row always reflects the
last completed step:
- researching: nothing but the request fields
- outlining: competitor_data present
- writing: outline present, raw_content grows section by section,
  current_step_index tracks the last section written (0 = intro)
- polishing: raw_content is the full draft
- completed: raw_content/final_html final; slug, meta_description and
  featured_image_url set or explicitly null
- failed: error_message and failed_at_phase set
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from blogforge.core.database import Base


class ArticleStatus(str, Enum):
    PENDING = "pending"
    RESEARCHING = "researching"
    OUTLINING = "outlining"
    WRITING = "writing"
    POLISHING = "polishing"
    COMPLETED = "completed"
    FAILED = "failed"


class ArticleType(str, Enum):
    INFORMATIONAL = "informational"
    COMMERCIAL = "commercial"
    HOWTO = "howto"


class PipelinePhase(str, Enum):
    """Phases a failure can be attributed to."""

    RESEARCH = "research"
    OUTLINE = "outline"
    WRITING = "writing"
    POLISH = "polish"


class Article(Base):
    """Generated article and its resumable pipeline state."""

    __tablename__ = "articles"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
        server_default=text("gen_random_uuid()"),
    )

    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)

    brand_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("brands.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    keyword: Mapped[str] = mapped_column(Text, nullable=False)

    title: Mapped[str | None] = mapped_column(Text, nullable=True)

    article_type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default=ArticleType.INFORMATIONAL.value,
        server_default=text("'informational'"),
    )

    supporting_keywords: Mapped[list[str]] = mapped_column(
        JSONB,
        nullable=False,
        default=list,
        server_default=text("'[]'::jsonb"),
    )

    cluster: Mapped[str | None] = mapped_column(String(255), nullable=True)

    voice_id: Mapped[str | None] = mapped_column(String(255), nullable=True)

    status: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default=ArticleStatus.PENDING.value,
        server_default=text("'pending'"),
        index=True,
    )

    failed_at_phase: Mapped[str | None] = mapped_column(String(50), nullable=True)

    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    competitor_data: Mapped[dict[str, Any] | None] = mapped_column(JSONB, nullable=True)

    outline: Mapped[dict[str, Any] | None] = mapped_column(JSONB, nullable=True)

    raw_content: Mapped[str | None] = mapped_column(Text, nullable=True)

    current_step_index: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default=text("0"),
    )

    final_html: Mapped[str | None] = mapped_column(Text, nullable=True)

    slug: Mapped[str | None] = mapped_column(String(255), nullable=True)

    meta_description: Mapped[str | None] = mapped_column(Text, nullable=True)

    featured_image_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    topic_embedding: Mapped[list[float] | None] = mapped_column(JSONB, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
        server_default=text("now()"),
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
        server_default=text("now()"),
        onupdate=lambda: datetime.now(UTC),
    )

    @property
    def is_terminal(self) -> bool:
        return self.status in (ArticleStatus.COMPLETED.value, ArticleStatus.FAILED.value)

    def __repr__(self) -> str:
        return f"<Article(id={self.id!r}, keyword={self.keyword!r}, status={self.status!r})>"

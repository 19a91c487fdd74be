"""AnswerCoverage model: questions an existing article already answers.

Rows are extracted from completed articles and fed back into plan
generation so new plans do not re-answer covered questions.
"""

from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

from sqlalchemy import DateTime, ForeignKey, String, Text, UniqueConstraint, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from blogforge.core.database import Base


class CoverageStrength(str, Enum):
    WEAK = "weak"
    PARTIAL = "partial"
    STRONG = "strong"
    DOMINANT = "dominant"


class AnswerCoverage(Base):
    __tablename__ = "answer_coverage"
    __table_args__ = (
        UniqueConstraint("article_id", "question", name="uq_answer_coverage_article_question"),
    )

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
        server_default=text("gen_random_uuid()"),
    )

    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)

    brand_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("brands.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )

    article_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("articles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    question: Mapped[str] = mapped_column(Text, nullable=False)

    intent_role: Mapped[str] = mapped_column(String(100), nullable=False)

    coverage_strength: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default=CoverageStrength.PARTIAL.value,
        server_default=text("'partial'"),
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
        server_default=text("now()"),
    )

    def __repr__(self) -> str:
        return f"<AnswerCoverage(question={self.question!r}, strength={self.coverage_strength!r})>"

"""ContentPlan model: a dated list of article topics for a brand.

plan_data holds the ContentPlanItem list as JSONB (see
schemas.content_plan.ContentPlanItem). Item status moves
pending -> writing -> published (or skipped by catch-up).

``version`` backs optimistic concurrency: every write of plan_data that
can race with the watchman goes through
ContentPlanRepository.compare_and_swap_plan_data.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from blogforge.core.database import Base


class AutomationStatus(str, Enum):
    PAUSED = "paused"
    ACTIVE = "active"
    COMPLETED = "completed"


class CatchUpMode(str, Enum):
    """How the watchman treats items whose date has already passed."""

    GRADUAL = "gradual"
    SKIP = "skip"
    RESCHEDULE = "reschedule"


class ContentPlan(Base):
    __tablename__ = "content_plans"

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

    plan_data: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONB,
        nullable=False,
        default=list,
        server_default=text("'[]'::jsonb"),
    )

    competitor_seeds: Mapped[list[str]] = mapped_column(
        JSONB,
        nullable=False,
        default=list,
        server_default=text("'[]'::jsonb"),
    )

    gsc_enhanced: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=text("false"),
    )

    automation_status: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default=AutomationStatus.PAUSED.value,
        server_default=text("'paused'"),
        index=True,
    )

    catch_up_mode: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default=CatchUpMode.GRADUAL.value,
        server_default=text("'gradual'"),
    )

    version: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=1,
        server_default=text("1"),
    )

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

    def __repr__(self) -> str:
        return (
            f"<ContentPlan(id={self.id!r}, items={len(self.plan_data or [])}, "
            f"automation_status={self.automation_status!r})>"
        )

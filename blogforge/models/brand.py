"""Brand model.

A brand holds the profile every prompt is grounded in. The profile itself
is stored as JSONB (validated by schemas.brand.BrandDetails on read) so
prompt-facing fields can evolve without migrations.
"""

from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from sqlalchemy import DateTime, String, text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from blogforge.core.database import Base


class Brand(Base):
    """Brand profile owned by a user.

    Attributes:
        id: UUID primary key
        user_id: Owning user (opaque identifier from the auth provider)
        name: Display name, also used to filter branded search queries
        website_url: Optional site the brand publishes to
        brand_data: JSONB BrandDetails payload
        created_at / updated_at: Timestamps
    """

    __tablename__ = "brands"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
        server_default=text("gen_random_uuid()"),
    )

    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    website_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)

    brand_data: Mapped[dict[str, Any]] = mapped_column(
        JSONB,
        nullable=False,
        default=dict,
        server_default=text("'{}'::jsonb"),
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
        return f"<Brand(id={self.id!r}, name={self.name!r})>"

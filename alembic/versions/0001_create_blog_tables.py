"""Create brands, articles, content_plans and answer_coverage tables.

Revision ID: 0001
Revises:
Create Date: 2026-10-19

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _uuid_pk() -> sa.Column:
    return sa.Column(
        "id",
        postgresql.UUID(as_uuid=False),
        server_default=sa.text("gen_random_uuid()"),
        nullable=False,
    )


def _timestamp(name: str) -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        server_default=sa.text("now()"),
        nullable=False,
    )


def _jsonb(name: str, default: str) -> sa.Column:
    return sa.Column(
        name,
        postgresql.JSONB(astext_type=sa.Text()),
        server_default=sa.text(f"'{default}'::jsonb"),
        nullable=False,
    )


def upgrade() -> None:
    op.create_table(
        "brands",
        _uuid_pk(),
        sa.Column("user_id", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("website_url", sa.String(length=2048), nullable=True),
        _jsonb("brand_data", "{}"),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_brands_user_id"), "brands", ["user_id"], unique=False)

    op.create_table(
        "articles",
        _uuid_pk(),
        sa.Column("user_id", sa.String(length=255), nullable=False),
        sa.Column("brand_id", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("keyword", sa.Text(), nullable=False),
        sa.Column("title", sa.Text(), nullable=True),
        sa.Column(
            "article_type",
            sa.String(length=50),
            server_default=sa.text("'informational'"),
            nullable=False,
        ),
        _jsonb("supporting_keywords", "[]"),
        sa.Column("cluster", sa.String(length=255), nullable=True),
        sa.Column("voice_id", sa.String(length=255), nullable=True),
        sa.Column(
            "status", sa.String(length=50), server_default=sa.text("'pending'"), nullable=False
        ),
        sa.Column("failed_at_phase", sa.String(length=50), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("competitor_data", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("outline", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("raw_content", sa.Text(), nullable=True),
        sa.Column(
            "current_step_index", sa.Integer(), server_default=sa.text("0"), nullable=False
        ),
        sa.Column("final_html", sa.Text(), nullable=True),
        sa.Column("slug", sa.String(length=255), nullable=True),
        sa.Column("meta_description", sa.Text(), nullable=True),
        sa.Column("featured_image_url", sa.Text(), nullable=True),
        sa.Column("topic_embedding", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["brand_id"], ["brands.id"], name="fk_articles_brand_id", ondelete="SET NULL"
        ),
    )
    op.create_index(op.f("ix_articles_user_id"), "articles", ["user_id"], unique=False)
    op.create_index(op.f("ix_articles_brand_id"), "articles", ["brand_id"], unique=False)
    op.create_index(op.f("ix_articles_status"), "articles", ["status"], unique=False)

    op.create_table(
        "content_plans",
        _uuid_pk(),
        sa.Column("user_id", sa.String(length=255), nullable=False),
        sa.Column("brand_id", postgresql.UUID(as_uuid=False), nullable=True),
        _jsonb("plan_data", "[]"),
        _jsonb("competitor_seeds", "[]"),
        sa.Column("gsc_enhanced", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column(
            "automation_status",
            sa.String(length=50),
            server_default=sa.text("'paused'"),
            nullable=False,
        ),
        sa.Column(
            "catch_up_mode",
            sa.String(length=50),
            server_default=sa.text("'gradual'"),
            nullable=False,
        ),
        sa.Column("version", sa.Integer(), server_default=sa.text("1"), nullable=False),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["brand_id"], ["brands.id"], name="fk_content_plans_brand_id", ondelete="SET NULL"
        ),
    )
    op.create_index(op.f("ix_content_plans_user_id"), "content_plans", ["user_id"], unique=False)
    op.create_index(op.f("ix_content_plans_brand_id"), "content_plans", ["brand_id"], unique=False)
    op.create_index(
        op.f("ix_content_plans_automation_status"),
        "content_plans",
        ["automation_status"],
        unique=False,
    )

    op.create_table(
        "answer_coverage",
        _uuid_pk(),
        sa.Column("user_id", sa.String(length=255), nullable=False),
        sa.Column("brand_id", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("article_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("question", sa.Text(), nullable=False),
        sa.Column("intent_role", sa.String(length=100), nullable=False),
        sa.Column(
            "coverage_strength",
            sa.String(length=50),
            server_default=sa.text("'partial'"),
            nullable=False,
        ),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["brand_id"], ["brands.id"], name="fk_answer_coverage_brand_id", ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(
            ["article_id"],
            ["articles.id"],
            name="fk_answer_coverage_article_id",
            ondelete="CASCADE",
        ),
        sa.UniqueConstraint("article_id", "question", name="uq_answer_coverage_article_question"),
    )
    op.create_index(op.f("ix_answer_coverage_user_id"), "answer_coverage", ["user_id"], unique=False)
    op.create_index(
        op.f("ix_answer_coverage_brand_id"), "answer_coverage", ["brand_id"], unique=False
    )
    op.create_index(
        op.f("ix_answer_coverage_article_id"), "answer_coverage", ["article_id"], unique=False
    )


def downgrade() -> None:
    op.drop_table("answer_coverage")
    op.drop_table("content_plans")
    op.drop_table("articles")
    op.drop_table("brands")

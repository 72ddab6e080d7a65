"""Create keyword metrics cache, search history and favorites tables

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import UUID

revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "keyword_metrics_cache",
        sa.Column("id", UUID(as_uuid=False), primary_key=True),
        sa.Column("keyword", sa.String(500), nullable=False),
        sa.Column("country_code", sa.String(10), nullable=False),
        sa.Column("language_code", sa.String(10), nullable=False),
        sa.Column("search_volume", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("competition", sa.String(20), nullable=False),
        sa.Column("competition_index", sa.Integer(), nullable=True),
        sa.Column("low_top_page_bid_micros", sa.BigInteger(), nullable=True),
        sa.Column("high_top_page_bid_micros", sa.BigInteger(), nullable=True),
        sa.Column("avg_cpc_micros", sa.BigInteger(), nullable=True),
        sa.Column("monthly_search_volumes", sa.JSON(), nullable=True),
        sa.Column("data_source", sa.String(50), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint(
            "keyword", "country_code", "language_code", name="uq_keyword_metrics_cache_locale"
        ),
    )
    op.create_index(
        "ix_keyword_metrics_cache_expires_at", "keyword_metrics_cache", ["expires_at"]
    )
    op.create_index(
        "ix_keyword_metrics_cache_lookup",
        "keyword_metrics_cache",
        ["country_code", "language_code", "expires_at"],
    )

    op.create_table(
        "keyword_search_history",
        sa.Column("id", UUID(as_uuid=False), primary_key=True),
        sa.Column("user_id", sa.String(255), nullable=False),
        sa.Column("user_prompt", sa.Text(), nullable=False),
        sa.Column("country_code", sa.String(10), nullable=False),
        sa.Column("language_code", sa.String(10), nullable=False),
        sa.Column("generated_keywords", sa.JSON(), nullable=False),
        sa.Column("keyword_count", sa.Integer(), nullable=False),
        sa.Column("source", sa.String(50), nullable=False),
        sa.Column(
            "search_timestamp", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
    )
    op.create_index(
        "ix_keyword_search_history_user_ts",
        "keyword_search_history",
        ["user_id", "search_timestamp"],
    )

    op.create_table(
        "keyword_favorites",
        sa.Column("id", UUID(as_uuid=False), primary_key=True),
        sa.Column("user_id", sa.String(255), nullable=False),
        sa.Column("keyword", sa.String(500), nullable=False),
        sa.Column("country_code", sa.String(10), nullable=True),
        sa.Column("language_code", sa.String(10), nullable=True),
        sa.Column("search_volume", sa.Integer(), nullable=True),
        sa.Column("competition", sa.String(20), nullable=True),
        sa.Column("competition_index", sa.Integer(), nullable=True),
        sa.Column("avg_cpc_micros", sa.BigInteger(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "keyword", name="uq_keyword_favorites_user_keyword"),
    )
    op.create_index("ix_keyword_favorites_user_id", "keyword_favorites", ["user_id"])


def downgrade() -> None:
    op.drop_index("ix_keyword_favorites_user_id", table_name="keyword_favorites")
    op.drop_table("keyword_favorites")
    op.drop_index("ix_keyword_search_history_user_ts", table_name="keyword_search_history")
    op.drop_table("keyword_search_history")
    op.drop_index("ix_keyword_metrics_cache_lookup", table_name="keyword_metrics_cache")
    op.drop_index("ix_keyword_metrics_cache_expires_at", table_name="keyword_metrics_cache")
    op.drop_table("keyword_metrics_cache")

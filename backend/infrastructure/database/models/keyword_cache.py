"""Keyword metrics cache model."""
from __future__ import annotations
from datetime import datetime
from typing import Optional
from uuid import uuid4

from sqlalchemy import BigInteger, DateTime, Index, Integer, JSON, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin


class KeywordMetricsCache(Base, TimestampMixin):
    """Provider metrics per (keyword, country, language), valid until expires_at."""

    __tablename__ = "keyword_metrics_cache"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    # Trimmed, original casing; part of the unique key
    keyword: Mapped[str] = mapped_column(String(500), nullable=False)
    country_code: Mapped[str] = mapped_column(String(10), nullable=False)
    language_code: Mapped[str] = mapped_column(String(10), nullable=False)

    search_volume: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    competition: Mapped[str] = mapped_column(String(20), nullable=False)
    competition_index: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    low_top_page_bid_micros: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    high_top_page_bid_micros: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    avg_cpc_micros: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    # List of {year, month_index, label, searches}, oldest first
    monthly_search_volumes: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    data_source: Mapped[str] = mapped_column(String(50), nullable=False)

    # Rows past this point are ignored on read; nothing sweeps them
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
    )

    __table_args__ = (
        UniqueConstraint(
            "keyword",
            "country_code",
            "language_code",
            name="uq_keyword_metrics_cache_locale",
        ),
        Index(
            "ix_keyword_metrics_cache_lookup",
            "country_code",
            "language_code",
            "expires_at",
        ),
    )

    def __repr__(self) -> str:
        return f"<KeywordMetricsCache(keyword={self.keyword!r}, locale={self.country_code}|{self.language_code})>"

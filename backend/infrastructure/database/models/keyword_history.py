"""Keyword search history model."""
from datetime import UTC, datetime
from uuid import uuid4

from sqlalchemy import DateTime, Index, Integer, JSON, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class KeywordSearchHistory(Base):
    """Append-only log of prompted keyword searches."""

    __tablename__ = "keyword_search_history"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    # Opaque id from the identity provider
    user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    user_prompt: Mapped[str] = mapped_column(Text, nullable=False)
    country_code: Mapped[str] = mapped_column(String(10), nullable=False)
    language_code: Mapped[str] = mapped_column(String(10), nullable=False)
    generated_keywords: Mapped[list] = mapped_column(JSON, nullable=False)
    keyword_count: Mapped[int] = mapped_column(Integer, nullable=False)
    source: Mapped[str] = mapped_column(String(50), nullable=False)
    search_timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
    )

    __table_args__ = (
        Index("ix_keyword_search_history_user_ts", "user_id", "search_timestamp"),
    )

    def __repr__(self) -> str:
        return f"<KeywordSearchHistory(user_id={self.user_id}, count={self.keyword_count})>"

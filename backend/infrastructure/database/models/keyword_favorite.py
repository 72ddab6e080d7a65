"""Saved (favorite) keyword model."""
from typing import Optional
from uuid import uuid4

from sqlalchemy import BigInteger, Integer, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin


class KeywordFavorite(Base, TimestampMixin):
    """A keyword a user saved, with the last metrics the refresh job wrote."""

    __tablename__ = "keyword_favorites"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    keyword: Mapped[str] = mapped_column(String(500), nullable=False)

    # NULL means the default locale (US / en)
    country_code: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    language_code: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)

    search_volume: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    competition: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    competition_index: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    avg_cpc_micros: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)

    __table_args__ = (
        UniqueConstraint("user_id", "keyword", name="uq_keyword_favorites_user_keyword"),
    )

    def __repr__(self) -> str:
        return f"<KeywordFavorite(user_id={self.user_id}, keyword={self.keyword!r})>"

"""
SQLAlchemy database models.
"""

from .base import Base, TimestampMixin
from .keyword_cache import KeywordMetricsCache
from .keyword_favorite import KeywordFavorite
from .keyword_history import KeywordSearchHistory

__all__ = [
    "Base",
    "TimestampMixin",
    "KeywordMetricsCache",
    "KeywordSearchHistory",
    "KeywordFavorite",
]

"""Repository interfaces for data access."""

from abc import ABC, abstractmethod
from datetime import timedelta

from ..domain.keyword import KeywordMetrics, Locale, SavedKeyword, SearchHistoryEntry


class KeywordMetricsStore(ABC):
    """Durable cache of keyword metrics keyed by (keyword, country, language)."""

    @abstractmethod
    async def get(self, keywords: set[str], locale: Locale) -> dict[str, KeywordMetrics]:
        """Return unexpired records for *keywords*; misses are simply absent."""
        ...

    @abstractmethod
    async def put(self, record: KeywordMetrics, ttl: timedelta) -> None:
        """Upsert one record and refresh its expiry."""
        ...

    @abstractmethod
    async def put_many(self, records: list[KeywordMetrics], ttl: timedelta) -> None:
        """Upsert several records in one transaction."""
        ...


class SearchHistoryRepository(ABC):
    """Append-only store of keyword searches."""

    @abstractmethod
    async def add(self, entry: SearchHistoryEntry) -> SearchHistoryEntry:
        """Insert a history row."""
        ...

    @abstractmethod
    async def list_for_user(self, user_id: str, limit: int = 10, offset: int = 0) -> list[SearchHistoryEntry]:
        """Newest-first page of a user's searches."""
        ...

    @abstractmethod
    async def count_for_user(self, user_id: str) -> int:
        """Total searches recorded for a user."""
        ...


class SavedKeywordRepository(ABC):
    """A user's bookmarked keywords."""

    @abstractmethod
    async def list_for_user(self, user_id: str) -> list[SavedKeyword]:
        """All saved keywords for a user, newest first."""
        ...

    @abstractmethod
    async def save(self, saved: SavedKeyword) -> SavedKeyword:
        """Insert or update the (user, keyword) bookmark."""
        ...

    @abstractmethod
    async def remove(self, user_id: str, keyword: str) -> bool:
        """Delete a bookmark. Returns False when it did not exist."""
        ...

    @abstractmethod
    async def update_metrics(self, user_id: str, records: list[KeywordMetrics]) -> int:
        """Overwrite stored metrics for matching bookmarks. Returns rows updated."""
        ...

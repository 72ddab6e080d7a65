"""
Service layer for keyword metrics resolution.
"""

from functools import lru_cache

from adapters.keywords import create_google_ads_adapter
from infrastructure.config import get_settings
from services.keyword_history import SearchHistoryRecorder
from services.keyword_refresh import BulkRefreshDriver, BulkRefreshResult
from services.keyword_resolver import (
    KeywordMetricsResolver,
    KeywordResolverConfig,
    normalize_keywords,
    parse_keyword_input,
)
from services.keyword_status import get_keyword_planning_status
from services.task_queue import TaskQueue, task_queue


@lru_cache
def get_search_history_recorder() -> SearchHistoryRecorder:
    """
    Get singleton search history recorder.

    Returns:
        SearchHistoryRecorder writing through the shared session factory
    """
    from infrastructure.database.connection import get_session_factory
    from infrastructure.database.repositories import SQLSearchHistoryRepository

    return SearchHistoryRecorder(SQLSearchHistoryRepository(get_session_factory()), task_queue)


@lru_cache
def get_keyword_resolver() -> KeywordMetricsResolver:
    """
    Get singleton keyword metrics resolver.

    Returns:
        Resolver wired to the database cache, Google Ads and history
    """
    from infrastructure.database.connection import get_session_factory
    from infrastructure.database.repositories import SQLKeywordMetricsStore

    settings = get_settings()
    config = KeywordResolverConfig.from_settings(settings)

    return KeywordMetricsResolver(
        store=SQLKeywordMetricsStore(get_session_factory()),
        provider=create_google_ads_adapter(settings),
        config=config,
        history=get_search_history_recorder(),
        task_queue=task_queue,
    )


@lru_cache
def get_bulk_refresh_driver() -> BulkRefreshDriver:
    """Get singleton bulk refresh driver for saved keywords."""
    from infrastructure.database.connection import get_session_factory
    from infrastructure.database.repositories import SQLSavedKeywordRepository

    return BulkRefreshDriver(
        resolver=get_keyword_resolver(),
        saved_keywords=SQLSavedKeywordRepository(get_session_factory()),
    )


__all__ = [
    "BulkRefreshDriver",
    "BulkRefreshResult",
    "KeywordMetricsResolver",
    "KeywordResolverConfig",
    "SearchHistoryRecorder",
    "TaskQueue",
    "get_bulk_refresh_driver",
    "get_keyword_planning_status",
    "get_keyword_resolver",
    "get_search_history_recorder",
    "normalize_keywords",
    "parse_keyword_input",
    "task_queue",
]

# Interfaces (Abstract Contracts)
# Adapters implement these interfaces
from .repositories import KeywordMetricsStore, SavedKeywordRepository, SearchHistoryRepository
from .services import KeywordIdea, KeywordMetricsProvider, ProviderError, ProviderResult

__all__ = [
    "KeywordMetricsStore",
    "SearchHistoryRepository",
    "SavedKeywordRepository",
    "KeywordMetricsProvider",
    "KeywordIdea",
    "ProviderError",
    "ProviderResult",
]

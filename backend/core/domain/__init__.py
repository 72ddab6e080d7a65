# Domain Entities
# Pure business objects with no external dependencies
from .keyword import (
    Competition,
    DataSource,
    KeywordAuthExpiredError,
    KeywordConfigurationError,
    KeywordErrorKind,
    KeywordMetrics,
    KeywordResolutionError,
    KeywordValidationError,
    Locale,
    MonthlySearchVolume,
    Provenance,
    ResolutionRequest,
    SavedKeyword,
    SearchHistoryEntry,
    competition_from_index,
)

__all__ = [
    "Competition",
    "DataSource",
    "KeywordErrorKind",
    "Locale",
    "MonthlySearchVolume",
    "Provenance",
    "KeywordMetrics",
    "ResolutionRequest",
    "SearchHistoryEntry",
    "SavedKeyword",
    "competition_from_index",
    "KeywordResolutionError",
    "KeywordValidationError",
    "KeywordConfigurationError",
    "KeywordAuthExpiredError",
]

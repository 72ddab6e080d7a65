"""Keyword metrics domain entities."""
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any, Optional


DEFAULT_COUNTRY = "US"
DEFAULT_LANGUAGE = "en"


class Competition(StrEnum):
    """Advertiser competition bucket for a keyword."""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    UNKNOWN = "UNKNOWN"


class DataSource(StrEnum):
    """Which tier produced a metrics record."""
    EXTERNAL_API = "google_ads_api"
    DETERMINISTIC_MOCK = "mock_deterministic"  # provider switched off
    FALLBACK_MOCK = "mock_fallback"            # provider failed at runtime


class KeywordErrorKind(StrEnum):
    """Failure taxonomy shared by the provider adapter and the resolver."""
    AUTH_EXPIRED = "auth_expired"
    MISCONFIGURED = "misconfigured"
    TRANSIENT_NETWORK = "transient_network"
    PROVIDER_EMPTY = "provider_empty"
    VALIDATION = "validation"


def competition_from_index(index: Optional[int]) -> Competition:
    """Bucket a 0-100 competition index: <30 LOW, 30-69 MEDIUM, >=70 HIGH."""
    if index is None:
        return Competition.UNKNOWN
    if index >= 70:
        return Competition.HIGH
    if index >= 30:
        return Competition.MEDIUM
    return Competition.LOW


@dataclass(frozen=True)
class Locale:
    """(country, language) pair that scopes keyword metrics."""

    country_code: str = DEFAULT_COUNTRY
    language_code: str = DEFAULT_LANGUAGE

    @classmethod
    def normalize(cls, country_code: Optional[str], language_code: Optional[str]) -> "Locale":
        """Trim codes and fill blanks with the default locale."""
        country = (country_code or "").strip() or DEFAULT_COUNTRY
        language = (language_code or "").strip() or DEFAULT_LANGUAGE
        return cls(country_code=country, language_code=language)

    def __str__(self) -> str:
        return f"{self.country_code}|{self.language_code}"


@dataclass
class MonthlySearchVolume:
    """One point of the monthly search trend."""

    year: int
    month_index: int  # 1 = January
    label: str        # e.g. "Jan 2025"
    searches: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "year": self.year,
            "month_index": self.month_index,
            "label": self.label,
            "searches": self.searches,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MonthlySearchVolume":
        return cls(
            year=int(data["year"]),
            month_index=int(data["month_index"]),
            label=data.get("label") or "",
            searches=int(data.get("searches") or 0),
        )


@dataclass
class Provenance:
    """Where a record came from and why."""

    source: DataSource
    cached: bool = False
    reason: Optional[str] = None
    generated_via_ai: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source.value,
            "cached": self.cached,
            "reason": self.reason,
            "generated_via_ai": self.generated_via_ai,
        }


@dataclass
class KeywordMetrics:
    """Resolved search metrics for one keyword in one locale."""

    keyword: str
    country_code: str
    language_code: str
    search_volume: int
    competition: Competition
    provenance: Provenance
    competition_index: Optional[int] = None

    # Bid signals are only ever provider-sourced
    low_top_page_bid_micros: Optional[int] = None
    high_top_page_bid_micros: Optional[int] = None
    avg_cpc_micros: Optional[int] = None

    # Oldest month first
    monthly_search_volumes: Optional[list[MonthlySearchVolume]] = None

    def __post_init__(self):
        if isinstance(self.competition, str):
            self.competition = Competition(self.competition)
        if self.search_volume < 0:
            raise ValueError(f"search_volume must be >= 0, got {self.search_volume}")
        if self.competition_index is not None and not 0 <= self.competition_index <= 100:
            raise ValueError(f"competition_index must be within [0, 100], got {self.competition_index}")

    @property
    def locale(self) -> Locale:
        return Locale(self.country_code, self.language_code)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict."""
        return {
            "keyword": self.keyword,
            "country_code": self.country_code,
            "language_code": self.language_code,
            "search_volume": self.search_volume,
            "competition": self.competition.value,
            "competition_index": self.competition_index,
            "low_top_page_bid_micros": self.low_top_page_bid_micros,
            "high_top_page_bid_micros": self.high_top_page_bid_micros,
            "avg_cpc_micros": self.avg_cpc_micros,
            "monthly_search_volumes": (
                [m.to_dict() for m in self.monthly_search_volumes]
                if self.monthly_search_volumes is not None
                else None
            ),
            "provenance": self.provenance.to_dict(),
        }


@dataclass
class ResolutionRequest:
    """A single "what are the metrics for these keywords" call. Never persisted."""

    keywords: list[str]
    locale: Locale = field(default_factory=Locale)
    use_cache: bool = True
    prompt: Optional[str] = None
    user_id: Optional[str] = None
    generated_via_ai: bool = False
    background: bool = False


@dataclass
class SearchHistoryEntry:
    """Append-only audit row for a resolved request that carried a prompt."""

    user_id: str
    prompt: str
    country_code: str
    language_code: str
    keywords: list[str]
    source: DataSource
    id: Optional[str] = None
    searched_at: Optional[datetime] = None

    @property
    def keyword_count(self) -> int:
        return len(self.keywords)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "prompt": self.prompt,
            "country_code": self.country_code,
            "language_code": self.language_code,
            "keywords": list(self.keywords),
            "keyword_count": self.keyword_count,
            "source": self.source.value,
            "searched_at": self.searched_at.isoformat() if self.searched_at else None,
        }


@dataclass
class SavedKeyword:
    """A keyword a user bookmarked, with the last metrics seen for it."""

    user_id: str
    keyword: str
    country_code: Optional[str] = None
    language_code: Optional[str] = None
    search_volume: Optional[int] = None
    competition: Optional[Competition] = None
    competition_index: Optional[int] = None
    avg_cpc_micros: Optional[int] = None
    updated_at: Optional[datetime] = None

    @property
    def locale(self) -> Locale:
        return Locale.normalize(self.country_code, self.language_code)


# Custom Exceptions
class KeywordResolutionError(Exception):
    """Base exception for errors that fail a whole resolution call."""

    kind: KeywordErrorKind = KeywordErrorKind.VALIDATION

    def __init__(self, message: str, kind: Optional[KeywordErrorKind] = None):
        super().__init__(message)
        if kind is not None:
            self.kind = kind


class KeywordValidationError(KeywordResolutionError):
    """Raised when the request has no usable keywords."""

    kind = KeywordErrorKind.VALIDATION


class KeywordConfigurationError(KeywordResolutionError):
    """Raised when the provider is enabled but its credentials are absent."""

    kind = KeywordErrorKind.MISCONFIGURED


class KeywordAuthExpiredError(KeywordResolutionError):
    """Raised when the stored refresh credential was rejected. Needs re-authentication."""

    kind = KeywordErrorKind.AUTH_EXPIRED

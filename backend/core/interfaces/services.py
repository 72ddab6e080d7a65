"""Service interfaces for external integrations."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

from ..domain.keyword import KeywordErrorKind, Locale, MonthlySearchVolume


@dataclass
class KeywordIdea:
    """One keyword idea as returned by a metrics provider, already normalized."""

    text: str
    avg_monthly_searches: int = 0
    competition_index: Optional[int] = None
    low_top_page_bid_micros: Optional[int] = None
    high_top_page_bid_micros: Optional[int] = None
    avg_cpc_micros: Optional[int] = None
    monthly_search_volumes: Optional[list[MonthlySearchVolume]] = None


@dataclass
class ProviderError:
    """Classified provider failure."""

    kind: KeywordErrorKind
    message: str
    status_code: Optional[int] = None


@dataclass
class ProviderResult:
    """Outcome of a provider fetch.

    ``error`` is set only when nothing usable came back. When some seed
    chunks failed but others succeeded, ``ideas`` holds what did arrive and
    ``failed_seeds`` lists the keywords whose chunk failed.
    """

    ideas: list[KeywordIdea] = field(default_factory=list)
    error: Optional[ProviderError] = None
    calls: int = 0
    failed_seeds: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failure(
        cls,
        kind: KeywordErrorKind,
        message: str,
        status_code: Optional[int] = None,
        calls: int = 0,
    ) -> "ProviderResult":
        return cls(error=ProviderError(kind=kind, message=message, status_code=status_code), calls=calls)


class KeywordMetricsProvider(ABC):
    """Abstract external source of keyword metrics."""

    seed_limit: int = 20

    @property
    @abstractmethod
    def is_configured(self) -> bool:
        """True when every credential the provider needs is present."""
        ...

    @abstractmethod
    async def fetch_metrics(self, keywords: list[str], locale: Locale, timeout: float) -> ProviderResult:
        """Fetch metrics for *keywords*. Never raises for provider failures."""
        ...

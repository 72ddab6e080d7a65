"""
Keyword metrics resolution.

Answers "what are the metrics for these keywords" from three tiers:

1. the durable metrics cache (unexpired rows only),
2. the Google Ads Keyword Planning API for whatever the cache missed,
3. deterministic synthetic metrics when the provider is switched off or fails.

Every requested keyword comes back exactly once, in request order, with its
provenance recording which tier answered and why.  Only an empty request,
missing credentials and (for non-AI requests) an expired credential fail the
call; transient provider trouble degrades to fallback data.
"""

import logging
import re
from collections import Counter
from dataclasses import dataclass
from datetime import timedelta
from typing import Iterable, Optional, Union

from adapters.keywords import mock_metrics
from core.domain.keyword import (
    DataSource,
    KeywordAuthExpiredError,
    KeywordConfigurationError,
    KeywordErrorKind,
    KeywordMetrics,
    KeywordValidationError,
    Locale,
    Provenance,
    ResolutionRequest,
    competition_from_index,
)
from core.interfaces.repositories import KeywordMetricsStore
from core.interfaces.services import KeywordIdea, KeywordMetricsProvider, ProviderError
from infrastructure.config import Settings
from services.keyword_history import SearchHistoryRecorder
from services.task_queue import TaskQueue, task_queue as default_task_queue

logger = logging.getLogger(__name__)

API_REASON = "Real data from Google Ads Keyword Planning API"
AI_ENRICHED_REASON = "AI-generated keywords enriched with Google Ads metrics"
AI_FALLBACK_REASON = "AI-generated keywords (fallback data)"
AUTH_EXPIRED_REASON = (
    "Google Ads credentials expired or were revoked; showing estimated data until "
    "the account is re-authenticated."
)
EMPTY_REASON = "Google Ads API returned no data for this keyword"

_KEYWORD_SEPARATORS = re.compile(r"\r?\n|,|;")


@dataclass(frozen=True)
class KeywordResolverConfig:
    """Resolver tunables, built once at startup."""

    provider_enabled: bool = False
    cache_ttl: timedelta = timedelta(days=30)
    max_keywords: int = 50
    interactive_timeout: float = 6.0
    background_timeout: float = 30.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "KeywordResolverConfig":
        return cls(
            provider_enabled=settings.gads_use_keyword_planning,
            cache_ttl=timedelta(days=settings.keyword_cache_ttl_days),
            max_keywords=settings.keyword_max_per_request,
            interactive_timeout=settings.keyword_interactive_timeout,
            background_timeout=settings.keyword_background_timeout,
        )


def parse_keyword_input(value: Union[str, Iterable[str], None]) -> list[str]:
    """Accept a list of keywords or a blob separated by newlines, commas or semicolons."""
    if value is None:
        return []
    if isinstance(value, str):
        parts: Iterable[str] = _KEYWORD_SEPARATORS.split(value)
    else:
        parts = value
    return [str(p).strip() for p in parts if p is not None and str(p).strip()]


def normalize_keywords(keywords: Union[str, Iterable[str], None], max_keywords: int) -> list[str]:
    """
    Trim, drop blanks, dedupe case-sensitively keeping first-seen order, cap.

    Raises:
        KeywordValidationError: If nothing usable remains
    """
    unique: list[str] = []
    seen: set[str] = set()
    for keyword in parse_keyword_input(keywords):
        if keyword not in seen:
            seen.add(keyword)
            unique.append(keyword)

    if not unique:
        raise KeywordValidationError("Provide at least one keyword")

    if len(unique) > max_keywords:
        logger.info("Truncating keyword request from %d to %d keywords", len(unique), max_keywords)
        unique = unique[:max_keywords]
    return unique


def _match_ideas(keywords: list[str], ideas: list[KeywordIdea]) -> dict[str, KeywordIdea]:
    """Pair requested keywords with returned ideas: exact text first, then case-insensitive."""
    exact: dict[str, KeywordIdea] = {}
    folded: dict[str, KeywordIdea] = {}
    for idea in ideas:
        exact.setdefault(idea.text, idea)
        folded.setdefault(idea.text.casefold(), idea)

    matched = {}
    for keyword in keywords:
        idea = exact.get(keyword) or folded.get(keyword.casefold())
        if idea is not None:
            matched[keyword] = idea
    return matched


def _idea_to_metrics(keyword: str, idea: KeywordIdea, locale: Locale) -> KeywordMetrics:
    return KeywordMetrics(
        keyword=keyword,
        country_code=locale.country_code,
        language_code=locale.language_code,
        search_volume=idea.avg_monthly_searches,
        competition=competition_from_index(idea.competition_index),
        competition_index=idea.competition_index,
        low_top_page_bid_micros=idea.low_top_page_bid_micros,
        high_top_page_bid_micros=idea.high_top_page_bid_micros,
        avg_cpc_micros=idea.avg_cpc_micros,
        monthly_search_volumes=idea.monthly_search_volumes,
        provenance=Provenance(source=DataSource.EXTERNAL_API, cached=False, reason=API_REASON),
    )


def dominant_source(results: list[KeywordMetrics]) -> DataSource:
    """Most common provenance source in a batch (first seen wins ties)."""
    counts = Counter(r.provenance.source for r in results)
    return counts.most_common(1)[0][0] if counts else DataSource.EXTERNAL_API


class KeywordMetricsResolver:
    """Single entry point for keyword metrics resolution."""

    def __init__(
        self,
        store: KeywordMetricsStore,
        provider: Optional[KeywordMetricsProvider],
        config: KeywordResolverConfig,
        history: Optional[SearchHistoryRecorder] = None,
        task_queue: Optional[TaskQueue] = None,
    ):
        if config.provider_enabled and provider is None:
            raise ValueError("A metrics provider is required when the provider is enabled")
        if config.max_keywords < 1:
            raise ValueError("max_keywords must be at least 1")

        self.store = store
        self.provider = provider
        self.config = config
        self.history = history
        self.task_queue = task_queue or default_task_queue

    async def resolve(
        self,
        keywords: Union[str, Iterable[str]],
        country_code: str = "US",
        language_code: str = "en",
        use_cache: bool = True,
        prompt: Optional[str] = None,
        generated_via_ai: bool = False,
        user_id: Optional[str] = None,
        background: bool = False,
    ) -> list[KeywordMetrics]:
        """
        Resolve metrics for every requested keyword.

        Args:
            keywords: Keywords as a list or newline/comma separated text
            country_code: ISO country code ("WORLD" for no geo targeting)
            language_code: ISO language code
            use_cache: Consult the cache before calling the provider
            prompt: Free-text reason for the search; enables history recording
            generated_via_ai: Best-effort request; an expired credential degrades
                to fallback data instead of raising
            user_id: Requester id for history
            background: Use the longer batch timeout

        Returns:
            One KeywordMetrics per distinct keyword, in request order

        Raises:
            KeywordValidationError: No usable keywords
            KeywordConfigurationError: Provider enabled without credentials
            KeywordAuthExpiredError: Credential rejected on a non-AI request
        """
        request = ResolutionRequest(
            keywords=parse_keyword_input(keywords),
            locale=Locale.normalize(country_code, language_code),
            use_cache=use_cache,
            prompt=prompt,
            user_id=user_id,
            generated_via_ai=generated_via_ai,
            background=background,
        )
        return await self.resolve_request(request)

    async def resolve_request(self, request: ResolutionRequest) -> list[KeywordMetrics]:
        """Run one ResolutionRequest through cache, provider and fallback tiers."""
        keywords = normalize_keywords(request.keywords, self.config.max_keywords)
        locale = request.locale

        if not self.config.provider_enabled:
            results = [
                mock_metrics.generate(k, locale.country_code, locale.language_code, DataSource.DETERMINISTIC_MOCK)
                for k in keywords
            ]
        else:
            results = await self._resolve_with_provider(keywords, locale, request)

        if request.generated_via_ai:
            results = self._decorate_ai_results(results)

        if self.history is not None:
            await self.history.record(
                user_id=request.user_id,
                prompt=request.prompt,
                locale=locale,
                keywords=[r.keyword for r in results],
                source=dominant_source(results),
            )

        return results

    async def _resolve_with_provider(
        self,
        keywords: list[str],
        locale: Locale,
        request: ResolutionRequest,
    ) -> list[KeywordMetrics]:
        if not self.provider.is_configured:
            raise KeywordConfigurationError("Google Ads API credentials are not configured")

        cached: dict[str, KeywordMetrics] = {}
        if request.use_cache:
            try:
                cached = await self.store.get(set(keywords), locale)
            except Exception as e:
                logger.error("Keyword cache lookup failed, proceeding without cache: %s", e, exc_info=True)
                cached = {}

        uncached = [k for k in keywords if k not in cached]
        logger.info(
            "Keyword lookup %s: %d cached, %d to fetch",
            locale, len(cached), len(uncached),
            extra={"country_code": locale.country_code, "language_code": locale.language_code},
        )

        fresh: dict[str, KeywordMetrics] = {}
        if uncached:
            fresh = await self._fetch_uncached(uncached, locale, request)

        return [cached[k] if k in cached else fresh[k] for k in keywords]

    async def _fetch_uncached(
        self,
        keywords: list[str],
        locale: Locale,
        request: ResolutionRequest,
    ) -> dict[str, KeywordMetrics]:
        timeout = self.config.background_timeout if request.background else self.config.interactive_timeout
        result = await self.provider.fetch_metrics(keywords, locale, timeout)

        if not result.ok:
            reason = self._fallback_reason(result.error, request)
            return {k: self._fallback(k, locale, reason) for k in keywords}

        matched = _match_ideas(keywords, result.ideas)
        fresh = {k: _idea_to_metrics(k, idea, locale) for k, idea in matched.items()}

        if fresh:
            await self.task_queue.enqueue(
                "keyword-cache-write",
                self.store.put_many(list(fresh.values()), self.config.cache_ttl),
            )

        failed = set(result.failed_seeds)
        for keyword in keywords:
            if keyword not in fresh:
                reason = mock_metrics.FALLBACK_REASON if keyword in failed else EMPTY_REASON
                fresh[keyword] = self._fallback(keyword, locale, reason)

        return fresh

    def _fallback_reason(self, error: ProviderError, request: ResolutionRequest) -> str:
        """Decide between raising and degrading for a failed provider call."""
        if error.kind == KeywordErrorKind.MISCONFIGURED:
            raise KeywordConfigurationError(error.message)

        if error.kind == KeywordErrorKind.AUTH_EXPIRED:
            if not request.generated_via_ai:
                logger.warning("Google Ads credential rejected: %s", error.message)
                raise KeywordAuthExpiredError(error.message)
            logger.warning("Google Ads credential rejected on best-effort request, using fallback data")
            return AUTH_EXPIRED_REASON

        logger.warning(
            "Keyword provider unavailable (%s), falling back to mock data: %s",
            error.kind, error.message,
            extra={"error_kind": error.kind.value},
        )
        return mock_metrics.FALLBACK_REASON

    @staticmethod
    def _fallback(keyword: str, locale: Locale, reason: str) -> KeywordMetrics:
        return mock_metrics.generate(
            keyword, locale.country_code, locale.language_code, DataSource.FALLBACK_MOCK, reason
        )

    @staticmethod
    def _decorate_ai_results(results: list[KeywordMetrics]) -> list[KeywordMetrics]:
        for result in results:
            provenance = result.provenance
            if provenance.source == DataSource.EXTERNAL_API:
                reason = AI_ENRICHED_REASON
            else:
                reason = provenance.reason or AI_FALLBACK_REASON
            result.provenance = Provenance(
                source=provenance.source,
                cached=provenance.cached,
                reason=reason,
                generated_via_ai=True,
            )
        return results

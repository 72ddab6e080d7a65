"""
Bulk refresh of a user's saved keywords.

Saved keywords span arbitrary locales.  They are grouped by
(country, language) so each locale costs one resolution per
max_keywords slice.  The groups run concurrently through the resolver
with the cache lookup bypassed, and
only metrics that actually came from Google Ads overwrite the saved rows.
A failing group is logged and skipped; it never aborts the others.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any

from core.domain.keyword import DataSource, Locale, SavedKeyword
from core.interfaces.repositories import SavedKeywordRepository
from services.keyword_resolver import KeywordMetricsResolver

logger = logging.getLogger(__name__)


@dataclass
class BulkRefreshResult:
    """Outcome of one bulk refresh run."""

    refreshed_count: int = 0
    groups: int = 0
    failed_groups: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "refreshed_count": self.refreshed_count,
            "groups": self.groups,
            "failed_groups": list(self.failed_groups),
        }


def group_by_locale(saved: list[SavedKeyword]) -> dict[Locale, list[str]]:
    """Group saved keywords by locale, keeping first-seen order inside each group."""
    groups: dict[Locale, list[str]] = {}
    for item in saved:
        keywords = groups.setdefault(item.locale, [])
        if item.keyword not in keywords:
            keywords.append(item.keyword)
    return groups


class BulkRefreshDriver:
    """Re-resolves saved keywords against the provider, grouped by locale."""

    def __init__(self, resolver: KeywordMetricsResolver, saved_keywords: SavedKeywordRepository):
        self.resolver = resolver
        self.saved_keywords = saved_keywords

    async def bulk_refresh(self, user_id: str) -> BulkRefreshResult:
        """
        Refresh every saved keyword for *user_id*.

        Returns:
            BulkRefreshResult whose refreshed_count counts keywords that
            received fresh provider metrics
        """
        start_time = time.time()
        saved = await self.saved_keywords.list_for_user(user_id)
        if not saved:
            logger.info("No saved keywords to refresh", extra={"user_id": user_id})
            return BulkRefreshResult()

        groups = group_by_locale(saved)
        locales = list(groups)
        outcomes = await asyncio.gather(
            *(self._refresh_group(user_id, locale, groups[locale]) for locale in locales),
            return_exceptions=True,
        )

        result = BulkRefreshResult(groups=len(locales))
        for locale, outcome in zip(locales, outcomes):
            if isinstance(outcome, BaseException):
                logger.warning(
                    "Keyword refresh failed for %s: %s",
                    locale,
                    outcome,
                    extra={
                        "user_id": user_id,
                        "country_code": locale.country_code,
                        "language_code": locale.language_code,
                    },
                )
                result.failed_groups.append(str(locale))
                continue
            result.refreshed_count += outcome

        logger.info(
            "Refreshed %d saved keywords across %d locales (%d failed)",
            result.refreshed_count,
            result.groups,
            len(result.failed_groups),
            extra={
                "user_id": user_id,
                "keyword_count": result.refreshed_count,
                "duration_ms": int((time.time() - start_time) * 1000),
            },
        )
        return result

    async def _refresh_group(self, user_id: str, locale: Locale, keywords: list[str]) -> int:
        # The resolver truncates above max_keywords, so larger groups go in slices
        size = self.resolver.config.max_keywords
        batches = await asyncio.gather(
            *(
                self.resolver.resolve(
                    keywords[i:i + size],
                    country_code=locale.country_code,
                    language_code=locale.language_code,
                    use_cache=False,
                    background=True,
                )
                for i in range(0, len(keywords), size)
            )
        )
        fresh = [
            r for records in batches for r in records
            if r.provenance.source == DataSource.EXTERNAL_API
        ]
        if not fresh:
            # Fallback data must not overwrite previously stored real metrics
            raise RuntimeError(f"No provider data returned for {len(keywords)} keywords")

        await self.saved_keywords.update_metrics(user_id, fresh)
        return len(fresh)

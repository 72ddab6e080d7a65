"""
SQLAlchemy implementations of the keyword repositories.

Every operation opens its own session from the injected factory, so
concurrent resolution requests never share a transaction.  Upserts use the
dialect's ``INSERT ... ON CONFLICT DO UPDATE`` which makes a write a single
atomic full-record replace on both PostgreSQL and SQLite.
"""

import logging
from datetime import UTC, datetime, timedelta
from uuid import uuid4

from sqlalchemy import delete, func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.domain.keyword import (
    Competition,
    DataSource,
    KeywordMetrics,
    Locale,
    MonthlySearchVolume,
    Provenance,
    SavedKeyword,
    SearchHistoryEntry,
)
from core.interfaces.repositories import (
    KeywordMetricsStore,
    SavedKeywordRepository,
    SearchHistoryRepository,
)

from .models import KeywordFavorite, KeywordMetricsCache, KeywordSearchHistory

logger = logging.getLogger(__name__)

CACHED_REASON = "Cached data from previous Google Ads API call"


def _insert_for(session: AsyncSession):
    """Pick the dialect-specific insert construct that supports ON CONFLICT."""
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return pg_insert
    if dialect == "sqlite":
        return sqlite_insert
    raise NotImplementedError(f"Upsert is not supported on dialect {dialect!r}")


def _cache_key(record: KeywordMetrics) -> tuple[str, str, str]:
    """Unique-key order; concurrent batches must lock rows in the same order."""
    return (record.keyword, record.country_code, record.language_code)


def _row_to_metrics(row: KeywordMetricsCache) -> KeywordMetrics:
    try:
        source = DataSource(row.data_source)
    except ValueError:
        source = DataSource.EXTERNAL_API

    try:
        competition = Competition(row.competition)
    except ValueError:
        competition = Competition.UNKNOWN

    monthly = None
    if row.monthly_search_volumes is not None:
        monthly = [MonthlySearchVolume.from_dict(m) for m in row.monthly_search_volumes]

    return KeywordMetrics(
        keyword=row.keyword,
        country_code=row.country_code,
        language_code=row.language_code,
        search_volume=row.search_volume or 0,
        competition=competition,
        competition_index=row.competition_index,
        low_top_page_bid_micros=row.low_top_page_bid_micros,
        high_top_page_bid_micros=row.high_top_page_bid_micros,
        avg_cpc_micros=row.avg_cpc_micros,
        monthly_search_volumes=monthly,
        provenance=Provenance(source=source, cached=True, reason=CACHED_REASON),
    )


class SQLKeywordMetricsStore(KeywordMetricsStore):
    """Keyword metrics cache backed by the keyword_metrics_cache table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def get(self, keywords: set[str], locale: Locale) -> dict[str, KeywordMetrics]:
        if not keywords:
            return {}

        now = datetime.now(UTC)
        stmt = select(KeywordMetricsCache).where(
            KeywordMetricsCache.keyword.in_(sorted(keywords)),
            KeywordMetricsCache.country_code == locale.country_code,
            KeywordMetricsCache.language_code == locale.language_code,
            KeywordMetricsCache.expires_at > now,
        )

        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).scalars().all()

        return {row.keyword: _row_to_metrics(row) for row in rows}

    async def put(self, record: KeywordMetrics, ttl: timedelta) -> None:
        await self.put_many([record], ttl)

    async def put_many(self, records: list[KeywordMetrics], ttl: timedelta) -> None:
        if not records:
            return

        expires_at = datetime.now(UTC) + ttl

        async with self._session_factory() as session:
            insert = _insert_for(session)
            for record in sorted(records, key=_cache_key):
                values = {
                    "search_volume": record.search_volume,
                    "competition": record.competition.value,
                    "competition_index": record.competition_index,
                    "low_top_page_bid_micros": record.low_top_page_bid_micros,
                    "high_top_page_bid_micros": record.high_top_page_bid_micros,
                    "avg_cpc_micros": record.avg_cpc_micros,
                    "monthly_search_volumes": (
                        [m.to_dict() for m in record.monthly_search_volumes]
                        if record.monthly_search_volumes is not None
                        else None
                    ),
                    "data_source": record.provenance.source.value,
                    "expires_at": expires_at,
                }
                stmt = insert(KeywordMetricsCache).values(
                    id=str(uuid4()),
                    keyword=record.keyword,
                    country_code=record.country_code,
                    language_code=record.language_code,
                    **values,
                )
                stmt = stmt.on_conflict_do_update(
                    index_elements=["keyword", "country_code", "language_code"],
                    set_={**values, "updated_at": func.now()},
                )
                await session.execute(stmt)
            await session.commit()

        logger.debug("Cached %d keyword metrics records until %s", len(records), expires_at.isoformat())


class SQLSearchHistoryRepository(SearchHistoryRepository):
    """Search history backed by the keyword_search_history table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    @staticmethod
    def _to_entry(row: KeywordSearchHistory) -> SearchHistoryEntry:
        return SearchHistoryEntry(
            id=row.id,
            user_id=row.user_id,
            prompt=row.user_prompt,
            country_code=row.country_code,
            language_code=row.language_code,
            keywords=list(row.generated_keywords or []),
            source=DataSource(row.source),
            searched_at=row.search_timestamp,
        )

    async def add(self, entry: SearchHistoryEntry) -> SearchHistoryEntry:
        row = KeywordSearchHistory(
            user_id=entry.user_id,
            user_prompt=entry.prompt,
            country_code=entry.country_code,
            language_code=entry.language_code,
            generated_keywords=list(entry.keywords),
            keyword_count=entry.keyword_count,
            source=entry.source.value,
        )
        async with self._session_factory() as session:
            session.add(row)
            await session.commit()
            await session.refresh(row)
        return self._to_entry(row)

    async def list_for_user(self, user_id: str, limit: int = 10, offset: int = 0) -> list[SearchHistoryEntry]:
        stmt = (
            select(KeywordSearchHistory)
            .where(KeywordSearchHistory.user_id == user_id)
            .order_by(KeywordSearchHistory.search_timestamp.desc())
            .limit(limit)
            .offset(offset)
        )
        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).scalars().all()
        return [self._to_entry(row) for row in rows]

    async def count_for_user(self, user_id: str) -> int:
        stmt = select(func.count()).select_from(KeywordSearchHistory).where(
            KeywordSearchHistory.user_id == user_id
        )
        async with self._session_factory() as session:
            return (await session.execute(stmt)).scalar_one()


class SQLSavedKeywordRepository(SavedKeywordRepository):
    """Saved keywords backed by the keyword_favorites table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    @staticmethod
    def _to_saved(row: KeywordFavorite) -> SavedKeyword:
        competition = None
        if row.competition:
            try:
                competition = Competition(row.competition)
            except ValueError:
                competition = Competition.UNKNOWN
        return SavedKeyword(
            user_id=row.user_id,
            keyword=row.keyword,
            country_code=row.country_code,
            language_code=row.language_code,
            search_volume=row.search_volume,
            competition=competition,
            competition_index=row.competition_index,
            avg_cpc_micros=row.avg_cpc_micros,
            updated_at=row.updated_at,
        )

    async def list_for_user(self, user_id: str) -> list[SavedKeyword]:
        stmt = (
            select(KeywordFavorite)
            .where(KeywordFavorite.user_id == user_id)
            .order_by(KeywordFavorite.updated_at.desc())
        )
        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).scalars().all()
        return [self._to_saved(row) for row in rows]

    async def save(self, saved: SavedKeyword) -> SavedKeyword:
        keyword = saved.keyword.strip()
        values = {
            "country_code": saved.country_code or None,
            "language_code": saved.language_code or None,
            "search_volume": saved.search_volume,
            "competition": saved.competition.value if saved.competition else None,
            "competition_index": saved.competition_index,
            "avg_cpc_micros": saved.avg_cpc_micros,
        }
        async with self._session_factory() as session:
            insert = _insert_for(session)
            stmt = insert(KeywordFavorite).values(
                id=str(uuid4()),
                user_id=saved.user_id,
                keyword=keyword,
                **values,
            ).on_conflict_do_update(
                index_elements=["user_id", "keyword"],
                set_={**values, "updated_at": func.now()},
            )
            await session.execute(stmt)
            await session.commit()

            row = (
                await session.execute(
                    select(KeywordFavorite).where(
                        KeywordFavorite.user_id == saved.user_id,
                        KeywordFavorite.keyword == keyword,
                    )
                )
            ).scalar_one()
        return self._to_saved(row)

    async def remove(self, user_id: str, keyword: str) -> bool:
        stmt = delete(KeywordFavorite).where(
            KeywordFavorite.user_id == user_id,
            KeywordFavorite.keyword == keyword.strip(),
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            await session.commit()
        return result.rowcount > 0

    async def update_metrics(self, user_id: str, records: list[KeywordMetrics]) -> int:
        updated = 0
        async with self._session_factory() as session:
            for record in sorted(records, key=lambda r: r.keyword):
                stmt = (
                    update(KeywordFavorite)
                    .where(
                        KeywordFavorite.user_id == user_id,
                        KeywordFavorite.keyword == record.keyword,
                    )
                    .values(
                        search_volume=record.search_volume,
                        competition=record.competition.value,
                        competition_index=record.competition_index,
                        avg_cpc_micros=record.avg_cpc_micros,
                        updated_at=func.now(),
                    )
                )
                result = await session.execute(stmt)
                updated += result.rowcount
            await session.commit()
        return updated

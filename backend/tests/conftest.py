"""
Pytest configuration and shared fixtures for backend tests.
"""

import sys
from pathlib import Path

# Add backend directory to path for imports
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

import pytest
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

# Import after path is set
from core.domain.keyword import DataSource, KeywordMetrics, Locale, Provenance, competition_from_index
from infrastructure.config import Settings
from infrastructure.database.models import Base
from services.task_queue import TaskQueue


@pytest.fixture
async def db_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """
    Create a test database engine.

    File-backed SQLite so background writes on their own sessions see the
    same data as the test.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'keywords.db'}")

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine."""
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def queue() -> TaskQueue:
    """Fresh background task queue per test."""
    return TaskQueue()


@pytest.fixture
def us_en() -> Locale:
    return Locale("US", "en")


@pytest.fixture
def gads_settings() -> Settings:
    """Settings with a complete Google Ads configuration and the provider enabled."""
    return Settings(
        _env_file=None,
        gads_client_id="client-id.apps.googleusercontent.com",
        gads_client_secret="client-secret",
        gads_developer_token="dev-token",
        gads_refresh_token="1//refresh-token",
        gads_customer_id="123-456-7890",
        gads_login_customer_id="9876543210",
        gads_use_keyword_planning=True,
    )


@pytest.fixture
def make_api_metrics():
    """Factory for provider-sourced metrics records used to seed stores."""

    def _make(keyword: str, volume: int = 5400, index: int = 55, locale: Locale = Locale()) -> KeywordMetrics:
        return KeywordMetrics(
            keyword=keyword,
            country_code=locale.country_code,
            language_code=locale.language_code,
            search_volume=volume,
            competition=competition_from_index(index),
            competition_index=index,
            avg_cpc_micros=1_250_000,
            provenance=Provenance(
                source=DataSource.EXTERNAL_API,
                reason="Real data from Google Ads Keyword Planning API",
            ),
        )

    return _make

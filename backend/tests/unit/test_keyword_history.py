"""
Unit tests for SearchHistoryRecorder.
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from core.domain.keyword import DataSource, Locale, SearchHistoryEntry
from services.keyword_history import SearchHistoryRecorder


@pytest.fixture
def repository():
    repo = AsyncMock()
    repo.list_for_user.return_value = []
    repo.count_for_user.return_value = 0
    return repo


class TestRecord:
    @pytest.mark.asyncio
    async def test_records_in_background(self, repository, queue):
        recorder = SearchHistoryRecorder(repository, queue)

        task_id = await recorder.record(
            user_id="user_1",
            prompt="  keywords for a coffee blog ",
            locale=Locale("US", "en"),
            keywords=["coffee shop", "espresso"],
            source=DataSource.FALLBACK_MOCK,
        )
        await queue.drain()

        assert task_id.startswith("search-history-")
        entry = repository.add.await_args.args[0]
        assert isinstance(entry, SearchHistoryEntry)
        assert entry.prompt == "keywords for a coffee blog"
        assert entry.keyword_count == 2
        assert entry.source == DataSource.FALLBACK_MOCK

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "user_id,prompt,keywords",
        [
            (None, "prompt", ["seo"]),
            ("user_1", None, ["seo"]),
            ("user_1", "   ", ["seo"]),
            ("user_1", "prompt", []),
        ],
    )
    async def test_skipped_without_prompt_user_or_keywords(self, repository, queue, user_id, prompt, keywords):
        recorder = SearchHistoryRecorder(repository, queue)

        task_id = await recorder.record(user_id, prompt, Locale(), keywords, DataSource.EXTERNAL_API)
        await queue.drain()

        assert task_id is None
        repository.add.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_insert_failure_is_logged(self, repository, queue, caplog):
        repository.add.side_effect = RuntimeError("connection reset")
        recorder = SearchHistoryRecorder(repository, queue)

        with caplog.at_level("ERROR", logger="services.keyword_history"):
            await recorder.record("user_1", "prompt", Locale(), ["seo"], DataSource.EXTERNAL_API)
            await queue.drain()

        assert "Failed to save keyword search history" in caplog.text
        # Swallowed inside the recorder, so the queue sees a success
        assert queue.stats()["failed"] == 0


class TestListHistory:
    @pytest.mark.asyncio
    async def test_page_shape(self, repository, queue):
        repository.list_for_user.return_value = [
            SearchHistoryEntry(
                id="h1",
                user_id="user_1",
                prompt="coffee",
                country_code="US",
                language_code="en",
                keywords=["coffee shop"],
                source=DataSource.EXTERNAL_API,
                searched_at=datetime(2025, 3, 1, tzinfo=timezone.utc),
            )
        ]
        repository.count_for_user.return_value = 11

        page = await SearchHistoryRecorder(repository, queue).list_history("user_1", limit=1, offset=10)

        assert page["total"] == 11
        assert page["limit"] == 1
        assert page["offset"] == 10
        assert page["searches"][0]["prompt"] == "coffee"
        repository.list_for_user.assert_awaited_once_with("user_1", limit=1, offset=10)

    @pytest.mark.asyncio
    async def test_limit_and_offset_clamped(self, repository, queue):
        page = await SearchHistoryRecorder(repository, queue).list_history("user_1", limit=1000, offset=-5)

        assert page["limit"] == 100
        assert page["offset"] == 0

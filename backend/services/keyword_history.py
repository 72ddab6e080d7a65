"""
Search history recording for keyword lookups.

Records "who asked what and which tier answered" for prompted searches.
Recording is fire-and-forget: the insert runs on the task queue, failures
are logged and never reach the resolver's caller.
"""

import logging
from typing import Any, Optional

from core.domain.keyword import DataSource, Locale, SearchHistoryEntry
from core.interfaces.repositories import SearchHistoryRepository
from services.task_queue import TaskQueue, task_queue as default_task_queue

logger = logging.getLogger(__name__)


class SearchHistoryRecorder:
    """Best-effort writer and reader for keyword search history."""

    def __init__(
        self,
        repository: SearchHistoryRepository,
        task_queue: Optional[TaskQueue] = None,
    ):
        self.repository = repository
        self.task_queue = task_queue or default_task_queue

    async def record(
        self,
        user_id: Optional[str],
        prompt: Optional[str],
        locale: Locale,
        keywords: list[str],
        source: DataSource,
    ) -> Optional[str]:
        """
        Schedule a history insert.

        Skipped (returns None) when there is no prompt, no requester or no
        keywords; otherwise returns the background task id.
        """
        if not prompt or not prompt.strip() or not user_id or not keywords:
            return None

        entry = SearchHistoryEntry(
            user_id=user_id,
            prompt=prompt.strip(),
            country_code=locale.country_code,
            language_code=locale.language_code,
            keywords=list(keywords),
            source=source,
        )
        return await self.task_queue.enqueue("search-history", self._insert(entry))

    async def _insert(self, entry: SearchHistoryEntry) -> None:
        try:
            await self.repository.add(entry)
        except Exception as e:
            logger.error(
                "Failed to save keyword search history: %s",
                e,
                exc_info=True,
                extra={"user_id": entry.user_id, "keyword_count": entry.keyword_count},
            )
            return

        logger.info(
            "Saved search history (%s): %d keywords",
            entry.source.value,
            entry.keyword_count,
            extra={"user_id": entry.user_id, "source": entry.source.value},
        )

    async def list_history(self, user_id: str, limit: int = 10, offset: int = 0) -> dict[str, Any]:
        """Newest-first page of a user's searches with the total count."""
        limit = max(1, min(limit, 100))
        offset = max(0, offset)
        searches = await self.repository.list_for_user(user_id, limit=limit, offset=offset)
        total = await self.repository.count_for_user(user_id)
        return {
            "searches": [s.to_dict() for s in searches],
            "total": total,
            "limit": limit,
            "offset": offset,
        }

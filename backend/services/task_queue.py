"""
In-memory asyncio queue for fire-and-forget writes.

Cache write-backs and search-history inserts must never delay or fail a
keyword resolution.  They are scheduled here instead: each one becomes an
asyncio.Task on the running loop, failures are logged and counted, and
``drain()`` waits for whatever is still in flight (shutdown, tests).

Usage::

    from services.task_queue import task_queue

    task_id = await task_queue.enqueue("cache-write", store.put_many(records, ttl))
    await task_queue.drain()
"""

import asyncio
import logging
from collections.abc import Coroutine
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

logger = logging.getLogger(__name__)


# ── Internal record stored per in-flight task ────────────────────────────────


class _TaskRecord:
    __slots__ = ("task_id", "name", "created_at", "_asyncio_task")

    def __init__(self, task_id: str, name: str) -> None:
        self.task_id: str = task_id
        self.name: str = name
        self.created_at: datetime = datetime.now(UTC)
        self._asyncio_task: asyncio.Task | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "task_id": self.task_id,
            "name": self.name,
            "created_at": self.created_at.isoformat(),
        }


# ── TaskQueue class ───────────────────────────────────────────────────────────


class TaskQueue:
    """Tracks background write tasks until they finish."""

    def __init__(self) -> None:
        self._tasks: dict[str, _TaskRecord] = {}
        self._completed = 0
        self._failed = 0

    # ── Public API ────────────────────────────────────────────────────────────

    async def enqueue(self, name: str, coro: Coroutine) -> str:
        """
        Schedule *coro* as a background task and return its id.

        The caller does not wait for completion.  Exceptions raised by *coro*
        are logged here and never reach the caller.
        """
        task_id = f"{name}-{uuid4().hex[:12]}"
        record = _TaskRecord(task_id, name)
        self._tasks[task_id] = record

        record._asyncio_task = asyncio.create_task(self._run(record, coro), name=f"tq-{task_id}")

        logger.debug("task_queue: enqueued %s", task_id)
        return task_id

    @property
    def pending(self) -> int:
        """Number of tasks still running."""
        return len(self._tasks)

    def in_flight(self) -> list[dict[str, Any]]:
        """Describe tasks still running (useful for health/monitoring)."""
        return [rec.to_dict() for rec in self._tasks.values()]

    def stats(self) -> dict[str, int]:
        """Return counts by outcome."""
        return {
            "running": len(self._tasks),
            "completed": self._completed,
            "failed": self._failed,
        }

    async def drain(self, timeout: float | None = None) -> None:
        """
        Wait until every task enqueued so far has finished.

        Tasks enqueued by the drained tasks themselves are waited for too.
        """
        async with asyncio.timeout(timeout):
            while self._tasks:
                tasks = [rec._asyncio_task for rec in self._tasks.values() if rec._asyncio_task]
                await asyncio.gather(*tasks, return_exceptions=True)

    # ── Internal helpers ──────────────────────────────────────────────────────

    async def _run(self, record: _TaskRecord, coro: Coroutine) -> None:
        """Execute *coro* and account for its outcome."""
        try:
            await coro
            self._completed += 1
        except Exception as exc:
            self._failed += 1
            logger.error("task_queue: task %s failed: %s", record.task_id, exc, exc_info=True)
        finally:
            self._tasks.pop(record.task_id, None)
            logger.debug("task_queue: task %s finished", record.task_id)


# ── Module-level singleton ────────────────────────────────────────────────────

task_queue = TaskQueue()

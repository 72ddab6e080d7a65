"""
Process startup and shutdown for embedding the keyword service.

Hosts (API servers, workers, schedulers) call ``startup()`` once before the
first resolution and ``shutdown()`` on exit so pending cache writes and
history inserts are flushed before the database pool closes.
"""

import logging

from infrastructure.config import get_settings
from infrastructure.logging_config import setup_logging
from services.keyword_status import get_keyword_planning_status
from services.task_queue import TaskQueue, task_queue

logger = logging.getLogger(__name__)

SHUTDOWN_DRAIN_TIMEOUT = 10.0


async def startup(create_tables: bool = False) -> dict:
    """
    Configure logging and report the keyword provider status.

    Args:
        create_tables: Create tables directly instead of relying on migrations
            (local development only)

    Returns:
        The keyword planning status report
    """
    settings = get_settings()

    # Configure logging before anything else so all startup messages use the
    # correct format: JSON in production, human-readable in development.
    setup_logging(
        json_output=settings.log_json or settings.is_production,
        level="DEBUG" if settings.debug else settings.log_level,
    )

    logger.info("Starting %s v%s", settings.app_name, settings.app_version)
    logger.info("Environment: %s", settings.environment)

    status = get_keyword_planning_status(settings)
    logger.info("Keyword planning status: %s (%s)", status["status"], status["message"])

    if create_tables:
        from infrastructure.database.connection import init_db

        await init_db()
        logger.info("Database tables created")

    return status


async def shutdown(queue: TaskQueue = task_queue, timeout: float = SHUTDOWN_DRAIN_TIMEOUT) -> None:
    """Flush background writes, then close database connections."""
    pending = queue.pending
    if pending:
        logger.info("Waiting for %d background writes", pending)
    try:
        await queue.drain(timeout)
    except TimeoutError:
        logger.warning("Abandoned %d background writes after %.0fs", queue.pending, timeout)

    from infrastructure.database.connection import close_db

    await close_db()
    logger.info("Shutdown complete")

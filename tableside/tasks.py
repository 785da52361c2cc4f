"""
Celery Tasks
Periodic housekeeping that runs outside the request cycle.

Each task opens its own database session and drives the async service
code with ``asyncio.run``; Celery workers are synchronous processes.
"""

import asyncio
import logging
import time
from datetime import datetime

from tableside.celery_worker import celery_app
from tableside.database import async_session_maker, engine
from tableside.services import chat_session, orders

logger = logging.getLogger(__name__)


async def _purge_sessions(retention_days):
    try:
        async with async_session_maker() as db:
            return await chat_session.purge_expired_sessions(db, retention_days)
    finally:
        # Pooled connections are bound to the loop asyncio.run is about to close
        await engine.dispose()


async def _expire_checkouts(older_than_hours):
    try:
        async with async_session_maker() as db:
            return await orders.expire_stale_checkouts(db, older_than_hours)
    finally:
        await engine.dispose()


@celery_app.task(
    bind=True,
    max_retries=3,
    default_retry_delay=5,
    autoretry_for=(Exception,),
    retry_backoff=True,
)
def purge_expired_ai_sessions(self, retention_days: int = None) -> dict:
    """
    Delete AI chat sessions idle for longer than the retention window.

    Args:
        retention_days: Override for ``ai_session_retention_days``

    Returns:
        dict: Rows deleted and timing
    """
    task_id = self.request.id
    start_time = time.time()

    purged = asyncio.run(_purge_sessions(retention_days))

    elapsed = round(time.time() - start_time, 3)
    logger.info(f"🧹 Task {task_id}: purged {purged} AI sessions in {elapsed}s")
    return {
        "success": True,
        "purged": purged,
        "task_id": task_id,
        "processing_time_seconds": elapsed,
    }


@celery_app.task(
    bind=True,
    max_retries=3,
    default_retry_delay=5,
    autoretry_for=(Exception,),
    retry_backoff=True,
)
def expire_stale_checkouts(self, older_than_hours: int = None) -> dict:
    """Cancel card orders whose hosted checkout was abandoned."""
    task_id = self.request.id
    start_time = time.time()

    expired = asyncio.run(_expire_checkouts(older_than_hours))

    elapsed = round(time.time() - start_time, 3)
    logger.info(f"⌛ Task {task_id}: expired {expired} stale checkouts in {elapsed}s")
    return {
        "success": True,
        "expired": expired,
        "task_id": task_id,
        "processing_time_seconds": elapsed,
    }


@celery_app.task
def health_check() -> dict:
    """
    Simple health check task to verify Celery is working.
    """
    return {
        "status": "healthy",
        "worker": "celery",
        "timestamp": datetime.now().isoformat(),
    }

"""
Daily Swipe Reset Worker.

Refills daily_swipe_remaining for users with an active subscription.
The swipe endpoint performs the same reset lazily, so this job only keeps
counters fresh for clients that read them without swiping.
"""

import asyncio
import logging

from app.workers.celery_app import celery_app
from app.database import get_db_context

logger = logging.getLogger(__name__)


@celery_app.task(bind=True, max_retries=3)
def reset_daily_swipe_limits(self):
    """Celery entry point for the daily swipe reset."""

    async def run():
        from app.services.swipe_service import SwipeService

        async with get_db_context() as db:
            return await SwipeService(db).reset_daily_limits()

    try:
        count = asyncio.run(run())
        logger.info(f"Daily swipe reset applied to {count} users")
        return {"success": True, "count": count}
    except Exception as e:
        logger.error(f"Daily swipe reset failed: {e}", exc_info=True)
        raise self.retry(exc=e, countdown=60)

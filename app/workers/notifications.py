"""
Notification Worker.

Hands user-facing events (new match, booking confirmed, subscription
activated) to the push/email gateway. Delivery itself lives outside this
service; we only POST the event to the configured endpoint.
"""

import logging
from typing import Any, Dict, List

import httpx

from app.config import settings
from app.workers.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(bind=True, max_retries=5)
def deliver_notification(self, event: str, user_ids: List[str], data: Dict[str, Any]):
    """POST one notification event to the gateway, retrying on failure."""
    if not settings.notification_webhook_url:
        logger.info(f"Notification {event} for {user_ids} (no gateway configured)")
        return {"delivered": False}

    payload = {"event": event, "userIds": user_ids, "data": data}
    try:
        response = httpx.post(
            settings.notification_webhook_url,
            json=payload,
            timeout=10.0,
        )
        response.raise_for_status()
    except httpx.HTTPError as e:
        logger.warning(f"Notification {event} delivery failed: {e}")
        raise self.retry(exc=e, countdown=30)

    return {"delivered": True}

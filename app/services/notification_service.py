"""
Notification Service - enqueue user notifications.
"""

import logging
from typing import Any, Dict, Iterable, Optional

logger = logging.getLogger(__name__)

NEW_MATCH = "NEW_MATCH"
BOOKING_CONFIRMED = "BOOKING_CONFIRMED"
SUBSCRIPTION_ACTIVATED = "SUBSCRIPTION_ACTIVATED"


class NotificationService:
    """Queues notification events for the worker. Never raises."""

    def notify(
        self,
        event: str,
        user_ids: Iterable[Any],
        data: Optional[Dict[str, Any]] = None,
    ) -> None:
        from app.workers.notifications import deliver_notification

        recipients = [str(user_id) for user_id in user_ids]
        try:
            deliver_notification.delay(event, recipients, data or {})
        except Exception as e:
            logger.warning(f"Failed to enqueue {event} notification for {recipients}: {e}")

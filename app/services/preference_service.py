"""
Preference Service - lazily created discovery preferences and swipe grants.
"""

import uuid
import logging
from typing import Dict, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.fsm.states import ConnectionType
from app.models.social import UserPreference
from app.utils.time import utcnow

logger = logging.getLogger(__name__)

DEFAULT_DAILY_SWIPE_LIMIT = 20


class PreferenceService:
    """Service for UserPreference rows."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_preferences(self, user_id: uuid.UUID) -> Optional[UserPreference]:
        result = await self.db.execute(
            select(UserPreference).where(UserPreference.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def get_or_create_preferences(self, user_id: uuid.UUID) -> UserPreference:
        """Get the user's preferences, creating the default row on first access."""
        preferences = await self.get_preferences(user_id)
        if preferences:
            return preferences

        preferences = UserPreference(
            user_id=user_id,
            connection_types=[ConnectionType.FRIENDS.value],
            daily_swipe_limit=DEFAULT_DAILY_SWIPE_LIMIT,
            swipes_used_today=0,
            last_swipe_reset=utcnow(),
        )
        self.db.add(preferences)
        await self.db.flush()

        logger.info(f"Created default preferences for user {user_id}")
        return preferences

    async def grant_purchased_swipes(self, user_id: uuid.UUID, swipe_count: int) -> int:
        """
        Apply a completed swipe pack.

        The limit is set to the free allotment plus the pack size, it does
        not add to whatever limit the user had before.
        """
        preferences = await self.get_or_create_preferences(user_id)
        new_limit = settings.free_swipe_allotment + swipe_count
        preferences.daily_swipe_limit = new_limit

        logger.info(f"Daily swipe limit for user {user_id} set to {new_limit}")
        return new_limit

    async def get_swipe_limits(self, user_id: uuid.UUID) -> Dict[str, int]:
        preferences = await self.get_preferences(user_id)
        if not preferences:
            return {
                "dailySwipeLimit": settings.free_swipe_allotment,
                "swipesUsedToday": 0,
            }
        return {
            "dailySwipeLimit": preferences.daily_swipe_limit,
            "swipesUsedToday": preferences.swipes_used_today,
        }

"""
Swipe Service - daily swipe quota, swipe recording and match detection.
"""

import uuid
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import select, update, or_, and_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.database import transaction
from app.exceptions import QuotaExceeded, ValidationFailed
from app.fsm.states import MatchStatus, SwipeAction
from app.models.package import SubscriptionPackage
from app.models.social import Block, Match, SocialConversation, Swipe, UserPreference
from app.models.user import User
from app.services.notification_service import NotificationService, NEW_MATCH
from app.services.preference_service import PreferenceService
from app.utils.time import as_utc, utcnow

logger = logging.getLogger(__name__)


@dataclass
class SwipeInfo:
    swipes_used: int
    daily_limit: int
    remaining: int
    free_swipes_remaining: int
    has_active_subscription: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "swipesUsed": self.swipes_used,
            "dailyLimit": self.daily_limit,
            "remaining": self.remaining,
            "freeSwipesRemaining": self.free_swipes_remaining,
            "hasActiveSubscription": self.has_active_subscription,
        }


@dataclass
class SwipeResult:
    swipe_id: uuid.UUID
    is_match: bool
    match_id: Optional[uuid.UUID]
    swipe_info: SwipeInfo

    def to_dict(self) -> Dict[str, Any]:
        return {
            "swipeId": str(self.swipe_id),
            "isMatch": self.is_match,
            "matchId": str(self.match_id) if self.match_id else None,
            "swipeInfo": self.swipe_info.to_dict(),
        }


class SwipeService:
    """
    Gates and records swipes.

    Order of checks: eligibility (self, block, repeat), then allowance
    (free pool, daily reset, daily limit), then the swipe commit.
    """

    def __init__(self, db: AsyncSession, notifications: Optional[NotificationService] = None):
        self.db = db
        self.notifications = notifications or NotificationService()
        self.preferences = PreferenceService(db)

    async def swipe(
        self,
        swiper_id: uuid.UUID,
        swiped_id: uuid.UUID,
        action: SwipeAction,
    ) -> SwipeResult:
        """Record one LIKE or PASS and report the resulting quota."""
        if swiper_id == swiped_id:
            raise ValidationFailed("Cannot swipe on yourself")

        user = await self.db.get(User, swiper_id)
        if not user:
            raise ValidationFailed("User not found")

        if not await self.db.get(User, swiped_id):
            raise ValidationFailed("User not found")

        if await self.is_blocked(swiper_id, swiped_id):
            raise ValidationFailed("Cannot interact with this user")

        if await self._get_swipe(swiper_id, swiped_id):
            raise ValidationFailed("Already swiped on this user")

        now = utcnow()
        preferences = await self.preferences.get_or_create_preferences(swiper_id)
        package_limit = await self._package_daily_limit(user)
        subscribed = user.has_active_subscription(now)

        if not subscribed and user.free_swipes_remaining <= 0:
            raise QuotaExceeded(
                "No active subscription and no free swipes remaining",
                status_code=403,
            )

        if self._is_new_day(user.last_swipe_reset, now):
            async with transaction(self.db):
                user.daily_swipe_remaining = package_limit
                user.last_swipe_reset = now
                preferences.swipes_used_today = 0
                preferences.last_swipe_reset = now
            logger.info(f"Daily swipes reset for user {swiper_id} to {package_limit}")
        elif user.daily_swipe_remaining <= 0 and user.free_swipes_remaining <= 0:
            raise self._daily_limit_reached(user, package_limit)

        match: Optional[Match] = None
        async with transaction(self.db):
            swipe = Swipe(swiper_id=swiper_id, swiped_id=swiped_id, action=action.value)
            self.db.add(swipe)
            try:
                await self.db.flush()
            except IntegrityError:
                # Lost a race with a concurrent swipe on the same pair
                raise ValidationFailed("Already swiped on this user")

            use_subscription = subscribed and user.daily_swipe_remaining > 0
            if not await self._consume_swipe(swiper_id, use_subscription):
                raise self._daily_limit_reached(user, package_limit)

            preferences.swipes_used_today = preferences.swipes_used_today + 1

            if action == SwipeAction.LIKE:
                match = await self._create_match_if_mutual(swiper_id, swiped_id)

        if match:
            logger.info(f"Match {match.id} created between {swiper_id} and {swiped_id}")
            self.notifications.notify(
                NEW_MATCH,
                [swiper_id, swiped_id],
                {"matchId": str(match.id), "conversationId": str(match.conversation_id)},
            )

        await self.db.refresh(user)
        return SwipeResult(
            swipe_id=swipe.id,
            is_match=match is not None,
            match_id=match.id if match else None,
            swipe_info=self._swipe_info(user, package_limit, subscribed),
        )

    async def is_blocked(self, user_a: uuid.UUID, user_b: uuid.UUID) -> bool:
        """True if either user has blocked the other."""
        result = await self.db.execute(
            select(Block.id).where(
                or_(
                    and_(Block.blocker_id == user_a, Block.blocked_id == user_b),
                    and_(Block.blocker_id == user_b, Block.blocked_id == user_a),
                )
            ).limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def reset_daily_limits(self, now: Optional[datetime] = None) -> int:
        """
        Refill daily_swipe_remaining for every active subscriber whose last
        reset was on an earlier calendar day, and zero their preference usage
        counters with it. Returns the number of users reset.
        """
        now = now or utcnow()
        result = await self.db.execute(
            select(User, SubscriptionPackage)
            .join(SubscriptionPackage, User.active_package_id == SubscriptionPackage.id)
            .where(User.subscription_end_date > now)
        )

        reset_ids = []
        async with transaction(self.db):
            for user, package in result.all():
                if not self._is_new_day(user.last_swipe_reset, now):
                    continue
                user.daily_swipe_remaining = package.daily_swipe_limit or 0
                user.last_swipe_reset = now
                reset_ids.append(user.id)

            if reset_ids:
                await self.db.execute(
                    update(UserPreference)
                    .where(UserPreference.user_id.in_(reset_ids))
                    .values(swipes_used_today=0, last_swipe_reset=now)
                    .execution_options(synchronize_session="fetch")
                )
        return len(reset_ids)

    async def subscription_status(self, user: User) -> Dict[str, Any]:
        """Subscription and quota counters as shown on the dashboard."""
        now = utcnow()
        end_date = as_utc(user.subscription_end_date)
        package = None
        if user.active_package_id:
            package = await self.db.get(SubscriptionPackage, user.active_package_id)

        return {
            "hasActiveSubscription": user.has_active_subscription(now),
            "isExpired": end_date is not None and end_date <= now,
            "activePackage": {
                "id": str(package.id),
                "name": package.name,
                "dailySwipeLimit": package.daily_swipe_limit,
                "duration": package.duration,
            } if package else None,
            "subscriptionEndDate": end_date.isoformat() if end_date else None,
            "dailySwipeRemaining": user.daily_swipe_remaining,
            "freeSwipesRemaining": user.free_swipes_remaining,
            "lastSwipeReset": as_utc(user.last_swipe_reset).isoformat(),
        }

    async def _get_swipe(self, swiper_id: uuid.UUID, swiped_id: uuid.UUID) -> Optional[Swipe]:
        result = await self.db.execute(
            select(Swipe).where(
                Swipe.swiper_id == swiper_id,
                Swipe.swiped_id == swiped_id,
            )
        )
        return result.scalar_one_or_none()

    async def _package_daily_limit(self, user: User) -> int:
        if not user.active_package_id:
            return 0
        package = await self.db.get(SubscriptionPackage, user.active_package_id)
        if not package:
            return 0
        return package.daily_swipe_limit or 0

    async def _consume_swipe(self, user_id: uuid.UUID, use_subscription: bool) -> bool:
        """
        Decrement one counter with a floor of zero in a single statement.
        Returns False when the counter was already exhausted.
        """
        column = User.daily_swipe_remaining if use_subscription else User.free_swipes_remaining
        result = await self.db.execute(
            update(User)
            .where(User.id == user_id, column > 0)
            .values({column: column - 1})
        )
        return result.rowcount > 0

    async def _create_match_if_mutual(
        self,
        swiper_id: uuid.UUID,
        swiped_id: uuid.UUID,
    ) -> Optional[Match]:
        reverse = await self._get_swipe(swiped_id, swiper_id)
        if not reverse or reverse.action != SwipeAction.LIKE.value:
            return None

        match = Match(
            user1_id=swiper_id,
            user2_id=swiped_id,
            status=MatchStatus.ACTIVE.value,
            matched_via_event=False,
        )
        self.db.add(match)
        await self.db.flush()

        conversation = SocialConversation(match_id=match.id)
        self.db.add(conversation)
        await self.db.flush()

        match.conversation_id = conversation.id
        return match

    @staticmethod
    def _is_new_day(last_reset: Optional[datetime], now: datetime) -> bool:
        last_reset = as_utc(last_reset)
        if last_reset is None:
            return True
        return last_reset.date() != now.date()

    @staticmethod
    def _daily_limit_reached(user: User, package_limit: int) -> QuotaExceeded:
        return QuotaExceeded(
            "Daily swipe limit reached",
            status_code=429,
            swipesUsed=package_limit - user.daily_swipe_remaining,
            dailyLimit=package_limit,
        )

    @staticmethod
    def _swipe_info(user: User, package_limit: int, subscribed: bool) -> SwipeInfo:
        if subscribed:
            swipes_used = package_limit - user.daily_swipe_remaining
            remaining = user.daily_swipe_remaining + user.free_swipes_remaining
        else:
            swipes_used = settings.free_swipe_allotment - user.free_swipes_remaining
            remaining = user.free_swipes_remaining

        return SwipeInfo(
            swipes_used=swipes_used,
            daily_limit=package_limit,
            remaining=remaining,
            free_swipes_remaining=user.free_swipes_remaining,
            has_active_subscription=subscribed,
        )

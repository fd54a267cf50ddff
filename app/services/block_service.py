"""
Block Service - user blocks and their effect on matches.
"""

import uuid
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select, update, delete, or_, and_
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import transaction
from app.exceptions import NotFound, ValidationFailed
from app.fsm.states import MatchStatus
from app.models.social import Block, Match
from app.models.user import User

logger = logging.getLogger(__name__)


class BlockService:
    """Service for blocking and unblocking users."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def block_user(
        self,
        blocker_id: uuid.UUID,
        blocked_id: uuid.UUID,
        reason: Optional[str] = None,
    ) -> Block:
        """
        Block a user.

        Every match between the pair, whichever side created it, is moved
        to BLOCKED in the same transaction as the block row.
        """
        if blocker_id == blocked_id:
            raise ValidationFailed("Cannot block yourself")

        if not await self.db.get(User, blocked_id):
            raise NotFound("User not found")

        if await self._get_block(blocker_id, blocked_id):
            raise ValidationFailed("User is already blocked")

        async with transaction(self.db):
            block = Block(blocker_id=blocker_id, blocked_id=blocked_id, reason=reason)
            self.db.add(block)

            result = await self.db.execute(
                update(Match)
                .where(
                    or_(
                        and_(Match.user1_id == blocker_id, Match.user2_id == blocked_id),
                        and_(Match.user1_id == blocked_id, Match.user2_id == blocker_id),
                    )
                )
                .values(status=MatchStatus.BLOCKED.value)
                .execution_options(synchronize_session="fetch")
            )

        logger.info(
            f"User {blocker_id} blocked {blocked_id}, {result.rowcount} matches blocked"
        )
        return block

    async def unblock_user(self, blocker_id: uuid.UUID, blocked_id: uuid.UUID) -> None:
        if not await self._get_block(blocker_id, blocked_id):
            raise NotFound("User is not blocked")

        async with transaction(self.db):
            await self.db.execute(
                delete(Block).where(
                    Block.blocker_id == blocker_id,
                    Block.blocked_id == blocked_id,
                )
            )
        logger.info(f"User {blocker_id} unblocked {blocked_id}")

    async def list_blocked_users(
        self,
        blocker_id: uuid.UUID,
        limit: int = 20,
        offset: int = 0,
    ) -> List[Dict[str, Any]]:
        """Users blocked by blocker_id, newest block first."""
        result = await self.db.execute(
            select(Block, User)
            .join(User, User.id == Block.blocked_id)
            .where(Block.blocker_id == blocker_id)
            .order_by(Block.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        return [
            {
                "id": str(block.id),
                "reason": block.reason,
                "createdAt": block.created_at.isoformat(),
                "user": {"id": str(user.id), "name": user.name},
            }
            for block, user in result.all()
        ]

    async def _get_block(self, blocker_id: uuid.UUID, blocked_id: uuid.UUID) -> Optional[Block]:
        result = await self.db.execute(
            select(Block).where(
                Block.blocker_id == blocker_id,
                Block.blocked_id == blocked_id,
            )
        )
        return result.scalar_one_or_none()

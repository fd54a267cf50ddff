"""
Block Endpoints.
"""

import uuid
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user
from app.database import get_db
from app.models.user import User
from app.services.block_service import BlockService

router = APIRouter()
logger = logging.getLogger(__name__)


class BlockRequest(BaseModel):
    """Request body for blocking a user."""
    model_config = ConfigDict(populate_by_name=True)

    blocked_user_id: uuid.UUID = Field(alias="blockedUserId")
    reason: Optional[str] = Field(None, max_length=500)


@router.post("/block")
async def block_user(
    request: BlockRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Block a user and move any match with them to BLOCKED."""
    block = await BlockService(db).block_user(user.id, request.blocked_user_id, request.reason)
    return {
        "success": True,
        "data": {
            "id": str(block.id),
            "blockedUserId": str(block.blocked_id),
            "reason": block.reason,
        },
    }


@router.delete("/block")
async def unblock_user(
    blocked_user_id: uuid.UUID = Query(..., alias="blockedUserId"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await BlockService(db).unblock_user(user.id, blocked_user_id)
    return {"success": True, "message": "User unblocked"}


@router.get("/block")
async def list_blocked_users(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Users the caller has blocked, newest first."""
    blocked = await BlockService(db).list_blocked_users(user.id, limit=limit, offset=offset)
    return {
        "success": True,
        "data": blocked,
        "pagination": {
            "limit": limit,
            "offset": offset,
            "hasMore": len(blocked) == limit,
        },
    }

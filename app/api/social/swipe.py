"""
Social Swipe Endpoint.
Records a LIKE or PASS against the caller's daily allowance.
"""

import uuid
import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user
from app.database import get_db
from app.fsm.states import SwipeAction
from app.models.user import User
from app.services.swipe_service import SwipeService

router = APIRouter()
logger = logging.getLogger(__name__)


class SwipeRequest(BaseModel):
    """Request body for a swipe."""
    model_config = ConfigDict(populate_by_name=True)

    swiped_user_id: uuid.UUID = Field(alias="swipedUserId")
    action: SwipeAction


@router.post("/swipe")
async def swipe(
    request: SwipeRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Swipe on another user.

    Returns the swipe id, whether it produced a mutual match and the
    caller's remaining allowance. Quota errors carry ``canPurchaseMore``.
    """
    service = SwipeService(db)
    result = await service.swipe(user.id, request.swiped_user_id, request.action)

    logger.info(f"User {user.id} swiped {request.action.value} on {request.swiped_user_id}")
    return {"success": True, "data": result.to_dict()}

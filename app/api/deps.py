import uuid
from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.exceptions import Unauthorized
from app.models.user import User


async def get_current_user(
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Resolve the calling user.

    Session handling lives in the auth gateway in front of this service;
    it forwards the authenticated user id in ``X-User-Id``.
    """
    if not x_user_id:
        raise Unauthorized("Unauthorized")

    try:
        user_id = uuid.UUID(x_user_id)
    except ValueError:
        raise Unauthorized("Unauthorized")

    user = await db.get(User, user_id)
    if not user:
        raise Unauthorized("Unauthorized")

    return user

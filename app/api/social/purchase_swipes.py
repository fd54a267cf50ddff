"""
Swipe Purchase Endpoints.
Checkout, client-side verification and current limits for swipe packs.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user
from app.database import get_db
from app.exceptions import NotFound, ValidationFailed
from app.models.user import User
from app.services.cashfree_service import verify_payment_signature
from app.services.order_service import OrderService, MAX_SWIPES_PER_PURCHASE
from app.services.payment_service import PaymentService
from app.services.preference_service import PreferenceService

router = APIRouter()
logger = logging.getLogger(__name__)


class PurchaseSwipesRequest(BaseModel):
    """Request body for opening a swipe pack order."""
    model_config = ConfigDict(populate_by_name=True)

    swipe_count: int = Field(alias="swipeCount", ge=1, le=MAX_SWIPES_PER_PURCHASE)


class VerifyPurchaseRequest(BaseModel):
    """Client callback after Cashfree checkout."""
    model_config = ConfigDict(populate_by_name=True)

    order_id: Optional[str] = Field(None, alias="orderId")
    payment_id: Optional[str] = Field(None, alias="paymentId")
    signature: Optional[str] = None


@router.post("/purchase-swipes")
async def purchase_swipes(
    request: PurchaseSwipesRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Create a Cashfree order and a PENDING swipe purchase."""
    order = await OrderService(db).create_swipe_purchase_order(user, request.swipe_count)
    return {"success": True, "data": order}


@router.put("/purchase-swipes")
async def verify_swipe_purchase(
    request: VerifyPurchaseRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Verify a swipe purchase from the client callback.

    The webhook may have completed the purchase first; either path grants
    the swipes exactly once.
    """
    if not request.order_id or not request.payment_id or not request.signature:
        raise ValidationFailed("Missing payment verification data")

    if not verify_payment_signature(request.order_id, request.payment_id, request.signature):
        logger.warning(f"Invalid payment signature for order {request.order_id}")
        raise ValidationFailed("Invalid payment signature")

    purchase = await PaymentService(db).complete_swipe_purchase(
        request.order_id,
        request.payment_id,
        user_id=user.id,
    )
    if not purchase:
        raise NotFound("Purchase record not found")

    return {"success": True, "message": "Payment verified successfully"}


@router.get("/purchase-swipes")
async def get_swipe_limits(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Current daily swipe limit and today's usage."""
    limits = await PreferenceService(db).get_swipe_limits(user.id)
    return {"success": True, "data": limits}

"""
Checkout Endpoints.
Open Cashfree orders for event bookings and subscription packages.
"""

import uuid
import logging
from decimal import Decimal

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user
from app.database import get_db
from app.models.user import User
from app.services.order_service import OrderService
from app.services.swipe_service import SwipeService

router = APIRouter()
logger = logging.getLogger(__name__)


class BookingCheckoutRequest(BaseModel):
    """Request body for a booking checkout."""
    model_config = ConfigDict(populate_by_name=True)

    event_id: uuid.UUID = Field(alias="eventId")
    ticket_count: int = Field(alias="ticketCount", ge=1)
    total_amount: Decimal = Field(alias="totalAmount", gt=0)


class SubscriptionCheckoutRequest(BaseModel):
    """Request body for a subscription checkout."""
    model_config = ConfigDict(populate_by_name=True)

    package_id: uuid.UUID = Field(alias="packageId")


@router.post("/bookings/checkout")
async def booking_checkout(
    request: BookingCheckoutRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Open a booking.

    Creates the PENDING booking, its payment and ticket placeholders. The
    webhook confirms or rolls them back.
    """
    order = await OrderService(db).create_booking_order(
        user,
        event_id=request.event_id,
        ticket_count=request.ticket_count,
        total_amount=request.total_amount,
    )
    return {"success": True, "data": order}


@router.post("/subscriptions/checkout")
async def subscription_checkout(
    request: SubscriptionCheckoutRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    order = await OrderService(db).create_subscription_order(user, request.package_id)
    return {"success": True, "data": order}


@router.get("/subscriptions/status")
async def subscription_status(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Subscription state and swipe counters for the caller."""
    status = await SwipeService(db).subscription_status(user)
    return {"success": True, "data": status}

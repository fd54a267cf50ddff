"""
Order Service - checkout flows that open a Cashfree order.

Each checkout creates the gateway order first, then writes the PENDING
record and its gateway_orders registry row in one transaction.
"""

import math
import time
import uuid
import logging
from decimal import Decimal
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.database import transaction
from app.exceptions import NotFound, ValidationFailed
from app.fsm.states import BookingStatus, OrderKind, PaymentStatus
from app.models.booking import Booking, TicketData
from app.models.event import Event
from app.models.package import SubscriptionPackage
from app.models.payment import GatewayOrder, Payment, SubscriptionPayment, SwipePurchase
from app.models.user import User
from app.services.cashfree_service import CashfreeService

logger = logging.getLogger(__name__)

MAX_SWIPES_PER_PURCHASE = 100


def get_swipe_price(count: int) -> int:
    """Price of a swipe pack in whole rupees."""
    return math.ceil(count * settings.swipe_price_inr)


def _order_id(prefix: str, user_id: uuid.UUID) -> str:
    # Cashfree caps order ids at 45 characters
    return f"{prefix}_{int(time.time() * 1000)}_{user_id.hex[:12]}"


class OrderService:
    """Creates booking, subscription and swipe pack orders."""

    def __init__(self, db: AsyncSession, cashfree: Optional[CashfreeService] = None):
        self.db = db
        self.cashfree = cashfree or CashfreeService()

    async def create_booking_order(
        self,
        user: User,
        event_id: uuid.UUID,
        ticket_count: int,
        total_amount: Decimal,
    ) -> Dict[str, Any]:
        """
        Open a booking checkout.

        Ticket placeholders are created up front; a failed payment deletes
        them again.
        """
        if ticket_count < 1:
            raise ValidationFailed("At least one ticket is required")
        if total_amount <= 0:
            raise ValidationFailed("Amount must be positive")

        event = await self.db.get(Event, event_id)
        if not event:
            raise NotFound("Event not found")

        booking_id = uuid.uuid4()
        booking_number = f"BK{int(time.time() * 1000)}"
        order_id = _order_id("BKG", user.id)

        order = await self.cashfree.create_order(
            amount=float(total_amount),
            customer_id=str(user.id),
            customer_name=user.name,
            customer_email=user.email,
            customer_phone=user.phone,
            order_id=order_id,
            order_note=f"Booking {booking_number} for {event.title}",
            order_tags={"bid": str(booking_id), "eid": str(event.id), "uid": str(user.id)},
            return_url=f"{settings.public_url}/payment-success?order_id={order_id}&type=booking",
        )

        async with transaction(self.db):
            booking = Booking(
                id=booking_id,
                booking_number=booking_number,
                event_id=event.id,
                user_id=user.id,
                status=BookingStatus.PENDING.value,
                ticket_count=ticket_count,
                total_amount=total_amount,
            )
            self.db.add(booking)
            await self.db.flush()

            self.db.add(
                Payment(
                    booking_id=booking.id,
                    cashfree_order_id=order["order_id"],
                    status=PaymentStatus.PENDING.value,
                    amount=total_amount,
                )
            )
            for index in range(ticket_count):
                self.db.add(
                    TicketData(
                        booking_id=booking.id,
                        ticket_number=f"{booking_number}-{index + 1}",
                    )
                )
            self._register(order["order_id"], OrderKind.BOOKING, booking.id)

        logger.info(f"Booking {booking_number} opened with order {order['order_id']}")
        return {
            "bookingId": str(booking.id),
            "bookingNumber": booking_number,
            "orderId": order["order_id"],
            "amount": float(total_amount),
            "currency": "INR",
            "paymentSessionId": order.get("payment_session_id"),
        }

    async def create_subscription_order(
        self,
        user: User,
        package_id: uuid.UUID,
    ) -> Dict[str, Any]:
        """Open a subscription checkout for an active package."""
        package = await self.db.get(SubscriptionPackage, package_id)
        if not package or not package.is_active:
            raise NotFound("Package not found or inactive")

        order_id = _order_id("PKG", user.id)
        order = await self.cashfree.create_order(
            amount=float(package.price),
            customer_id=str(user.id),
            customer_name=user.name,
            customer_email=user.email,
            customer_phone=user.phone,
            order_id=order_id,
            order_note=f"Subscription purchase for {package.name}",
            order_tags={
                "pkgId": str(package.id),
                "uid": str(user.id),
                "pkgName": package.name,
                "pkgPrice": f"{package.price:.2f}",
                "pkgDur": package.duration,
                "swipeLimit": str(package.daily_swipe_limit),
            },
            return_url=f"{settings.public_url}/payment-success?order_id={order_id}&type=package",
        )

        async with transaction(self.db):
            subscription_payment = SubscriptionPayment(
                user_id=user.id,
                package_id=package.id,
                cashfree_order_id=order["order_id"],
                status=PaymentStatus.PENDING.value,
                amount=package.price,
            )
            self.db.add(subscription_payment)
            await self.db.flush()
            self._register(order["order_id"], OrderKind.SUBSCRIPTION, subscription_payment.id)

        logger.info(f"Subscription order {order['order_id']} opened for package {package.name}")
        return {
            "orderId": order["order_id"],
            "amount": float(package.price),
            "currency": "INR",
            "paymentSessionId": order.get("payment_session_id"),
            "package": {
                "id": str(package.id),
                "name": package.name,
                "price": float(package.price),
                "dailySwipeLimit": package.daily_swipe_limit,
                "duration": package.duration,
            },
        }

    async def create_swipe_purchase_order(self, user: User, swipe_count: int) -> Dict[str, Any]:
        """Open a checkout for a pack of ``swipe_count`` swipes."""
        if not 1 <= swipe_count <= MAX_SWIPES_PER_PURCHASE:
            raise ValidationFailed("Invalid purchase data")

        amount = get_swipe_price(swipe_count)
        order = await self.cashfree.create_order(
            amount=amount,
            customer_id=str(user.id),
            customer_name=user.name,
            customer_email=user.email,
            customer_phone=user.phone,
            order_id=_order_id("SWP", user.id),
            order_note=f"Purchase of {swipe_count} swipes",
            order_tags={"swipeCount": str(swipe_count), "userId": str(user.id)},
            return_url=f"{settings.public_url}/dashboard/social/discover",
        )

        async with transaction(self.db):
            purchase = SwipePurchase(
                user_id=user.id,
                swipe_count=swipe_count,
                amount=Decimal(amount),
                cashfree_order_id=order["order_id"],
                payment_status=PaymentStatus.PENDING.value,
            )
            self.db.add(purchase)
            await self.db.flush()
            self._register(order["order_id"], OrderKind.SWIPE_PURCHASE, purchase.id)

        logger.info(f"Swipe purchase {order['order_id']} opened: {swipe_count} swipes for {amount}")
        return {
            "purchaseId": str(purchase.id),
            "orderId": order["order_id"],
            "amount": amount,
            "currency": "INR",
            "paymentSessionId": order.get("payment_session_id"),
            "swipeCount": swipe_count,
            "user": {"name": user.name, "email": user.email, "phone": user.phone},
        }

    def _register(self, order_id: str, kind: OrderKind, entity_id: uuid.UUID) -> None:
        self.db.add(GatewayOrder(order_id=order_id, kind=kind.value, entity_id=entity_id))

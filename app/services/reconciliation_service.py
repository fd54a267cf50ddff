"""
Reconciliation Service - resolve a successful Cashfree order to the record
it paid for.

Orders created by this service are registered in gateway_orders with their
kind, and resolve with one lookup. Orders without a registry row fall back
to probing each domain in priority order: tagged subscription, tagged
booking, booking by order id, swipe purchase, untagged subscription.
"""

import uuid
import logging
from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.fsm.states import OrderKind, PaymentStatus
from app.models.payment import GatewayOrder, Payment, SubscriptionPayment
from app.services.payment_service import PaymentService, VerificationResult

logger = logging.getLogger(__name__)


class PaymentReconciler:
    """Applies successful order notifications exactly once."""

    def __init__(self, db: AsyncSession, payment_service: Optional[PaymentService] = None):
        self.db = db
        self.payments = payment_service or PaymentService(db)

    async def reconcile_success(
        self,
        order_id: str,
        payment_id: Any,
        order_tags: Optional[Dict[str, Any]] = None,
    ) -> VerificationResult:
        """
        Mark the order's target COMPLETED.

        Orders this service has no PENDING record for, including ones that
        already completed or failed, are acknowledged as success so the
        gateway stops retrying.
        """
        order_tags = order_tags or {}
        payment_id = str(payment_id) if payment_id is not None else None

        registered = await self._get_registered_order(order_id)
        if registered:
            return await self._dispatch_registered(registered, order_id, payment_id)

        if order_tags.get("pkgId") and await self._pending_subscription_payment(order_id):
            return await self.payments.verify_subscription_payment(order_id, payment_id)

        booking_id = order_tags.get("bid")
        if booking_id and await self._pending_payment_for_booking(booking_id):
            return await self.payments.verify_booking_payment(order_id, payment_id, booking_id)

        # Tags missing or malformed: the order id alone still identifies a booking payment
        payment = await self._pending_payment_for_order(order_id)
        if payment:
            return await self.payments.verify_booking_payment(
                order_id, payment_id, payment.booking_id
            )

        purchase = await self.payments.complete_swipe_purchase(order_id, payment_id)
        if purchase:
            return VerificationResult(True, target="swipe_purchase")

        if await self._pending_subscription_payment(order_id):
            return await self.payments.verify_subscription_payment(order_id, payment_id)

        logger.info(f"No pending record for order {order_id}, acknowledging")
        return VerificationResult(True)

    async def reconcile_subscription(
        self,
        order_id: str,
        payment_id: Any,
    ) -> VerificationResult:
        """
        Apply a successful subscription order notification.

        A PENDING subscription payment that cannot be verified is failed so
        the user can check out again.
        """
        if not await self._pending_subscription_payment(order_id):
            logger.info(f"No pending subscription payment for order {order_id}, acknowledging")
            return VerificationResult(True, target="subscription")

        result = await self.payments.verify_subscription_payment(order_id, str(payment_id))
        if not result.success:
            await self.payments.fail_subscription_payment(
                order_id, "VERIFICATION_FAILED", result.error
            )
        return result

    async def _dispatch_registered(
        self,
        registered: GatewayOrder,
        order_id: str,
        payment_id: Optional[str],
    ) -> VerificationResult:
        kind = registered.order_kind
        logger.info(f"Order {order_id} registered as {kind.value}")

        # Completed or failed targets are acknowledged, as on the legacy path
        if kind == OrderKind.BOOKING:
            if not await self._pending_payment_for_order(order_id):
                logger.info(f"Booking payment {order_id} already finalised")
                return VerificationResult(True, target="booking")
            return await self.payments.verify_booking_payment(
                order_id, payment_id, registered.entity_id
            )

        if kind == OrderKind.SUBSCRIPTION:
            if not await self._pending_subscription_payment(order_id):
                logger.info(f"Subscription payment {order_id} already finalised")
                return VerificationResult(True, target="subscription")
            return await self.payments.verify_subscription_payment(order_id, payment_id)

        purchase = await self.payments.complete_swipe_purchase(order_id, payment_id)
        if not purchase:
            logger.info(f"Swipe purchase {order_id} already finalised")
        return VerificationResult(True, target="swipe_purchase")

    async def _get_registered_order(self, order_id: str) -> Optional[GatewayOrder]:
        if not order_id:
            return None
        result = await self.db.execute(
            select(GatewayOrder).where(GatewayOrder.order_id == order_id)
        )
        return result.scalar_one_or_none()

    async def _pending_subscription_payment(self, order_id: str) -> Optional[SubscriptionPayment]:
        if not order_id:
            return None
        result = await self.db.execute(
            select(SubscriptionPayment).where(
                SubscriptionPayment.cashfree_order_id == order_id,
                SubscriptionPayment.status == PaymentStatus.PENDING.value,
            )
        )
        return result.scalar_one_or_none()

    async def _pending_payment_for_booking(self, booking_id: Any) -> Optional[Payment]:
        try:
            booking_uuid = uuid.UUID(str(booking_id))
        except ValueError:
            logger.warning(f"Ignoring malformed bid tag: {booking_id}")
            return None

        result = await self.db.execute(
            select(Payment).where(
                Payment.booking_id == booking_uuid,
                Payment.status == PaymentStatus.PENDING.value,
            )
        )
        return result.scalar_one_or_none()

    async def _pending_payment_for_order(self, order_id: str) -> Optional[Payment]:
        if not order_id:
            return None
        result = await self.db.execute(
            select(Payment).where(
                Payment.cashfree_order_id == order_id,
                Payment.status == PaymentStatus.PENDING.value,
            )
        )
        return result.scalars().first()

"""
Payment Service - confirms and fails Cashfree-backed payments.

Every state change here is gated on the row still being PENDING, so a
webhook redelivered after the first application finds nothing to do.
"""

import uuid
import logging
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Union

from sqlalchemy import select, update, delete
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.database import transaction
from app.fsm.states import BookingStatus, PackageDuration, PaymentStatus
from app.models.booking import Booking, TicketData
from app.models.event import Event
from app.models.package import SubscriptionPackage
from app.models.payment import Payment, SubscriptionPayment, SwipePurchase
from app.models.user import User
from app.services.notification_service import (
    NotificationService,
    BOOKING_CONFIRMED,
    SUBSCRIPTION_ACTIVATED,
)
from app.services.preference_service import PreferenceService
from app.utils.time import add_months, utcnow

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


@dataclass
class VerificationResult:
    """Outcome of confirming a payment: ``{success, error?}``."""

    success: bool
    error: Optional[str] = None
    # Which domain handled the order, for logs and tests
    target: Optional[str] = None


@dataclass
class FeeBreakdown:
    base_amount: Decimal
    total_platform_fee: Decimal
    user_platform_fee: Decimal
    host_platform_fee: Decimal
    host_gets: Decimal


@dataclass
class FailureSummary:
    subscription_payments: int = 0
    booking_payments: int = 0
    tickets_deleted: int = 0
    swipe_purchases: int = 0

    @property
    def total(self) -> int:
        return self.subscription_payments + self.booking_payments + self.swipe_purchases


def calculate_fees(amount: Union[Decimal, float, int]) -> FeeBreakdown:
    """
    Split the platform fee evenly between attendee and host.
    The host is credited the base amount minus its half.
    """
    base = Decimal(str(amount))
    percentage = Decimal(str(settings.platform_fee_percentage)) / Decimal("100")
    total_fee = (base * percentage).quantize(CENTS, rounding=ROUND_HALF_UP)
    user_fee = (total_fee / 2).quantize(CENTS, rounding=ROUND_HALF_UP)
    host_fee = total_fee - user_fee

    return FeeBreakdown(
        base_amount=base,
        total_platform_fee=total_fee,
        user_platform_fee=user_fee,
        host_platform_fee=host_fee,
        host_gets=base - host_fee,
    )


class PaymentService:
    """Service for confirming and failing payments."""

    def __init__(self, db: AsyncSession, notifications: Optional[NotificationService] = None):
        self.db = db
        self.notifications = notifications or NotificationService()
        self.preferences = PreferenceService(db)

    # === Booking payments ===

    async def verify_booking_payment(
        self,
        order_id: str,
        payment_id: str,
        booking_id: Union[str, uuid.UUID],
    ) -> VerificationResult:
        """
        Confirm the booking paid for by ``order_id``.

        Marks the payment COMPLETED, the booking CONFIRMED and credits the
        event host. Already completed payments report success.
        """
        try:
            booking_uuid = uuid.UUID(str(booking_id))
        except ValueError:
            logger.error(f"Invalid booking id format: {booking_id}")
            return VerificationResult(False, "Invalid booking id", target="booking")

        async with transaction(self.db):
            result = await self.db.execute(
                select(Payment).where(Payment.booking_id == booking_uuid).with_for_update()
            )
            payment = result.scalar_one_or_none()

            if not payment:
                logger.error(f"No payment found for booking {booking_uuid}")
                return VerificationResult(False, "Payment not found", target="booking")

            if payment.cashfree_order_id != order_id:
                logger.error(
                    f"Order {order_id} does not belong to booking {booking_uuid} "
                    f"(expected {payment.cashfree_order_id})"
                )
                return VerificationResult(False, "Order does not match booking", target="booking")

            if payment.status == PaymentStatus.COMPLETED.value:
                logger.info(f"Booking payment {order_id} already completed")
                return VerificationResult(True, target="booking")

            if payment.status == PaymentStatus.FAILED.value:
                logger.warning(f"Success received for failed booking payment {order_id}")
                return VerificationResult(False, "Payment already failed", target="booking")

            payment.status = PaymentStatus.COMPLETED.value
            payment.cashfree_payment_id = str(payment_id)

            booking = await self.db.get(Booking, booking_uuid)
            booking.status = BookingStatus.CONFIRMED.value

            event = await self.db.get(Event, booking.event_id)
            fees = calculate_fees(payment.amount)
            if event:
                await self.db.execute(
                    update(User)
                    .where(User.id == event.host_id)
                    .values(wallet_balance=User.wallet_balance + fees.host_gets)
                )

        logger.info(
            f"Booking {booking_uuid} confirmed via order {order_id}, host credited {fees.host_gets}"
        )
        self.notifications.notify(
            BOOKING_CONFIRMED,
            [booking.user_id],
            {"bookingId": str(booking.id), "bookingNumber": booking.booking_number},
        )
        return VerificationResult(True, target="booking")

    # === Subscription payments ===

    async def verify_subscription_payment(
        self,
        order_id: Optional[str],
        payment_id: Optional[Union[str, int]],
    ) -> VerificationResult:
        """
        Confirm a subscription order and activate the package for its user.

        Activation sets the end date from the package duration, refills the
        daily swipe allowance and restores the free swipe allotment.
        """
        if not order_id:
            return VerificationResult(False, "Order ID is required", target="subscription")
        if not payment_id:
            return VerificationResult(False, "Payment ID is required", target="subscription")

        async with transaction(self.db):
            result = await self.db.execute(
                select(SubscriptionPayment)
                .where(SubscriptionPayment.cashfree_order_id == order_id)
                .with_for_update()
            )
            subscription_payment = result.scalar_one_or_none()

            if not subscription_payment:
                return VerificationResult(False, "Payment not found", target="subscription")

            if subscription_payment.status == PaymentStatus.COMPLETED.value:
                logger.info(f"Subscription payment {order_id} already completed")
                return VerificationResult(True, target="subscription")

            if subscription_payment.status == PaymentStatus.FAILED.value:
                logger.warning(f"Success received for failed subscription payment {order_id}")
                return VerificationResult(False, "Payment already failed", target="subscription")

            package = await self.db.get(SubscriptionPackage, subscription_payment.package_id)
            if not package:
                return VerificationResult(False, "Package not found", target="subscription")

            subscription_payment.status = PaymentStatus.COMPLETED.value
            subscription_payment.cashfree_payment_id = str(payment_id)

            now = utcnow()
            end_date = add_months(now, PackageDuration(package.duration).months)

            user = await self.db.get(User, subscription_payment.user_id)
            user.active_package_id = package.id
            user.subscription_end_date = end_date
            user.daily_swipe_remaining = package.daily_swipe_limit
            user.free_swipes_remaining = settings.free_swipe_allotment
            user.last_swipe_reset = now

        logger.info(
            f"Subscription {package.name} active for user {user.id} until {end_date.isoformat()}"
        )
        self.notifications.notify(
            SUBSCRIPTION_ACTIVATED,
            [user.id],
            {"packageId": str(package.id), "subscriptionEndDate": end_date.isoformat()},
        )
        return VerificationResult(True, target="subscription")

    # === Swipe purchases ===

    async def complete_swipe_purchase(
        self,
        order_id: str,
        payment_id: Union[str, int],
        user_id: Optional[uuid.UUID] = None,
    ) -> Optional[SwipePurchase]:
        """
        Complete a PENDING swipe purchase and grant its swipes.
        Returns None when there is no PENDING purchase for the order.
        """
        async with transaction(self.db):
            query = select(SwipePurchase).where(
                SwipePurchase.cashfree_order_id == order_id,
                SwipePurchase.payment_status == PaymentStatus.PENDING.value,
            )
            if user_id is not None:
                query = query.where(SwipePurchase.user_id == user_id)

            result = await self.db.execute(query.with_for_update())
            purchase = result.scalar_one_or_none()
            if not purchase:
                return None

            purchase.payment_status = PaymentStatus.COMPLETED.value
            purchase.cashfree_payment_id = str(payment_id)

            await self.preferences.grant_purchased_swipes(purchase.user_id, purchase.swipe_count)

        logger.info(f"Swipe purchase {order_id} completed: {purchase.swipe_count} swipes")
        return purchase

    # === Failures ===

    async def mark_order_failed(
        self,
        order_id: str,
        failure_type: str,
        reason: Optional[str] = None,
    ) -> FailureSummary:
        """
        Fail every PENDING record for ``order_id`` and undo speculative state.

        Safe to call for any id: unknown ids simply match nothing. Bookings
        of failed payments lose their ticket placeholders and are cancelled.
        """
        summary = FailureSummary()
        failure_reason = f"{failure_type}: {reason}" if reason else failure_type

        async with transaction(self.db):
            summary.subscription_payments = await self._fail_subscription_payments(
                order_id, failure_reason
            )

            result = await self.db.execute(
                select(Payment).where(
                    Payment.cashfree_order_id == order_id,
                    Payment.status == PaymentStatus.PENDING.value,
                )
            )
            for payment in result.scalars().all():
                payment.status = PaymentStatus.FAILED.value
                payment.failure_reason = failure_reason[:500]
                summary.booking_payments += 1

                booking = await self.db.get(Booking, payment.booking_id)
                if booking:
                    deleted = await self.db.execute(
                        delete(TicketData).where(TicketData.booking_id == booking.id)
                    )
                    summary.tickets_deleted += deleted.rowcount
                    booking.status = BookingStatus.CANCELLED.value

            result = await self.db.execute(
                update(SwipePurchase)
                .where(
                    SwipePurchase.cashfree_order_id == order_id,
                    SwipePurchase.payment_status == PaymentStatus.PENDING.value,
                )
                .values(payment_status=PaymentStatus.FAILED.value)
                .execution_options(synchronize_session="fetch")
            )
            summary.swipe_purchases = result.rowcount

        if summary.total:
            logger.info(
                f"Order {order_id} failed ({failure_type}): {summary.booking_payments} booking, "
                f"{summary.subscription_payments} subscription, {summary.swipe_purchases} swipe "
                f"payments; {summary.tickets_deleted} tickets removed"
            )
        else:
            logger.info(f"Order {order_id} failed ({failure_type}) but matched no pending records")
        return summary

    async def fail_subscription_payment(
        self,
        order_id: str,
        failure_type: str,
        reason: Optional[str] = None,
    ) -> int:
        """Fail the PENDING subscription payment for ``order_id`` only."""
        failure_reason = f"{failure_type}: {reason}" if reason else failure_type
        async with transaction(self.db):
            count = await self._fail_subscription_payments(order_id, failure_reason)

        logger.info(f"Subscription order {order_id} failed ({failure_type}): {count} payments")
        return count

    async def _fail_subscription_payments(self, order_id: str, failure_reason: str) -> int:
        result = await self.db.execute(
            update(SubscriptionPayment)
            .where(
                SubscriptionPayment.cashfree_order_id == order_id,
                SubscriptionPayment.status == PaymentStatus.PENDING.value,
            )
            .values(status=PaymentStatus.FAILED.value, failure_reason=failure_reason[:500])
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount

"""
Status and kind enums for payments, bookings and the social graph.
"""

from enum import Enum


class PaymentStatus(str, Enum):
    """
    Lifecycle of Payment, SubscriptionPayment and SwipePurchase rows.
    PENDING moves to exactly one terminal state and stays there.
    """

    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class BookingStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"


class OrderKind(str, Enum):
    """What a Cashfree order id was created for."""

    BOOKING = "BOOKING"
    SUBSCRIPTION = "SUBSCRIPTION"
    SWIPE_PURCHASE = "SWIPE_PURCHASE"


class PackageDuration(str, Enum):
    """Subscription package durations, in calendar months."""

    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"
    YEARLY = "YEARLY"
    LIFETIME = "LIFETIME"

    @property
    def months(self) -> int:
        months = {
            PackageDuration.MONTHLY: 1,
            PackageDuration.QUARTERLY: 3,
            PackageDuration.YEARLY: 12,
            PackageDuration.LIFETIME: 1200,
        }
        return months.get(self, 1)


class SwipeAction(str, Enum):
    LIKE = "LIKE"
    PASS = "PASS"


class MatchStatus(str, Enum):
    ACTIVE = "ACTIVE"
    UNMATCHED = "UNMATCHED"
    BLOCKED = "BLOCKED"


class ConnectionType(str, Enum):
    FRIENDS = "FRIENDS"
    DATING = "DATING"
    NETWORKING = "NETWORKING"
    HANGOUT = "HANGOUT"


class WebhookEventType(str, Enum):
    """Cashfree payment webhook event types this service acts on."""

    PAYMENT_SUCCESS = "PAYMENT_SUCCESS_WEBHOOK"
    PAYMENT_FAILED = "PAYMENT_FAILED_WEBHOOK"
    PAYMENT_USER_DROPPED = "PAYMENT_USER_DROPPED_WEBHOOK"
    TRANSFER_FAILED = "TRANSFER_FAILED"
    TRANSFER_REJECTED = "TRANSFER_REJECTED"
    TRANSFER_REVERSED = "TRANSFER_REVERSED"

    @property
    def is_transfer(self) -> bool:
        return self in (
            WebhookEventType.TRANSFER_FAILED,
            WebhookEventType.TRANSFER_REJECTED,
            WebhookEventType.TRANSFER_REVERSED,
        )

    @property
    def failure_type(self) -> str:
        """Label recorded on rows failed by this event."""
        labels = {
            WebhookEventType.PAYMENT_FAILED: "PAYMENT_FAILED",
            WebhookEventType.PAYMENT_USER_DROPPED: "USER_DROPPED",
            WebhookEventType.TRANSFER_FAILED: "TRANSFER_FAILED",
            WebhookEventType.TRANSFER_REJECTED: "TRANSFER_REJECTED",
            WebhookEventType.TRANSFER_REVERSED: "TRANSFER_REVERSED",
        }
        return labels.get(self, self.value)

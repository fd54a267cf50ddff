"""Status enums for payments, bookings and the social graph."""

from app.fsm.states import (
    BookingStatus,
    ConnectionType,
    MatchStatus,
    OrderKind,
    PackageDuration,
    PaymentStatus,
    SwipeAction,
    WebhookEventType,
)

__all__ = [
    "BookingStatus",
    "ConnectionType",
    "MatchStatus",
    "OrderKind",
    "PackageDuration",
    "PaymentStatus",
    "SwipeAction",
    "WebhookEventType",
]

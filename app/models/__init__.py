"""Models package for database models."""

from app.models.user import User
from app.models.package import SubscriptionPackage
from app.models.event import Event
from app.models.booking import Booking, TicketData
from app.models.payment import Payment, SubscriptionPayment, SwipePurchase, GatewayOrder
from app.models.social import UserPreference, Swipe, Match, SocialConversation, Block

__all__ = [
    "User",
    "SubscriptionPackage",
    "Event",
    "Booking",
    "TicketData",
    "Payment",
    "SubscriptionPayment",
    "SwipePurchase",
    "GatewayOrder",
    "UserPreference",
    "Swipe",
    "Match",
    "SocialConversation",
    "Block",
]

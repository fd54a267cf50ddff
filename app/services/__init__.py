"""Services package."""

from app.services.cashfree_service import CashfreeService
from app.services.notification_service import NotificationService
from app.services.preference_service import PreferenceService
from app.services.payment_service import PaymentService
from app.services.reconciliation_service import PaymentReconciler
from app.services.order_service import OrderService
from app.services.swipe_service import SwipeService
from app.services.block_service import BlockService

__all__ = [
    "CashfreeService",
    "NotificationService",
    "PreferenceService",
    "PaymentService",
    "PaymentReconciler",
    "OrderService",
    "SwipeService",
    "BlockService",
]

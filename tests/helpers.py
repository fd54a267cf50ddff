"""
Shared helpers for signing Cashfree payloads and faking gateway orders.
"""

import base64
import hashlib
import hmac
import uuid

WEBHOOK_SECRET = "test-webhook-secret"


def sign_webhook(body: bytes, timestamp: str, secret: str = WEBHOOK_SECRET) -> str:
    """Cashfree style base64 HMAC-SHA256 over timestamp + body."""
    digest = hmac.new(secret.encode(), timestamp.encode() + body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode()


def sign_payment(order_id: str, payment_id: str, secret: str = WEBHOOK_SECRET) -> str:
    return hmac.new(
        secret.encode(), f"{order_id}|{payment_id}".encode(), hashlib.sha256
    ).hexdigest()


def fake_cashfree_order(order_id=None, **kwargs):
    """Stand-in for CashfreeService.create_order that echoes the requested id."""
    return {
        "order_id": order_id or f"order_{uuid.uuid4().hex[:10]}",
        "payment_session_id": "session_test",
        "order_status": "ACTIVE",
    }

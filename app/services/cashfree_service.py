"""
Cashfree Service - order creation and signature verification.
"""

import base64
import hmac
import hashlib
import logging
from typing import Any, Dict, Optional

import httpx

from app.config import settings
from app.exceptions import PaymentGatewayError

logger = logging.getLogger(__name__)


class CashfreeService:
    """Thin client for the Cashfree PG orders API."""

    def __init__(self):
        self.base_url = settings.cashfree_base_url
        self.headers = {
            "x-client-id": settings.cashfree_client_id,
            "x-client-secret": settings.cashfree_client_secret,
            "x-api-version": settings.cashfree_api_version,
            "Content-Type": "application/json",
        }

    async def create_order(
        self,
        amount: float,
        customer_id: str,
        customer_email: Optional[str],
        customer_phone: Optional[str],
        customer_name: Optional[str] = None,
        order_id: Optional[str] = None,
        order_note: Optional[str] = None,
        order_tags: Optional[Dict[str, str]] = None,
        return_url: Optional[str] = None,
        currency: str = "INR",
    ) -> Dict[str, Any]:
        """
        Create a checkout order.

        Returns the Cashfree order entity; ``order_id`` is the id webhooks
        will carry and ``payment_session_id`` goes to the client SDK.
        """
        if not settings.cashfree_client_id or not settings.cashfree_client_secret:
            logger.error("Cashfree API credentials not configured")
            raise PaymentGatewayError("Payment gateway not configured")

        payload: Dict[str, Any] = {
            "order_amount": round(float(amount), 2),
            "order_currency": currency,
            "customer_details": {
                "customer_id": customer_id,
                "customer_name": customer_name or "Unknown",
                "customer_email": customer_email or "",
                "customer_phone": _normalize_phone(customer_phone),
            },
        }
        if order_id:
            payload["order_id"] = order_id
        if order_note:
            payload["order_note"] = order_note
        if order_tags:
            payload["order_tags"] = order_tags
        if return_url:
            payload["order_meta"] = {"return_url": return_url}

        try:
            async with httpx.AsyncClient() as client:
                response = await client.post(
                    f"{self.base_url}/orders",
                    json=payload,
                    headers=self.headers,
                    timeout=15.0,
                )
        except httpx.HTTPError as e:
            logger.error(f"Cashfree order request failed: {e}")
            raise PaymentGatewayError("Failed to create payment order") from e

        if response.status_code not in (200, 201):
            logger.error(f"Cashfree API Error {response.status_code}: {response.text}")
            raise PaymentGatewayError("Failed to create payment order")

        data = response.json()
        if not data.get("order_id"):
            logger.error(f"Cashfree order response missing order_id: {data}")
            raise PaymentGatewayError("Failed to create payment order")

        logger.info(f"Cashfree order created: {data['order_id']} amount={payload['order_amount']}")
        return data


def _normalize_phone(phone: Optional[str]) -> str:
    """Cashfree wants a bare 10 digit Indian number."""
    if not phone:
        return "9999999999"
    digits = "".join(ch for ch in phone if ch.isdigit())
    if len(digits) > 10 and digits.startswith("91"):
        digits = digits[2:]
    return digits or "9999999999"


def verify_webhook_signature(raw_body: bytes, timestamp: str, signature: str) -> bool:
    """
    Verify a Cashfree webhook signature.

    Cashfree signs ``timestamp + raw body`` with HMAC-SHA256 and sends the
    base64 digest in ``x-webhook-signature``.
    """
    if not settings.cashfree_webhook_secret:
        logger.warning("Cashfree webhook secret not configured")
        return True  # Skip verification in development

    if not signature:
        return False

    message = (timestamp or "").encode() + raw_body
    expected_signature = base64.b64encode(
        hmac.new(
            settings.cashfree_webhook_secret.encode(),
            message,
            hashlib.sha256,
        ).digest()
    ).decode()

    return hmac.compare_digest(expected_signature, signature)


def verify_payment_signature(order_id: str, payment_id: str, signature: str) -> bool:
    """Verify a client-supplied hex HMAC-SHA256 over ``order_id|payment_id``."""
    if not settings.cashfree_webhook_secret:
        logger.error("Cashfree webhook secret not configured, rejecting client signature")
        return False

    expected_signature = hmac.new(
        settings.cashfree_webhook_secret.encode(),
        f"{order_id}|{payment_id}".encode(),
        hashlib.sha256,
    ).hexdigest()

    return hmac.compare_digest(expected_signature, signature or "")

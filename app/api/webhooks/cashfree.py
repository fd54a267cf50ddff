"""
Cashfree Payment Webhook Handler.
Verifies signatures and reconciles payment, transfer and subscription
order events.
"""

import json
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Request, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.fsm.states import WebhookEventType
from app.redis import is_webhook_processed, mark_webhook_processed
from app.services.cashfree_service import verify_webhook_signature
from app.services.payment_service import PaymentService
from app.services.reconciliation_service import PaymentReconciler

router = APIRouter()
logger = logging.getLogger(__name__)

SUBSCRIPTION_FAILURE_STATUSES = {"FAILED", "EXPIRED", "CANCELLED"}


@router.post("/payment-webhook")
async def cashfree_payment_webhook(
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    """
    Handle Cashfree payment webhook events.

    Key events:
    - PAYMENT_SUCCESS_WEBHOOK: complete booking, subscription or swipe pack
    - PAYMENT_FAILED_WEBHOOK / PAYMENT_USER_DROPPED_WEBHOOK: fail and roll back
    - TRANSFER_FAILED / TRANSFER_REJECTED / TRANSFER_REVERSED: fail by transfer id

    Unknown event types are acknowledged so the gateway does not retry them.
    """
    try:
        # Signature covers the exact bytes received
        body = await request.body()
        signature = request.headers.get("x-webhook-signature", "")
        timestamp = request.headers.get("x-webhook-timestamp", "")

        if not verify_webhook_signature(body, timestamp, signature):
            logger.error("Invalid Cashfree webhook signature")
            return JSONResponse(status_code=401, content={"error": "Invalid signature"})

        try:
            event = json.loads(body)
        except ValueError:
            logger.error("Cashfree webhook body is not valid JSON")
            return JSONResponse(status_code=400, content={"error": "Invalid payload"})

        if not isinstance(event, dict):
            return JSONResponse(status_code=400, content={"error": "Invalid payload"})

        event_type = event.get("type")
        try:
            webhook_event = WebhookEventType(event_type)
        except ValueError:
            logger.info(f"Unhandled Cashfree event: {event_type}")
            return {"received": True}

        logger.info(f"Cashfree webhook received: {event_type}")

        delivery_key = _delivery_key(webhook_event, event)
        if await is_webhook_processed(delivery_key):
            logger.info(f"Duplicate delivery {delivery_key} ignored")
            return {"success": True}

        if webhook_event == WebhookEventType.PAYMENT_SUCCESS:
            response = await handle_payment_success(event, db)
        elif webhook_event.is_transfer:
            response = await handle_transfer_failure(event, webhook_event, db)
        else:
            response = await handle_payment_failure(event, webhook_event, db)

        if response.status_code == 200:
            await mark_webhook_processed(delivery_key)
        return response

    except Exception as e:
        logger.error(f"Error processing Cashfree webhook: {e}", exc_info=True)
        return JSONResponse(status_code=500, content={"error": "Webhook processing failed"})


@router.post("/subscription-webhook")
async def cashfree_subscription_webhook(
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    """
    Handle Cashfree order notifications for subscription checkouts.

    The outcome comes from data.payment.payment_status:
    - SUCCESS: verify and activate the package
    - FAILED / EXPIRED / CANCELLED: fail the PENDING subscription payment
    - anything else: acknowledge and wait for a final status
    """
    try:
        body = await request.body()
        signature = request.headers.get("x-webhook-signature", "")
        timestamp = request.headers.get("x-webhook-timestamp", "")

        if not verify_webhook_signature(body, timestamp, signature):
            logger.error("Invalid Cashfree subscription webhook signature")
            return JSONResponse(status_code=401, content={"error": "Invalid signature"})

        try:
            event = json.loads(body)
        except ValueError:
            return JSONResponse(status_code=400, content={"error": "Invalid payload"})

        if not isinstance(event, dict):
            return JSONResponse(status_code=400, content={"error": "Invalid payload"})

        data = event.get("data") or {}
        order_id = (data.get("order") or {}).get("order_id")
        payment = data.get("payment") or {}
        payment_id = payment.get("cf_payment_id") or payment.get("payment_id")
        payment_status = payment.get("payment_status")

        if not order_id:
            logger.warning("Subscription webhook without order id ignored")
            return {"success": True}

        logger.info(
            f"Subscription webhook for order {order_id}: {payment_status}",
            extra={"context": {"order_id": order_id, "payment_status": payment_status}},
        )

        payments = PaymentService(db)

        if payment_status in SUBSCRIPTION_FAILURE_STATUSES:
            await payments.fail_subscription_payment(
                order_id, f"PAYMENT_{payment_status}", payment.get("payment_message")
            )
            return {"success": True}

        if payment_status != "SUCCESS":
            return {"success": True}

        if not payment_id:
            logger.error(f"Successful subscription order {order_id} has no payment id")
            await payments.fail_subscription_payment(order_id, "MISSING_PAYMENT_ID")
            return {"success": True}

        result = await PaymentReconciler(db, payments).reconcile_subscription(order_id, payment_id)
        if not result.success:
            logger.error(f"Subscription verification failed for order {order_id}: {result.error}")
            return JSONResponse(status_code=400, content={"error": result.error})

        return {"success": True}

    except Exception as e:
        logger.error(f"Error processing subscription webhook: {e}", exc_info=True)
        return JSONResponse(status_code=500, content={"error": "Webhook processing failed"})


async def handle_payment_success(event: Dict[str, Any], db: AsyncSession) -> JSONResponse:
    """
    Process PAYMENT_SUCCESS_WEBHOOK.

    Payload contains:
    - data.order: order_id and order_tags (pkgId / bid)
    - data.payment: cf_payment_id
    """
    try:
        data = event.get("data") or {}
        order = data.get("order") or {}
        payment = data.get("payment") or {}

        order_id = order.get("order_id")
        payment_id = payment.get("cf_payment_id")
        order_tags = order.get("order_tags") or {}

        reconciler = PaymentReconciler(db)
        result = await reconciler.reconcile_success(order_id, payment_id, order_tags)

        if not result.success:
            logger.error(f"Payment verification failed for order {order_id}: {result.error}")
            return JSONResponse(status_code=400, content={"error": result.error})

        logger.info(
            f"Payment success applied for order {order_id}",
            extra={"context": {"order_id": order_id, "target": result.target, "payment_id": payment_id}},
        )
        return JSONResponse(content={"success": True})

    except Exception as e:
        logger.error(f"Error handling payment success: {e}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to process payment success"},
        )


async def handle_payment_failure(
    event: Dict[str, Any],
    webhook_event: WebhookEventType,
    db: AsyncSession,
) -> JSONResponse:
    """Process PAYMENT_FAILED_WEBHOOK and PAYMENT_USER_DROPPED_WEBHOOK."""
    try:
        data = event.get("data") or {}
        order_id = _payment_order_id(data)

        if webhook_event == WebhookEventType.PAYMENT_USER_DROPPED:
            reason = "User dropped payment"
        else:
            reason = (data.get("error_details") or {}).get("error_description")

        if order_id:
            logger.info(
                f"Failing order {order_id}",
                extra={"context": {"order_id": order_id, "failure_type": webhook_event.failure_type}},
            )
            await PaymentService(db).mark_order_failed(order_id, webhook_event.failure_type, reason)
        else:
            logger.warning(f"{webhook_event.value} without order id ignored")

        return JSONResponse(content={"success": True})

    except Exception as e:
        logger.error(f"Error handling {webhook_event.value}: {e}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to process payment failure"},
        )


async def handle_transfer_failure(
    event: Dict[str, Any],
    webhook_event: WebhookEventType,
    db: AsyncSession,
) -> JSONResponse:
    """
    Process TRANSFER_FAILED, TRANSFER_REJECTED and TRANSFER_REVERSED.
    The transfer id is looked up in the same order id columns as payments.
    """
    try:
        data = event.get("data") or {}
        transfer_id = event.get("transferId") or data.get("transfer_id")
        reason = event.get("reason") or data.get("reason")

        if transfer_id:
            await PaymentService(db).mark_order_failed(
                str(transfer_id), webhook_event.failure_type, reason
            )
        else:
            logger.warning(f"{webhook_event.value} without transfer id ignored")

        return JSONResponse(content={"success": True})

    except Exception as e:
        logger.error(f"Error handling {webhook_event.value}: {e}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to process transfer failure"},
        )


def _payment_order_id(data: Dict[str, Any]) -> Optional[str]:
    payment = data.get("payment") or {}
    order = data.get("order") or {}
    return payment.get("order_id") or order.get("order_id")


def _delivery_key(webhook_event: WebhookEventType, event: Dict[str, Any]) -> str:
    data = event.get("data") or {}
    if webhook_event.is_transfer:
        ref = event.get("transferId") or data.get("transfer_id")
        return f"{webhook_event.value}:{ref}"
    payment = data.get("payment") or {}
    return f"{webhook_event.value}:{_payment_order_id(data)}:{payment.get('cf_payment_id')}"

"""
Tests for the Cashfree payment webhook handler.
"""

import json
import uuid
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import pytest_asyncio
from sqlalchemy import delete, select, func

from app.fsm.states import BookingStatus, PaymentStatus
from app.models.booking import Booking, TicketData
from app.models.payment import GatewayOrder, Payment, SubscriptionPayment, SwipePurchase
from app.models.social import UserPreference
from app.services.order_service import OrderService

from helpers import fake_cashfree_order, sign_payment, sign_webhook

WEBHOOK_URL = "/api/cashfree/payment-webhook"
SUBSCRIPTION_WEBHOOK_URL = "/api/cashfree/subscription-webhook"


def success_event(order_id, payment_id=5551234, tags=None):
    return {
        "type": "PAYMENT_SUCCESS_WEBHOOK",
        "event_time": "2024-05-01T10:00:00+05:30",
        "data": {
            "order": {
                "order_id": order_id,
                "order_amount": 100.0,
                "order_currency": "INR",
                "order_tags": tags,
            },
            "payment": {
                "cf_payment_id": payment_id,
                "payment_status": "SUCCESS",
            },
        },
    }


def failed_event(order_id, description="Insufficient funds"):
    return {
        "type": "PAYMENT_FAILED_WEBHOOK",
        "data": {
            "order": {"order_id": order_id},
            "payment": {"order_id": order_id, "cf_payment_id": 777, "payment_status": "FAILED"},
            "error_details": {"error_description": description},
        },
    }


async def post_signed(client, payload, timestamp="1714550000", signature=None, url=WEBHOOK_URL):
    body = json.dumps(payload).encode()
    headers = {
        "Content-Type": "application/json",
        "x-webhook-timestamp": timestamp,
        "x-webhook-signature": signature if signature is not None else sign_webhook(body, timestamp),
    }
    return await client.post(url, content=body, headers=headers)


@pytest_asyncio.fixture
async def booking_order(db, make_user, event):
    cashfree = MagicMock()
    cashfree.create_order = AsyncMock(side_effect=fake_cashfree_order)
    attendee = await make_user()
    return await OrderService(db, cashfree=cashfree).create_booking_order(
        attendee, event.id, 2, Decimal("100.00")
    )


@pytest.mark.asyncio
async def test_invalid_signature_rejected(client, booking_order):
    response = await post_signed(
        client, success_event(booking_order["orderId"]), signature="bm90LWEtc2lnbmF0dXJl"
    )

    assert response.status_code == 401
    assert response.json() == {"error": "Invalid signature"}


@pytest.mark.asyncio
async def test_missing_signature_rejected(client):
    body = json.dumps(success_event("x")).encode()
    response = await client.post(WEBHOOK_URL, content=body)

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_invalid_json(client):
    body = b"not json"
    response = await client.post(
        WEBHOOK_URL,
        content=body,
        headers={"x-webhook-timestamp": "1", "x-webhook-signature": sign_webhook(body, "1")},
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid payload"}


@pytest.mark.asyncio
async def test_unknown_event_acknowledged(client):
    response = await post_signed(client, {"type": "REFUND_STATUS_WEBHOOK", "data": {}})

    assert response.status_code == 200
    assert response.json() == {"received": True}


@pytest.mark.asyncio
async def test_payment_success_confirms_booking(client, db, booking_order, host):
    response = await post_signed(
        client,
        success_event(booking_order["orderId"], tags={"bid": booking_order["bookingId"]}),
    )

    assert response.status_code == 200
    assert response.json() == {"success": True}

    booking = await db.get(Booking, uuid.UUID(booking_order["bookingId"]))
    assert booking.status == BookingStatus.CONFIRMED.value
    await db.refresh(host)
    assert host.wallet_balance == Decimal("95.00")


@pytest.mark.asyncio
async def test_payment_success_redelivery(client, db, booking_order, host):
    payload = success_event(booking_order["orderId"])

    first = await post_signed(client, payload)
    second = await post_signed(client, payload)

    assert first.status_code == 200
    assert second.status_code == 200
    await db.refresh(host)
    assert host.wallet_balance == Decimal("95.00")


@pytest.mark.asyncio
async def test_success_for_unknown_order(client):
    response = await post_signed(client, success_event("order_nobody_knows"))

    assert response.status_code == 200
    assert response.json() == {"success": True}


@pytest.mark.asyncio
async def test_payment_failed_rolls_back_booking(client, db, booking_order):
    response = await post_signed(client, failed_event(booking_order["orderId"]))

    assert response.status_code == 200
    booking_id = uuid.UUID(booking_order["bookingId"])
    payment = (await db.execute(
        select(Payment).where(Payment.booking_id == booking_id)
    )).scalar_one()
    assert payment.status == PaymentStatus.FAILED.value
    assert payment.failure_reason == "PAYMENT_FAILED: Insufficient funds"
    tickets = await db.scalar(
        select(func.count()).select_from(TicketData).where(TicketData.booking_id == booking_id)
    )
    assert tickets == 0


@pytest.mark.asyncio
async def test_success_after_failure_is_acknowledged(client, db, booking_order):
    await post_signed(client, failed_event(booking_order["orderId"]))
    response = await post_signed(client, success_event(booking_order["orderId"]))

    assert response.status_code == 200
    assert response.json() == {"success": True}
    payment = (await db.execute(
        select(Payment).where(Payment.cashfree_order_id == booking_order["orderId"])
    )).scalar_one()
    assert payment.status == PaymentStatus.FAILED.value


@pytest.mark.asyncio
async def test_success_after_failure_same_with_or_without_registry(client, db, booking_order):
    await post_signed(client, failed_event(booking_order["orderId"]))
    registered = await post_signed(client, success_event(booking_order["orderId"], payment_id=1))

    await db.execute(
        delete(GatewayOrder).where(GatewayOrder.order_id == booking_order["orderId"])
    )
    await db.commit()
    legacy = await post_signed(client, success_event(booking_order["orderId"], payment_id=2))

    assert registered.status_code == legacy.status_code == 200
    assert registered.json() == legacy.json() == {"success": True}


@pytest.mark.asyncio
async def test_user_dropped(client, db, booking_order):
    payload = {
        "type": "PAYMENT_USER_DROPPED_WEBHOOK",
        "data": {"payment": {"order_id": booking_order["orderId"]}},
    }

    response = await post_signed(client, payload)

    assert response.status_code == 200
    payment = (await db.execute(
        select(Payment).where(Payment.cashfree_order_id == booking_order["orderId"])
    )).scalar_one()
    assert payment.failure_reason == "USER_DROPPED: User dropped payment"


@pytest.mark.asyncio
async def test_transfer_failure_by_transfer_id(client, db, make_user, package):
    user = await make_user()
    subscription_payment = SubscriptionPayment(
        user_id=user.id,
        package_id=package.id,
        cashfree_order_id="transfer_42",
        status=PaymentStatus.PENDING.value,
        amount=package.price,
    )
    db.add(subscription_payment)
    await db.commit()

    response = await post_signed(
        client,
        {"type": "TRANSFER_REVERSED", "transferId": "transfer_42", "reason": "Bank rejected"},
    )

    assert response.status_code == 200
    await db.refresh(subscription_payment)
    assert subscription_payment.status == PaymentStatus.FAILED.value
    assert subscription_payment.failure_reason == "TRANSFER_REVERSED: Bank rejected"


@pytest.mark.asyncio
async def test_cached_delivery_skips_processing(client, db, booking_order):
    with patch(
        "app.api.webhooks.cashfree.is_webhook_processed",
        new=AsyncMock(return_value=True),
    ):
        response = await post_signed(client, failed_event(booking_order["orderId"]))

    assert response.status_code == 200
    payment = (await db.execute(
        select(Payment).where(Payment.cashfree_order_id == booking_order["orderId"])
    )).scalar_one()
    assert payment.status == PaymentStatus.PENDING.value


@pytest.mark.asyncio
async def test_processed_delivery_is_cached(client, booking_order):
    mark = AsyncMock()
    with patch("app.api.webhooks.cashfree.mark_webhook_processed", new=mark):
        await post_signed(client, success_event(booking_order["orderId"], payment_id=99))

    mark.assert_awaited_once_with(f"PAYMENT_SUCCESS_WEBHOOK:{booking_order['orderId']}:99")


@pytest_asyncio.fixture
async def swipe_order(db, make_user):
    cashfree = MagicMock()
    cashfree.create_order = AsyncMock(side_effect=fake_cashfree_order)
    buyer = await make_user()
    order = await OrderService(db, cashfree=cashfree).create_swipe_purchase_order(buyer, 10)
    return buyer, order


async def _preferences(db, user):
    return (await db.execute(
        select(UserPreference).where(UserPreference.user_id == user.id)
    )).scalar_one()


@pytest.mark.asyncio
async def test_swipe_pack_redelivery_grants_once(client, db, swipe_order):
    buyer, order = swipe_order
    payload = success_event(order["orderId"], payment_id=4242)

    first = await post_signed(client, payload)
    preferences = await _preferences(db, buyer)
    assert preferences.daily_swipe_limit == 13

    # Limit moved on since the grant; a redelivery must not reapply it
    preferences.daily_swipe_limit = 5
    await db.commit()
    second = await post_signed(client, payload)

    assert first.status_code == second.status_code == 200
    await db.refresh(preferences)
    assert preferences.daily_swipe_limit == 5


@pytest.mark.asyncio
async def test_webhook_after_client_verification_grants_once(client, db, swipe_order):
    buyer, order = swipe_order

    response = await client.put(
        "/api/social/purchase-swipes",
        json={
            "orderId": order["orderId"],
            "paymentId": "pay_77",
            "signature": sign_payment(order["orderId"], "pay_77"),
        },
        headers={"X-User-Id": str(buyer.id)},
    )
    assert response.status_code == 200

    preferences = await _preferences(db, buyer)
    preferences.daily_swipe_limit = 5
    await db.commit()

    response = await post_signed(client, success_event(order["orderId"], payment_id="pay_77"))

    assert response.status_code == 200
    assert response.json() == {"success": True}
    await db.refresh(preferences)
    assert preferences.daily_swipe_limit == 5
    purchase = await db.get(SwipePurchase, uuid.UUID(order["purchaseId"]))
    assert purchase.payment_status == PaymentStatus.COMPLETED.value


def subscription_event(order_id, payment_status, payment_id=880011, message=None):
    return {
        "type": "PAYMENT_SUCCESS_WEBHOOK" if payment_status == "SUCCESS" else "PAYMENT_FAILED_WEBHOOK",
        "data": {
            "order": {"order_id": order_id},
            "payment": {
                "cf_payment_id": payment_id,
                "payment_status": payment_status,
                "payment_message": message,
            },
        },
    }


@pytest_asyncio.fixture
async def subscription_order(db, make_user, package):
    cashfree = MagicMock()
    cashfree.create_order = AsyncMock(side_effect=fake_cashfree_order)
    subscriber = await make_user(free_swipes_remaining=0)
    order = await OrderService(db, cashfree=cashfree).create_subscription_order(
        subscriber, package.id
    )
    return subscriber, order


async def _subscription_payment(db, order_id):
    return (await db.execute(
        select(SubscriptionPayment).where(SubscriptionPayment.cashfree_order_id == order_id)
    )).scalar_one()


class TestSubscriptionWebhook:
    @pytest.mark.asyncio
    async def test_success_activates_package(self, client, db, subscription_order, package):
        subscriber, order = subscription_order

        response = await post_signed(
            client, subscription_event(order["orderId"], "SUCCESS"), url=SUBSCRIPTION_WEBHOOK_URL
        )

        assert response.status_code == 200
        assert response.json() == {"success": True}
        await db.refresh(subscriber)
        assert subscriber.active_package_id == package.id
        payment = await _subscription_payment(db, order["orderId"])
        assert payment.status == PaymentStatus.COMPLETED.value
        assert payment.cashfree_payment_id == "880011"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payment_status", ["FAILED", "EXPIRED", "CANCELLED"])
    async def test_final_failure_statuses(self, client, db, subscription_order, payment_status):
        subscriber, order = subscription_order

        response = await post_signed(
            client,
            subscription_event(order["orderId"], payment_status, message="Order closed"),
            url=SUBSCRIPTION_WEBHOOK_URL,
        )

        assert response.status_code == 200
        payment = await _subscription_payment(db, order["orderId"])
        assert payment.status == PaymentStatus.FAILED.value
        assert payment.failure_reason == f"PAYMENT_{payment_status}: Order closed"
        await db.refresh(subscriber)
        assert subscriber.active_package_id is None

    @pytest.mark.asyncio
    async def test_non_final_status_is_acknowledged(self, client, db, subscription_order):
        _, order = subscription_order

        response = await post_signed(
            client, subscription_event(order["orderId"], "PENDING"), url=SUBSCRIPTION_WEBHOOK_URL
        )

        assert response.status_code == 200
        payment = await _subscription_payment(db, order["orderId"])
        assert payment.status == PaymentStatus.PENDING.value

    @pytest.mark.asyncio
    async def test_success_without_payment_id_fails_order(self, client, db, subscription_order):
        _, order = subscription_order

        response = await post_signed(
            client,
            subscription_event(order["orderId"], "SUCCESS", payment_id=None),
            url=SUBSCRIPTION_WEBHOOK_URL,
        )

        assert response.status_code == 200
        payment = await _subscription_payment(db, order["orderId"])
        assert payment.status == PaymentStatus.FAILED.value
        assert payment.failure_reason == "MISSING_PAYMENT_ID"

    @pytest.mark.asyncio
    async def test_success_after_expiry_is_acknowledged(self, client, db, subscription_order):
        subscriber, order = subscription_order
        await post_signed(
            client, subscription_event(order["orderId"], "EXPIRED"), url=SUBSCRIPTION_WEBHOOK_URL
        )

        response = await post_signed(
            client, subscription_event(order["orderId"], "SUCCESS"), url=SUBSCRIPTION_WEBHOOK_URL
        )

        assert response.status_code == 200
        await db.refresh(subscriber)
        assert subscriber.active_package_id is None

    @pytest.mark.asyncio
    async def test_booking_rows_are_untouched(self, client, db, booking_order):
        response = await post_signed(
            client,
            subscription_event(booking_order["orderId"], "CANCELLED"),
            url=SUBSCRIPTION_WEBHOOK_URL,
        )

        assert response.status_code == 200
        payment = (await db.execute(
            select(Payment).where(Payment.cashfree_order_id == booking_order["orderId"])
        )).scalar_one()
        assert payment.status == PaymentStatus.PENDING.value

    @pytest.mark.asyncio
    async def test_missing_order_id(self, client):
        response = await post_signed(client, {"data": {}}, url=SUBSCRIPTION_WEBHOOK_URL)

        assert response.status_code == 200
        assert response.json() == {"success": True}

    @pytest.mark.asyncio
    async def test_invalid_signature(self, client, subscription_order):
        _, order = subscription_order

        response = await post_signed(
            client,
            subscription_event(order["orderId"], "SUCCESS"),
            signature="bm90LWEtc2lnbmF0dXJl",
            url=SUBSCRIPTION_WEBHOOK_URL,
        )

        assert response.status_code == 401

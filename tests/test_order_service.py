"""
Tests for OrderService and the Cashfree client.
"""

import uuid
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from sqlalchemy import select, func

from app.exceptions import NotFound, PaymentGatewayError, ValidationFailed
from app.fsm.states import OrderKind, PaymentStatus
from app.models.booking import TicketData
from app.models.payment import GatewayOrder, SwipePurchase
from app.services.cashfree_service import (
    CashfreeService,
    verify_payment_signature,
    verify_webhook_signature,
)
from app.services.order_service import OrderService, get_swipe_price

from helpers import fake_cashfree_order, sign_payment, sign_webhook


@pytest.fixture
def cashfree():
    service = MagicMock()
    service.create_order = AsyncMock(side_effect=fake_cashfree_order)
    return service


def test_swipe_price():
    assert get_swipe_price(1) == 10
    assert get_swipe_price(15) == 150


@pytest.mark.asyncio
async def test_booking_order_registers_kind(db, cashfree, make_user, event):
    attendee = await make_user()

    order = await OrderService(db, cashfree=cashfree).create_booking_order(
        attendee, event.id, 2, Decimal("250.00")
    )

    assert len(order["orderId"]) <= 45
    assert order["paymentSessionId"] == "session_test"

    registered = (await db.execute(
        select(GatewayOrder).where(GatewayOrder.order_id == order["orderId"])
    )).scalar_one()
    assert registered.order_kind == OrderKind.BOOKING
    assert registered.entity_id == uuid.UUID(order["bookingId"])

    tickets = await db.scalar(select(func.count()).select_from(TicketData))
    assert tickets == 2

    kwargs = cashfree.create_order.call_args.kwargs
    assert kwargs["order_tags"]["bid"] == order["bookingId"]
    assert kwargs["amount"] == 250.0


@pytest.mark.asyncio
async def test_booking_order_unknown_event(db, cashfree, make_user):
    attendee = await make_user()

    with pytest.raises(NotFound):
        await OrderService(db, cashfree=cashfree).create_booking_order(
            attendee, uuid.uuid4(), 1, Decimal("10.00")
        )
    cashfree.create_order.assert_not_called()


@pytest.mark.asyncio
async def test_subscription_order_tags(db, cashfree, make_user, package):
    user = await make_user()

    order = await OrderService(db, cashfree=cashfree).create_subscription_order(user, package.id)

    assert order["orderId"].startswith("PKG_")
    tags = cashfree.create_order.call_args.kwargs["order_tags"]
    assert tags["pkgId"] == str(package.id)
    assert tags["uid"] == str(user.id)


@pytest.mark.asyncio
async def test_subscription_order_inactive_package(db, cashfree, make_user, package):
    package.is_active = False
    await db.commit()
    user = await make_user()

    with pytest.raises(NotFound) as exc:
        await OrderService(db, cashfree=cashfree).create_subscription_order(user, package.id)

    assert exc.value.message == "Package not found or inactive"


@pytest.mark.asyncio
async def test_swipe_purchase_order(db, cashfree, make_user):
    user = await make_user()

    order = await OrderService(db, cashfree=cashfree).create_swipe_purchase_order(user, 7)

    assert order["amount"] == 70
    purchase = await db.get(SwipePurchase, uuid.UUID(order["purchaseId"]))
    assert purchase.payment_status == PaymentStatus.PENDING.value
    assert purchase.swipe_count == 7
    tags = cashfree.create_order.call_args.kwargs["order_tags"]
    assert tags == {"swipeCount": "7", "userId": str(user.id)}


@pytest.mark.asyncio
@pytest.mark.parametrize("count", [0, 101])
async def test_swipe_purchase_count_bounds(db, cashfree, make_user, count):
    user = await make_user()

    with pytest.raises(ValidationFailed):
        await OrderService(db, cashfree=cashfree).create_swipe_purchase_order(user, count)


@pytest.mark.asyncio
async def test_gateway_failure_writes_nothing(db, make_user):
    user = await make_user()
    cashfree = MagicMock()
    cashfree.create_order = AsyncMock(side_effect=PaymentGatewayError("Failed to create payment order"))

    with pytest.raises(PaymentGatewayError):
        await OrderService(db, cashfree=cashfree).create_swipe_purchase_order(user, 3)

    assert await db.scalar(select(func.count()).select_from(SwipePurchase)) == 0


class TestCashfreeClient:
    """Tests for the HTTP client against a mocked transport."""

    @pytest.mark.asyncio
    async def test_create_order_payload(self):
        response = httpx.Response(
            200,
            json={"order_id": "SWP_1", "payment_session_id": "sess_1"},
            request=httpx.Request("POST", "https://sandbox.cashfree.com/pg/orders"),
        )
        with patch("httpx.AsyncClient.post", new=AsyncMock(return_value=response)) as post:
            data = await CashfreeService().create_order(
                amount=30,
                customer_id="user-1",
                customer_email="a@example.com",
                customer_phone="+91 98765 43210",
                order_id="SWP_1",
                order_tags={"swipeCount": "3"},
            )

        assert data["payment_session_id"] == "sess_1"
        payload = post.call_args.kwargs["json"]
        assert payload["order_amount"] == 30.0
        assert payload["customer_details"]["customer_phone"] == "9876543210"
        assert payload["order_tags"] == {"swipeCount": "3"}
        assert post.call_args.kwargs["headers"]["x-client-id"] == "test-client-id"

    @pytest.mark.asyncio
    async def test_create_order_http_error(self):
        response = httpx.Response(
            400,
            json={"message": "order_amount invalid"},
            request=httpx.Request("POST", "https://sandbox.cashfree.com/pg/orders"),
        )
        with patch("httpx.AsyncClient.post", new=AsyncMock(return_value=response)):
            with pytest.raises(PaymentGatewayError):
                await CashfreeService().create_order(
                    amount=0,
                    customer_id="user-1",
                    customer_email=None,
                    customer_phone=None,
                )


class TestSignatures:
    def test_webhook_signature(self):
        body = b'{"type":"PAYMENT_SUCCESS_WEBHOOK"}'
        signature = sign_webhook(body, "1700000000")

        assert verify_webhook_signature(body, "1700000000", signature)
        assert not verify_webhook_signature(body, "1700000001", signature)
        assert not verify_webhook_signature(body + b" ", "1700000000", signature)
        assert not verify_webhook_signature(body, "1700000000", "")

    def test_payment_signature(self):
        signature = sign_payment("SWP_1", "pay_1")

        assert verify_payment_signature("SWP_1", "pay_1", signature)
        assert not verify_payment_signature("SWP_1", "pay_2", signature)
        assert not verify_payment_signature("SWP_1", "pay_1", sign_payment("SWP_1", "pay_1", "other"))

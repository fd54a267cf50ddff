"""
Tests for status and event enums.
"""

import pytest
from app.fsm.states import (
    PaymentStatus,
    OrderKind,
    PackageDuration,
    SwipeAction,
    WebhookEventType,
)


class TestPaymentStatus:
    """Tests for PaymentStatus enum."""

    def test_all_states_defined(self):
        assert {s.value for s in PaymentStatus} == {"PENDING", "COMPLETED", "FAILED"}


class TestPackageDuration:
    """Tests for subscription durations."""

    @pytest.mark.parametrize(
        "duration,months",
        [
            (PackageDuration.MONTHLY, 1),
            (PackageDuration.QUARTERLY, 3),
            (PackageDuration.YEARLY, 12),
            (PackageDuration.LIFETIME, 1200),
        ],
    )
    def test_months(self, duration, months):
        assert duration.months == months

    def test_from_stored_value(self):
        assert PackageDuration("QUARTERLY").months == 3


class TestWebhookEventType:
    """Tests for Cashfree webhook event types."""

    def test_wire_values(self):
        assert WebhookEventType("PAYMENT_SUCCESS_WEBHOOK") is WebhookEventType.PAYMENT_SUCCESS
        assert WebhookEventType("PAYMENT_FAILED_WEBHOOK") is WebhookEventType.PAYMENT_FAILED
        assert WebhookEventType("TRANSFER_REVERSED") is WebhookEventType.TRANSFER_REVERSED

    def test_unknown_type_rejected(self):
        with pytest.raises(ValueError):
            WebhookEventType("REFUND_STATUS_WEBHOOK")

    def test_transfer_events(self):
        transfers = {e for e in WebhookEventType if e.is_transfer}
        assert transfers == {
            WebhookEventType.TRANSFER_FAILED,
            WebhookEventType.TRANSFER_REJECTED,
            WebhookEventType.TRANSFER_REVERSED,
        }

    def test_failure_labels(self):
        assert WebhookEventType.PAYMENT_FAILED.failure_type == "PAYMENT_FAILED"
        assert WebhookEventType.PAYMENT_USER_DROPPED.failure_type == "USER_DROPPED"
        assert WebhookEventType.TRANSFER_REJECTED.failure_type == "TRANSFER_REJECTED"


def test_order_kinds():
    assert [k.value for k in OrderKind] == ["BOOKING", "SUBSCRIPTION", "SWIPE_PURCHASE"]


def test_swipe_action_values():
    assert SwipeAction("LIKE") is SwipeAction.LIKE
    assert SwipeAction("PASS") is SwipeAction.PASS

"""Tests for the Order aggregate: placement, invariants, transitions and modification."""

from decimal import Decimal

import pytest
from orders import pricing
from orders.exceptions import InvalidOrderRequest, InvalidTransition, PaymentFailure
from orders.inventory.coordinator import ReleaseFailure, ReleaseReport
from orders.order.events import (
    DiscountApplied,
    InventoryReleased,
    OrderCancelled,
    OrderPlaced,
    OrderShipped,
    OrderStatusChanged,
    PaymentStatusChanged,
)
from orders.order.order import Order, OrderLine, ShippingDetails, generate_order_number
from orders.order.state_machine import OrderStatus, PaymentStatus
from protean.exceptions import ValidationError

SHIPPING = {
    "first_name": "Ada",
    "last_name": "Lovelace",
    "email": "ada@example.com",
    "address": "1 Main St",
    "city": "Springfield",
    "state": "Nowhere",
    "country": "Freedonia",
}


def _make_order(lines=None, **overrides):
    if lines is None:
        lines = [OrderLine.from_snapshot("prod-a", "Product A", 2, Decimal("10.00"), product_sku="SKU-A")]
    details = ShippingDetails(**SHIPPING)
    breakdown = pricing.price(
        [{"unit_price": line.unit_price, "quantity": line.quantity} for line in lines],
        region=details.region,
    )
    defaults = {
        "user_id": "user-1",
        "order_number": "ORD-20260115120000-1234",
        "lines": lines,
        "shipping_details": details,
        "breakdown": breakdown,
    }
    defaults.update(overrides)
    return Order.place(**defaults)


def _events(order, kind):
    return [e for e in order._events if isinstance(e, kind)]


class TestOrderNumber:
    def test_format(self):
        from datetime import UTC, datetime

        class Fixed:
            def randint(self, low, high):
                return 4321

        number = generate_order_number(datetime(2026, 3, 4, 5, 6, 7, tzinfo=UTC), rng=Fixed())
        assert number == "ORD-20260304050607-4321"


class TestPlacement:
    def test_starts_pending_on_both_axes(self):
        order = _make_order()
        assert order.status == OrderStatus.PENDING.value
        assert order.payment_status == PaymentStatus.PENDING.value
        assert order.inventory_reserved is False

    def test_amounts_follow_breakdown(self):
        order = _make_order()
        assert order.subtotal == 20.0
        assert order.tax_amount == 2.0
        assert order.shipping_amount == 15.0
        assert order.total_amount == 37.0

    def test_lines_snapshot_product(self):
        line = _make_order().lines[0]
        assert line.product_name == "Product A"
        assert line.product_sku == "SKU-A"
        assert line.total_price == 20.0

    def test_created_and_updated_at_set(self):
        order = _make_order()
        assert order.created_at is not None
        assert order.updated_at == order.created_at

    def test_raises_order_placed(self):
        event = _events(_make_order(), OrderPlaced)[0]
        assert event.order_number == "ORD-20260115120000-1234"
        assert event.total_amount == 37.0

    def test_requires_lines(self):
        with pytest.raises(InvalidOrderRequest):
            _make_order(lines=[], breakdown=pricing.price([], region=""))

    def test_region_from_shipping_details(self):
        assert _make_order().region == "Springfield, Nowhere, Freedonia"

    def test_country_defaults_to_canada(self):
        details = ShippingDetails(first_name="A", last_name="B", address="1 St", city="Toronto")
        assert details.country == "Canada"
        assert details.region == "Toronto, Canada"


class TestInvariants:
    def test_total_must_match_components(self):
        order = _make_order()
        with pytest.raises(ValidationError):
            order.total_amount = 99.0

    def test_discount_cannot_exceed_subtotal(self):
        order = _make_order()
        with pytest.raises(ValidationError):
            order._write({"discount_amount": 30.0, "total_amount": 7.0})


class TestTransitions:
    def test_confirm_raises_status_changed(self):
        order = _make_order()
        assert order.apply_transition(OrderStatus.CONFIRMED) is True
        event = _events(order, OrderStatusChanged)[-1]
        assert (event.previous_status, event.new_status) == ("PENDING", "CONFIRMED")

    def test_same_state_returns_false(self):
        order = _make_order()
        assert order.apply_transition(OrderStatus.PENDING) is False
        assert _events(order, OrderStatusChanged) == []

    def test_invalid_transition_leaves_order_untouched(self):
        order = _make_order()
        with pytest.raises(InvalidTransition):
            order.apply_transition(OrderStatus.SHIPPED, tracking_number="T-1")
        assert order.status == OrderStatus.PENDING.value

    def test_ship_records_tracking_once(self):
        order = _make_order()
        order.apply_transition(OrderStatus.CONFIRMED)
        order.apply_transition(OrderStatus.PROCESSING)
        order.apply_transition(OrderStatus.SHIPPED, tracking_number="TRACK-1")
        shipped_at = order.shipped_at

        assert order.tracking_number == "TRACK-1"
        assert shipped_at is not None
        assert _events(order, OrderShipped)[0].tracking_number == "TRACK-1"

        order.apply_transition(OrderStatus.SHIPPED, tracking_number="TRACK-1")
        assert order.shipped_at == shipped_at

    def test_cancel_cancels_unpaid_payment(self):
        order = _make_order()
        order.apply_transition(OrderStatus.CANCELLED, reason="Customer request")
        assert order.status == OrderStatus.CANCELLED.value
        assert order.payment_status == PaymentStatus.CANCELLED.value
        assert order.cancel_reason == "Customer request"
        assert order.cancelled_at is not None
        assert _events(order, OrderCancelled)[0].previous_status == "PENDING"


class TestPaymentStatus:
    def test_paid_auto_confirms(self):
        order = _make_order()
        assert order.apply_payment_status(PaymentStatus.PAID, transaction_id="TXN1") is True
        assert order.status == OrderStatus.CONFIRMED.value
        assert order.payment_transaction_id == "TXN1"
        assert order.paid_at is not None
        assert len(_events(order, PaymentStatusChanged)) == 1
        assert _events(order, OrderStatusChanged)[-1].new_status == "CONFIRMED"

    def test_repeat_is_noop(self):
        order = _make_order()
        order.apply_payment_status(PaymentStatus.PAID, transaction_id="TXN1")
        assert order.apply_payment_status(PaymentStatus.PAID, transaction_id="TXN1") is False

    def test_handle_only_while_pending(self):
        order = _make_order()
        order.record_payment_handle("PAY_1")
        assert order.payment_handle == "PAY_1"

        order.apply_payment_status(PaymentStatus.PAID)
        with pytest.raises(PaymentFailure):
            order.record_payment_handle("PAY_2")


class TestInventoryBookkeeping:
    def test_release_report_recorded_in_event(self):
        order = _make_order()
        order.mark_inventory_reserved()
        assert order.inventory_reserved is True

        report = ReleaseReport(released=[], failures=[ReleaseFailure("prod-a", 2, "boom")])
        order.mark_inventory_released(report)
        assert order.inventory_reserved is False
        assert "boom" in _events(order, InventoryReleased)[0].failed_lines


class TestModification:
    def test_update_notes(self):
        order = _make_order()
        order.update_notes("Leave at the door")
        assert order.notes == "Leave at the door"

    def test_notes_rejected_on_final_order(self):
        order = _make_order()
        order.apply_transition(OrderStatus.CANCELLED, reason="Changed my mind")
        with pytest.raises(InvalidOrderRequest):
            order.update_notes("too late")

    def test_discount_rederives_total(self):
        order = _make_order()
        granted = order.apply_discount("SAVE10", Decimal("2.00"))
        assert granted == Decimal("2.00")
        assert order.discount_amount == 2.0
        assert order.total_amount == 35.0
        assert _events(order, DiscountApplied)[0].new_total_amount == 35.0

    def test_discount_replaces_previous(self):
        order = _make_order()
        order.apply_discount("SAVE10", Decimal("2.00"))
        order.apply_discount("SAVE20", Decimal("4.00"))
        assert order.discount_code == "SAVE20"
        assert order.total_amount == 33.0

    def test_discount_capped_to_subtotal(self):
        order = _make_order()
        assert order.apply_discount("FLAT25", Decimal("25.00")) == Decimal("20.00")
        assert order.total_amount == 17.0

    def test_discount_rejected_after_payment(self):
        order = _make_order()
        order.apply_payment_status(PaymentStatus.PAID)
        with pytest.raises(InvalidOrderRequest):
            order.apply_discount("SAVE10", Decimal("2.00"))

"""Application tests for moving orders through fulfilment."""

import pytest
from orders.exceptions import InvalidOrderRequest, InvalidTransition, OrderNotFound
from orders.order.state_machine import OrderStatus, PaymentStatus


def _advance_to_processing(orchestrator, order_id):
    orchestrator.confirm_order(order_id)
    return orchestrator.process_order(order_id)


class TestHappyPath:
    def test_full_lifecycle(self, place_order, orchestrator):
        order = place_order()
        assert orchestrator.confirm_order(order.id).status == OrderStatus.CONFIRMED.value
        assert orchestrator.process_order(order.id).status == OrderStatus.PROCESSING.value

        shipped = orchestrator.ship_order(order.id, "TRACK-123")
        assert shipped.status == OrderStatus.SHIPPED.value
        assert shipped.tracking_number == "TRACK-123"
        assert shipped.shipped_at is not None

        delivered = orchestrator.deliver_order(order.id)
        assert delivered.status == OrderStatus.DELIVERED.value
        assert delivered.delivered_at is not None

    def test_confirm_twice_is_harmless(self, place_order, orchestrator):
        order = place_order()
        first = orchestrator.confirm_order(order.id)
        second = orchestrator.confirm_order(order.id)
        assert second.status == OrderStatus.CONFIRMED.value
        assert second.updated_at == first.updated_at


class TestInvalidMoves:
    def test_cannot_skip_to_shipped(self, place_order, orchestrator):
        order = place_order()
        with pytest.raises(InvalidTransition):
            orchestrator.ship_order(order.id, "TRACK-1")
        assert orchestrator.get_order(order.id).status == OrderStatus.PENDING.value

    def test_ship_requires_tracking_number(self, place_order, orchestrator):
        order = place_order()
        _advance_to_processing(orchestrator, order.id)
        with pytest.raises(InvalidOrderRequest):
            orchestrator.ship_order(order.id, None)
        assert orchestrator.get_order(order.id).status == OrderStatus.PROCESSING.value

    def test_delivered_is_terminal(self, place_order, orchestrator):
        order = place_order()
        _advance_to_processing(orchestrator, order.id)
        orchestrator.ship_order(order.id, "TRACK-1")
        orchestrator.deliver_order(order.id)
        with pytest.raises(InvalidTransition):
            orchestrator.update_status(order.id, status="PROCESSING")

    def test_unknown_order(self, orchestrator):
        with pytest.raises(OrderNotFound):
            orchestrator.confirm_order("missing")


class TestUpdateStatus:
    def test_moves_status(self, place_order, orchestrator):
        order = place_order()
        assert orchestrator.update_status(order.id, status=OrderStatus.CONFIRMED).status == "CONFIRMED"

    def test_ship_with_tracking(self, place_order, orchestrator):
        order = place_order()
        _advance_to_processing(orchestrator, order.id)
        updated = orchestrator.update_status(order.id, status="SHIPPED", tracking_number="TRACK-9")
        assert updated.tracking_number == "TRACK-9"

    def test_moves_payment_status(self, place_order, orchestrator):
        order = place_order()
        updated = orchestrator.update_status(order.id, payment_status="PAID", payment_transaction_id="TXN-1")
        assert updated.payment_status == PaymentStatus.PAID.value
        assert updated.status == OrderStatus.CONFIRMED.value
        assert updated.payment_transaction_id == "TXN-1"

    def test_requires_a_target(self, place_order, orchestrator):
        order = place_order()
        with pytest.raises(InvalidOrderRequest):
            orchestrator.update_status(order.id)

    def test_unknown_status(self, place_order, orchestrator):
        order = place_order()
        with pytest.raises(InvalidOrderRequest):
            orchestrator.update_status(order.id, status="LOST")


class TestNotes:
    def test_update_notes(self, place_order, orchestrator):
        order = place_order()
        assert orchestrator.update_order(order.id, notes="Ring the bell").notes == "Ring the bell"

    def test_notes_frozen_after_delivery(self, place_order, orchestrator):
        order = place_order()
        _advance_to_processing(orchestrator, order.id)
        orchestrator.ship_order(order.id, "TRACK-1")
        orchestrator.deliver_order(order.id)
        with pytest.raises(InvalidOrderRequest):
            orchestrator.update_order(order.id, notes="Too late")

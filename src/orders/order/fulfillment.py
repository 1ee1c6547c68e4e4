"""Order status progression — commands and handler.

Covers confirmation, processing, shipping and delivery, plus the generic
admin status update that may also move the payment status.
"""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from orders.domain import orders
from orders.exceptions import InvalidOrderRequest
from orders.order.cancellation import cancel_with_release
from orders.order.order import Order
from orders.order.state_machine import OrderStatus, PaymentStatus, plan_payment_transition, plan_transition

logger = structlog.get_logger(__name__)


@orders.command(part_of="Order")
class ConfirmOrder:
    order_id = Identifier(required=True)


@orders.command(part_of="Order")
class StartProcessing:
    order_id = Identifier(required=True)


@orders.command(part_of="Order")
class ShipOrder:
    order_id = Identifier(required=True)
    tracking_number = String(max_length=100)


@orders.command(part_of="Order")
class DeliverOrder:
    order_id = Identifier(required=True)


@orders.command(part_of="Order")
class UpdateOrderStatus:
    order_id = Identifier(required=True)
    status = String(max_length=30)
    payment_status = String(max_length=30)
    reason = String(max_length=500)
    tracking_number = String(max_length=100)
    payment_transaction_id = String(max_length=255)


def _parse(enum_cls, value, field):
    try:
        return enum_cls(value)
    except ValueError as exc:
        raise InvalidOrderRequest(f"Unknown {field}: {value}", field=field) from exc


class _PlannedView:
    """Read-only view of an order with planned field changes laid over it."""

    def __init__(self, order, changes):
        self._order = order
        self._changes = changes

    def __getattr__(self, name):
        if name in self._changes:
            return self._changes[name]
        return getattr(self._order, name)


@orders.command_handler(part_of=Order)
class FulfillmentHandler:
    def _transition(self, order_id, target, **kwargs):
        repo = current_domain.repository_for(Order)
        order = repo.get_order(order_id)
        previous = order.status
        if order.apply_transition(target, **kwargs):
            repo.add(order)
            logger.info("Order status changed", order_id=str(order.id), previous=previous, status=order.status)
        return order.status

    @handle(ConfirmOrder)
    def confirm_order(self, command):
        return self._transition(command.order_id, OrderStatus.CONFIRMED)

    @handle(StartProcessing)
    def start_processing(self, command):
        return self._transition(command.order_id, OrderStatus.PROCESSING)

    @handle(ShipOrder)
    def ship_order(self, command):
        return self._transition(command.order_id, OrderStatus.SHIPPED, tracking_number=command.tracking_number)

    @handle(DeliverOrder)
    def deliver_order(self, command):
        return self._transition(command.order_id, OrderStatus.DELIVERED)

    @handle(UpdateOrderStatus)
    def update_order_status(self, command):
        if not command.status and not command.payment_status:
            raise InvalidOrderRequest("Either status or payment_status is required", field="status")

        target = _parse(OrderStatus, command.status, "status") if command.status else None
        payment_target = (
            _parse(PaymentStatus, command.payment_status, "payment_status") if command.payment_status else None
        )

        repo = current_domain.repository_for(Order)
        order = repo.get_order(command.order_id)
        previous = (order.status, order.payment_status)

        # Both targets must be legal before stock goes back to the catalogue
        planned = order
        if target is not None:
            planned = _PlannedView(
                order,
                plan_transition(order, target, reason=command.reason, tracking_number=command.tracking_number),
            )
        if payment_target is not None:
            plan_payment_transition(planned, payment_target, transaction_id=command.payment_transaction_id)

        if target == OrderStatus.CANCELLED:
            cancel_with_release(order, command.reason)
        elif target is not None:
            order.apply_transition(target, reason=command.reason, tracking_number=command.tracking_number)

        if payment_target is not None:
            order.apply_payment_status(payment_target, transaction_id=command.payment_transaction_id)

        repo.add(order)
        logger.info(
            "Order status updated",
            order_id=str(order.id),
            previous_status=previous[0],
            status=order.status,
            previous_payment_status=previous[1],
            payment_status=order.payment_status,
        )
        return order.status

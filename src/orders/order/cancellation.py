"""Order cancellation — command and handler.

Cancelling returns reserved stock before the status change is recorded.
Per-line release failures are logged and reported, never raised; an error
that stops the release from running at all fails the whole cancellation.
"""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from orders.domain import orders
from orders.exceptions import OrderNotFound
from orders.inventory.coordinator import get_inventory_coordinator
from orders.order.order import Order
from orders.order.state_machine import OrderStatus, plan_transition

logger = structlog.get_logger(__name__)


@orders.command(part_of="Order")
class CancelOrder:
    order_id = Identifier(required=True)
    reason = String(max_length=500)
    # When set, the order must belong to this user
    user_id = Identifier()


def cancel_with_release(order, reason):
    """Cancel ``order`` in memory, releasing its reservation first.

    Returns the ``ReleaseReport``, or ``None`` when nothing was held or the
    order was already cancelled.
    """
    changes = plan_transition(order, OrderStatus.CANCELLED, reason=reason)
    if not changes:
        return None

    report = None
    if order.inventory_reserved:
        report = get_inventory_coordinator().release(order)
        order.mark_inventory_released(report)
        if not report.ok:
            logger.warning(
                "Order cancelled with unreleased inventory",
                order_id=str(order.id),
                failures=[failure.to_dict() for failure in report.failures],
            )

    order.apply_transition(OrderStatus.CANCELLED, reason=reason)
    return report


@orders.command_handler(part_of=Order)
class CancelOrderHandler:
    @handle(CancelOrder)
    def cancel_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get_order(command.order_id)

        # Someone else's order is reported as missing
        if command.user_id is not None and str(order.user_id) != str(command.user_id):
            raise OrderNotFound.by_id(command.order_id)

        report = cancel_with_release(order, command.reason)
        repo.add(order)

        logger.info(
            "Order cancelled",
            order_id=str(order.id),
            reason=order.cancel_reason,
            released=len(report.released) if report else 0,
        )
        return report

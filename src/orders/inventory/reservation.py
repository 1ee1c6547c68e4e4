"""Inventory reservation for a placed order — command and handler."""

import structlog
from protean import handle
from protean.fields import Identifier
from protean.utils.globals import current_domain

from orders.domain import orders
from orders.exceptions import InvalidOrderRequest
from orders.inventory.coordinator import get_inventory_coordinator
from orders.order.order import Order

logger = structlog.get_logger(__name__)


@orders.command(part_of="Order")
class ReserveInventory:
    order_id = Identifier(required=True)


@orders.command_handler(part_of=Order)
class ReserveInventoryHandler:
    @handle(ReserveInventory)
    def reserve_inventory(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get_order(command.order_id)

        if order.inventory_reserved:
            return False
        if order.is_final:
            raise InvalidOrderRequest(
                f"Cannot reserve inventory for order in status {order.status}",
                field="status",
                order_id=str(order.id),
            )

        get_inventory_coordinator().reserve(order)
        order.mark_inventory_reserved()
        repo.add(order)

        logger.info("Order inventory reserved", order_id=str(order.id), order_number=order.order_number)
        return True

"""Order modification — notes and discount codes.

The shipping snapshot and lines are frozen once an order is placed; only
notes and the discount may change, and never on a final order.
"""

import structlog
from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from orders import pricing
from orders.domain import orders
from orders.order.order import Order
from orders.shared.money import ZERO, to_money

logger = structlog.get_logger(__name__)


@orders.command(part_of="Order")
class UpdateOrderNotes:
    order_id = Identifier(required=True)
    notes = Text()


@orders.command(part_of="Order")
class ApplyDiscount:
    order_id = Identifier(required=True)
    code = String(max_length=50)


@orders.command_handler(part_of=Order)
class ModificationHandler:
    @handle(UpdateOrderNotes)
    def update_notes(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get_order(command.order_id)
        order.update_notes(command.notes)
        repo.add(order)

    @handle(ApplyDiscount)
    def apply_discount(self, command):
        """Returns the discount granted as a decimal string; unknown codes grant ``0.00``."""
        repo = current_domain.repository_for(Order)
        order = repo.get_order(command.order_id)

        rule = pricing.discount_rule(command.code)
        if rule is None:
            logger.warning("Unknown discount code ignored", order_id=str(order.id), code=command.code)
            return str(ZERO)

        discount = order.apply_discount(rule.code, rule.amount_for(to_money(order.subtotal)))
        repo.add(order)

        logger.info(
            "Discount applied",
            order_id=str(order.id),
            code=rule.code,
            discount=str(discount),
            total=str(order.total_amount),
        )
        return str(discount)

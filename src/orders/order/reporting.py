"""Read-side aggregates over orders: counts per status and revenue by date range."""

from datetime import datetime
from decimal import Decimal

from protean.utils.globals import current_domain

from orders.order.order import Order
from orders.order.repository import OrderCriteria
from orders.order.state_machine import OrderStatus, PaymentStatus
from orders.shared.money import ZERO, to_money


def count_orders_by_status(status, start: datetime | None = None, end: datetime | None = None) -> int:
    criteria = OrderCriteria(statuses=(OrderStatus(status).value,), created_from=start, created_to=end)
    return len(current_domain.repository_for(Order).matching(criteria))


def total_revenue(start: datetime | None = None, end: datetime | None = None) -> Decimal:
    """Sum of totals of PAID orders created within ``[start, end]``."""
    criteria = OrderCriteria(
        payment_statuses=(PaymentStatus.PAID.value,),
        created_from=start,
        created_to=end,
    )
    orders_found = current_domain.repository_for(Order).matching(criteria)
    return to_money(sum((to_money(order.total_amount) for order in orders_found), ZERO))

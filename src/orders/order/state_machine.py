"""Order and payment state machines as data.

``TRANSITIONS`` maps every allowed ``(from, to)`` order-status pair to a
validator and an effect. ``plan_transition`` consults it and returns the field
changes to apply, without touching the order. ``Order.apply_transition`` is
the only place that writes them.

    PENDING    -> CONFIRMED, CANCELLED
    CONFIRMED  -> PROCESSING, CANCELLED
    PROCESSING -> SHIPPED, CANCELLED
    SHIPPED    -> DELIVERED
    DELIVERED, CANCELLED, REFUNDED are terminal

Requesting the current status again is a no-op: the plan is empty.
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum

from orders.exceptions import InvalidOrderRequest, InvalidTransition, PaymentFailure


class OrderStatus(Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    PROCESSING = "PROCESSING"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"
    REFUNDED = "REFUNDED"


class PaymentStatus(Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    PAID = "PAID"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"
    REFUNDED = "REFUNDED"
    PARTIALLY_REFUNDED = "PARTIALLY_REFUNDED"


class PaymentMethod(Enum):
    CREDIT_CARD = "CREDIT_CARD"
    DEBIT_CARD = "DEBIT_CARD"
    PAYPAL = "PAYPAL"
    BANK_TRANSFER = "BANK_TRANSFER"
    CASH_ON_DELIVERY = "CASH_ON_DELIVERY"
    CRYPTOCURRENCY = "CRYPTOCURRENCY"


FINAL_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED, OrderStatus.REFUNDED})
UNPAID_PAYMENT_STATUSES = frozenset({PaymentStatus.PENDING, PaymentStatus.PROCESSING, PaymentStatus.FAILED})
SETTLED_PAYMENT_STATUSES = frozenset(
    {PaymentStatus.PAID, PaymentStatus.PARTIALLY_REFUNDED, PaymentStatus.REFUNDED}
)


@dataclass(frozen=True)
class TransitionRequest:
    target: OrderStatus
    at: datetime
    reason: str | None = None
    tracking_number: str | None = None


@dataclass(frozen=True)
class Transition:
    validate: Callable[[object, TransitionRequest], None]
    effect: Callable[[object, TransitionRequest], dict]


def _no_check(order, request):
    pass


def _no_effect(order, request):
    return {}


def _require_tracking_number(order, request):
    if not (request.tracking_number and request.tracking_number.strip()):
        raise InvalidOrderRequest("Tracking number is required to ship an order", field="tracking_number")


def _mark_shipped(order, request):
    changes = {"tracking_number": request.tracking_number.strip()}
    if order.shipped_at is None:
        changes["shipped_at"] = request.at
    return changes


def _mark_delivered(order, request):
    return {} if order.delivered_at is not None else {"delivered_at": request.at}


def _mark_cancelled(order, request):
    changes = {"cancel_reason": request.reason.strip()}
    if order.cancelled_at is None:
        changes["cancelled_at"] = request.at
    if PaymentStatus(order.payment_status) in UNPAID_PAYMENT_STATUSES:
        changes["payment_status"] = PaymentStatus.CANCELLED.value
    return changes


_CANCEL = Transition(_no_check, _mark_cancelled)

TRANSITIONS: dict[tuple[OrderStatus, OrderStatus], Transition] = {
    (OrderStatus.PENDING, OrderStatus.CONFIRMED): Transition(_no_check, _no_effect),
    (OrderStatus.PENDING, OrderStatus.CANCELLED): _CANCEL,
    (OrderStatus.CONFIRMED, OrderStatus.PROCESSING): Transition(_no_check, _no_effect),
    (OrderStatus.CONFIRMED, OrderStatus.CANCELLED): _CANCEL,
    (OrderStatus.PROCESSING, OrderStatus.SHIPPED): Transition(_require_tracking_number, _mark_shipped),
    (OrderStatus.PROCESSING, OrderStatus.CANCELLED): _CANCEL,
    (OrderStatus.SHIPPED, OrderStatus.DELIVERED): Transition(_no_check, _mark_delivered),
}

PAYMENT_TRANSITIONS: dict[PaymentStatus, frozenset[PaymentStatus]] = {
    PaymentStatus.PENDING: frozenset(
        {PaymentStatus.PROCESSING, PaymentStatus.PAID, PaymentStatus.FAILED, PaymentStatus.CANCELLED}
    ),
    PaymentStatus.PROCESSING: frozenset({PaymentStatus.PAID, PaymentStatus.FAILED, PaymentStatus.CANCELLED}),
    PaymentStatus.FAILED: frozenset({PaymentStatus.PROCESSING, PaymentStatus.PAID, PaymentStatus.CANCELLED}),
    PaymentStatus.PAID: frozenset({PaymentStatus.REFUNDED, PaymentStatus.PARTIALLY_REFUNDED}),
    PaymentStatus.PARTIALLY_REFUNDED: frozenset({PaymentStatus.REFUNDED}),
    PaymentStatus.CANCELLED: frozenset(),
    PaymentStatus.REFUNDED: frozenset(),
}


def is_final(status) -> bool:
    return OrderStatus(status) in FINAL_STATUSES


def plan_transition(order, target, reason=None, tracking_number=None, at=None) -> dict:
    """Return the field changes moving ``order`` to ``target``.

    An empty dict means the order is already in ``target``. Raises
    ``InvalidTransition`` for pairs outside the table and
    ``InvalidOrderRequest`` when a transition's required input is missing.
    A cancellation without a reason is rejected even when the order is
    already cancelled.
    """
    target = OrderStatus(target)
    current = OrderStatus(order.status)

    if target == OrderStatus.CANCELLED and not (reason and reason.strip()):
        raise InvalidOrderRequest("Cancellation reason is required", field="reason")

    if current == target:
        return {}

    transition = TRANSITIONS.get((current, target))
    if transition is None:
        raise InvalidTransition(current.value, target.value)

    request = TransitionRequest(
        target=target,
        at=at or datetime.now(UTC),
        reason=reason,
        tracking_number=tracking_number,
    )
    transition.validate(order, request)

    changes = transition.effect(order, request)
    changes["status"] = target.value
    changes["updated_at"] = request.at
    return changes


def plan_payment_transition(order, target, transaction_id=None, at=None) -> dict:
    """Return the field changes moving the order's payment to ``target``.

    Moving to PAID records the paid timestamp once and auto-confirms a
    PENDING order. Raises ``PaymentFailure`` when a cancelled or refunded
    order would be marked PAID, and ``InvalidTransition`` for any other
    pair outside ``PAYMENT_TRANSITIONS``.
    """
    target = PaymentStatus(target)
    current = PaymentStatus(order.payment_status)

    if current == target:
        return {}

    status = OrderStatus(order.status)
    if target == PaymentStatus.PAID and status in (OrderStatus.CANCELLED, OrderStatus.REFUNDED):
        raise PaymentFailure(
            f"Cannot accept payment for order in status {status.value}",
            order_id=order.id,
            reason="order_closed",
        )

    if target not in PAYMENT_TRANSITIONS[current]:
        raise InvalidTransition(
            current.value,
            target.value,
            message=f"Invalid payment status transition from {current.value} to {target.value}",
        )

    at = at or datetime.now(UTC)
    changes = {"payment_status": target.value, "updated_at": at}
    if transaction_id:
        changes["payment_transaction_id"] = transaction_id

    if target == PaymentStatus.PAID:
        if order.paid_at is None:
            changes["paid_at"] = at
        if status == OrderStatus.PENDING:
            changes["status"] = OrderStatus.CONFIRMED.value
    return changes

"""Payment workflow on orders — commands and handler.

- ``InitializePayment`` opens a payment with the gateway and records the handle.
- ``ProcessPayment`` charges the order synchronously. The outcome (PAID or
  FAILED) is always persisted; the caller raises on failure afterwards.
- ``HandlePaymentCallback`` reconciles asynchronous provider notifications.
  It is idempotent: repeats, stale updates and unknown statuses are ignored.
"""

import json

import structlog
from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from orders.domain import orders
from orders.exceptions import InvalidOrderRequest, InvalidTransition, PaymentFailure
from orders.order.order import Order
from orders.order.state_machine import OrderStatus, PaymentStatus
from orders.payment import get_gateway
from orders.payment.port import ChargeResult
from orders.shared.money import to_money

logger = structlog.get_logger(__name__)

# External provider vocabulary -> payment status
CALLBACK_STATUS_MAP = {
    "SUCCESS": PaymentStatus.PAID,
    "COMPLETED": PaymentStatus.PAID,
    "PAID": PaymentStatus.PAID,
    "FAILED": PaymentStatus.FAILED,
    "CANCELLED": PaymentStatus.FAILED,
    "DECLINED": PaymentStatus.FAILED,
    "PENDING": PaymentStatus.PROCESSING,
    "PROCESSING": PaymentStatus.PROCESSING,
}

_CHARGEABLE_PAYMENT_STATUSES = {PaymentStatus.PENDING, PaymentStatus.PROCESSING, PaymentStatus.FAILED}


def map_callback_status(status: str | None) -> PaymentStatus | None:
    if not status:
        return None
    return CALLBACK_STATUS_MAP.get(status.strip().upper())


@orders.command(part_of="Order")
class InitializePayment:
    order_id = Identifier(required=True)


@orders.command(part_of="Order")
class ProcessPayment:
    order_id = Identifier(required=True)
    payment_data = Text()  # JSON: opaque provider data


@orders.command(part_of="Order")
class HandlePaymentCallback:
    order_number = String(required=True, max_length=50)
    transaction_id = String(max_length=255)
    status = String(max_length=50)


@orders.command_handler(part_of=Order)
class PaymentHandler:
    @handle(InitializePayment)
    def initialize_payment(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get_order(command.order_id)

        if PaymentStatus(order.payment_status) != PaymentStatus.PENDING:
            raise PaymentFailure(
                f"Payment already processed for order: {order.order_number}",
                order_id=order.id,
                reason="not_pending",
            )

        payment_handle = get_gateway().initialize(order.order_number, to_money(order.total_amount))
        order.record_payment_handle(payment_handle)
        repo.add(order)

        logger.info("Payment initialized", order_id=str(order.id), payment_handle=payment_handle)
        return payment_handle

    @handle(ProcessPayment)
    def process_payment(self, command):
        """Charge the order; returns the gateway's ``ChargeResult``."""
        repo = current_domain.repository_for(Order)
        order = repo.get_order(command.order_id)

        payment_status = PaymentStatus(order.payment_status)
        if payment_status not in _CHARGEABLE_PAYMENT_STATUSES:
            raise PaymentFailure(
                f"Payment cannot be processed in payment status {payment_status.value}",
                order_id=order.id,
                reason="not_chargeable",
            )
        if OrderStatus(order.status) in (OrderStatus.CANCELLED, OrderStatus.REFUNDED):
            raise PaymentFailure(
                f"Payment cannot be processed for order in status {order.status}",
                order_id=order.id,
                reason="order_closed",
            )

        try:
            payment_data = json.loads(command.payment_data) if command.payment_data else None
        except json.JSONDecodeError as exc:
            raise InvalidOrderRequest("Payment payload is not valid JSON", field="payment_data") from exc

        try:
            result = get_gateway().charge(
                order.order_number,
                to_money(order.total_amount),
                order.payment_method,
                payment_data,
            )
        except Exception as exc:
            logger.error("Payment gateway error", order_id=str(order.id), error=str(exc))
            result = ChargeResult(success=False, gateway_status="error", failure_reason=str(exc))

        if result.success:
            order.apply_payment_status(PaymentStatus.PAID, transaction_id=result.transaction_id)
            logger.info("Payment succeeded", order_id=str(order.id), transaction_id=result.transaction_id)
        else:
            order.apply_payment_status(PaymentStatus.FAILED)
            logger.warning("Payment failed", order_id=str(order.id), reason=result.failure_reason)

        repo.add(order)
        return result

    @handle(HandlePaymentCallback)
    def handle_payment_callback(self, command):
        """Returns True when the callback changed the order."""
        repo = current_domain.repository_for(Order)
        order = repo.get_by_order_number(command.order_number)

        target = map_callback_status(command.status)
        if target is None:
            logger.warning(
                "Unknown payment callback status ignored",
                order_number=command.order_number,
                status=command.status,
            )
            return False

        try:
            changed = order.apply_payment_status(target, transaction_id=command.transaction_id)
        except InvalidTransition:
            logger.warning(
                "Out-of-order payment callback ignored",
                order_number=command.order_number,
                payment_status=order.payment_status,
                callback_status=command.status,
            )
            return False

        if changed:
            repo.add(order)
            logger.info(
                "Payment callback applied",
                order_number=command.order_number,
                transaction_id=command.transaction_id,
                payment_status=order.payment_status,
                status=order.status,
            )
        return changed

"""Order orchestrator — the single entry point for order operations.

Each mutating operation dispatches one Protean command, handled in its own
unit of work. Calls touching the same order are serialized on a per-order
lock held around the whole command (load, mutate, commit), so two
transitions on one order can never interleave.

Callers must run inside an ``orders`` domain context.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

import structlog
from protean.utils.globals import current_domain

from orders.collaborators import get_cart_store
from orders.collaborators.port import LineRequest
from orders.exceptions import PaymentFailure
from orders.inventory.reservation import ReserveInventory
from orders.order import reporting
from orders.order.cancellation import CancelOrder
from orders.order.creation import PlaceOrder
from orders.order.fulfillment import ConfirmOrder, DeliverOrder, ShipOrder, StartProcessing, UpdateOrderStatus
from orders.order.modification import ApplyDiscount, UpdateOrderNotes
from orders.order.order import Order
from orders.order.payment import HandlePaymentCallback, InitializePayment, ProcessPayment
from orders.order.repository import DEFAULT_PAGE_SIZE, OrderCriteria, OrderPage
from orders.order.state_machine import PaymentStatus
from orders.payment import get_gateway
from orders.shared.locks import KeyedLocks

logger = structlog.get_logger(__name__)

# Shared by every orchestrator in the process
_order_locks = KeyedLocks()


@dataclass
class OrderRequest:
    """Input for order creation. Without ``lines`` the user's cart is used."""

    shipping_details: dict
    lines: list = field(default_factory=list)
    payment_method: str | None = None
    notes: str | None = None
    tax_amount: Decimal | str | None = None
    shipping_amount: Decimal | str | None = None
    discount_amount: Decimal | str | None = None

    def lines_json(self) -> str:
        serialized = []
        for line in self.lines:
            if isinstance(line, LineRequest):
                line = {"product_id": line.product_id, "quantity": line.quantity, "unit_price": line.unit_price}
            serialized.append(
                {
                    "product_id": str(line["product_id"]),
                    "quantity": line["quantity"],
                    "unit_price": str(line["unit_price"]) if line.get("unit_price") is not None else None,
                }
            )
        return json.dumps(serialized)


def _amount(value) -> str | None:
    return None if value is None else str(value)


class OrderOrchestrator:
    def __init__(self, locks: KeyedLocks | None = None) -> None:
        self._locks = locks or _order_locks

    def _process(self, command):
        return current_domain.process(command, asynchronous=False)

    def _process_locked(self, order_id, command):
        with self._locks.hold(order_id):
            return self._process(command)

    @property
    def _repo(self):
        return current_domain.repository_for(Order)

    # -------------------------------------------------------------------
    # Creation
    # -------------------------------------------------------------------
    def create_order(self, user_id, request: OrderRequest) -> Order:
        """Validate, persist and reserve stock for a new order.

        When stock reservation fails the order stays persisted in PENDING and
        the error propagates; cancelling it is up to the caller.
        """
        from_cart = not request.lines
        order_id = self._process(
            PlaceOrder(
                user_id=str(user_id),
                lines=None if from_cart else request.lines_json(),
                from_cart=from_cart,
                shipping_details=json.dumps(request.shipping_details),
                payment_method=request.payment_method,
                notes=request.notes,
                tax_amount=_amount(request.tax_amount),
                shipping_amount=_amount(request.shipping_amount),
                discount_amount=_amount(request.discount_amount),
            )
        )

        self._process_locked(order_id, ReserveInventory(order_id=order_id))

        if from_cart:
            get_cart_store().clear(str(user_id))
            logger.info("Cart cleared after order placement", user_id=str(user_id), order_id=order_id)

        return self.get_order(order_id)

    def create_order_from_cart(self, user_id, shipping_details: dict, payment_method=None, notes=None) -> Order:
        request = OrderRequest(shipping_details=shipping_details, payment_method=payment_method, notes=notes)
        return self.create_order(user_id, request)

    # -------------------------------------------------------------------
    # Modification
    # -------------------------------------------------------------------
    def update_order(self, order_id, notes=None) -> Order:
        self._process_locked(order_id, UpdateOrderNotes(order_id=str(order_id), notes=notes))
        return self.get_order(order_id)

    def apply_discount(self, order_id, code) -> Decimal:
        """Apply a discount code; unknown codes grant nothing and leave the order untouched."""
        granted = self._process_locked(order_id, ApplyDiscount(order_id=str(order_id), code=code))
        return Decimal(granted)

    # -------------------------------------------------------------------
    # Status transitions
    # -------------------------------------------------------------------
    def update_status(
        self,
        order_id,
        status=None,
        payment_status=None,
        reason=None,
        tracking_number=None,
        payment_transaction_id=None,
    ) -> Order:
        self._process_locked(
            order_id,
            UpdateOrderStatus(
                order_id=str(order_id),
                status=getattr(status, "value", status),
                payment_status=getattr(payment_status, "value", payment_status),
                reason=reason,
                tracking_number=tracking_number,
                payment_transaction_id=payment_transaction_id,
            ),
        )
        return self.get_order(order_id)

    def cancel_order(self, order_id, reason) -> Order:
        self._process_locked(order_id, CancelOrder(order_id=str(order_id), reason=reason))
        return self.get_order(order_id)

    def cancel_order_for_user(self, order_id, user_id, reason) -> Order:
        """Cancel on behalf of ``user_id``; orders they do not own are reported as not found."""
        self._process_locked(order_id, CancelOrder(order_id=str(order_id), reason=reason, user_id=str(user_id)))
        return self.get_order(order_id)

    def confirm_order(self, order_id) -> Order:
        self._process_locked(order_id, ConfirmOrder(order_id=str(order_id)))
        return self.get_order(order_id)

    def process_order(self, order_id) -> Order:
        self._process_locked(order_id, StartProcessing(order_id=str(order_id)))
        return self.get_order(order_id)

    def ship_order(self, order_id, tracking_number) -> Order:
        self._process_locked(order_id, ShipOrder(order_id=str(order_id), tracking_number=tracking_number))
        return self.get_order(order_id)

    def deliver_order(self, order_id) -> Order:
        self._process_locked(order_id, DeliverOrder(order_id=str(order_id)))
        return self.get_order(order_id)

    # -------------------------------------------------------------------
    # Payment
    # -------------------------------------------------------------------
    def initialize_payment(self, order_id) -> str:
        return self._process_locked(order_id, InitializePayment(order_id=str(order_id)))

    def process_payment(self, order_id, payload=None) -> Order:
        """Charge the order. A declined charge is recorded as FAILED, then raised."""
        result = self._process_locked(
            order_id,
            ProcessPayment(order_id=str(order_id), payment_data=json.dumps(payload) if payload is not None else None),
        )
        if not result.success:
            raise PaymentFailure(
                f"Payment processing failed for order: {order_id}",
                order_id=order_id,
                reason=result.failure_reason,
            )
        return self.get_order(order_id)

    def handle_payment_callback(self, order_number, transaction_id, status) -> bool:
        """Reconcile a provider notification; returns True when the order changed."""
        order = self._repo.get_by_order_number(order_number)
        return self._process_locked(
            order.id,
            HandlePaymentCallback(order_number=order_number, transaction_id=transaction_id, status=status),
        )

    def validate_payment(self, order_id) -> bool:
        order = self.get_order(order_id)
        if PaymentStatus(order.payment_status) != PaymentStatus.PAID or not order.payment_transaction_id:
            return False
        return get_gateway().verify(order.payment_transaction_id)

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def get_order(self, order_id) -> Order:
        return self._repo.get_order(order_id)

    def get_order_by_number(self, order_number) -> Order:
        return self._repo.get_by_order_number(order_number)

    def list_orders_for_user(self, user_id, page=0, size=DEFAULT_PAGE_SIZE) -> OrderPage:
        return self._repo.page(OrderCriteria(user_id=str(user_id)), page=page, size=size)

    def search_orders(self, criteria: OrderCriteria, page=0, size=DEFAULT_PAGE_SIZE) -> OrderPage:
        return self._repo.page(criteria, page=page, size=size)

    def count_orders_by_status(self, status, start: datetime | None = None, end: datetime | None = None) -> int:
        return reporting.count_orders_by_status(status, start, end)

    def total_revenue(self, start: datetime | None = None, end: datetime | None = None) -> Decimal:
        return reporting.total_revenue(start, end)

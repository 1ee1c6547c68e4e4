"""Order aggregate — the core of the orders domain.

An Order carries its lines, a frozen shipping snapshot, the monetary
breakdown and two independent status fields: the fulfilment ``status`` and
the ``payment_status``. Both only change through ``apply_transition`` and
``apply_payment_status``, which write the plan computed by
``orders.order.state_machine``.

The total is always re-derived from its components:

    total_amount = subtotal + tax_amount + shipping_amount - discount_amount
"""

import json
import random
from datetime import UTC, datetime

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, HasMany, Identifier, Integer, String, Text, ValueObject

from orders import pricing
from orders.domain import orders
from orders.exceptions import InvalidOrderRequest, PaymentFailure
from orders.order.events import (
    DiscountApplied,
    InventoryReleased,
    InventoryReserved,
    OrderCancelled,
    OrderDelivered,
    OrderNotesUpdated,
    OrderPlaced,
    OrderShipped,
    OrderStatusChanged,
    PaymentInitialized,
    PaymentStatusChanged,
)
from orders.order.state_machine import (
    SETTLED_PAYMENT_STATUSES,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    is_final,
    plan_payment_transition,
    plan_transition,
)
from orders.shared.money import ZERO, as_stored, to_money


def generate_order_number(now=None, rng=random) -> str:
    """``ORD-<yyyyMMddHHmmss>-<4 random digits>``."""
    now = now or datetime.now(UTC)
    return f"ORD-{now:%Y%m%d%H%M%S}-{rng.randint(1000, 9999)}"


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@orders.value_object(part_of="Order")
class ShippingDetails:
    """Recipient and destination captured when the order is placed.

    The snapshot never changes afterwards, whatever happens to the user's
    address book.
    """

    first_name = String(required=True, max_length=100)
    last_name = String(required=True, max_length=100)
    email = String(max_length=255)
    phone = String(max_length=30)
    address = String(required=True, max_length=255)
    city = String(required=True, max_length=100)
    state = String(max_length=100)
    postal_code = String(max_length=20)
    country = String(max_length=100, default="Canada")

    @property
    def region(self) -> str:
        """Destination text used for regional tax and shipping rules."""
        return ", ".join(part for part in (self.city, self.state, self.country) if part)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@orders.entity(part_of="Order")
class OrderLine:
    """One product and quantity within an order, with a frozen product snapshot."""

    product_id = Identifier(required=True)
    product_name = String(required=True, max_length=255)
    product_sku = String(max_length=100)
    product_image_url = String(max_length=500)
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True, min_value=0.0)
    discount_amount = Float(default=0.0, min_value=0.0)
    discount_percentage = Float(default=0.0, min_value=0.0, max_value=100.0)
    total_price = Float(required=True, min_value=0.0)

    @classmethod
    def from_snapshot(cls, product_id, product_name, quantity, unit_price, product_sku=None, product_image_url=None):
        total = pricing.line_amount(unit_price, quantity)
        return cls(
            product_id=str(product_id),
            product_name=product_name,
            product_sku=product_sku,
            product_image_url=product_image_url,
            quantity=int(quantity),
            unit_price=as_stored(unit_price),
            total_price=as_stored(total),
        )

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "product_id": str(self.product_id),
            "product_name": self.product_name,
            "product_sku": self.product_sku,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "total_price": self.total_price,
        }


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@orders.aggregate
class Order:
    order_number = String(required=True, max_length=50, unique=True)
    user_id = Identifier(required=True)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    payment_status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    payment_method = String(choices=PaymentMethod)
    lines = HasMany(OrderLine)
    shipping_details = ValueObject(ShippingDetails)

    subtotal = Float(default=0.0, min_value=0.0)
    tax_amount = Float(default=0.0, min_value=0.0)
    shipping_amount = Float(default=0.0, min_value=0.0)
    discount_amount = Float(default=0.0, min_value=0.0)
    total_amount = Float(default=0.0, min_value=0.0)
    discount_code = String(max_length=50)

    payment_handle = String(max_length=255)
    payment_transaction_id = String(max_length=255)
    tracking_number = String(max_length=100)
    cancel_reason = String(max_length=500)
    notes = Text()
    inventory_reserved = Boolean(default=False)

    paid_at = DateTime()
    shipped_at = DateTime()
    delivered_at = DateTime()
    cancelled_at = DateTime()
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def total_is_derived_from_components(self):
        expected = pricing.total(self.subtotal, self.tax_amount, self.shipping_amount, self.discount_amount)
        if to_money(self.total_amount) != expected:
            raise ValidationError(
                {"total_amount": [f"Total {to_money(self.total_amount)} does not match its components ({expected})"]}
            )

    @invariant.post
    def discount_cannot_exceed_subtotal(self):
        if to_money(self.discount_amount) > to_money(self.subtotal):
            raise ValidationError({"discount_amount": ["Discount cannot exceed the subtotal"]})

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def place(cls, user_id, order_number, lines, shipping_details, breakdown, payment_method=None, notes=None):
        """Build a PENDING/PENDING order from priced lines and a price breakdown."""
        if not lines:
            raise InvalidOrderRequest("Order must contain at least one line", field="lines")

        now = datetime.now(UTC)
        order = cls(
            order_number=order_number,
            user_id=str(user_id),
            payment_method=payment_method,
            lines=lines,
            shipping_details=shipping_details,
            discount_code=None,
            notes=notes,
            created_at=now,
            updated_at=now,
            **breakdown.as_fields(),
        )
        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                order_number=order.order_number,
                user_id=str(order.user_id),
                lines=json.dumps([line.to_dict() for line in order.lines]),
                subtotal=order.subtotal,
                tax_amount=order.tax_amount,
                shipping_amount=order.shipping_amount,
                discount_amount=order.discount_amount,
                total_amount=order.total_amount,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def is_final(self) -> bool:
        return is_final(self.status)

    @property
    def region(self) -> str:
        return self.shipping_details.region if self.shipping_details else ""

    def line_quantities(self) -> list[tuple[str, int]]:
        return [(str(line.product_id), line.quantity) for line in self.lines]

    # -------------------------------------------------------------------
    # Status transitions
    # -------------------------------------------------------------------
    def _write(self, changes):
        with atomic_change(self):
            for field_name, value in changes.items():
                setattr(self, field_name, value)

    def apply_transition(self, target, reason=None, tracking_number=None) -> bool:
        """Move the order to ``target``; returns False when it was already there."""
        previous = self.status
        changes = plan_transition(self, target, reason=reason, tracking_number=tracking_number)
        if not changes:
            return False

        self._write(changes)
        at = changes["updated_at"]
        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                previous_status=previous,
                new_status=self.status,
                changed_at=at,
            )
        )

        new_status = OrderStatus(self.status)
        if new_status == OrderStatus.SHIPPED:
            self.raise_(
                OrderShipped(order_id=str(self.id), tracking_number=self.tracking_number, shipped_at=self.shipped_at)
            )
        elif new_status == OrderStatus.DELIVERED:
            self.raise_(OrderDelivered(order_id=str(self.id), delivered_at=self.delivered_at))
        elif new_status == OrderStatus.CANCELLED:
            self.raise_(
                OrderCancelled(
                    order_id=str(self.id),
                    reason=self.cancel_reason,
                    previous_status=previous,
                    cancelled_at=self.cancelled_at,
                )
            )
        return True

    def apply_payment_status(self, target, transaction_id=None) -> bool:
        """Move ``payment_status`` to ``target``; PAID also auto-confirms a PENDING order."""
        previous_payment = self.payment_status
        previous_status = self.status
        changes = plan_payment_transition(self, target, transaction_id=transaction_id)
        if not changes:
            return False

        self._write(changes)
        at = changes["updated_at"]
        self.raise_(
            PaymentStatusChanged(
                order_id=str(self.id),
                previous_payment_status=previous_payment,
                new_payment_status=self.payment_status,
                transaction_id=self.payment_transaction_id,
                changed_at=at,
            )
        )
        if self.status != previous_status:
            self.raise_(
                OrderStatusChanged(
                    order_id=str(self.id),
                    previous_status=previous_status,
                    new_status=self.status,
                    changed_at=at,
                )
            )
        return True

    # -------------------------------------------------------------------
    # Payment
    # -------------------------------------------------------------------
    def record_payment_handle(self, handle):
        if PaymentStatus(self.payment_status) != PaymentStatus.PENDING:
            raise PaymentFailure(
                f"Payment already processed for order: {self.order_number} (status {self.payment_status})",
                order_id=self.id,
                reason="not_pending",
            )

        self.payment_handle = handle
        self.updated_at = datetime.now(UTC)
        self.raise_(PaymentInitialized(order_id=str(self.id), payment_handle=handle, amount=self.total_amount))

    # -------------------------------------------------------------------
    # Inventory bookkeeping
    # -------------------------------------------------------------------
    def mark_inventory_reserved(self):
        self.inventory_reserved = True
        self.raise_(
            InventoryReserved(
                order_id=str(self.id),
                lines=json.dumps([{"product_id": pid, "quantity": qty} for pid, qty in self.line_quantities()]),
            )
        )

    def mark_inventory_released(self, report):
        self.inventory_reserved = False
        self.raise_(
            InventoryReleased(
                order_id=str(self.id),
                released_lines=json.dumps([{"product_id": pid, "quantity": qty} for pid, qty in report.released]),
                failed_lines=json.dumps([failure.to_dict() for failure in report.failures]),
            )
        )

    # -------------------------------------------------------------------
    # Modification
    # -------------------------------------------------------------------
    def _assert_modifiable(self, field):
        if self.is_final:
            raise InvalidOrderRequest(f"Order in status {self.status} can no longer be modified", field=field)

    def update_notes(self, notes):
        self._assert_modifiable("notes")
        self.notes = notes
        self.updated_at = datetime.now(UTC)
        self.raise_(OrderNotesUpdated(order_id=str(self.id), notes=notes))

    def apply_discount(self, code, amount):
        """Replace the current discount and re-derive the total."""
        self._assert_modifiable("discount_code")
        if PaymentStatus(self.payment_status) in SETTLED_PAYMENT_STATUSES:
            raise InvalidOrderRequest("Discounts cannot be applied after payment", field="discount_code")

        discount = pricing.cap_discount(amount, self.subtotal)
        if discount < ZERO:
            raise InvalidOrderRequest("Discount must be non-negative", field="discount_code")

        new_total = pricing.total(self.subtotal, self.tax_amount, self.shipping_amount, discount)
        with atomic_change(self):
            self.discount_amount = as_stored(discount)
            self.discount_code = code
            self.total_amount = as_stored(new_total)
            self.updated_at = datetime.now(UTC)

        self.raise_(
            DiscountApplied(
                order_id=str(self.id),
                discount_code=code,
                discount_amount=self.discount_amount,
                new_total_amount=self.total_amount,
            )
        )
        return discount

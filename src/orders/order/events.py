"""Domain events for the Order aggregate.

All events are versioned, immutable facts representing state changes. They
are written to the event store when the unit of work commits.
"""

from protean.fields import DateTime, Float, Identifier, String, Text

from orders.domain import orders


@orders.event(part_of="Order")
class OrderPlaced:
    """A new order was created in PENDING status."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    user_id = Identifier(required=True)
    lines = Text(required=True)  # JSON: list of line dicts
    subtotal = Float(required=True)
    tax_amount = Float()
    shipping_amount = Float()
    discount_amount = Float()
    total_amount = Float(required=True)
    placed_at = DateTime(required=True)


@orders.event(part_of="Order")
class InventoryReserved:
    """Stock was taken for every line of the order."""

    __version__ = 1

    order_id = Identifier(required=True)
    lines = Text(required=True)  # JSON: [{product_id, quantity}]


@orders.event(part_of="Order")
class InventoryReleased:
    """Reserved stock was returned; ``failed_lines`` lists lines that could not be returned."""

    __version__ = 1

    order_id = Identifier(required=True)
    released_lines = Text(required=True)  # JSON
    failed_lines = Text()  # JSON


@orders.event(part_of="Order")
class OrderStatusChanged:
    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    changed_at = DateTime(required=True)


@orders.event(part_of="Order")
class OrderShipped:
    __version__ = 1

    order_id = Identifier(required=True)
    tracking_number = String(required=True)
    shipped_at = DateTime(required=True)


@orders.event(part_of="Order")
class OrderDelivered:
    __version__ = 1

    order_id = Identifier(required=True)
    delivered_at = DateTime(required=True)


@orders.event(part_of="Order")
class OrderCancelled:
    __version__ = 1

    order_id = Identifier(required=True)
    reason = String(required=True)
    previous_status = String(required=True)
    cancelled_at = DateTime(required=True)


@orders.event(part_of="Order")
class PaymentInitialized:
    __version__ = 1

    order_id = Identifier(required=True)
    payment_handle = String(required=True)
    amount = Float(required=True)


@orders.event(part_of="Order")
class PaymentStatusChanged:
    __version__ = 1

    order_id = Identifier(required=True)
    previous_payment_status = String(required=True)
    new_payment_status = String(required=True)
    transaction_id = String()
    changed_at = DateTime(required=True)


@orders.event(part_of="Order")
class DiscountApplied:
    __version__ = 1

    order_id = Identifier(required=True)
    discount_code = String(required=True)
    discount_amount = Float(required=True)
    new_total_amount = Float(required=True)


@orders.event(part_of="Order")
class OrderNotesUpdated:
    __version__ = 1

    order_id = Identifier(required=True)
    notes = Text()

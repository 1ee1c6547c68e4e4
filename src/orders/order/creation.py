"""Order placement — command and handler.

The handler validates the request and persists a PENDING order. Stock is
reserved afterwards by a separate ``ReserveInventory`` command, so a failed
reservation leaves the order persisted in PENDING.
"""

import json

import structlog
from protean import handle
from protean.fields import Boolean, Identifier, String, Text
from protean.utils.globals import current_domain

from orders import pricing
from orders.collaborators import get_cart_store
from orders.domain import orders
from orders.exceptions import InvalidOrderRequest
from orders.order.order import Order, ShippingDetails, generate_order_number
from orders.order.rules import ensure_user_can_order, parse_line_requests, resolve_lines
from orders.order.state_machine import PaymentMethod
from orders.shared.money import parse_optional_money

logger = structlog.get_logger(__name__)


@orders.command(part_of="Order")
class PlaceOrder:
    user_id = Identifier(required=True)
    lines = Text()  # JSON: [{product_id, quantity, unit_price?}]; ignored when from_cart
    from_cart = Boolean(default=False)
    shipping_details = Text(required=True)  # JSON: ShippingDetails dict
    payment_method = String(max_length=50)
    notes = Text()
    # Decimal strings; when given they replace the computed component
    tax_amount = String(max_length=20)
    shipping_amount = String(max_length=20)
    discount_amount = String(max_length=20)


def _load_json(value, default):
    if value is None or value == "":
        return default
    return json.loads(value) if isinstance(value, str) else value


@orders.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        ensure_user_can_order(command.user_id)

        if command.from_cart:
            cart = get_cart_store()
            if cart.is_empty(command.user_id):
                raise InvalidOrderRequest("Cart is empty", field="cart", user_id=str(command.user_id))
            line_requests = cart.get_lines(command.user_id)
        else:
            try:
                line_requests = parse_line_requests(_load_json(command.lines, []))
            except json.JSONDecodeError as exc:
                raise InvalidOrderRequest("Order lines are not valid JSON", field="lines") from exc

        resolved = resolve_lines(line_requests, allow_price_override=not command.from_cart)

        if command.payment_method and command.payment_method not in {m.value for m in PaymentMethod}:
            raise InvalidOrderRequest(f"Unknown payment method: {command.payment_method}", field="payment_method")

        try:
            shipping_details = ShippingDetails(**_load_json(command.shipping_details, {}))
            breakdown = pricing.price(
                [{"unit_price": line.unit_price, "quantity": line.quantity} for line in resolved],
                region=shipping_details.region,
                tax_override=parse_optional_money(command.tax_amount),
                shipping_override=parse_optional_money(command.shipping_amount),
                discount_override=parse_optional_money(command.discount_amount),
            )
        except (json.JSONDecodeError, TypeError, ValueError) as exc:
            raise InvalidOrderRequest(str(exc), field="order") from exc

        repo = current_domain.repository_for(Order)
        order_number = generate_order_number()
        while repo.order_number_exists(order_number):
            order_number = generate_order_number()

        order = Order.place(
            user_id=command.user_id,
            order_number=order_number,
            lines=[line.to_order_line() for line in resolved],
            shipping_details=shipping_details,
            breakdown=breakdown,
            payment_method=command.payment_method or None,
            notes=command.notes,
        )
        repo.add(order)

        logger.info(
            "Order placed",
            order_id=str(order.id),
            order_number=order.order_number,
            user_id=str(order.user_id),
            total=str(breakdown.total),
            from_cart=bool(command.from_cart),
        )
        return str(order.id)

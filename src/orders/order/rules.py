"""Business rules gating order creation.

Checks run in a fixed order and the first failure stops creation before
anything is written: acting user, line count and per-line quantity ceilings,
then product existence, availability and stock, then the amount ceiling.
"""

from dataclasses import dataclass
from decimal import Decimal

import structlog

from orders import pricing
from orders.collaborators import get_product_catalog, get_user_directory
from orders.collaborators.port import LineRequest, Product
from orders.exceptions import InvalidOrderRequest, LimitExceeded, ProductNotFound, UserNotFound
from orders.inventory.coordinator import InventoryCoordinator
from orders.order.order import OrderLine
from orders.shared.money import ZERO, to_money

logger = structlog.get_logger(__name__)

MAX_ORDER_ITEMS = 50
MAX_QUANTITY_PER_ITEM = 999
MAX_ORDER_AMOUNT = Decimal("50000.00")


@dataclass(frozen=True)
class ResolvedLine:
    """A requested line bound to its catalogue product and the price it will be sold at."""

    product: Product
    quantity: int
    unit_price: Decimal

    def to_order_line(self) -> OrderLine:
        return OrderLine.from_snapshot(
            product_id=self.product.id,
            product_name=self.product.name,
            quantity=self.quantity,
            unit_price=self.unit_price,
            product_sku=self.product.sku,
            product_image_url=self.product.image_url,
        )


def ensure_user_can_order(user_id):
    user = get_user_directory().get_user(str(user_id))
    if user is None:
        raise UserNotFound(user_id)
    if not user.is_active:
        raise InvalidOrderRequest(f"User account is not active: {user_id}", field="user_id")
    return user


def parse_line_requests(raw_lines) -> list[LineRequest]:
    """Build ``LineRequest``s from dicts carrying product_id, quantity and an optional unit_price."""
    requests = []
    for index, raw in enumerate(raw_lines or []):
        if isinstance(raw, LineRequest):
            requests.append(raw)
            continue
        try:
            product_id = str(raw["product_id"])
            quantity = int(raw["quantity"])
            unit_price = raw.get("unit_price")
            requests.append(
                LineRequest(
                    product_id=product_id,
                    quantity=quantity,
                    unit_price=to_money(unit_price) if unit_price not in (None, "") else None,
                )
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise InvalidOrderRequest(f"Malformed order line at position {index}", field="lines") from exc
    return requests


def check_line_limits(line_requests) -> None:
    if not line_requests:
        raise InvalidOrderRequest("Order must contain at least one line", field="lines")
    if len(line_requests) > MAX_ORDER_ITEMS:
        raise LimitExceeded("item count", len(line_requests), MAX_ORDER_ITEMS)

    for request in line_requests:
        if request.quantity < 1:
            raise InvalidOrderRequest(
                f"Quantity must be at least 1 for product {request.product_id}", field="quantity"
            )
        if request.quantity > MAX_QUANTITY_PER_ITEM:
            raise LimitExceeded("quantity per item", request.quantity, MAX_QUANTITY_PER_ITEM)


def _unit_price_for(request: LineRequest, product: Product) -> Decimal:
    if request.unit_price is None:
        return to_money(product.price)

    override = to_money(request.unit_price)
    if override < ZERO:
        raise InvalidOrderRequest(f"Unit price must be non-negative for product {product.id}", field="unit_price")
    if override != to_money(product.price):
        logger.warning(
            "Order line priced away from catalogue",
            product_id=product.id,
            catalogue_price=str(product.price),
            override_price=str(override),
        )
    return override


def resolve_lines(line_requests, allow_price_override=True) -> list[ResolvedLine]:
    """Validate requested lines against the catalogue and limits.

    Cart lines are always priced at the product's current price;
    ``allow_price_override`` only applies to explicit lines.
    """
    check_line_limits(line_requests)

    catalog = get_product_catalog()
    resolved = []
    for request in line_requests:
        product = catalog.get_product(request.product_id)
        if product is None:
            raise ProductNotFound(request.product_id)
        if not product.is_active:
            raise InvalidOrderRequest(f"Product is not available: {product.name}", field="product_id")

        if allow_price_override:
            unit_price = _unit_price_for(request, product)
        else:
            unit_price = to_money(product.price)
        resolved.append(ResolvedLine(product=product, quantity=request.quantity, unit_price=unit_price))

    InventoryCoordinator(catalog).check((line.product.id, line.quantity) for line in resolved)

    subtotal = pricing.subtotal({"unit_price": line.unit_price, "quantity": line.quantity} for line in resolved)
    if subtotal > MAX_ORDER_AMOUNT:
        raise LimitExceeded("amount", subtotal, MAX_ORDER_AMOUNT)

    return resolved

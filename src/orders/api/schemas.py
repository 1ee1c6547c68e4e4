"""Pydantic request/response schemas for the Orders API.

These are external contracts (anti-corruption layer), separate from
internal Protean commands. Monetary amounts leave the API as decimal strings
with two fractional digits.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from orders.shared.money import to_money


def _money(value) -> str:
    return str(to_money(value))


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class ShippingDetailsSchema(BaseModel):
    first_name: str
    last_name: str
    email: str | None = None
    phone: str | None = None
    address: str
    city: str
    state: str | None = None
    postal_code: str | None = None
    country: str = "Canada"


class OrderLineRequestSchema(BaseModel):
    product_id: str
    quantity: int
    unit_price: Decimal | None = None  # Optional price override


# ---------------------------------------------------------------------------
# Order Request Schemas
# ---------------------------------------------------------------------------
class CreateOrderRequest(BaseModel):
    user_id: str
    shipping_details: ShippingDetailsSchema
    lines: list[OrderLineRequestSchema] = Field(default_factory=list)
    payment_method: str | None = None
    notes: str | None = None
    tax_amount: Decimal | None = None
    shipping_amount: Decimal | None = None
    discount_amount: Decimal | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "user_id": "user-001",
                    "shipping_details": {
                        "first_name": "Ada",
                        "last_name": "Lovelace",
                        "email": "ada@example.com",
                        "address": "1 Main St",
                        "city": "Toronto",
                        "state": "Ontario",
                        "postal_code": "M5V 2T6",
                        "country": "Canada",
                    },
                    "lines": [{"product_id": "prod-001", "quantity": 2}],
                    "payment_method": "CREDIT_CARD",
                }
            ]
        }
    }


class CreateOrderFromCartRequest(BaseModel):
    user_id: str
    shipping_details: ShippingDetailsSchema
    payment_method: str | None = None
    notes: str | None = None


class UpdateOrderRequest(BaseModel):
    notes: str | None = None


class UpdateStatusRequest(BaseModel):
    status: str | None = None
    payment_status: str | None = None
    reason: str | None = None
    tracking_number: str | None = None
    payment_transaction_id: str | None = None


class CancelOrderRequest(BaseModel):
    reason: str | None = None
    user_id: str | None = None  # When given, the order must belong to this user


class ShipOrderRequest(BaseModel):
    tracking_number: str | None = None


class ApplyDiscountRequest(BaseModel):
    code: str


class ProcessPaymentRequest(BaseModel):
    payload: dict | None = None


class PaymentCallbackRequest(BaseModel):
    order_number: str
    transaction_id: str
    status: str


# ---------------------------------------------------------------------------
# Development seeding
# ---------------------------------------------------------------------------
class SeedUserRequest(BaseModel):
    user_id: str
    email: str | None = None
    is_active: bool = True


class SeedProductRequest(BaseModel):
    product_id: str
    name: str
    price: Decimal = Field(ge=0)
    stock_quantity: int = Field(ge=0, default=0)
    sku: str | None = None
    is_active: bool = True


class SeedCartLineRequest(BaseModel):
    product_id: str
    quantity: int = Field(ge=1, default=1)


class ConfigureGatewayRequest(BaseModel):
    should_succeed: bool = True
    failure_reason: str = "Card declined"


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class StatusResponse(BaseModel):
    status: str = "ok"


class OrderLineResponse(BaseModel):
    id: str
    product_id: str
    product_name: str
    product_sku: str | None = None
    quantity: int
    unit_price: str
    total_price: str


class OrderResponse(BaseModel):
    id: str
    order_number: str
    user_id: str
    status: str
    payment_status: str
    payment_method: str | None = None
    lines: list[OrderLineResponse]
    shipping_details: ShippingDetailsSchema | None = None
    subtotal: str
    tax_amount: str
    shipping_amount: str
    discount_amount: str
    total_amount: str
    discount_code: str | None = None
    payment_transaction_id: str | None = None
    tracking_number: str | None = None
    cancel_reason: str | None = None
    notes: str | None = None
    paid_at: datetime | None = None
    shipped_at: datetime | None = None
    delivered_at: datetime | None = None
    cancelled_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_order(cls, order) -> "OrderResponse":
        details = order.shipping_details
        return cls(
            id=str(order.id),
            order_number=order.order_number,
            user_id=str(order.user_id),
            status=order.status,
            payment_status=order.payment_status,
            payment_method=order.payment_method,
            lines=[
                OrderLineResponse(
                    id=str(line.id),
                    product_id=str(line.product_id),
                    product_name=line.product_name,
                    product_sku=line.product_sku,
                    quantity=line.quantity,
                    unit_price=_money(line.unit_price),
                    total_price=_money(line.total_price),
                )
                for line in order.lines
            ],
            shipping_details=(
                ShippingDetailsSchema(
                    first_name=details.first_name,
                    last_name=details.last_name,
                    email=details.email,
                    phone=details.phone,
                    address=details.address,
                    city=details.city,
                    state=details.state,
                    postal_code=details.postal_code,
                    country=details.country,
                )
                if details
                else None
            ),
            subtotal=_money(order.subtotal),
            tax_amount=_money(order.tax_amount),
            shipping_amount=_money(order.shipping_amount),
            discount_amount=_money(order.discount_amount),
            total_amount=_money(order.total_amount),
            discount_code=order.discount_code,
            payment_transaction_id=order.payment_transaction_id,
            tracking_number=order.tracking_number,
            cancel_reason=order.cancel_reason,
            notes=order.notes,
            paid_at=order.paid_at,
            shipped_at=order.shipped_at,
            delivered_at=order.delivered_at,
            cancelled_at=order.cancelled_at,
            created_at=order.created_at,
            updated_at=order.updated_at,
        )


class OrderPageResponse(BaseModel):
    items: list[OrderResponse]
    total: int
    page: int
    size: int
    has_next: bool

    @classmethod
    def from_page(cls, page) -> "OrderPageResponse":
        return cls(
            items=[OrderResponse.from_order(order) for order in page.items],
            total=page.total,
            page=page.page,
            size=page.size,
            has_next=page.has_next,
        )


class PaymentHandleResponse(BaseModel):
    payment_handle: str


class PaymentValidationResponse(BaseModel):
    valid: bool


class CallbackResponse(BaseModel):
    applied: bool


class DiscountResponse(BaseModel):
    discount_amount: str
    order: OrderResponse


class CountResponse(BaseModel):
    status: str
    count: int


class RevenueResponse(BaseModel):
    revenue: str
    start: datetime | None = None
    end: datetime | None = None

"""FastAPI routes for the Orders domain.

Every route delegates to the ``OrderOrchestrator``; domain errors are turned
into responses by the handlers in ``orders.api.errors``.
"""

from datetime import datetime

from fastapi import APIRouter, Query

from orders.api.schemas import (
    ApplyDiscountRequest,
    CallbackResponse,
    CancelOrderRequest,
    ConfigureGatewayRequest,
    CountResponse,
    CreateOrderFromCartRequest,
    CreateOrderRequest,
    DiscountResponse,
    OrderPageResponse,
    OrderResponse,
    PaymentCallbackRequest,
    PaymentHandleResponse,
    PaymentValidationResponse,
    ProcessPaymentRequest,
    RevenueResponse,
    SeedCartLineRequest,
    SeedProductRequest,
    SeedUserRequest,
    ShipOrderRequest,
    StatusResponse,
    UpdateOrderRequest,
    UpdateStatusRequest,
)
from orders.collaborators import get_cart_store, get_product_catalog, get_user_directory
from orders.exceptions import InvalidOrderRequest
from orders.orchestrator import OrderOrchestrator, OrderRequest
from orders.order.repository import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, OrderCriteria
from orders.order.state_machine import OrderStatus, PaymentStatus
from orders.payment import get_gateway, set_gateway
from orders.payment.fake_adapter import FakeGateway
from orders.shared.money import to_money

orchestrator = OrderOrchestrator()

# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderResponse)
def create_order(body: CreateOrderRequest) -> OrderResponse:
    request = OrderRequest(
        shipping_details=body.shipping_details.model_dump(),
        lines=[line.model_dump() for line in body.lines],
        payment_method=body.payment_method,
        notes=body.notes,
        tax_amount=body.tax_amount,
        shipping_amount=body.shipping_amount,
        discount_amount=body.discount_amount,
    )
    order = orchestrator.create_order(body.user_id, request)
    return OrderResponse.from_order(order)


@order_router.post("/from-cart", status_code=201, response_model=OrderResponse)
def create_order_from_cart(body: CreateOrderFromCartRequest) -> OrderResponse:
    order = orchestrator.create_order_from_cart(
        body.user_id,
        shipping_details=body.shipping_details.model_dump(),
        payment_method=body.payment_method,
        notes=body.notes,
    )
    return OrderResponse.from_order(order)


@order_router.post("/payment/callback", response_model=CallbackResponse)
def payment_callback(body: PaymentCallbackRequest) -> CallbackResponse:
    """Inbound webhook from the payment provider."""
    applied = orchestrator.handle_payment_callback(body.order_number, body.transaction_id, body.status)
    return CallbackResponse(applied=applied)


@order_router.get("", response_model=OrderPageResponse)
async def search_orders(
    q: str | None = None,
    user_id: str | None = None,
    status: list[str] = Query(default=[]),
    payment_status: list[str] = Query(default=[]),
    created_from: datetime | None = None,
    created_to: datetime | None = None,
    min_amount: str | None = None,
    max_amount: str | None = None,
    page: int = Query(default=0, ge=0),
    size: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
) -> OrderPageResponse:
    try:
        statuses = tuple(OrderStatus(s.upper()).value for s in status)
        payment_statuses = tuple(PaymentStatus(s.upper()).value for s in payment_status)
        criteria = OrderCriteria(
            user_id=user_id,
            statuses=statuses,
            payment_statuses=payment_statuses,
            created_from=created_from,
            created_to=created_to,
            min_amount=to_money(min_amount) if min_amount else None,
            max_amount=to_money(max_amount) if max_amount else None,
            search_term=q,
        )
    except ValueError as exc:
        raise InvalidOrderRequest(str(exc), field="query") from exc
    return OrderPageResponse.from_page(orchestrator.search_orders(criteria, page=page, size=size))


@order_router.get("/stats/count", response_model=CountResponse)
async def count_orders(status: str) -> CountResponse:
    try:
        target = OrderStatus(status.upper())
    except ValueError as exc:
        raise InvalidOrderRequest(f"Unknown status: {status}", field="status") from exc
    return CountResponse(status=target.value, count=orchestrator.count_orders_by_status(target))


@order_router.get("/stats/revenue", response_model=RevenueResponse)
async def total_revenue(start: datetime | None = None, end: datetime | None = None) -> RevenueResponse:
    revenue = orchestrator.total_revenue(start, end)
    return RevenueResponse(revenue=str(revenue), start=start, end=end)


@order_router.get("/by-number/{order_number}", response_model=OrderResponse)
async def get_order_by_number(order_number: str) -> OrderResponse:
    return OrderResponse.from_order(orchestrator.get_order_by_number(order_number))


@order_router.get("/users/{user_id}", response_model=OrderPageResponse)
async def list_user_orders(
    user_id: str,
    page: int = Query(default=0, ge=0),
    size: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
) -> OrderPageResponse:
    return OrderPageResponse.from_page(orchestrator.list_orders_for_user(user_id, page=page, size=size))


@order_router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str) -> OrderResponse:
    return OrderResponse.from_order(orchestrator.get_order(order_id))


@order_router.patch("/{order_id}", response_model=OrderResponse)
def update_order(order_id: str, body: UpdateOrderRequest) -> OrderResponse:
    return OrderResponse.from_order(orchestrator.update_order(order_id, notes=body.notes))


@order_router.put("/{order_id}/status", response_model=OrderResponse)
def update_status(order_id: str, body: UpdateStatusRequest) -> OrderResponse:
    order = orchestrator.update_status(
        order_id,
        status=body.status.upper() if body.status else None,
        payment_status=body.payment_status.upper() if body.payment_status else None,
        reason=body.reason,
        tracking_number=body.tracking_number,
        payment_transaction_id=body.payment_transaction_id,
    )
    return OrderResponse.from_order(order)


@order_router.post("/{order_id}/cancel", response_model=OrderResponse)
def cancel_order(order_id: str, body: CancelOrderRequest) -> OrderResponse:
    if body.user_id:
        order = orchestrator.cancel_order_for_user(order_id, body.user_id, body.reason)
    else:
        order = orchestrator.cancel_order(order_id, body.reason)
    return OrderResponse.from_order(order)


@order_router.post("/{order_id}/confirm", response_model=OrderResponse)
def confirm_order(order_id: str) -> OrderResponse:
    return OrderResponse.from_order(orchestrator.confirm_order(order_id))


@order_router.post("/{order_id}/process", response_model=OrderResponse)
def process_order(order_id: str) -> OrderResponse:
    return OrderResponse.from_order(orchestrator.process_order(order_id))


@order_router.post("/{order_id}/ship", response_model=OrderResponse)
def ship_order(order_id: str, body: ShipOrderRequest) -> OrderResponse:
    return OrderResponse.from_order(orchestrator.ship_order(order_id, body.tracking_number))


@order_router.post("/{order_id}/deliver", response_model=OrderResponse)
def deliver_order(order_id: str) -> OrderResponse:
    return OrderResponse.from_order(orchestrator.deliver_order(order_id))


@order_router.post("/{order_id}/discount", response_model=DiscountResponse)
def apply_discount(order_id: str, body: ApplyDiscountRequest) -> DiscountResponse:
    granted = orchestrator.apply_discount(order_id, body.code)
    return DiscountResponse(
        discount_amount=str(granted),
        order=OrderResponse.from_order(orchestrator.get_order(order_id)),
    )


@order_router.post("/{order_id}/payment/initialize", response_model=PaymentHandleResponse)
def initialize_payment(order_id: str) -> PaymentHandleResponse:
    return PaymentHandleResponse(payment_handle=orchestrator.initialize_payment(order_id))


@order_router.post("/{order_id}/payment", response_model=OrderResponse)
def process_payment(order_id: str, body: ProcessPaymentRequest) -> OrderResponse:
    return OrderResponse.from_order(orchestrator.process_payment(order_id, body.payload))


@order_router.get("/{order_id}/payment/validate", response_model=PaymentValidationResponse)
def validate_payment(order_id: str) -> PaymentValidationResponse:
    return PaymentValidationResponse(valid=orchestrator.validate_payment(order_id))


# ---------------------------------------------------------------------------
# Development Router: seeds the in-memory collaborators
# ---------------------------------------------------------------------------
dev_router = APIRouter(prefix="/orders-dev", tags=["development"])


@dev_router.post("/users", status_code=201, response_model=StatusResponse)
async def seed_user(body: SeedUserRequest) -> StatusResponse:
    get_user_directory().add_user(body.user_id, email=body.email, is_active=body.is_active)
    return StatusResponse()


@dev_router.post("/products", status_code=201, response_model=StatusResponse)
async def seed_product(body: SeedProductRequest) -> StatusResponse:
    get_product_catalog().add_product(
        body.product_id,
        body.name,
        body.price,
        stock_quantity=body.stock_quantity,
        sku=body.sku,
        is_active=body.is_active,
    )
    return StatusResponse()


@dev_router.post("/carts/{user_id}/lines", status_code=201, response_model=StatusResponse)
async def seed_cart_line(user_id: str, body: SeedCartLineRequest) -> StatusResponse:
    get_cart_store().add_line(user_id, body.product_id, body.quantity)
    return StatusResponse()


@dev_router.post("/gateway/configure", response_model=StatusResponse)
async def configure_gateway(body: ConfigureGatewayRequest) -> StatusResponse:
    """Switch to the deterministic fake gateway and set its outcome."""
    gateway = get_gateway()
    if not isinstance(gateway, FakeGateway):
        gateway = FakeGateway()
        set_gateway(gateway)
    gateway.configure(should_succeed=body.should_succeed, failure_reason=body.failure_reason)
    return StatusResponse()

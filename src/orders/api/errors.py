"""Map Orders domain errors to HTTP responses.

Starlette resolves handlers along the exception's MRO, so the specific
kinds registered here win over the generic Protean bases they extend.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.exceptions import InvalidOperationError, ObjectNotFoundError, ValidationError

from orders.exceptions import (
    InsufficientStock,
    InvalidOrderRequest,
    InvalidTransition,
    LimitExceeded,
    OrderNotFound,
    PaymentFailure,
    ProductNotFound,
    UserNotFound,
)

# (exception class, HTTP status, error code)
ERROR_STATUS = [
    (OrderNotFound, 404, "order_not_found"),
    (UserNotFound, 404, "user_not_found"),
    (ProductNotFound, 404, "product_not_found"),
    (ObjectNotFoundError, 404, "not_found"),
    (LimitExceeded, 422, "limit_exceeded"),
    (InvalidOrderRequest, 400, "invalid_request"),
    (ValidationError, 400, "invalid_request"),
    (InvalidTransition, 409, "invalid_transition"),
    (InsufficientStock, 409, "insufficient_stock"),
    (PaymentFailure, 402, "payment_failed"),
    (InvalidOperationError, 409, "invalid_operation"),
]


def _body(code, exc) -> dict:
    body = {"error": code, "message": str(exc)}
    details = getattr(exc, "details", None)
    if details:
        body["details"] = details
    messages = getattr(exc, "messages", None)
    if isinstance(messages, dict):
        body["messages"] = messages
    return body


def _handler_for(status_code, code):
    async def handler(request: Request, exc: Exception) -> JSONResponse:
        return JSONResponse(status_code=status_code, content=_body(code, exc))

    return handler


def register_exception_handlers(app: FastAPI) -> None:
    for exc_class, status_code, code in ERROR_STATUS:
        app.add_exception_handler(exc_class, _handler_for(status_code, code))

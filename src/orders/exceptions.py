"""Error kinds raised by the Orders domain.

Each kind is a distinct, catchable class so the transport layer can map it to
a specific response code. They extend the closest Protean exception, which
keeps generic handlers for ``ValidationError`` / ``ObjectNotFoundError`` /
``InvalidOperationError`` working unchanged.

``messages`` always holds a ``{field: [message, ...]}`` mapping, the shape
Protean uses for validation errors.
"""

from protean.exceptions import InvalidOperationError, ObjectNotFoundError, ValidationError


class _OrderErrorMixin:
    field = "order"

    def _init(self, message, **details):
        self.message = message
        self.details = details
        return {self.field: [message]}

    def __str__(self):
        return self.message


# ---------------------------------------------------------------------------
# Not found
# ---------------------------------------------------------------------------
class OrderNotFound(_OrderErrorMixin, ObjectNotFoundError):
    def __init__(self, message="Order not found", **details):
        super().__init__(self._init(message, **details))

    @classmethod
    def by_id(cls, order_id):
        return cls(f"Order not found: {order_id}", order_id=str(order_id))

    @classmethod
    def by_number(cls, order_number):
        return cls(f"Order not found with number: {order_number}", order_number=order_number)


class UserNotFound(_OrderErrorMixin, ObjectNotFoundError):
    field = "user_id"

    def __init__(self, user_id):
        self.user_id = str(user_id)
        super().__init__(self._init(f"User not found: {user_id}", user_id=self.user_id))


class ProductNotFound(_OrderErrorMixin, ObjectNotFoundError):
    field = "product_id"

    def __init__(self, product_id):
        self.product_id = str(product_id)
        super().__init__(self._init(f"Product not found: {product_id}", product_id=self.product_id))


# ---------------------------------------------------------------------------
# Invalid requests and business-rule failures
# ---------------------------------------------------------------------------
class InvalidOrderRequest(_OrderErrorMixin, ValidationError):
    def __init__(self, message, field="order", **details):
        self.field = field
        super().__init__(self._init(message, **details))


class LimitExceeded(_OrderErrorMixin, ValidationError):
    """An order ceiling (line count, per-line quantity, amount) was exceeded."""

    field = "limits"

    def __init__(self, limit, actual, maximum):
        self.limit = limit
        self.actual = actual
        self.maximum = maximum
        super().__init__(
            self._init(
                f"Order exceeds {limit} limit: {actual} (max: {maximum})",
                limit=limit,
                actual=str(actual),
                maximum=str(maximum),
            )
        )


class InvalidTransition(_OrderErrorMixin, InvalidOperationError):
    field = "status"

    def __init__(self, current, target, message=None):
        self.current = current
        self.target = target
        super().__init__(
            self._init(
                message or f"Invalid status transition from {current} to {target}",
                current=str(current),
                target=str(target),
            )
        )


class InsufficientStock(_OrderErrorMixin, InvalidOperationError):
    field = "stock"

    def __init__(self, product_id, requested, available, product_name=None):
        self.product_id = str(product_id)
        self.product_name = product_name
        self.requested = requested
        self.available = available
        label = f"{product_name} ({product_id})" if product_name else str(product_id)
        super().__init__(
            self._init(
                f"Insufficient stock for product {label}: requested {requested}, available {available}",
                product_id=self.product_id,
                requested=requested,
                available=available,
            )
        )


class PaymentFailure(_OrderErrorMixin, InvalidOperationError):
    field = "payment"

    def __init__(self, message, order_id=None, reason=None):
        self.order_id = str(order_id) if order_id is not None else None
        self.reason = reason
        super().__init__(self._init(message, order_id=self.order_id, reason=reason))

"""Orders bounded context — order lifecycle orchestration.

Handles order creation from carts or explicit lines, the order status
state machine, inventory reservation, pricing, and payment reconciliation.
"""

from protean.domain import Domain

from orders.utils.logging import configure_logging, get_logger

# Configure logging for the application
configure_logging()

orders = Domain(name="orders")

logger = get_logger(__name__)

"""Process-wide payment gateway used by the order payment handlers.

The orchestrator resolves the gateway on every call, so swapping it takes
effect for the next charge:

- ``SimulatedGateway`` by default; each charge blocks for a fixed delay
- ``FakeGateway`` in tests and after ``POST /orders-dev/gateway/configure``
"""

from orders.payment.port import PaymentGateway
from orders.payment.simulated_adapter import SimulatedGateway

_current_gateway: PaymentGateway | None = None


def get_gateway() -> PaymentGateway:
    """Return the current payment gateway. Defaults to SimulatedGateway."""
    global _current_gateway
    if _current_gateway is None:
        _current_gateway = SimulatedGateway()
    return _current_gateway


def set_gateway(gateway: PaymentGateway) -> None:
    """Override the active payment gateway (useful for tests)."""
    global _current_gateway
    _current_gateway = gateway


def reset_gateway() -> None:
    """Reset to default gateway."""
    global _current_gateway
    _current_gateway = None

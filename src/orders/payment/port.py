"""Payment gateway port (abstract interface).

Defines the contract every payment gateway adapter implements. The order
workflow only ever calls ``initialize``, ``charge`` and ``verify``; latency,
randomness and provider details stay inside the adapters.
"""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class ChargeResult:
    """Result of a payment charge attempt."""

    success: bool
    transaction_id: str | None = None
    gateway_status: str | None = None
    failure_reason: str | None = None


def epoch_millis() -> int:
    return int(time.time() * 1000)


def payment_handle(order_number: str) -> str:
    """Opaque handle correlating later processing or callbacks with an order."""
    return f"PAY_{order_number}_{epoch_millis()}"


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    @abstractmethod
    def initialize(self, order_number: str, amount: Decimal) -> str:
        """Open a payment for the order and return its handle."""
        ...

    @abstractmethod
    def charge(
        self,
        order_number: str,
        amount: Decimal,
        payment_method: str | None,
        payload: dict | None = None,
    ) -> ChargeResult:
        """Charge the order amount. Blocks until the provider answers."""
        ...

    @abstractmethod
    def verify(self, transaction_id: str) -> bool:
        """Confirm that a previously reported transaction is genuine."""
        ...

"""Simulated payment processor.

Stands in for a real provider during local runs: each charge blocks for a
fixed delay to model network latency and succeeds with a configurable
probability. Inject ``rng`` and ``sleep`` to make it deterministic.
"""

import random
import time
from collections.abc import Callable
from decimal import Decimal

import structlog

from orders.payment.port import ChargeResult, PaymentGateway, epoch_millis, payment_handle

logger = structlog.get_logger(__name__)

DEFAULT_DELAY_SECONDS = 1.0
DEFAULT_SUCCESS_RATE = 0.95


class SimulatedGateway(PaymentGateway):
    def __init__(
        self,
        delay: float = DEFAULT_DELAY_SECONDS,
        success_rate: float = DEFAULT_SUCCESS_RATE,
        rng: random.Random | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if not 0.0 <= success_rate <= 1.0:
            raise ValueError("success_rate must be between 0 and 1")
        if delay < 0:
            raise ValueError("delay must be non-negative")
        self.delay = delay
        self.success_rate = success_rate
        self._rng = rng or random.Random()
        self._sleep = sleep
        self._transactions: set[str] = set()

    def initialize(self, order_number: str, amount: Decimal) -> str:
        handle = payment_handle(order_number)
        logger.info("Payment initialized", order_number=order_number, amount=str(amount), handle=handle)
        return handle

    def charge(
        self,
        order_number: str,
        amount: Decimal,
        payment_method: str | None,
        payload: dict | None = None,
    ) -> ChargeResult:
        if self.delay:
            self._sleep(self.delay)

        if self._rng.random() < self.success_rate:
            transaction_id = f"TXN_{epoch_millis()}"
            self._transactions.add(transaction_id)
            logger.info("Simulated charge succeeded", order_number=order_number, transaction_id=transaction_id)
            return ChargeResult(success=True, transaction_id=transaction_id, gateway_status="succeeded")

        logger.warning("Simulated charge declined", order_number=order_number, payment_method=payment_method)
        return ChargeResult(success=False, gateway_status="failed", failure_reason="Payment declined by processor")

    def verify(self, transaction_id: str) -> bool:
        return transaction_id in self._transactions

"""Configurable fake payment gateway for development and testing.

Deterministic: every charge succeeds or fails according to ``configure()``,
with no delay. Calls are recorded in ``calls`` so tests can assert on them.
"""

from decimal import Decimal
from uuid import uuid4

from orders.payment.port import ChargeResult, PaymentGateway, payment_handle


class FakeGateway(PaymentGateway):
    """Configurable fake payment gateway."""

    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.failure_reason: str = "Card declined"
        self.calls: list[dict] = []
        self._transactions: set[str] = set()

    def configure(self, should_succeed: bool, failure_reason: str = "Card declined") -> None:
        """Configure gateway behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def initialize(self, order_number: str, amount: Decimal) -> str:
        handle = payment_handle(order_number)
        self.calls.append({"method": "initialize", "order_number": order_number, "amount": amount, "handle": handle})
        return handle

    def charge(
        self,
        order_number: str,
        amount: Decimal,
        payment_method: str | None,
        payload: dict | None = None,
    ) -> ChargeResult:
        self.calls.append(
            {
                "method": "charge",
                "order_number": order_number,
                "amount": amount,
                "payment_method": payment_method,
                "payload": payload,
            }
        )

        if self.should_succeed:
            transaction_id = f"fake_txn_{uuid4().hex[:12]}"
            self._transactions.add(transaction_id)
            return ChargeResult(success=True, transaction_id=transaction_id, gateway_status="succeeded")
        return ChargeResult(success=False, gateway_status="failed", failure_reason=self.failure_reason)

    def register_transaction(self, transaction_id: str) -> None:
        """Mark an externally reported transaction (e.g. from a webhook) as genuine."""
        self._transactions.add(transaction_id)

    def verify(self, transaction_id: str) -> bool:
        self.calls.append({"method": "verify", "transaction_id": transaction_id})
        return transaction_id in self._transactions

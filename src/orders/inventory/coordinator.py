"""Inventory coordination — reserving and releasing stock for orders.

Reservation is all-or-nothing: every line is checked before any stock moves,
and decrements already applied are undone if a later one fails. Check and
decrement run under per-product locks, so two orders competing for the last
unit of a product are serialized and only one of them gets it.

Release is best-effort: each line is returned independently and failures
are collected in a ``ReleaseReport`` instead of being raised.
"""

from collections import OrderedDict
from dataclasses import dataclass, field

import structlog

from orders.collaborators import get_product_catalog
from orders.collaborators.port import ProductCatalog
from orders.exceptions import InsufficientStock, ProductNotFound
from orders.shared.locks import KeyedLocks

logger = structlog.get_logger(__name__)

# Shared by every coordinator in the process
_product_locks = KeyedLocks()


@dataclass(frozen=True)
class ReleaseFailure:
    product_id: str
    quantity: int
    error: str

    def to_dict(self) -> dict:
        return {"product_id": self.product_id, "quantity": self.quantity, "error": self.error}


@dataclass
class ReleaseReport:
    """Outcome of a best-effort release."""

    released: list[tuple[str, int]] = field(default_factory=list)
    failures: list[ReleaseFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


def merge_quantities(line_quantities) -> "OrderedDict[str, int]":
    """Sum quantities per product, keeping first-seen order."""
    merged: OrderedDict[str, int] = OrderedDict()
    for product_id, quantity in line_quantities:
        merged[str(product_id)] = merged.get(str(product_id), 0) + int(quantity)
    return merged


class InventoryCoordinator:
    def __init__(self, catalog: ProductCatalog | None = None, locks: KeyedLocks | None = None) -> None:
        self._catalog = catalog
        self._locks = locks or _product_locks

    @property
    def catalog(self) -> ProductCatalog:
        return self._catalog or get_product_catalog()

    def check(self, line_quantities) -> None:
        """Raise unless every product exists and has enough stock."""
        for product_id, quantity in merge_quantities(line_quantities).items():
            product = self.catalog.get_product(product_id)
            if product is None:
                raise ProductNotFound(product_id)
            if product.stock_quantity < quantity:
                raise InsufficientStock(product_id, quantity, product.stock_quantity, product.name)

    def reserve(self, order) -> None:
        """Take stock for every line of ``order`` or for none of them."""
        self.reserve_lines(order.line_quantities(), order_id=str(order.id))

    def reserve_lines(self, line_quantities, order_id=None) -> None:
        quantities = merge_quantities(line_quantities)
        catalog = self.catalog

        with self._locks.hold(*quantities.keys()):
            self.check(quantities.items())

            taken = []
            try:
                for product_id, quantity in quantities.items():
                    catalog.decrease_stock(product_id, quantity)
                    taken.append((product_id, quantity))
            except Exception:
                for product_id, quantity in reversed(taken):
                    catalog.increase_stock(product_id, quantity)
                logger.warning("Inventory reservation rolled back", order_id=order_id, undone=len(taken))
                raise

        logger.info("Inventory reserved", order_id=order_id, products=len(quantities))

    def release(self, order) -> ReleaseReport:
        """Return every line's quantity to stock, collecting per-line failures."""
        return self.release_lines(order.line_quantities(), order_id=str(order.id))

    def release_lines(self, line_quantities, order_id=None) -> ReleaseReport:
        quantities = merge_quantities(line_quantities)
        catalog = self.catalog
        report = ReleaseReport()

        with self._locks.hold(*quantities.keys()):
            for product_id, quantity in quantities.items():
                try:
                    catalog.increase_stock(product_id, quantity)
                except Exception as exc:
                    logger.error(
                        "Failed to release inventory",
                        order_id=order_id,
                        product_id=product_id,
                        quantity=quantity,
                        error=str(exc),
                    )
                    report.failures.append(ReleaseFailure(product_id, quantity, str(exc)))
                else:
                    report.released.append((product_id, quantity))

        logger.info(
            "Inventory released",
            order_id=order_id,
            released=len(report.released),
            failed=len(report.failures),
        )
        return report


def get_inventory_coordinator() -> InventoryCoordinator:
    """Coordinator bound to the currently configured product catalogue."""
    return InventoryCoordinator()

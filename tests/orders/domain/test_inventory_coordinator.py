"""Tests for stock reservation and release against the in-memory catalogue."""

import threading

import pytest
from orders.collaborators.memory_adapter import InMemoryProductCatalog
from orders.exceptions import InsufficientStock, ProductNotFound
from orders.inventory.coordinator import InventoryCoordinator, merge_quantities
from orders.shared.locks import KeyedLocks


@pytest.fixture
def products():
    catalog = InMemoryProductCatalog()
    catalog.add_product("prod-a", "Product A", "10.00", stock_quantity=5)
    catalog.add_product("prod-b", "Product B", "25.00", stock_quantity=0)
    catalog.add_product("prod-c", "Product C", "60.00", stock_quantity=1)
    return catalog


@pytest.fixture
def coordinator(products):
    return InventoryCoordinator(products, locks=KeyedLocks())


class FlakyCatalog(InMemoryProductCatalog):
    """Fails stock changes for the products listed in ``broken``."""

    def __init__(self, broken):
        super().__init__()
        self.broken = set(broken)

    def decrease_stock(self, product_id, quantity):
        if product_id in self.broken:
            raise RuntimeError(f"catalogue unavailable for {product_id}")
        super().decrease_stock(product_id, quantity)

    def increase_stock(self, product_id, quantity):
        if product_id in self.broken:
            raise RuntimeError(f"catalogue unavailable for {product_id}")
        super().increase_stock(product_id, quantity)


def test_merge_quantities_sums_repeated_products():
    merged = merge_quantities([("prod-a", 1), ("prod-c", 2), ("prod-a", 3)])
    assert list(merged.items()) == [("prod-a", 4), ("prod-c", 2)]


class TestCheck:
    def test_passes_with_enough_stock(self, coordinator):
        coordinator.check([("prod-a", 5)])

    def test_reports_shortfall(self, coordinator):
        with pytest.raises(InsufficientStock) as exc:
            coordinator.check([("prod-a", 1), ("prod-b", 1)])
        assert exc.value.product_id == "prod-b"
        assert exc.value.requested == 1
        assert exc.value.available == 0

    def test_repeated_lines_are_checked_together(self, coordinator):
        with pytest.raises(InsufficientStock):
            coordinator.check([("prod-a", 3), ("prod-a", 3)])

    def test_unknown_product(self, coordinator):
        with pytest.raises(ProductNotFound):
            coordinator.check([("missing", 1)])


class TestReserve:
    def test_decrements_every_line(self, coordinator, products):
        coordinator.reserve_lines([("prod-a", 2), ("prod-c", 1)])
        assert products.stock_of("prod-a") == 3
        assert products.stock_of("prod-c") == 0

    def test_all_or_nothing_on_shortfall(self, coordinator, products):
        with pytest.raises(InsufficientStock):
            coordinator.reserve_lines([("prod-a", 2), ("prod-b", 1)])
        assert products.stock_of("prod-a") == 5

    def test_undoes_applied_decrements_when_a_later_one_fails(self):
        catalog = FlakyCatalog(broken={"prod-z"})
        catalog.add_product("prod-a", "Product A", "10.00", stock_quantity=5)
        catalog.add_product("prod-z", "Product Z", "10.00", stock_quantity=5)
        coordinator = InventoryCoordinator(catalog, locks=KeyedLocks())

        with pytest.raises(RuntimeError):
            coordinator.reserve_lines([("prod-a", 2), ("prod-z", 1)])
        assert catalog.stock_of("prod-a") == 5

    def test_last_unit_goes_to_exactly_one_order(self, coordinator, products):
        outcomes = []
        barrier = threading.Barrier(8)

        def attempt():
            barrier.wait()
            try:
                coordinator.reserve_lines([("prod-c", 1)])
                outcomes.append("reserved")
            except InsufficientStock:
                outcomes.append("rejected")

        threads = [threading.Thread(target=attempt) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert outcomes.count("reserved") == 1
        assert outcomes.count("rejected") == 7
        assert products.stock_of("prod-c") == 0


class TestRelease:
    def test_returns_stock(self, coordinator, products):
        report = coordinator.release_lines([("prod-a", 2), ("prod-b", 1)])
        assert report.ok
        assert products.stock_of("prod-a") == 7
        assert products.stock_of("prod-b") == 1
        assert report.released == [("prod-a", 2), ("prod-b", 1)]

    def test_collects_failures_and_keeps_going(self):
        catalog = FlakyCatalog(broken={"prod-z"})
        catalog.add_product("prod-a", "Product A", "10.00", stock_quantity=0)
        catalog.add_product("prod-z", "Product Z", "10.00", stock_quantity=0)
        catalog.add_product("prod-y", "Product Y", "10.00", stock_quantity=0)
        coordinator = InventoryCoordinator(catalog, locks=KeyedLocks())

        report = coordinator.release_lines([("prod-a", 1), ("prod-z", 2), ("prod-y", 3)])

        assert not report.ok
        assert [f.product_id for f in report.failures] == ["prod-z"]
        assert "unavailable" in report.failures[0].error
        assert catalog.stock_of("prod-a") == 1
        assert catalog.stock_of("prod-y") == 3

    def test_missing_product_is_reported(self, coordinator):
        report = coordinator.release_lines([("gone", 1)])
        assert report.failures[0].to_dict()["product_id"] == "gone"

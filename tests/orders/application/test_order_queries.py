"""Application tests for order lookup, listing, search and reporting."""

from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest
from orders.exceptions import OrderNotFound
from orders.order.repository import OrderCriteria


@pytest.fixture
def three_orders(place_order, shipping):
    first = place_order()
    second = place_order(lines=[{"product_id": "prod-c", "quantity": 2}])
    other_shipping = dict(shipping, first_name="Grace", last_name="Hopper", email="grace@example.com")
    third = place_order(user_id="user-2", shipping=other_shipping)
    return first, second, third


class TestLookup:
    def test_get_by_id(self, place_order, orchestrator):
        order = place_order()
        assert orchestrator.get_order(order.id).order_number == order.order_number

    def test_get_by_number(self, place_order, orchestrator):
        order = place_order()
        assert orchestrator.get_order_by_number(order.order_number).id == order.id

    def test_missing(self, orchestrator):
        with pytest.raises(OrderNotFound):
            orchestrator.get_order("missing")
        with pytest.raises(OrderNotFound):
            orchestrator.get_order_by_number("ORD-0-0")


class TestListing:
    def test_orders_for_user(self, three_orders, orchestrator):
        first, second, _ = three_orders
        page = orchestrator.list_orders_for_user("user-1")
        assert page.total == 2
        assert {o.id for o in page.items} == {first.id, second.id}

    def test_newest_first(self, three_orders, orchestrator):
        items = orchestrator.list_orders_for_user("user-1").items
        assert items[0].created_at >= items[1].created_at

    def test_pagination(self, three_orders, orchestrator):
        page = orchestrator.search_orders(OrderCriteria(), page=0, size=2)
        assert (page.total, len(page.items), page.has_next) == (3, 2, True)

        last = orchestrator.search_orders(OrderCriteria(), page=1, size=2)
        assert len(last.items) == 1
        assert not last.has_next

    def test_size_is_clamped(self, three_orders, orchestrator):
        assert orchestrator.search_orders(OrderCriteria(), size=1000).size == 100


class TestSearch:
    def test_by_status(self, three_orders, orchestrator):
        first, _, _ = three_orders
        orchestrator.confirm_order(first.id)
        page = orchestrator.search_orders(OrderCriteria(statuses=("CONFIRMED",)))
        assert [o.id for o in page.items] == [first.id]

    def test_by_several_statuses(self, three_orders, orchestrator):
        first, second, _ = three_orders
        orchestrator.confirm_order(first.id)
        orchestrator.cancel_order(second.id, "Customer request")
        page = orchestrator.search_orders(OrderCriteria(statuses=("CONFIRMED", "CANCELLED")))
        assert {o.id for o in page.items} == {first.id, second.id}

    def test_by_payment_status(self, three_orders, orchestrator):
        _, second, _ = three_orders
        orchestrator.process_payment(second.id)
        page = orchestrator.search_orders(OrderCriteria(payment_statuses=("PAID",)))
        assert [o.id for o in page.items] == [second.id]

    def test_by_amount_range(self, three_orders, orchestrator):
        _, second, _ = three_orders
        page = orchestrator.search_orders(OrderCriteria(min_amount=Decimal("100.00")))
        assert [o.id for o in page.items] == [second.id]

        page = orchestrator.search_orders(OrderCriteria(max_amount=Decimal("37.00")))
        assert page.total == 2

    def test_by_created_range(self, three_orders, orchestrator):
        now = datetime.now(UTC)
        assert orchestrator.search_orders(OrderCriteria(created_from=now - timedelta(hours=1))).total == 3
        assert orchestrator.search_orders(OrderCriteria(created_to=now - timedelta(hours=1))).total == 0

    def test_free_text_matches_customer_and_number(self, three_orders, orchestrator):
        first, _, third = three_orders
        assert [o.id for o in orchestrator.search_orders(OrderCriteria(search_term="HOPPER")).items] == [third.id]
        assert [o.id for o in orchestrator.search_orders(OrderCriteria(search_term=first.order_number)).items] == [
            first.id
        ]


class TestReporting:
    def test_count_by_status(self, three_orders, orchestrator):
        first, _, _ = three_orders
        orchestrator.confirm_order(first.id)
        assert orchestrator.count_orders_by_status("PENDING") == 2
        assert orchestrator.count_orders_by_status("CONFIRMED") == 1
        assert orchestrator.count_orders_by_status("DELIVERED") == 0

    def test_revenue_counts_paid_orders_only(self, three_orders, orchestrator):
        first, second, _ = three_orders
        orchestrator.process_payment(first.id)
        orchestrator.process_payment(second.id)
        assert orchestrator.total_revenue() == Decimal("169.00")

    def test_revenue_by_date_range(self, three_orders, orchestrator):
        first, _, _ = three_orders
        orchestrator.process_payment(first.id)
        later = datetime.now(UTC) + timedelta(days=1)
        assert orchestrator.total_revenue(start=later) == Decimal("0.00")

    def test_revenue_with_no_orders(self, orchestrator):
        assert orchestrator.total_revenue() == Decimal("0.00")

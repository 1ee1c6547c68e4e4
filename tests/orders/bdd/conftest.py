"""Shared BDD step definitions for the Orders domain."""

import pytest
from orders.collaborators import get_product_catalog, get_user_directory
from orders.order.order import Order
from protean import current_domain
from pytest_bdd import given, parsers, then


@pytest.fixture()
def outcome():
    """Container for the order or error produced by a When step."""
    return {"order": None, "exc": None}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('the catalogue has product "{product_id}" priced {price} with {stock:d} in stock'))
def _(product_id, price, stock):
    get_product_catalog().add_product(product_id, product_id.title(), price, stock_quantity=stock)


@given(parsers.cfparse('user "{user_id}" has {quantity:d} of "{product_id}" in the cart'))
def _(cart, user_id, quantity, product_id):
    if get_user_directory().get_user(user_id) is None:
        get_user_directory().add_user(user_id)
    cart.add_line(user_id, product_id, quantity)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the order is "{status}" with payment "{payment_status}"'))
def _(orchestrator, outcome, status, payment_status):
    order = orchestrator.get_order(outcome["order"].id)
    assert order.status == status
    assert order.payment_status == payment_status


@then(parsers.cfparse('"{product_id}" has {stock:d} in stock'))
def _(product_id, stock):
    assert get_product_catalog().stock_of(product_id) == stock


@then("no order was stored")
def _():
    assert current_domain.repository_for(Order)._dao.query.all().items == []

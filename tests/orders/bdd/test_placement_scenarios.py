"""BDD tests for order placement."""

from orders.exceptions import InsufficientStock
from pytest_bdd import parsers, scenarios, then, when

scenarios("features/order_placement.feature")


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse('user "{user_id}" places an order from the cart'))
def _(orchestrator, outcome, shipping, user_id):
    outcome["order"] = orchestrator.create_order_from_cart(user_id, shipping)


@when(parsers.cfparse('user "{user_id}" tries to place an order from the cart'))
def _(orchestrator, outcome, shipping, user_id):
    try:
        outcome["order"] = orchestrator.create_order_from_cart(user_id, shipping)
    except InsufficientStock as exc:
        outcome["exc"] = exc


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse("the order total is {total}"))
def _(outcome, total):
    assert outcome["order"].total_amount == float(total)


@then(parsers.cfparse('the cart of "{user_id}" is empty'))
def _(cart, user_id):
    assert cart.is_empty(user_id)


@then(parsers.cfparse('the cart of "{user_id}" holds {count:d} lines'))
def _(cart, user_id, count):
    assert len(cart.get_lines(user_id)) == count


@then(parsers.cfparse('the order is rejected for insufficient stock of "{product_id}"'))
def _(outcome, product_id):
    assert outcome["order"] is None
    assert isinstance(outcome["exc"], InsufficientStock)
    assert outcome["exc"].product_id == product_id

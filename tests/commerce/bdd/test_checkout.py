"""BDD tests for checkout and cancellation."""

import pytest
from commerce.cart.items import find_cart
from commerce.order.creation import place_order, place_order_from_cart
from commerce.order.order import Order
from commerce.order.status import cancel_order
from protean import current_domain
from pytest_bdd import given, parsers, scenarios, then, when

scenarios("features/checkout.feature")


@pytest.fixture()
def products():
    return {}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('a product "{name}" priced {price:f} with {stock:d} in stock'))
def a_product(products, make_product, name, price, stock):
    products[name] = make_product(name=name, price=price, stock=stock)


@given(parsers.cfparse('the customer has {quantity:d} "{name}" in the cart'))
def the_customer_has_in_cart(products, fill_cart, customer, name, quantity):
    fill_cart(customer, (products[name], quantity))


@given(parsers.cfparse('another customer buys {quantity:d} "{name}"'))
def another_customer_buys(products, other_customer, address, name, quantity):
    place_order(
        other_customer.user_id,
        [{"product_id": str(products[name].id), "quantity": quantity}],
        address,
        "cod",
        other_customer,
    )


@given("the customer checked out", target_fixture="order")
def the_customer_checked_out(customer, address):
    order_id = place_order_from_cart(customer.user_id, address, "upi", customer)
    return current_domain.repository_for(Order).get(order_id)


@given("the customer cancelled the order")
def the_customer_cancelled(order, customer):
    cancel_order(str(order.id), customer)


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(
    parsers.cfparse("the customer checks out with tax {tax:f} and shipping {shipping:f}"),
    target_fixture="order",
)
def the_customer_checks_out(customer, address, attempt, tax, shipping):
    order_id = attempt(
        place_order_from_cart,
        customer.user_id,
        address,
        "upi",
        customer,
        tax_amount=tax,
        shipping_amount=shipping,
    )
    return current_domain.repository_for(Order).get(order_id) if order_id else None


@when("the customer cancels the order")
def the_customer_cancels(order, customer, attempt):
    attempt(cancel_order, str(order.id), customer)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse("the order total is {total:f}"))
def the_order_total_is(order, total):
    assert order.total_amount == pytest.approx(total)


@then(parsers.cfparse('"{name}" has {stock:d} in stock'))
def product_has_stock(products, stock_of, name, stock):
    assert stock_of(products[name].id) == stock


@then("the cart is empty")
def the_cart_is_empty(customer):
    assert find_cart(customer.user_id).items == []


@then(parsers.cfparse("the cart still holds {count:d} items"))
def the_cart_still_holds(customer, count):
    assert find_cart(customer.user_id).total_items == count

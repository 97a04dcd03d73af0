"""Shared BDD fixtures and step definitions for the commerce domain."""

import pytest
from commerce.errors import CommerceError
from commerce.order.order import Order
from commerce.payment.intent import create_payment_intent
from commerce.payment.payment import Payment
from commerce.payment.verification import verify_payment
from protean import current_domain
from pytest_bdd import given, parsers, then


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def error():
    """Container for the domain error a When step ran into."""
    return {"exc": None}


@pytest.fixture()
def payment():
    """Container for the payment intent opened during a scenario."""
    return {"intent": None}


@pytest.fixture()
def attempt(error):
    """Run an operation, storing a domain refusal in `error` instead of raising it."""

    def _attempt(call, *args, **kwargs):
        try:
            return call(*args, **kwargs)
        except CommerceError as exc:
            error["exc"] = exc
            return None

    return _attempt


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given("a placed order totalling 33.00", target_fixture="order")
def a_placed_order(placed_order):
    return placed_order


@given("the order has been paid")
def the_order_has_been_paid(order, customer, fake_gateway, payment):
    intent = create_payment_intent(str(order.id), customer)
    verify_payment(
        order_id=str(order.id),
        gateway_order_id=intent["gateway_order_id"],
        gateway_payment_id="pay_001",
        signature=fake_gateway.sign(intent["gateway_order_id"], "pay_001"),
        actor=customer,
    )
    payment["intent"] = intent


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the request fails with "{error_kind}"'))
def the_request_fails_with(error, error_kind):
    assert error["exc"] is not None, "Expected the operation to be refused"
    assert error["exc"].error_kind == error_kind


@then(parsers.cfparse('the order status is "{status}"'))
def the_order_status_is(order, status):
    assert current_domain.repository_for(Order).get(order.id).status == status


@then(parsers.cfparse('the payment status is "{status}"'))
def the_payment_status_is(payment, status):
    record = current_domain.repository_for(Payment).get(payment["intent"]["payment_id"])
    assert record.status == status

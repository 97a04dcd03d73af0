"""BDD tests for payment intents, verification and refunds."""

from commerce.order.order import Order
from commerce.payment.intent import create_payment_intent
from commerce.payment.refund import refund_payment
from commerce.payment.verification import verify_payment
from protean import current_domain
from pytest_bdd import given, parsers, scenarios, then, when

scenarios("features/payment_reconciliation.feature")


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given("the payment was refunded")
def the_payment_was_refunded(payment, admin, fake_gateway):
    refund_payment(payment["intent"]["payment_id"], admin)


@given("the gateway is down")
def the_gateway_is_down(fake_gateway):
    fake_gateway.configure(should_succeed=False, failure_reason="Gateway unavailable")


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when("the customer opens a payment intent")
def the_customer_opens_an_intent(order, customer, fake_gateway, payment):
    payment["intent"] = create_payment_intent(str(order.id), customer)


@when(parsers.cfparse('the customer confirms payment "{payment_id}" with a {kind} signature'))
def the_customer_confirms_payment(order, customer, fake_gateway, payment, attempt, payment_id, kind):
    gateway_order_id = payment["intent"]["gateway_order_id"]
    signature = fake_gateway.sign(gateway_order_id, payment_id)
    if kind == "tampered":
        signature = signature[::-1]
    attempt(
        verify_payment,
        order_id=str(order.id),
        gateway_order_id=gateway_order_id,
        gateway_payment_id=payment_id,
        signature=signature,
        actor=customer,
    )


@when("an admin refunds the payment")
def an_admin_refunds(payment, admin, fake_gateway, attempt):
    attempt(refund_payment, payment["intent"]["payment_id"], admin)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then("the order is paid")
def the_order_is_paid(order):
    assert current_domain.repository_for(Order).get(order.id).is_paid is True


@then("the order is not paid")
def the_order_is_not_paid(order):
    assert current_domain.repository_for(Order).get(order.id).is_paid is False


@then("the stock is back on the shelf")
def the_stock_is_back(order, stock_of):
    for product_id, _ in order.item_lines():
        assert stock_of(product_id) == 5

"""Application tests for payment verification."""

import pytest
from commerce.errors import AlreadyPaid, Forbidden, InvalidSignature, NotFound, ReconciliationFailure, StateConflict
from commerce.order.order import Order, OrderStatus
from commerce.payment.intent import create_payment_intent
from commerce.payment.payment import Payment, PaymentStatus
from commerce.payment.verification import verify_payment
from protean import current_domain


@pytest.fixture()
def intent(placed_order, customer, fake_gateway):
    return create_payment_intent(str(placed_order.id), customer)


def _verify(order_id, intent, gateway, actor, payment_id="pay_test_001", signature=None):
    return verify_payment(
        order_id=order_id,
        gateway_order_id=intent["gateway_order_id"],
        gateway_payment_id=payment_id,
        signature=signature if signature is not None else gateway.sign(intent["gateway_order_id"], payment_id),
        actor=actor,
    )


def _state(order_id, payment_id):
    return (
        current_domain.repository_for(Order).get(order_id),
        current_domain.repository_for(Payment).get(payment_id),
    )


class TestVerifyPayment:
    def test_valid_signature_settles_order_and_payment(self, placed_order, intent, customer, fake_gateway):
        result = _verify(str(placed_order.id), intent, fake_gateway, customer)

        order, payment = _state(placed_order.id, intent["payment_id"])
        assert order.is_paid is True
        assert order.paid_at is not None
        assert order.status == OrderStatus.PROCESSING.value
        assert order.payment_result.transaction_id == "pay_test_001"
        assert payment.status == PaymentStatus.COMPLETED.value
        assert payment.transaction_id == "pay_test_001"
        assert result["status"] == "completed"
        assert result["transaction_id"] == "pay_test_001"

    def test_tampered_signature_changes_nothing(self, placed_order, intent, customer, fake_gateway):
        signature = fake_gateway.sign(intent["gateway_order_id"], "pay_test_001")
        tampered = ("0" if signature[0] != "0" else "1") + signature[1:]

        with pytest.raises(InvalidSignature):
            _verify(str(placed_order.id), intent, fake_gateway, customer, signature=tampered)

        order, payment = _state(placed_order.id, intent["payment_id"])
        assert order.is_paid is False
        assert payment.status == PaymentStatus.PENDING.value

    def test_signature_for_another_payment_id(self, placed_order, intent, customer, fake_gateway):
        signature = fake_gateway.sign(intent["gateway_order_id"], "pay_other")
        with pytest.raises(InvalidSignature):
            _verify(str(placed_order.id), intent, fake_gateway, customer, signature=signature)

    def test_second_verification_is_rejected(self, placed_order, intent, customer, fake_gateway):
        _verify(str(placed_order.id), intent, fake_gateway, customer)
        with pytest.raises(AlreadyPaid):
            _verify(str(placed_order.id), intent, fake_gateway, customer, payment_id="pay_test_002")

        _, payment = _state(placed_order.id, intent["payment_id"])
        assert payment.transaction_id == "pay_test_001"

    def test_unknown_gateway_order(self, placed_order, intent, customer, fake_gateway):
        bogus = dict(intent, gateway_order_id="order_unknown")
        with pytest.raises(NotFound):
            _verify(str(placed_order.id), bogus, fake_gateway, customer)

    def test_only_the_owner_can_verify(self, placed_order, intent, other_customer, fake_gateway):
        with pytest.raises(Forbidden):
            _verify(str(placed_order.id), intent, fake_gateway, other_customer)

    def test_amount_mismatch_is_a_conflict(self, placed_order, intent, customer, fake_gateway):
        payment = current_domain.repository_for(Payment).get(intent["payment_id"])
        payment.amount_minor = 3200
        current_domain.repository_for(Payment).add(payment)

        with pytest.raises(StateConflict):
            _verify(str(placed_order.id), intent, fake_gateway, customer)
        assert current_domain.repository_for(Order).get(placed_order.id).is_paid is False

    def test_storage_failure_is_a_reconciliation_failure(
        self, placed_order, intent, customer, fake_gateway, monkeypatch
    ):
        def broken_mark_paid(self, *args, **kwargs):
            raise RuntimeError("disk full")

        monkeypatch.setattr(Order, "mark_paid", broken_mark_paid)

        with pytest.raises(ReconciliationFailure) as exc:
            _verify(str(placed_order.id), intent, fake_gateway, customer)

        assert exc.value.details["gateway_payment_id"] == "pay_test_001"
        monkeypatch.undo()
        order, payment = _state(placed_order.id, intent["payment_id"])
        assert order.is_paid is False
        assert payment.status == PaymentStatus.PENDING.value

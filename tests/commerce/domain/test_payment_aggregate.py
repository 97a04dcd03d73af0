"""Tests for the Payment aggregate and minor-unit conversion."""

import pytest
from commerce.errors import AlreadyPaid, AlreadyRefunded, NotRefundable
from commerce.payment.events import PaymentCompleted, PaymentIntentCreated, PaymentRefunded
from commerce.payment.payment import Payment, PaymentStatus, to_minor_units


def _make_payment(**overrides):
    defaults = {
        "order_id": "order-001",
        "owner_id": "cust-001",
        "gateway_order_id": "order_abc123",
        "amount": 33.0,
        "amount_minor": 3300,
        "payment_method": "upi",
        "gateway_name": "fake",
        "key_id": "rzp_test_fake_key",
    }
    defaults.update(overrides)
    payment = Payment.create(**defaults)
    return payment


def _completed_payment():
    payment = _make_payment()
    payment.mark_completed("pay_001")
    payment._events.clear()
    return payment


class TestMinorUnits:
    @pytest.mark.parametrize(
        "amount,expected",
        [(33.0, 3300), (0.1 + 0.2, 30), (10.005, 1001), (19.99, 1999), (0, 0)],
    )
    def test_inr_amounts(self, amount, expected):
        assert to_minor_units(amount, "INR") == expected

    def test_zero_decimal_currency(self):
        assert to_minor_units(1500, "JPY") == 1500

    def test_currency_is_case_insensitive(self):
        assert to_minor_units(12.5, "jpy") == 13


class TestPaymentCreation:
    def test_starts_pending(self):
        payment = _make_payment()
        assert payment.status == PaymentStatus.PENDING.value
        assert payment.is_pending
        assert payment.is_refunded is False

    def test_records_gateway_info(self):
        payment = _make_payment()
        assert payment.gateway_info.gateway_name == "fake"
        assert payment.gateway_info.receipt == "order-001"

    def test_raises_intent_created(self):
        payment = _make_payment()
        event = payment._events[-1]
        assert isinstance(event, PaymentIntentCreated)
        assert event.amount_minor == 3300
        assert event.gateway_order_id == "order_abc123"


class TestPaymentCompletion:
    def test_mark_completed(self):
        payment = _make_payment()
        payment.mark_completed("pay_001")
        assert payment.is_completed
        assert payment.transaction_id == "pay_001"
        assert payment.paid_at is not None
        assert isinstance(payment._events[-1], PaymentCompleted)

    def test_completing_twice_raises_already_paid(self):
        payment = _completed_payment()
        with pytest.raises(AlreadyPaid):
            payment.mark_completed("pay_002")
        assert payment.transaction_id == "pay_001"

    def test_completing_refunded_payment_raises_already_paid(self):
        payment = _completed_payment()
        payment.mark_refunded("rfnd_001")
        with pytest.raises(AlreadyPaid):
            payment.mark_completed("pay_002")


class TestPaymentRefund:
    def test_pending_payment_is_not_refundable(self):
        with pytest.raises(NotRefundable):
            _make_payment().assert_refundable()

    def test_mark_refunded(self):
        payment = _completed_payment()
        payment.mark_refunded("rfnd_001", reason="Damaged")
        assert payment.status == PaymentStatus.REFUNDED.value
        assert payment.is_refunded is True
        assert payment.refund_id == "rfnd_001"
        assert payment.refund_reason == "Damaged"
        assert payment.refunded_at is not None

    def test_raises_payment_refunded(self):
        payment = _completed_payment()
        payment.mark_refunded("rfnd_001")
        event = payment._events[-1]
        assert isinstance(event, PaymentRefunded)
        assert event.refund_id == "rfnd_001"
        assert event.amount == 33.0

    def test_refunding_twice_raises_already_refunded(self):
        payment = _completed_payment()
        payment.mark_refunded("rfnd_001")
        with pytest.raises(AlreadyRefunded):
            payment.mark_refunded("rfnd_002")
        assert payment.refund_id == "rfnd_001"

    def test_summary(self):
        payment = _completed_payment()
        summary = payment.summary()
        assert summary["status"] == "completed"
        assert summary["amount_minor"] == 3300
        assert summary["transaction_id"] == "pay_001"

"""Application tests for payment read models."""

import pytest
from commerce.errors import Forbidden
from commerce.order.creation import place_order
from commerce.payment.intent import create_payment_intent
from commerce.payment.queries import list_payments, my_payments, payment_detail
from commerce.payment.refund import refund_payment
from commerce.utils import lookup


class TestMyPayments:
    def test_lists_own_payments(self, paid_order, customer):
        _, payment_id = paid_order
        payments, pagination = my_payments(customer)
        assert [p["id"] for p in payments] == [payment_id]
        assert payments[0]["status"] == "completed"
        assert pagination["total"] == 1

    def test_other_customers_see_nothing(self, paid_order, other_customer):
        payments, _ = my_payments(other_customer)
        assert payments == []


class TestPaymentDetail:
    def test_admin_reads_payment(self, paid_order, admin):
        _, payment_id = paid_order
        assert payment_detail(payment_id, admin)["amount"] == 33.0

    def test_customers_cannot_read_payment_records(self, paid_order, customer):
        _, payment_id = paid_order
        with pytest.raises(Forbidden):
            payment_detail(payment_id, customer)


class TestListPayments:
    def test_summary_over_all_payments(self, paid_order, admin):
        result = list_payments(admin)
        assert result["summary"] == {"totalAmount": 33.0, "totalPayments": 1, "avgAmount": 33.0}
        assert result["pagination"]["total"] == 1

    def test_filter_by_status(self, paid_order, admin, fake_gateway):
        _, payment_id = paid_order
        refund_payment(payment_id, admin)

        assert list_payments(admin, status="completed")["payments"] == []
        assert len(list_payments(admin, status="refunded")["payments"]) == 1

    def test_empty_ledger(self, admin):
        assert list_payments(admin)["summary"]["avgAmount"] == 0.0

    def test_admins_only(self, customer):
        with pytest.raises(Forbidden):
            list_payments(customer)

    def test_summary_and_paging_cover_every_batch(
        self, customer, admin, address, make_product, fake_gateway, monkeypatch
    ):
        monkeypatch.setattr(lookup, "BATCH_SIZE", 2)
        product = make_product(price=10.0, stock=10)
        for _ in range(5):
            order_id = place_order(
                customer.user_id, [{"product_id": str(product.id), "quantity": 1}], address, "upi", customer
            )
            create_payment_intent(order_id, customer)

        result = list_payments(admin, page=3, limit=2)

        assert result["summary"] == {"totalAmount": 50.0, "totalPayments": 5, "avgAmount": 10.0}
        assert result["pagination"] == {"total": 5, "page": 3, "limit": 2, "pages": 3}
        assert len(result["payments"]) == 1

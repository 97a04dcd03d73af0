"""Read-side access to payments: a customer's own payments and the admin ledger."""

from commerce.access import Actor, Capability, authorize
from commerce.payment.payment import Payment
from commerce.utils.lookup import find_page, iter_all, load


def my_payments(actor: Actor, page: int = 1, limit: int = 10) -> tuple[list[dict], dict]:
    items, pagination = find_page(Payment, page, limit, order_by="-created_at", owner_id=actor.user_id)
    return [payment.summary() for payment in items], pagination


def payment_detail(payment_id: str, actor: Actor) -> dict:
    authorize(actor, Capability.VIEW_PAYMENT)
    return load(Payment, payment_id).summary()


def list_payments(actor: Actor, page: int = 1, limit: int = 10, status: str | None = None) -> dict:
    """Every payment, newest first, with totals over the whole (filtered) set."""
    authorize(actor, Capability.LIST_PAYMENTS)

    filters = {"status": status} if status else {}
    items, pagination = find_page(Payment, page, limit, order_by="-created_at", **filters)

    count = 0
    total_amount = 0.0
    for payment in iter_all(Payment, **filters):
        count += 1
        total_amount += payment.amount
    total_amount = round(total_amount, 2)

    return {
        "payments": [payment.summary() for payment in items],
        "pagination": pagination,
        "summary": {
            "totalAmount": total_amount,
            "totalPayments": count,
            "avgAmount": round(total_amount / count, 2) if count else 0.0,
        },
    }

"""Domain events for the Payment aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String

from commerce.domain import commerce


@commerce.event(part_of="Payment")
class PaymentIntentCreated:
    """A gateway order was opened and a pending payment recorded for it."""

    __version__ = 1

    payment_id = Identifier(required=True)
    order_id = Identifier(required=True)
    owner_id = Identifier(required=True)
    gateway_order_id = String(required=True)
    amount = Float(required=True)
    amount_minor = Integer(required=True)
    currency = String(required=True)
    created_at = DateTime(required=True)


@commerce.event(part_of="Payment")
class PaymentCompleted:
    """The gateway's signed payment confirmation was verified."""

    __version__ = 1

    payment_id = Identifier(required=True)
    order_id = Identifier(required=True)
    owner_id = Identifier(required=True)
    transaction_id = String(required=True)
    amount = Float(required=True)
    currency = String(required=True)
    paid_at = DateTime(required=True)


@commerce.event(part_of="Payment")
class PaymentRefunded:
    """The gateway refunded the captured amount."""

    __version__ = 1

    payment_id = Identifier(required=True)
    order_id = Identifier(required=True)
    owner_id = Identifier(required=True)
    refund_id = String(required=True)
    amount = Float(required=True)
    reason = String()
    refunded_at = DateTime(required=True)

"""Payment aggregate — one gateway payment attempt for one order.

A payment is created `pending` when the gateway order (the payment intent)
is opened, becomes `completed` once the client's signed confirmation is
verified, and `refunded` after a successful gateway refund.

State Machine:
    PENDING → COMPLETED → REFUNDED
"""

from datetime import UTC, datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String, ValueObject

from commerce.domain import commerce
from commerce.errors import AlreadyPaid, AlreadyRefunded, NotRefundable, StateConflict
from commerce.payment.events import PaymentCompleted, PaymentIntentCreated, PaymentRefunded

# Currencies without a minor unit
_ZERO_DECIMAL_CURRENCIES = {"JPY", "KRW", "VND", "CLP", "ISK", "UGX"}


class PaymentStatus(Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    REFUNDED = "refunded"


def to_minor_units(amount, currency: str = "INR") -> int:
    """Convert a major-unit amount to the gateway's integer minor unit, rounding half up.

    >>> to_minor_units(33.0, "INR")
    3300
    >>> to_minor_units(10.005, "INR")
    1001
    """
    exponent = Decimal("1") if currency.upper() in _ZERO_DECIMAL_CURRENCIES else Decimal("100")
    value = (Decimal(str(amount)) * exponent).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return int(value)


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@commerce.value_object(part_of="Payment")
class GatewayInfo:
    """Which gateway holds the payment and how it was opened there."""

    gateway_name = String(max_length=50)
    receipt = String(max_length=255)
    key_id = String(max_length=255)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@commerce.aggregate
class Payment:
    order_id = Identifier(required=True)
    owner_id = Identifier(required=True)
    gateway_order_id = String(required=True, max_length=255)
    amount = Float(required=True, min_value=0.0)
    amount_minor = Integer(required=True, min_value=0)
    currency = String(max_length=3, default="INR")
    status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    payment_method = String(max_length=50)
    paid_at = DateTime()
    transaction_id = String(max_length=255)
    is_refunded = Boolean(default=False)
    refunded_at = DateTime()
    refund_reason = String(max_length=500)
    refund_id = String(max_length=255)
    gateway_info = ValueObject(GatewayInfo)
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def create(
        cls,
        order_id,
        owner_id,
        gateway_order_id,
        amount,
        amount_minor,
        currency="INR",
        payment_method=None,
        gateway_name=None,
        key_id=None,
    ):
        now = datetime.now(UTC)
        payment = cls(
            order_id=str(order_id),
            owner_id=str(owner_id),
            gateway_order_id=gateway_order_id,
            amount=amount,
            amount_minor=amount_minor,
            currency=currency,
            status=PaymentStatus.PENDING.value,
            payment_method=payment_method,
            is_refunded=False,
            gateway_info=GatewayInfo(gateway_name=gateway_name, receipt=str(order_id), key_id=key_id),
            created_at=now,
            updated_at=now,
        )
        payment.raise_(
            PaymentIntentCreated(
                payment_id=str(payment.id),
                order_id=str(order_id),
                owner_id=str(owner_id),
                gateway_order_id=gateway_order_id,
                amount=amount,
                amount_minor=amount_minor,
                currency=currency,
                created_at=now,
            )
        )
        return payment

    @property
    def is_pending(self) -> bool:
        return self.status == PaymentStatus.PENDING.value

    @property
    def is_completed(self) -> bool:
        return self.status == PaymentStatus.COMPLETED.value

    def mark_completed(self, transaction_id: str, paid_at=None) -> None:
        if self.status in (PaymentStatus.COMPLETED.value, PaymentStatus.REFUNDED.value):
            raise AlreadyPaid("Payment is already completed", payment_id=str(self.id))
        if not self.is_pending:
            raise StateConflict(f"Cannot complete a {self.status} payment", payment_id=str(self.id))

        paid_at = paid_at or datetime.now(UTC)
        self.status = PaymentStatus.COMPLETED.value
        self.transaction_id = transaction_id
        self.paid_at = paid_at
        self.updated_at = paid_at

        self.raise_(
            PaymentCompleted(
                payment_id=str(self.id),
                order_id=str(self.order_id),
                owner_id=str(self.owner_id),
                transaction_id=transaction_id,
                amount=self.amount,
                currency=self.currency,
                paid_at=paid_at,
            )
        )

    def assert_refundable(self) -> None:
        """Only a completed, not-yet-refunded payment can be refunded."""
        if self.is_refunded:
            raise AlreadyRefunded(payment_id=str(self.id))
        if not self.is_completed:
            raise NotRefundable(
                f"Only completed payments can be refunded, this one is {self.status}",
                payment_id=str(self.id),
            )

    def mark_refunded(self, refund_id: str, reason: str | None = None, refunded_at=None) -> None:
        self.assert_refundable()

        refunded_at = refunded_at or datetime.now(UTC)
        self.status = PaymentStatus.REFUNDED.value
        self.is_refunded = True
        self.refunded_at = refunded_at
        self.refund_reason = reason
        self.refund_id = refund_id
        self.updated_at = refunded_at

        self.raise_(
            PaymentRefunded(
                payment_id=str(self.id),
                order_id=str(self.order_id),
                owner_id=str(self.owner_id),
                refund_id=refund_id,
                amount=self.amount,
                reason=reason,
                refunded_at=refunded_at,
            )
        )

    def summary(self) -> dict:
        return {
            "id": str(self.id),
            "order_id": str(self.order_id),
            "owner_id": str(self.owner_id),
            "gateway_order_id": self.gateway_order_id,
            "amount": self.amount,
            "amount_minor": self.amount_minor,
            "currency": self.currency,
            "status": self.status,
            "payment_method": self.payment_method,
            "transaction_id": self.transaction_id,
            "paid_at": self.paid_at,
            "is_refunded": self.is_refunded,
            "refunded_at": self.refunded_at,
            "refund_reason": self.refund_reason,
            "refund_id": self.refund_id,
            "created_at": self.created_at,
        }

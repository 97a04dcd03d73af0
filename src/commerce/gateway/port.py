"""Payment gateway port (abstract interface).

Defines the contract every payment gateway adapter implements, so the
Razorpay adapter (production) and the FakeGateway (dev/test) are
interchangeable without touching domain or application code.

Amounts crossing this port are always integers in the currency's minor unit
(paise for INR).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field


@dataclass(frozen=True)
class GatewayOrderResult:
    """Result of asking the gateway for an order (payment intent)."""

    success: bool
    gateway_order_id: str | None = None
    amount: int | None = None
    currency: str | None = None
    receipt: str | None = None
    gateway_status: str | None = None
    failure_reason: str | None = None


@dataclass(frozen=True)
class RefundResult:
    """Result of a refund attempt."""

    success: bool
    gateway_refund_id: str | None = None
    amount: int | None = None
    gateway_status: str | None = None
    failure_reason: str | None = None
    raw: dict = field(default_factory=dict)


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    name: str = "gateway"

    @property
    @abstractmethod
    def key_id(self) -> str:
        """Public key the client SDK needs to open the checkout. Never the secret."""
        ...

    @abstractmethod
    def create_order(
        self,
        amount: int,
        currency: str,
        receipt: str,
        notes: dict | None = None,
    ) -> GatewayOrderResult:
        """Create a gateway order for `amount`, idempotent on `receipt`."""
        ...

    @abstractmethod
    def refund(
        self,
        transaction_id: str,
        amount: int,
        notes: dict | None = None,
        receipt: str | None = None,
    ) -> RefundResult:
        """Refund a captured payment, idempotent on `receipt`."""
        ...

    @abstractmethod
    def verify_payment_signature(
        self,
        gateway_order_id: str,
        gateway_payment_id: str,
        signature: str,
    ) -> bool:
        """Check that a client-submitted payment confirmation was signed by the gateway."""
        ...

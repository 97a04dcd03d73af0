"""Configurable fake payment gateway for development and testing.

Simulates a Razorpay-style gateway without any external calls:
- orders are idempotent on their receipt, like the real API
- payment confirmations are signed with a fixed test secret; `sign()`
  produces the signature a real checkout would hand to the client
- failures can be switched on at runtime with `configure()`
"""

from uuid import uuid4

from commerce.gateway.port import GatewayOrderResult, PaymentGateway, RefundResult
from commerce.gateway.signature import payment_signature, signature_matches

FAKE_KEY_ID = "rzp_test_fake_key"
FAKE_KEY_SECRET = "fake_secret"


class FakeGateway(PaymentGateway):
    """Configurable fake payment gateway."""

    name = "fake"

    def __init__(self, key_id: str = FAKE_KEY_ID, key_secret: str = FAKE_KEY_SECRET) -> None:
        self._key_id = key_id
        self._key_secret = key_secret
        self.should_succeed: bool = True
        self.failure_reason: str = "Gateway unavailable"
        self.calls: list[dict] = []
        self._orders: dict[str, GatewayOrderResult] = {}
        self._refunds: dict[str, RefundResult] = {}

    @property
    def key_id(self) -> str:
        return self._key_id

    def configure(self, should_succeed: bool, failure_reason: str = "Gateway unavailable") -> None:
        """Configure gateway behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def sign(self, gateway_order_id: str, gateway_payment_id: str) -> str:
        return payment_signature(self._key_secret, gateway_order_id, gateway_payment_id)

    def create_order(
        self,
        amount: int,
        currency: str,
        receipt: str,
        notes: dict | None = None,
    ) -> GatewayOrderResult:
        self.calls.append(
            {
                "method": "create_order",
                "amount": amount,
                "currency": currency,
                "receipt": receipt,
                "notes": notes or {},
            }
        )

        if not self.should_succeed:
            return GatewayOrderResult(success=False, gateway_status="failed", failure_reason=self.failure_reason)

        existing = self._orders.get(receipt)
        if existing is not None and existing.amount == amount:
            return existing

        result = GatewayOrderResult(
            success=True,
            gateway_order_id=f"order_{uuid4().hex[:14]}",
            amount=amount,
            currency=currency,
            receipt=receipt,
            gateway_status="created",
        )
        self._orders[receipt] = result
        return result

    def refund(
        self,
        transaction_id: str,
        amount: int,
        notes: dict | None = None,
        receipt: str | None = None,
    ) -> RefundResult:
        self.calls.append(
            {
                "method": "refund",
                "transaction_id": transaction_id,
                "amount": amount,
                "notes": notes or {},
                "receipt": receipt,
            }
        )

        if not self.should_succeed:
            return RefundResult(success=False, gateway_status="failed", failure_reason=self.failure_reason)

        if receipt and receipt in self._refunds:
            return self._refunds[receipt]

        result = RefundResult(
            success=True,
            gateway_refund_id=f"rfnd_{uuid4().hex[:14]}",
            amount=amount,
            gateway_status="processed",
        )
        if receipt:
            self._refunds[receipt] = result
        return result

    def verify_payment_signature(self, gateway_order_id: str, gateway_payment_id: str, signature: str) -> bool:
        return signature_matches(self._key_secret, gateway_order_id, gateway_payment_id, signature)

"""Payment gateway factory.

Provides get_gateway() / set_gateway() to swap implementations:
- FakeGateway for development and testing (PAYMENT_GATEWAY=fake, the default)
- RazorpayGateway for production (PAYMENT_GATEWAY=razorpay), configured from
  RAZORPAY_KEY_ID, RAZORPAY_KEY_SECRET and GATEWAY_TIMEOUT_SECONDS
"""

import os

from commerce.gateway.fake_adapter import FakeGateway
from commerce.gateway.port import PaymentGateway

_current_gateway: PaymentGateway | None = None


def _build_gateway() -> PaymentGateway:
    adapter = os.environ.get("PAYMENT_GATEWAY", "fake")
    if adapter == "fake":
        return FakeGateway()
    if adapter == "razorpay":
        from commerce.gateway.razorpay_adapter import RazorpayGateway

        return RazorpayGateway(
            key_id=os.environ.get("RAZORPAY_KEY_ID", ""),
            key_secret=os.environ.get("RAZORPAY_KEY_SECRET", ""),
            timeout=float(os.environ.get("GATEWAY_TIMEOUT_SECONDS", "10")),
        )
    raise ValueError(f"Unknown payment gateway: {adapter}")


def get_gateway() -> PaymentGateway:
    """Return the current payment gateway, building it from the environment on first use."""
    global _current_gateway
    if _current_gateway is None:
        _current_gateway = _build_gateway()
    return _current_gateway


def set_gateway(gateway: PaymentGateway) -> None:
    """Override the active payment gateway (useful for tests)."""
    global _current_gateway
    _current_gateway = gateway


def reset_gateway() -> None:
    """Reset to the environment-configured gateway."""
    global _current_gateway
    _current_gateway = None

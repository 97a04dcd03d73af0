"""HMAC-SHA256 payment signatures.

The gateway signs `<gateway order id>|<gateway payment id>` with the merchant
secret and hands the hex digest to the client, which submits it back with
the payment confirmation.
"""

import hashlib
import hmac


def payment_signature(secret: str, gateway_order_id: str, gateway_payment_id: str) -> str:
    message = f"{gateway_order_id}|{gateway_payment_id}"
    return hmac.new(secret.encode("utf-8"), message.encode("utf-8"), hashlib.sha256).hexdigest()


def signature_matches(secret: str, gateway_order_id: str, gateway_payment_id: str, signature: str | None) -> bool:
    """Constant-time comparison of `signature` against the expected digest."""
    if not secret or not signature:
        return False
    expected = payment_signature(secret, gateway_order_id, gateway_payment_id)
    return hmac.compare_digest(expected.encode("utf-8"), signature.strip().lower().encode("utf-8"))

"""Razorpay payment gateway adapter.

Talks to the Razorpay REST API with HTTP basic auth (key id + key secret).
Every call carries a bounded timeout; transport errors and timeouts come back
as unsuccessful results so callers never mistake them for a capture or a
refund.
"""

import requests
import structlog

from commerce.gateway.port import GatewayOrderResult, PaymentGateway, RefundResult
from commerce.gateway.signature import signature_matches

logger = structlog.get_logger(__name__)

RAZORPAY_API_URL = "https://api.razorpay.com/v1"


def _error_description(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return (response.text or "")[:300] or f"HTTP {response.status_code}"
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict):
        return error.get("description") or error.get("code") or f"HTTP {response.status_code}"
    return f"HTTP {response.status_code}"


class RazorpayGateway(PaymentGateway):
    name = "razorpay"

    def __init__(
        self,
        key_id: str,
        key_secret: str,
        timeout: float = 10.0,
        base_url: str = RAZORPAY_API_URL,
        session: requests.Session | None = None,
    ) -> None:
        if not key_id or not key_secret:
            raise ValueError("Razorpay key id and key secret are required")
        self._key_id = key_id
        self._key_secret = key_secret
        self.timeout = timeout
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.session.auth = (key_id, key_secret)

    @property
    def key_id(self) -> str:
        return self._key_id

    def _post(self, path: str, payload: dict) -> tuple[dict | None, str | None]:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.post(url, json=payload, timeout=self.timeout)
        except requests.Timeout:
            logger.warning("Razorpay request timed out", path=path, timeout=self.timeout)
            return None, f"Gateway timed out after {self.timeout}s"
        except requests.RequestException as exc:
            logger.warning("Razorpay request failed", path=path, error=str(exc))
            return None, f"Gateway unreachable: {exc}"

        if response.status_code >= 400:
            reason = _error_description(response)
            logger.warning("Razorpay rejected request", path=path, status_code=response.status_code, reason=reason)
            return None, reason
        return response.json(), None

    def create_order(
        self,
        amount: int,
        currency: str,
        receipt: str,
        notes: dict | None = None,
    ) -> GatewayOrderResult:
        body, error = self._post(
            "/orders",
            {"amount": amount, "currency": currency, "receipt": receipt, "notes": notes or {}},
        )
        if error:
            return GatewayOrderResult(success=False, gateway_status="failed", failure_reason=error)

        return GatewayOrderResult(
            success=True,
            gateway_order_id=body["id"],
            amount=body.get("amount", amount),
            currency=body.get("currency", currency),
            receipt=body.get("receipt", receipt),
            gateway_status=body.get("status"),
        )

    def refund(
        self,
        transaction_id: str,
        amount: int,
        notes: dict | None = None,
        receipt: str | None = None,
    ) -> RefundResult:
        payload = {"amount": amount, "notes": notes or {}}
        if receipt:
            payload["receipt"] = receipt

        body, error = self._post(f"/payments/{transaction_id}/refund", payload)
        if error:
            return RefundResult(success=False, gateway_status="failed", failure_reason=error)

        return RefundResult(
            success=True,
            gateway_refund_id=body["id"],
            amount=body.get("amount", amount),
            gateway_status=body.get("status"),
            raw=body,
        )

    def verify_payment_signature(self, gateway_order_id: str, gateway_payment_id: str, signature: str) -> bool:
        return signature_matches(self._key_secret, gateway_order_id, gateway_payment_id, signature)

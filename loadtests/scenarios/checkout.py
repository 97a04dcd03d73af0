"""Checkout load test scenarios.

CheckoutUser walks the whole money path: stock a product, fill a cart,
place the order, open a payment intent and verify a signed confirmation.
ContendedStockUser hammers a handful of low-stock products from many users
at once; the only acceptable refusals are InsufficientStock and
ConcurrentModification, never oversold stock.
"""

import random
import uuid

from commerce.gateway.fake_adapter import FAKE_KEY_SECRET
from commerce.gateway.signature import payment_signature
from locust import HttpUser, SequentialTaskSet, between, task

from loadtests.data_generators import checkout_payload, product_data, user_token
from loadtests.helpers.response import error_kind, extract_error_detail
from loadtests.helpers.state import CheckoutState

_VENDOR_TOKEN = user_token("vendor")


def _auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


class CheckoutJourney(SequentialTaskSet):
    """Add Product -> Add to Cart -> Place Order -> Payment Intent -> Verify Payment."""

    def on_start(self):
        self.state = CheckoutState()
        self.token = user_token("customer")

    @task
    def add_products(self):
        for _ in range(random.randint(1, 3)):
            with self.client.post(
                "/products",
                json=product_data(),
                headers=_auth(_VENDOR_TOKEN),
                catch_response=True,
                name="POST /products",
            ) as resp:
                if resp.status_code == 201:
                    self.state.product_ids.append(resp.json()["data"]["product_id"])
                else:
                    resp.failure(f"Add product failed: {resp.status_code} — {extract_error_detail(resp)}")
                    self.interrupt()

    @task
    def fill_cart(self):
        for product_id in self.state.product_ids:
            with self.client.post(
                "/cart",
                json={"productId": product_id, "quantity": random.randint(1, 3)},
                headers=_auth(self.token),
                catch_response=True,
                name="POST /cart",
            ) as resp:
                if resp.status_code != 200:
                    resp.failure(f"Add to cart failed: {resp.status_code} — {extract_error_detail(resp)}")
                    self.interrupt()
        self.state.current_status = "Filled"

    @task
    def place_order(self):
        with self.client.post(
            "/orders/from-cart",
            json=checkout_payload(),
            headers=_auth(self.token),
            catch_response=True,
            name="POST /orders/from-cart",
        ) as resp:
            if resp.status_code == 201:
                self.state.order_id = resp.json()["data"]["id"]
                self.state.current_status = "Ordered"
            else:
                resp.failure(f"Place order failed: {resp.status_code} — {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def create_payment_intent(self):
        with self.client.post(
            "/payments/create-payment-intent",
            json={"orderId": self.state.order_id},
            headers=_auth(self.token),
            catch_response=True,
            name="POST /payments/create-payment-intent",
        ) as resp:
            if resp.status_code == 200:
                data = resp.json()["data"]
                self.state.gateway_order_id = data["gateway_order_id"]
                self.state.payment_id = data["payment_id"]
            else:
                resp.failure(f"Payment intent failed: {resp.status_code} — {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def verify_payment(self):
        gateway_payment_id = f"pay_{uuid.uuid4().hex[:14]}"
        with self.client.post(
            "/payments/verify-payment",
            json={
                "orderId": self.state.order_id,
                "razorpay_order_id": self.state.gateway_order_id,
                "razorpay_payment_id": gateway_payment_id,
                "razorpay_signature": payment_signature(
                    FAKE_KEY_SECRET, self.state.gateway_order_id, gateway_payment_id
                ),
            },
            headers=_auth(self.token),
            catch_response=True,
            name="POST /payments/verify-payment",
        ) as resp:
            if resp.status_code == 200:
                self.state.current_status = "Paid"
            else:
                resp.failure(f"Verify payment failed: {resp.status_code} — {extract_error_detail(resp)}")

    @task
    def done(self):
        self.interrupt()


class CheckoutUser(HttpUser):
    """Customers buying and paying."""

    tasks = [CheckoutJourney]
    wait_time = between(1, 3)
    weight = 3


class ContendedStockUser(HttpUser):
    """Many customers ordering the same few scarce products."""

    wait_time = between(0.1, 0.5)
    weight = 1
    _shared_products: list[str] = []

    def on_start(self):
        self.token = user_token("customer")
        if not ContendedStockUser._shared_products:
            for _ in range(3):
                resp = self.client.post("/products", json=product_data(stock=20), headers=_auth(_VENDOR_TOKEN))
                if resp.status_code == 201:
                    ContendedStockUser._shared_products.append(resp.json()["data"]["product_id"])

    @task
    def order_scarce_product(self):
        if not ContendedStockUser._shared_products:
            return
        payload = checkout_payload()
        payload["items"] = [{"productId": random.choice(ContendedStockUser._shared_products), "quantity": 1}]
        with self.client.post(
            "/orders",
            json=payload,
            headers=_auth(self.token),
            catch_response=True,
            name="POST /orders (contended)",
        ) as resp:
            if resp.status_code == 201:
                resp.success()
            elif error_kind(resp) in ("InsufficientStock", "StateConflict"):
                # Sold out or lock timed out: expected under contention
                resp.success()
            else:
                resp.failure(f"Contended order failed: {resp.status_code} — {extract_error_detail(resp)}")

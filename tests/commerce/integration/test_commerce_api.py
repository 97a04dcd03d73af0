"""Integration tests for the commerce HTTP API."""

import inspect
import threading
from contextvars import copy_context

import pytest
from commerce.api import (
    cart_router,
    order_router,
    payment_router,
    product_router,
    register_error_handlers,
    tracking_router,
)
from commerce.order.order import Order
from fastapi import FastAPI
from fastapi.testclient import TestClient
from protean import current_domain

CUSTOMER = {"Authorization": "Bearer customer:cust-001"}
OTHER_CUSTOMER = {"Authorization": "Bearer customer:cust-002"}
ADMIN = {"Authorization": "Bearer admin:admin-001"}
VENDOR = {"Authorization": "Bearer vendor:vendor-001"}

SHIPPING = {
    "name": "Asha Rao",
    "address": "12 MG Road",
    "city": "Bengaluru",
    "state": "KA",
    "postalCode": "560001",
    "country": "India",
}


ROUTERS = (product_router, cart_router, order_router, payment_router, tracking_router)


def _app():
    app = FastAPI()
    for router in ROUTERS:
        app.include_router(router)
    register_error_handlers(app)
    return app


@pytest.fixture()
def client():
    return TestClient(_app())


def _add_product(client, name="Compost bin", price=10.0, stock=5):
    response = client.post("/products", json={"name": name, "price": price, "stock": stock}, headers=VENDOR)
    assert response.status_code == 201
    return response.json()["data"]["product_id"]


def _checkout(client):
    first = _add_product(client, "Compost bin", 10.0)
    second = _add_product(client, "Jute bag", 5.0)
    client.post("/cart", json={"productId": first, "quantity": 2}, headers=CUSTOMER)
    client.post("/cart", json={"productId": second, "quantity": 1}, headers=CUSTOMER)
    response = client.post(
        "/orders/from-cart",
        json={"shippingAddress": SHIPPING, "paymentMethod": "upi", "taxAmount": 3.0, "shippingAmount": 5.0},
        headers=CUSTOMER,
    )
    assert response.status_code == 201
    return response.json()["data"]


def _pay(client, gateway, order_id):
    intent = client.post("/payments/create-payment-intent", json={"orderId": order_id}, headers=CUSTOMER).json()
    gateway_order_id = intent["data"]["gateway_order_id"]
    response = client.post(
        "/payments/verify-payment",
        json={
            "orderId": order_id,
            "razorpay_order_id": gateway_order_id,
            "razorpay_payment_id": "pay_api_001",
            "razorpay_signature": gateway.sign(gateway_order_id, "pay_api_001"),
        },
        headers=CUSTOMER,
    )
    assert response.status_code == 200
    return intent["data"]["payment_id"]


class TestAuthentication:
    def test_missing_token(self, client):
        response = client.get("/cart")
        assert response.status_code == 401
        assert response.json() == {
            "success": False,
            "message": "Not authorized to access this route",
            "errorKind": "Unauthenticated",
        }

    def test_malformed_token(self, client):
        response = client.get("/cart", headers={"Authorization": "Bearer nobody"})
        assert response.status_code == 401

    def test_unknown_role(self, client):
        response = client.get("/cart", headers={"Authorization": "Bearer wizard:u-1"})
        assert response.json()["errorKind"] == "Unauthenticated"


class TestCartApi:
    def test_cart_round_trip(self, client):
        product_id = _add_product(client)

        response = client.post("/cart", json={"productId": product_id, "quantity": 2}, headers=CUSTOMER)
        assert response.status_code == 200
        cart = response.json()["data"]
        assert cart["total_items"] == 2

        item_id = cart["items"][0]["id"]
        cart = client.put(f"/cart/{item_id}", json={"quantity": 3}, headers=CUSTOMER).json()["data"]
        assert cart["total_amount"] == 30.0

        cart = client.delete(f"/cart/{item_id}", headers=CUSTOMER).json()["data"]
        assert cart["items"] == []

    def test_stock_error_envelope(self, client):
        product_id = _add_product(client, stock=1)
        response = client.post("/cart", json={"productId": product_id, "quantity": 2}, headers=CUSTOMER)
        assert response.status_code == 400
        assert response.json()["errorKind"] == "InsufficientStock"

    def test_schema_errors_use_the_envelope(self, client):
        response = client.post("/cart", json={"quantity": 0}, headers=CUSTOMER)
        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["errorKind"] == "Validation"


class TestOrderApi:
    def test_checkout(self, client):
        order = _checkout(client)
        assert order["total_amount"] == 33.0
        assert order["status"] == "Processing"
        assert order["order_number"].startswith("DMP")

        cart = client.get("/cart", headers=CUSTOMER).json()["data"]
        assert cart["items"] == []

    def test_empty_cart_checkout(self, client):
        response = client.post(
            "/orders/from-cart",
            json={"shippingAddress": SHIPPING, "paymentMethod": "upi"},
            headers=CUSTOMER,
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Cart is empty"

    def test_direct_order(self, client):
        product_id = _add_product(client, price=7.5)
        response = client.post(
            "/orders",
            json={
                "items": [{"productId": product_id, "quantity": 2}],
                "shippingAddress": SHIPPING,
                "paymentMethod": "cod",
            },
            headers=CUSTOMER,
        )
        assert response.status_code == 201
        assert response.json()["data"]["total_amount"] == 15.0

    def test_my_orders_and_detail(self, client):
        order = _checkout(client)

        body = client.get("/orders/my-orders", headers=CUSTOMER).json()
        assert [o["id"] for o in body["data"]] == [order["id"]]
        assert body["pagination"]["total"] == 1

        assert client.get(f"/orders/{order['id']}", headers=OTHER_CUSTOMER).status_code == 403
        assert client.get(f"/orders/{order['id']}", headers=ADMIN).status_code == 200

    def test_status_update_and_invalid_transition(self, client):
        order = _checkout(client)

        response = client.put(f"/orders/{order['id']}", json={"orderStatus": "Shipped"}, headers=ADMIN)
        assert response.json()["data"]["status"] == "Shipped"

        response = client.put(f"/orders/{order['id']}", json={"orderStatus": "Packed"}, headers=ADMIN)
        assert response.status_code == 400
        assert response.json()["errorKind"] == "StateConflict"

    def test_customer_cannot_update_status(self, client):
        order = _checkout(client)
        response = client.put(f"/orders/{order['id']}", json={"orderStatus": "Shipped"}, headers=CUSTOMER)
        assert response.status_code == 403
        assert response.json()["errorKind"] == "Forbidden"

    def test_cancel(self, client):
        order = _checkout(client)
        response = client.put(f"/orders/{order['id']}/cancel", json={"reason": "Ordered twice"}, headers=CUSTOMER)
        assert response.json()["data"]["status"] == "Cancelled"

    def test_unknown_order(self, client):
        response = client.get("/orders/no-such-order", headers=ADMIN)
        assert response.status_code == 404
        assert response.json()["errorKind"] == "NotFound"

    def test_admin_order_listing(self, client):
        order = _checkout(client)

        body = client.get("/orders", headers=ADMIN).json()
        assert [o["id"] for o in body["data"]] == [order["id"]]
        assert body["stats"] == {"totalSales": 33.0, "totalOrders": 1}
        assert body["pagination"]["total"] == 1

        assert client.get("/orders", params={"status": "Shipped"}, headers=ADMIN).json()["data"] == []
        assert client.get("/orders", headers=CUSTOMER).status_code == 403

    def test_vendor_lists_shop_orders(self, client):
        response = client.post(
            "/products",
            json={"name": "Seed kit", "price": 8.0, "stock": 4, "shopId": "shop-042"},
            headers=VENDOR,
        )
        product_id = response.json()["data"]["product_id"]
        client.post(
            "/orders",
            json={
                "items": [{"productId": product_id, "quantity": 2}],
                "shippingAddress": SHIPPING,
                "paymentMethod": "cod",
            },
            headers=CUSTOMER,
        )

        body = client.get("/orders", params={"shopId": "shop-042"}, headers=VENDOR).json()
        assert len(body["data"]) == 1
        assert body["stats"] == {"totalSales": 16.0, "totalOrders": 1}

        response = client.get("/orders", headers=VENDOR)
        assert response.status_code == 400
        assert response.json()["errorKind"] == "Validation"


class TestPaymentApi:
    def test_intent_response(self, client, fake_gateway):
        order = _checkout(client)
        response = client.post("/payments/create-payment-intent", json={"orderId": order["id"]}, headers=CUSTOMER)

        data = response.json()["data"]
        assert data["amount"] == 3300
        assert data["currency"] == "INR"
        assert data["key_id"] == fake_gateway.key_id
        assert data["gatewayOrderId"] == data["gateway_order_id"]
        assert data["paymentId"] == data["payment_id"]
        assert data["orderId"] == order["id"]
        assert data["keyId"] == fake_gateway.key_id

    def test_verify_with_gateway_neutral_field_names(self, client, fake_gateway):
        order = _checkout(client)
        intent = client.post("/payments/create-payment-intent", json={"orderId": order["id"]}, headers=CUSTOMER)
        gateway_order_id = intent.json()["data"]["gatewayOrderId"]

        response = client.post(
            "/payments/verify-payment",
            json={
                "orderId": order["id"],
                "gatewayOrderId": gateway_order_id,
                "gatewayPaymentId": "pay_api_002",
                "gatewaySignature": fake_gateway.sign(gateway_order_id, "pay_api_002"),
            },
            headers=CUSTOMER,
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["payment"]["status"] == "completed"
        assert data["payment"]["transaction_id"] == "pay_api_002"
        assert data["order"]["is_paid"] is True

    def test_verify_requires_every_field(self, client, fake_gateway):
        order = _checkout(client)
        response = client.post(
            "/payments/verify-payment",
            json={"orderId": order["id"], "gatewayOrderId": "order_x", "gatewayPaymentId": "pay_x"},
            headers=CUSTOMER,
        )
        assert response.status_code == 400
        assert response.json()["errorKind"] == "Validation"

    def test_verify_and_refund(self, client, fake_gateway):
        order = _checkout(client)
        payment_id = _pay(client, fake_gateway, order["id"])

        assert current_domain.repository_for(Order).get(order["id"]).is_paid is True

        response = client.put(f"/payments/{payment_id}/refund", json={"reason": "Damaged"}, headers=ADMIN)
        assert response.status_code == 200
        assert response.json()["message"] == "Payment refunded successfully"

        response = client.put(f"/payments/{payment_id}/refund", headers=ADMIN)
        assert response.status_code == 400
        assert response.json()["message"] == "Payment is already refunded"

    def test_invalid_signature(self, client, fake_gateway):
        order = _checkout(client)
        intent = client.post("/payments/create-payment-intent", json={"orderId": order["id"]}, headers=CUSTOMER)
        response = client.post(
            "/payments/verify-payment",
            json={
                "orderId": order["id"],
                "razorpay_order_id": intent.json()["data"]["gateway_order_id"],
                "razorpay_payment_id": "pay_api_001",
                "razorpay_signature": "0" * 64,
            },
            headers=CUSTOMER,
        )
        assert response.status_code == 400
        assert response.json()["errorKind"] == "InvalidSignature"

    def test_gateway_failure(self, client, fake_gateway):
        fake_gateway.configure(should_succeed=False)
        order = _checkout(client)
        response = client.post("/payments/create-payment-intent", json={"orderId": order["id"]}, headers=CUSTOMER)
        assert response.status_code == 502
        assert response.json()["errorKind"] == "GatewayError"

    def test_admin_listing(self, client, fake_gateway):
        order = _checkout(client)
        _pay(client, fake_gateway, order["id"])

        body = client.get("/payments", headers=ADMIN).json()
        assert body["summary"]["totalPayments"] == 1
        assert body["summary"]["totalAmount"] == 33.0
        assert client.get("/payments", headers=CUSTOMER).status_code == 403

        mine = client.get("/payments/my-payments", headers=CUSTOMER).json()
        assert len(mine["data"]) == 1


class TestTrackingApi:
    def test_record_and_read(self, client):
        order = _checkout(client)
        response = client.put(
            f"/tracking/{order['id']}/location",
            json={"latitude": 12.9716, "longitude": 77.5946, "status": "Out for Delivery"},
            headers=VENDOR,
        )
        assert response.status_code == 200
        assert response.json()["data"]["status"] == "Out for Delivery"

        tracking = client.get(f"/tracking/{order['id']}", headers=CUSTOMER).json()["data"]
        assert tracking["current_location"] == {"latitude": 12.9716, "longitude": 77.5946}

    def test_nearby(self, client):
        order = _checkout(client)
        client.put(
            f"/tracking/{order['id']}/location",
            json={"latitude": 12.9716, "longitude": 77.5946},
            headers=VENDOR,
        )

        body = client.get(
            "/tracking/nearby",
            params={"latitude": 12.97, "longitude": 77.59, "maxDistance": 5000},
            headers=VENDOR,
        ).json()
        assert body["count"] == 1
        assert body["data"][0]["order_id"] == order["id"]

    def test_out_of_range_coordinates(self, client):
        order = _checkout(client)
        response = client.put(
            f"/tracking/{order['id']}/location",
            json={"latitude": 123.0, "longitude": 77.5946},
            headers=VENDOR,
        )
        assert response.status_code == 400
        assert response.json()["errorKind"] == "Validation"


class TestBlockingRoutes:
    @pytest.mark.parametrize(
        "method, path",
        [
            ("PUT", "/products/{product_id}/restock"),
            ("POST", "/orders/from-cart"),
            ("POST", "/orders"),
            ("PUT", "/orders/{order_id}"),
            ("PUT", "/orders/{order_id}/cancel"),
            ("POST", "/payments/create-payment-intent"),
            ("POST", "/payments/verify-payment"),
            ("PUT", "/payments/{payment_id}/refund"),
        ],
    )
    def test_lock_and_gateway_routes_run_in_the_threadpool(self, method, path):
        endpoints = {
            (verb, route.path): route.endpoint for router in ROUTERS for route in router.routes for verb in route.methods
        }
        assert not inspect.iscoroutinefunction(endpoints[(method, path)])

    def test_slow_gateway_does_not_stall_other_requests(self, client, fake_gateway, monkeypatch):
        order = _checkout(client)
        started, release = threading.Event(), threading.Event()
        outcome = {}
        create_order = fake_gateway.create_order

        def slow_create_order(*args, **kwargs):
            started.set()
            outcome["released"] = release.wait(timeout=5)
            return create_order(*args, **kwargs)

        monkeypatch.setattr(fake_gateway, "create_order", slow_create_order)

        with TestClient(_app()) as shared:

            def pay():
                outcome["intent"] = shared.post(
                    "/payments/create-payment-intent", json={"orderId": order["id"]}, headers=CUSTOMER
                )

            worker = threading.Thread(target=copy_context().run, args=(pay,))
            worker.start()
            assert started.wait(timeout=5)

            assert shared.get("/orders/my-orders", headers=OTHER_CUSTOMER).status_code == 200
            release.set()
            worker.join(timeout=10)

        assert outcome["released"] is True
        assert outcome["intent"].status_code == 200

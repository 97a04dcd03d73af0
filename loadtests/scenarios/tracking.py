"""Delivery tracking load test scenario.

An admin places an order, then a courier (vendor) records location fixes
while moving it along the fulfilment chain, with nearby-order lookups in
between.
"""

import random

from locust import HttpUser, SequentialTaskSet, between, task

from loadtests.data_generators import checkout_payload, city_point, product_data, user_token
from loadtests.helpers.response import extract_error_detail
from loadtests.helpers.state import TrackingState

_STATUSES = ["Packed", "Shipped", "Out for Delivery", None, None, "Delivered"]


def _auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


class DeliveryJourney(SequentialTaskSet):
    def on_start(self):
        self.state = TrackingState()
        self.customer = user_token("customer")
        self.courier = user_token("vendor")

    @task
    def place_order(self):
        resp = self.client.post("/products", json=product_data(), headers=_auth(self.courier), name="POST /products")
        if resp.status_code != 201:
            self.interrupt()
        product_id = resp.json()["data"]["product_id"]

        payload = checkout_payload()
        payload["items"] = [{"productId": product_id, "quantity": 1}]
        with self.client.post(
            "/orders",
            json=payload,
            headers=_auth(self.customer),
            catch_response=True,
            name="POST /orders",
        ) as order_resp:
            if order_resp.status_code == 201:
                self.state.order_id = order_resp.json()["data"]["id"]
            else:
                order_resp.failure(f"Place order failed: {order_resp.status_code} — {extract_error_detail(order_resp)}")
                self.interrupt()

    @task
    def ride(self):
        for status in _STATUSES:
            latitude, longitude = city_point()
            body = {"latitude": latitude, "longitude": longitude}
            if status:
                body["status"] = status
            with self.client.put(
                f"/tracking/{self.state.order_id}/location",
                json=body,
                headers=_auth(self.courier),
                catch_response=True,
                name="PUT /tracking/{order_id}/location",
            ) as resp:
                if resp.status_code == 200:
                    self.state.fixes_recorded += 1
                    self.state.current_status = resp.json()["data"]["status"]
                else:
                    resp.failure(f"Record location failed: {resp.status_code} — {extract_error_detail(resp)}")
                    self.interrupt()

            if random.random() < 0.3:
                latitude, longitude = city_point()
                self.client.get(
                    "/tracking/nearby",
                    params={"latitude": latitude, "longitude": longitude, "maxDistance": 5000},
                    headers=_auth(self.courier),
                    name="GET /tracking/nearby",
                )

    @task
    def done(self):
        self.interrupt()


class TrackingUser(HttpUser):
    tasks = [DeliveryJourney]
    wait_time = between(1, 2)
    weight = 1

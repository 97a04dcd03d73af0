"""Shop orders — which orders include goods from which shop.

One row per (shop, order) pair, holding the order's status and the shop's
share of its item total. Vendors list their orders from here and the admin
order listing uses it for the per-shop filter.
"""

import json

from protean.core.projector import on
from protean.fields import DateTime, Float, Identifier, String
from protean.utils.globals import current_domain

from commerce.domain import commerce
from commerce.order.events import (
    OrderCancelled,
    OrderPlaced,
    OrderRefunded,
    OrderStatusChanged,
)
from commerce.order.order import Order, OrderStatus
from commerce.utils.lookup import iter_all


@commerce.projection
class ShopOrder:
    entry_id = String(identifier=True, required=True, max_length=120)
    shop_id = Identifier(required=True)
    order_id = Identifier(required=True)
    owner_id = Identifier(required=True)
    order_number = String()
    status = String(required=True)
    shop_amount = Float(default=0.0)
    currency = String(max_length=3)
    created_at = DateTime()
    updated_at = DateTime()


def _set_status(order_id, status, at) -> None:
    repo = current_domain.repository_for(ShopOrder)
    for view in iter_all(ShopOrder, order_id=str(order_id)):
        view.status = status
        view.updated_at = at
        repo.add(view)


@commerce.projector(projector_for=ShopOrder, aggregates=[Order])
class ShopOrderProjector:
    @on(OrderPlaced)
    def on_order_placed(self, event):
        shares = {}
        for item in json.loads(event.items):
            if item.get("shop_id"):
                shares[item["shop_id"]] = shares.get(item["shop_id"], 0.0) + item["unit_price"] * item["quantity"]

        repo = current_domain.repository_for(ShopOrder)
        for shop_id, amount in shares.items():
            repo.add(
                ShopOrder(
                    entry_id=f"{shop_id}:{event.order_id}",
                    shop_id=shop_id,
                    order_id=event.order_id,
                    owner_id=event.owner_id,
                    order_number=event.order_number,
                    status=OrderStatus.PROCESSING.value,
                    shop_amount=round(amount, 2),
                    currency=event.currency,
                    created_at=event.placed_at,
                    updated_at=event.placed_at,
                )
            )

    @on(OrderStatusChanged)
    def on_order_status_changed(self, event):
        _set_status(event.order_id, event.new_status, event.changed_at)

    @on(OrderCancelled)
    def on_order_cancelled(self, event):
        _set_status(event.order_id, OrderStatus.CANCELLED.value, event.cancelled_at)

    @on(OrderRefunded)
    def on_order_refunded(self, event):
        _set_status(event.order_id, event.status, event.refunded_at)

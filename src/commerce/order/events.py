"""Domain events for the Order aggregate.

Consumed synchronously, after the unit of work commits, by the notification
handler and by the delivery-location and shop-order projectors.
"""

from protean.fields import DateTime, Float, Identifier, String, Text

from commerce.domain import commerce


@commerce.event(part_of="Order")
class OrderPlaced:
    """An order was created from a cart or an explicit item list."""

    __version__ = 1

    order_id = Identifier(required=True)
    owner_id = Identifier(required=True)
    order_number = String(required=True)
    items = Text(required=True)  # JSON: list of item dicts
    items_amount = Float(required=True)
    tax_amount = Float()
    shipping_amount = Float()
    total_amount = Float(required=True)
    currency = String(default="INR")
    placed_at = DateTime(required=True)


@commerce.event(part_of="Order")
class OrderStatusChanged:
    """The order moved along the fulfilment chain (or was refunded)."""

    __version__ = 1

    order_id = Identifier(required=True)
    owner_id = Identifier(required=True)
    order_number = String()
    previous_status = String(required=True)
    new_status = String(required=True)
    changed_by = String()
    changed_at = DateTime(required=True)


@commerce.event(part_of="Order")
class OrderCancelled:
    """The order was cancelled and its items are due back in stock."""

    __version__ = 1

    order_id = Identifier(required=True)
    owner_id = Identifier(required=True)
    order_number = String()
    previous_status = String(required=True)
    reason = String()
    cancelled_by = String()
    items = Text(required=True)  # JSON: [{"product_id": ..., "quantity": ...}]
    cancelled_at = DateTime(required=True)


@commerce.event(part_of="Order")
class OrderPaid:
    """A verified payment settled the order."""

    __version__ = 1

    order_id = Identifier(required=True)
    owner_id = Identifier(required=True)
    order_number = String()
    payment_id = Identifier(required=True)
    transaction_id = String(required=True)
    amount = Float(required=True)
    currency = String(default="INR")
    paid_at = DateTime(required=True)


@commerce.event(part_of="Order")
class OrderRefunded:
    """The payment for the order was refunded through the gateway."""

    __version__ = 1

    order_id = Identifier(required=True)
    owner_id = Identifier(required=True)
    order_number = String()
    refund_id = String(required=True)
    status = String(required=True)  # order status after the refund
    refunded_at = DateTime(required=True)


@commerce.event(part_of="Order")
class LocationRecorded:
    """A delivery location fix was appended to the order's history."""

    __version__ = 1

    order_id = Identifier(required=True)
    owner_id = Identifier(required=True)
    order_number = String()
    latitude = Float(required=True)
    longitude = Float(required=True)
    status = String(required=True)
    description = String()
    estimated_delivery_time = DateTime()
    recorded_at = DateTime(required=True)

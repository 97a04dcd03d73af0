"""Customer notifications driven by Order events.

Runs synchronously after the order's unit of work commits. A failed
notification is logged and dropped: it never undoes or fails the order
operation that triggered it.
"""

import json

import structlog
from protean.utils.mixins import handle

from commerce.domain import commerce
from commerce.notifications import get_notifier
from commerce.order.events import (
    OrderCancelled,
    OrderPaid,
    OrderPlaced,
    OrderRefunded,
    OrderStatusChanged,
)
from commerce.order.order import Order

logger = structlog.get_logger(__name__)

_STATUS_MESSAGES = {
    "Packed": ("Order Packed", "Your order #{number} has been packed!"),
    "Shipped": ("Order Shipped", "Your order #{number} has been shipped!"),
    "Out for Delivery": ("Order Out for Delivery", "Your order #{number} is out for delivery!"),
    "Delivered": ("Order Delivered", "Your order #{number} has been delivered!"),
}


def _number(event) -> str:
    return event.order_number or str(event.order_id)


def _send(kind: str, order_id, call, *args, **kwargs) -> None:
    try:
        result = call(*args, **kwargs)
    except Exception:
        logger.exception("Notification dispatch raised", kind=kind, order_id=str(order_id))
        return
    if result.get("status") != "sent":
        logger.warning(
            "Notification not delivered",
            kind=kind,
            order_id=str(order_id),
            error=result.get("error"),
        )


def _confirmation_body(event: OrderPlaced) -> str:
    lines = [f"Thank you for your order #{event.order_number}.", ""]
    for item in json.loads(event.items):
        lines.append(f"- {item['name']} x {item['quantity']} @ {item['unit_price']:.2f}")
    lines.extend(
        [
            "",
            f"Items: {event.items_amount:.2f}",
            f"Tax: {(event.tax_amount or 0.0):.2f}",
            f"Shipping: {(event.shipping_amount or 0.0):.2f}",
            f"Total: {event.total_amount:.2f} {event.currency}",
        ]
    )
    return "\n".join(lines)


@commerce.event_handler(part_of=Order)
class OrderNotificationsHandler:
    """Tells the customer about every step of their order."""

    @handle(OrderPlaced)
    def on_order_placed(self, event: OrderPlaced) -> None:
        notifier = get_notifier()
        _send(
            "ORDER_PLACED",
            event.order_id,
            notifier.notify,
            str(event.owner_id),
            "New Order Placed",
            f"Your order #{event.order_number} has been placed successfully!",
            "ORDER_PLACED",
            {"order_id": str(event.order_id), "order_number": event.order_number},
        )
        _send(
            "ORDER_CONFIRMATION_EMAIL",
            event.order_id,
            notifier.send_email,
            str(event.owner_id),
            f"Order Confirmation #{event.order_number}",
            _confirmation_body(event),
        )

    @handle(OrderStatusChanged)
    def on_status_changed(self, event: OrderStatusChanged) -> None:
        if event.new_status == "Refunded":
            # Announced by on_order_refunded
            return
        title, template = _STATUS_MESSAGES.get(
            event.new_status,
            ("Order Update", "Your order #{number} status has been updated!"),
        )
        _send(
            "ORDER_STATUS_UPDATED",
            event.order_id,
            get_notifier().notify,
            str(event.owner_id),
            title,
            template.format(number=_number(event)),
            "ORDER_STATUS_UPDATED",
            {"order_id": str(event.order_id), "status": event.new_status},
        )

    @handle(OrderCancelled)
    def on_order_cancelled(self, event: OrderCancelled) -> None:
        _send(
            "ORDER_CANCELLED",
            event.order_id,
            get_notifier().notify,
            str(event.owner_id),
            "Order Cancelled",
            f"Your order #{_number(event)} has been cancelled.",
            "ORDER_CANCELLED",
            {"order_id": str(event.order_id), "reason": event.reason},
        )

    @handle(OrderPaid)
    def on_order_paid(self, event: OrderPaid) -> None:
        _send(
            "PAYMENT_RECEIVED",
            event.order_id,
            get_notifier().notify,
            str(event.owner_id),
            "Payment Received",
            f"We received your payment of {event.amount:.2f} {event.currency} for order #{_number(event)}.",
            "PAYMENT_RECEIVED",
            {"order_id": str(event.order_id), "payment_id": str(event.payment_id)},
        )

    @handle(OrderRefunded)
    def on_order_refunded(self, event: OrderRefunded) -> None:
        _send(
            "PAYMENT_REFUNDED",
            event.order_id,
            get_notifier().notify,
            str(event.owner_id),
            "Refund Processed",
            f"Your payment for order #{_number(event)} has been refunded.",
            "PAYMENT_REFUNDED",
            {"order_id": str(event.order_id), "refund_id": event.refund_id},
        )

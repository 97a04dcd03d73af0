"""Order aggregate — the immutable snapshot of a checkout and its lifecycle.

Items and amounts are fixed when the order is placed. After that the order
only changes through its status lifecycle, payment settlement, refunds and
delivery-location tracking.

State Machine:
    PROCESSING → PACKED → SHIPPED → OUT_FOR_DELIVERY → DELIVERED
    (forward only; skipping ahead is allowed)
    CANCELLED from any state before DELIVERED
    REFUNDED from DELIVERED or an active state, only through a payment refund
    DELIVERED, CANCELLED and REFUNDED are final
"""

import json
from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

from protean.exceptions import ValidationError
from protean.fields import (
    Boolean,
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    ValueObject,
)

from commerce.domain import commerce
from commerce.errors import AlreadyFinalized, AlreadyPaid, InvalidTransition
from commerce.order.events import (
    LocationRecorded,
    OrderCancelled,
    OrderPaid,
    OrderPlaced,
    OrderRefunded,
    OrderStatusChanged,
)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PROCESSING = "Processing"
    PACKED = "Packed"
    SHIPPED = "Shipped"
    OUT_FOR_DELIVERY = "Out for Delivery"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"
    REFUNDED = "Refunded"

    @classmethod
    def parse(cls, value) -> "OrderStatus":
        """Accept a member, its value ("Out for Delivery") or its name ("OUT_FOR_DELIVERY")."""
        if isinstance(value, cls):
            return value
        text = str(value).strip()
        for status in cls:
            if text.lower() in (status.value.lower(), status.name.lower()):
                return status
        raise ValidationError({"status": [f"Unknown order status '{value}'"]})


class PaymentMethod(Enum):
    CARD = "card"
    UPI = "upi"
    NETBANKING = "netbanking"
    WALLET = "wallet"
    COD = "cod"


_FULFILLMENT_CHAIN = [
    OrderStatus.PROCESSING,
    OrderStatus.PACKED,
    OrderStatus.SHIPPED,
    OrderStatus.OUT_FOR_DELIVERY,
    OrderStatus.DELIVERED,
]

ACTIVE_DELIVERY_STATES = {
    OrderStatus.PROCESSING,
    OrderStatus.PACKED,
    OrderStatus.SHIPPED,
    OrderStatus.OUT_FOR_DELIVERY,
}

FINAL_STATES = {OrderStatus.DELIVERED, OrderStatus.CANCELLED, OrderStatus.REFUNDED}

# State machine transition map
_VALID_TRANSITIONS = {
    status: set(_FULFILLMENT_CHAIN[index + 1 :]) | {OrderStatus.CANCELLED, OrderStatus.REFUNDED}
    for index, status in enumerate(_FULFILLMENT_CHAIN[:-1])
}
_VALID_TRANSITIONS[OrderStatus.DELIVERED] = {OrderStatus.REFUNDED}
_VALID_TRANSITIONS[OrderStatus.CANCELLED] = set()
_VALID_TRANSITIONS[OrderStatus.REFUNDED] = set()


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return target in _VALID_TRANSITIONS[current]


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@commerce.value_object(part_of="Order")
class ShippingAddress:
    """Where the order goes, captured at checkout and never updated."""

    name = String(required=True, max_length=255)
    address = String(required=True, max_length=500)
    city = String(required=True, max_length=100)
    state = String(max_length=100)
    postal_code = String(required=True, max_length=20)
    country = String(required=True, max_length=100)
    phone = String(max_length=30)


@commerce.value_object(part_of="Order")
class PaymentInfo:
    """The payment method chosen at checkout."""

    method = String(required=True, choices=PaymentMethod)
    status = String(max_length=50, default="pending")
    reference = String(max_length=255)


@commerce.value_object(part_of="Order")
class PaymentResult:
    """Summary of the verified payment that settled the order."""

    payment_id = String(max_length=255)
    transaction_id = String(max_length=255)
    status = String(max_length=50)
    amount = Float()
    currency = String(max_length=3)
    settled_at = DateTime()


@commerce.value_object(part_of="Order")
class GeoPoint:
    """Latitude/longitude pair in decimal degrees."""

    latitude: Float(required=True, min_value=-90.0, max_value=90.0)
    longitude: Float(required=True, min_value=-180.0, max_value=180.0)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@commerce.entity(part_of="Order")
class OrderItem:
    product_id = Identifier(required=True)
    name = String(required=True, max_length=255)
    unit_price = Float(required=True, min_value=0.0)
    quantity = Integer(required=True, min_value=1)
    image = String(max_length=1000)
    shop_id = Identifier()

    @property
    def line_total(self) -> float:
        return self.unit_price * self.quantity


@commerce.entity(part_of="Order")
class LocationEvent:
    """One delivery-location fix. Append-only, ordered by `sequence`."""

    sequence = Integer(required=True, min_value=1)
    latitude = Float(required=True, min_value=-90.0, max_value=90.0)
    longitude = Float(required=True, min_value=-180.0, max_value=180.0)
    status = String(required=True, choices=OrderStatus)
    description = String(max_length=500)
    recorded_at = DateTime(required=True)


@commerce.entity(part_of="Order")
class StatusChange:
    sequence = Integer(required=True, min_value=1)
    status = String(required=True, choices=OrderStatus)
    changed_by = String(max_length=255)
    comment = String(max_length=500)
    changed_at = DateTime(required=True)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@commerce.aggregate
class Order:
    order_number = String(required=True, max_length=50)
    owner_id = Identifier(required=True)
    items = HasMany(OrderItem)
    shipping_address = ValueObject(ShippingAddress)
    payment_info = ValueObject(PaymentInfo)
    payment_result = ValueObject(PaymentResult)
    items_amount = Float(default=0.0, min_value=0.0)
    tax_amount = Float(default=0.0, min_value=0.0)
    shipping_amount = Float(default=0.0, min_value=0.0)
    total_amount = Float(default=0.0, min_value=0.0)
    currency = String(max_length=3, default="INR")
    status = String(choices=OrderStatus, default=OrderStatus.PROCESSING.value)
    is_paid = Boolean(default=False)
    paid_at = DateTime()
    payment_id = Identifier()
    delivered_at = DateTime()
    cancelled_at = DateTime()
    cancellation_reason = String(max_length=500)
    cancelled_by = String(max_length=255)
    refunded_at = DateTime()
    refund_id = String(max_length=255)
    current_location = ValueObject(GeoPoint)
    location_history = HasMany(LocationEvent)
    status_history = HasMany(StatusChange)
    estimated_delivery_time = DateTime()
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        owner_id,
        items_data,
        shipping_address,
        payment_method,
        tax_amount=0.0,
        shipping_amount=0.0,
        currency="INR",
    ):
        """Create a new order in PROCESSING.

        Args:
            owner_id: The user placing the order.
            items_data: List of dicts with product_id, name, unit_price,
                        quantity and optionally image and shop_id.
            shipping_address: Dict matching ShippingAddress.
            payment_method: One of the PaymentMethod values.
            tax_amount: Tax charged on top of the items.
            shipping_amount: Delivery charge.
        """
        if not items_data:
            raise ValidationError({"items": ["An order must contain at least one item"]})

        now = datetime.now(UTC)
        tax_amount = tax_amount or 0.0
        shipping_amount = shipping_amount or 0.0
        items_amount = round(sum(item["unit_price"] * item["quantity"] for item in items_data), 2)
        total_amount = round(items_amount + tax_amount + shipping_amount, 2)

        order = cls(
            order_number=f"DMP{now:%Y%m%d}{uuid4().hex[:6].upper()}",
            owner_id=str(owner_id),
            items=[OrderItem(**item) for item in items_data],
            shipping_address=ShippingAddress(**shipping_address),
            payment_info=PaymentInfo(method=payment_method, status="pending"),
            items_amount=items_amount,
            tax_amount=tax_amount,
            shipping_amount=shipping_amount,
            total_amount=total_amount,
            currency=currency,
            status=OrderStatus.PROCESSING.value,
            is_paid=False,
            created_at=now,
            updated_at=now,
        )
        order._append_status(OrderStatus.PROCESSING, changed_by=str(owner_id), comment="Order placed", at=now)

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                owner_id=str(owner_id),
                order_number=order.order_number,
                items=json.dumps(
                    [
                        {
                            "product_id": str(item.product_id),
                            "name": item.name,
                            "unit_price": item.unit_price,
                            "quantity": item.quantity,
                            "shop_id": str(item.shop_id) if item.shop_id else None,
                        }
                        for item in order.items
                    ]
                ),
                items_amount=items_amount,
                tax_amount=tax_amount,
                shipping_amount=shipping_amount,
                total_amount=total_amount,
                currency=currency,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    @property
    def current_status(self) -> OrderStatus:
        return OrderStatus(self.status)

    @property
    def is_final(self) -> bool:
        return self.current_status in FINAL_STATES

    def item_lines(self) -> list[tuple[str, int]]:
        return [(str(item.product_id), item.quantity) for item in self.items]

    def _append_status(self, status: OrderStatus, changed_by=None, comment=None, at=None) -> None:
        self.add_status_history(
            StatusChange(
                sequence=len(self.status_history or []) + 1,
                status=status.value,
                changed_by=changed_by,
                comment=comment,
                changed_at=at or datetime.now(UTC),
            )
        )

    def _append_location(self, latitude, longitude, status: OrderStatus, description=None, at=None) -> LocationEvent:
        event = LocationEvent(
            sequence=len(self.location_history or []) + 1,
            latitude=latitude,
            longitude=longitude,
            status=status.value,
            description=description,
            recorded_at=at or datetime.now(UTC),
        )
        self.add_location_history(event)
        return event

    def _assert_can_transition(self, target_status: OrderStatus) -> None:
        """Validate that the current state allows transition to target."""
        current = self.current_status
        if current in FINAL_STATES and not can_transition(current, target_status):
            raise AlreadyFinalized(
                f"Order is already {current.value.lower()}, it cannot move to {target_status.value}",
                order_id=str(self.id),
            )
        if not can_transition(current, target_status):
            raise InvalidTransition(
                f"Cannot transition from {current.value} to {target_status.value}",
                order_id=str(self.id),
            )

    def _move_to(self, target: OrderStatus, changed_by=None, comment=None, track=True) -> None:
        previous = self.current_status
        now = datetime.now(UTC)

        self.status = target.value
        self.updated_at = now
        if target == OrderStatus.DELIVERED:
            self.delivered_at = now
        self._append_status(target, changed_by=changed_by, comment=comment, at=now)

        if track and self.current_location is not None:
            self._append_location(
                self.current_location.latitude,
                self.current_location.longitude,
                target,
                description=f"Order status changed to {target.value}",
                at=now,
            )

        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                owner_id=str(self.owner_id),
                order_number=self.order_number,
                previous_status=previous.value,
                new_status=target.value,
                changed_by=changed_by,
                changed_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Lifecycle transitions
    # -------------------------------------------------------------------
    def advance_status(self, target, changed_by=None, comment=None, track=True) -> bool:
        """Move the order forward along the fulfilment chain.

        Returns False when the order is already in `target`. Cancellation
        and refunds have their own methods because of their side effects.
        """
        target = OrderStatus.parse(target)
        if target == self.current_status:
            return False
        if target in (OrderStatus.CANCELLED, OrderStatus.REFUNDED):
            self._assert_can_transition(target)
            raise InvalidTransition(
                f"Use the dedicated operation to move an order to {target.value}",
                order_id=str(self.id),
            )

        self._assert_can_transition(target)
        self._move_to(target, changed_by=changed_by, comment=comment, track=track)
        return True

    def cancel(self, reason=None, cancelled_by=None) -> list[tuple[str, int]]:
        """Cancel the order. Returns the (product_id, quantity) lines to put back in stock."""
        self._assert_can_transition(OrderStatus.CANCELLED)

        previous = self.current_status
        now = datetime.now(UTC)
        self.status = OrderStatus.CANCELLED.value
        self.cancelled_at = now
        self.cancellation_reason = reason
        self.cancelled_by = cancelled_by
        self.updated_at = now
        self._append_status(OrderStatus.CANCELLED, changed_by=cancelled_by, comment=reason, at=now)
        if self.current_location is not None:
            self._append_location(
                self.current_location.latitude,
                self.current_location.longitude,
                OrderStatus.CANCELLED,
                description="Order cancelled",
                at=now,
            )

        lines = self.item_lines()
        self.raise_(
            OrderCancelled(
                order_id=str(self.id),
                owner_id=str(self.owner_id),
                order_number=self.order_number,
                previous_status=previous.value,
                reason=reason,
                cancelled_by=cancelled_by,
                items=json.dumps([{"product_id": pid, "quantity": qty} for pid, qty in lines]),
                cancelled_at=now,
            )
        )
        return lines

    def mark_paid(self, payment_id, transaction_id, amount, paid_at=None) -> None:
        """Record the verified payment that settles this order."""
        if self.is_paid:
            raise AlreadyPaid(order_id=str(self.id))

        paid_at = paid_at or datetime.now(UTC)
        self.is_paid = True
        self.paid_at = paid_at
        self.payment_id = str(payment_id)
        self.payment_info = PaymentInfo(
            method=self.payment_info.method if self.payment_info else PaymentMethod.CARD.value,
            status="paid",
            reference=transaction_id,
        )
        self.payment_result = PaymentResult(
            payment_id=str(payment_id),
            transaction_id=transaction_id,
            status="completed",
            amount=amount,
            currency=self.currency,
            settled_at=paid_at,
        )
        self.updated_at = paid_at
        # Verification happens while the order is still in its initial
        # PROCESSING state, which already is active fulfilment.

        self.raise_(
            OrderPaid(
                order_id=str(self.id),
                owner_id=str(self.owner_id),
                order_number=self.order_number,
                payment_id=str(payment_id),
                transaction_id=transaction_id,
                amount=amount,
                currency=self.currency,
                paid_at=paid_at,
            )
        )

    def mark_refunded(self, refund_id, refunded_by=None) -> bool:
        """Record a gateway refund against this order.

        A cancelled order stays CANCELLED (it is final); every other order
        moves to REFUNDED. Returns True when the status changed.
        """
        current = self.current_status
        if current == OrderStatus.REFUNDED:
            raise AlreadyFinalized("Order is already refunded", order_id=str(self.id))

        now = datetime.now(UTC)
        self.refunded_at = now
        self.refund_id = refund_id
        self.updated_at = now
        if self.payment_info is not None:
            self.payment_info = PaymentInfo(
                method=self.payment_info.method,
                status="refunded",
                reference=self.payment_info.reference,
            )

        changed = current != OrderStatus.CANCELLED
        if changed:
            self._assert_can_transition(OrderStatus.REFUNDED)
            self._move_to(OrderStatus.REFUNDED, changed_by=refunded_by, comment="Payment refunded")

        self.raise_(
            OrderRefunded(
                order_id=str(self.id),
                owner_id=str(self.owner_id),
                order_number=self.order_number,
                refund_id=refund_id,
                status=self.status,
                refunded_at=now,
            )
        )
        return changed

    # -------------------------------------------------------------------
    # Delivery tracking
    # -------------------------------------------------------------------
    def record_location(
        self,
        latitude,
        longitude,
        status=None,
        description=None,
        estimated_delivery_time=None,
        recorded_by=None,
    ) -> LocationEvent:
        """Set the current location and append it to the history.

        When `status` is given the order is first advanced to it through
        the state machine; the appended event carries the resulting status.
        """
        if self.is_final:
            raise AlreadyFinalized(
                f"Cannot track a {self.current_status.value.lower()} order",
                order_id=str(self.id),
            )

        now = datetime.now(UTC)
        point = GeoPoint(latitude=latitude, longitude=longitude)

        if status is not None:
            self.advance_status(status, changed_by=recorded_by, comment=description, track=False)

        self.current_location = point
        if estimated_delivery_time is not None:
            self.estimated_delivery_time = estimated_delivery_time
        self.updated_at = now
        event = self._append_location(point.latitude, point.longitude, self.current_status, description, at=now)

        self.raise_(
            LocationRecorded(
                order_id=str(self.id),
                owner_id=str(self.owner_id),
                order_number=self.order_number,
                latitude=point.latitude,
                longitude=point.longitude,
                status=self.status,
                description=description,
                estimated_delivery_time=self.estimated_delivery_time,
                recorded_at=now,
            )
        )
        return event

    def tracking_summary(self) -> dict:
        history = sorted(self.location_history or [], key=lambda e: e.sequence)
        return {
            "order_id": str(self.id),
            "order_number": self.order_number,
            "status": self.status,
            "current_location": (
                {"latitude": self.current_location.latitude, "longitude": self.current_location.longitude}
                if self.current_location
                else None
            ),
            "location_history": [
                {
                    "sequence": e.sequence,
                    "latitude": e.latitude,
                    "longitude": e.longitude,
                    "status": e.status,
                    "description": e.description,
                    "recorded_at": e.recorded_at,
                }
                for e in history
            ],
            "estimated_delivery_time": self.estimated_delivery_time,
            "delivered_at": self.delivered_at,
        }

"""Delivery locations — the proximity index behind nearby-order queries.

One row per tracked order holding its latest location and status. Rows are
written when a location is recorded and kept in step with later status
changes, so the nearby query only ever has to look at this table.
"""

from protean.core.projector import on
from protean.exceptions import ObjectNotFoundError
from protean.fields import DateTime, Float, Identifier, String
from protean.utils.globals import current_domain

from commerce.domain import commerce
from commerce.order.events import (
    LocationRecorded,
    OrderCancelled,
    OrderRefunded,
    OrderStatusChanged,
)
from commerce.order.order import Order


@commerce.projection
class DeliveryLocation:
    order_id = Identifier(identifier=True, required=True)
    owner_id = Identifier(required=True)
    order_number = String()
    status = String(required=True)
    latitude = Float(required=True)
    longitude = Float(required=True)
    estimated_delivery_time = DateTime()
    updated_at = DateTime()


def _existing(order_id):
    try:
        return current_domain.repository_for(DeliveryLocation).get(str(order_id))
    except ObjectNotFoundError:
        return None


def _set_status(order_id, status, at) -> None:
    view = _existing(order_id)
    if view is None:
        # Never tracked, nothing to index
        return
    view.status = status
    view.updated_at = at
    current_domain.repository_for(DeliveryLocation).add(view)


@commerce.projector(projector_for=DeliveryLocation, aggregates=[Order])
class DeliveryLocationProjector:
    @on(LocationRecorded)
    def on_location_recorded(self, event):
        repo = current_domain.repository_for(DeliveryLocation)
        view = _existing(event.order_id)
        if view is None:
            view = DeliveryLocation(
                order_id=event.order_id,
                owner_id=event.owner_id,
                order_number=event.order_number,
                status=event.status,
                latitude=event.latitude,
                longitude=event.longitude,
            )
        view.status = event.status
        view.latitude = event.latitude
        view.longitude = event.longitude
        view.estimated_delivery_time = event.estimated_delivery_time
        view.updated_at = event.recorded_at
        repo.add(view)

    @on(OrderStatusChanged)
    def on_order_status_changed(self, event):
        _set_status(event.order_id, event.new_status, event.changed_at)

    @on(OrderCancelled)
    def on_order_cancelled(self, event):
        _set_status(event.order_id, "Cancelled", event.cancelled_at)

    @on(OrderRefunded)
    def on_order_refunded(self, event):
        _set_status(event.order_id, event.status, event.refunded_at)

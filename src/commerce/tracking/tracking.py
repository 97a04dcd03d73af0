"""Delivery tracking — record location fixes and answer where orders are.

Recording a location may also advance the order along its fulfilment chain;
cancellation and refunds are refused here because they have their own
operations with side effects. Nearby queries go through the
`DeliveryLocation` projection: a bounding-box pre-filter in the store, then
an exact haversine distance check.
"""

import structlog
from protean import handle
from protean.fields import DateTime, Float, Identifier, String
from protean.utils.globals import current_domain

from commerce.access import Actor, Capability, Role, authorize
from commerce.domain import commerce
from commerce.errors import Validation
from commerce.order.order import ACTIVE_DELIVERY_STATES, Order
from commerce.projections.delivery_locations import DeliveryLocation
from commerce.tracking.geo import bounding_box, haversine_m
from commerce.utils.lookup import find_all, load

logger = structlog.get_logger(__name__)

DEFAULT_NEARBY_RADIUS_M = 10000


@commerce.command(part_of="Order")
class RecordLocation:
    """A delivery location fix for an order (vendors and administrators)."""

    order_id = Identifier(required=True)
    latitude = Float(required=True, min_value=-90.0, max_value=90.0)
    longitude = Float(required=True, min_value=-180.0, max_value=180.0)
    status = String(max_length=50)
    description = String(max_length=500)
    estimated_delivery_time = DateTime()
    actor_id = Identifier(required=True)
    actor_role = String(choices=Role, default=Role.VENDOR.value)


@commerce.command_handler(part_of=Order)
class TrackingHandler:
    @handle(RecordLocation)
    def record_location(self, command):
        actor = Actor.from_command(command)
        authorize(actor, Capability.RECORD_LOCATION)

        order = load(Order, command.order_id)
        event = order.record_location(
            latitude=command.latitude,
            longitude=command.longitude,
            status=command.status or None,
            description=command.description,
            estimated_delivery_time=command.estimated_delivery_time,
            recorded_by=actor.user_id,
        )
        current_domain.repository_for(Order).add(order)

        logger.info(
            "Delivery location recorded",
            order_id=str(order.id),
            sequence=event.sequence,
            status=order.status,
        )
        return order.tracking_summary()


def record_location(
    order_id: str,
    latitude: float,
    longitude: float,
    actor: Actor,
    status: str | None = None,
    description: str | None = None,
    estimated_delivery_time=None,
) -> dict:
    return current_domain.process(
        RecordLocation(
            order_id=order_id,
            latitude=latitude,
            longitude=longitude,
            status=status,
            description=description,
            estimated_delivery_time=estimated_delivery_time,
            actor_id=actor.user_id,
            actor_role=actor.role.value,
        ),
        asynchronous=False,
    )


def tracking_summary(order_id: str, actor: Actor) -> dict:
    order = load(Order, order_id)
    authorize(actor, Capability.VIEW_TRACKING, owner_id=order.owner_id)
    return order.tracking_summary()


def find_nearby(
    latitude: float,
    longitude: float,
    actor: Actor,
    max_distance_m: float = DEFAULT_NEARBY_RADIUS_M,
) -> list[dict]:
    """Orders in active delivery whose current location is within `max_distance_m`, nearest first."""
    authorize(actor, Capability.FIND_NEARBY)
    if not (-90.0 <= latitude <= 90.0 and -180.0 <= longitude <= 180.0):
        raise Validation("Latitude must be within ±90 and longitude within ±180")
    if max_distance_m <= 0:
        raise Validation("Maximum distance must be positive")

    min_lat, max_lat, min_lon, max_lon = bounding_box(latitude, longitude, max_distance_m)
    candidates = find_all(
        DeliveryLocation,
        status__in=[status.value for status in ACTIVE_DELIVERY_STATES],
        latitude__gte=min_lat,
        latitude__lte=max_lat,
        longitude__gte=min_lon,
        longitude__lte=max_lon,
    )

    results = []
    for location in candidates:
        distance = haversine_m(latitude, longitude, location.latitude, location.longitude)
        if distance <= max_distance_m:
            results.append(
                {
                    "order_id": str(location.order_id),
                    "order_number": location.order_number,
                    "owner_id": str(location.owner_id),
                    "status": location.status,
                    "current_location": {"latitude": location.latitude, "longitude": location.longitude},
                    "estimated_delivery_time": location.estimated_delivery_time,
                    "distance_m": round(distance, 1),
                }
            )

    results.sort(key=lambda r: r["distance_m"])
    return results

"""Domain events for the Product aggregate's stock."""

from protean.fields import DateTime, Identifier, Integer, String

from commerce.domain import commerce


@commerce.event(part_of="Product")
class StockDecremented:
    """Stock was taken for an order."""

    __version__ = 1

    product_id = Identifier(required=True)
    quantity = Integer(required=True)
    remaining = Integer(required=True)
    reference = String(max_length=255)  # order id, when known
    occurred_at = DateTime(required=True)


@commerce.event(part_of="Product")
class StockRestored:
    """Stock was returned by a cancellation, a refund or a compensated reservation."""

    __version__ = 1

    product_id = Identifier(required=True)
    quantity = Integer(required=True)
    remaining = Integer(required=True)
    reference = String(max_length=255)
    occurred_at = DateTime(required=True)


@commerce.event(part_of="Product")
class StockReplenished:
    """New stock was received through catalogue management."""

    __version__ = 1

    product_id = Identifier(required=True)
    quantity = Integer(required=True)
    remaining = Integer(required=True)
    occurred_at = DateTime(required=True)

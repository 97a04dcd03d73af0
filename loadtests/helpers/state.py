"""Per-user state tracking for Locust load test scenarios.

Each Locust user instance maintains its own state — no cross-user sharing.
State tracks entity IDs returned by creation endpoints so follow-up
operations can reference them.
"""

from dataclasses import dataclass, field


@dataclass
class CheckoutState:
    """Tracks one simulated customer from cart to paid order."""

    product_ids: list[str] = field(default_factory=list)
    order_id: str | None = None
    gateway_order_id: str | None = None
    payment_id: str | None = None
    current_status: str = "Empty"


@dataclass
class TrackingState:
    """Tracks one order being driven to delivery."""

    order_id: str | None = None
    fixes_recorded: int = 0
    current_status: str = "Processing"

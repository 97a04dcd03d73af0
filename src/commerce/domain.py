"""Commerce bounded context — carts, orders, payments and delivery tracking.

Owns the part of the platform where cart, product stock, order and payment
records have to stay consistent across several steps: checkout, payment
intent creation and verification, refunds, the order status lifecycle and
delivery-location tracking.
"""

from protean.domain import Domain

from commerce.utils.logging import configure_logging, get_logger

# Configure logging for the application
configure_logging(log_file_prefix="commerce")

logger = get_logger(__name__)

# Domain Composition Root
commerce = Domain(name="commerce")
